"""Session token helpers for backend-authenticated user scope."""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from config import Settings, settings as default_settings


SESSION_TOKEN_TYPE = "boda_session"


def create_session_token(
    user_id: int,
    email: Optional[str] = None,
    expires_hours: Optional[int] = None,
    app_settings: Optional[Settings] = None,
) -> Dict[str, Any]:
    """Create a signed session token payload for API authentication."""
    config = app_settings or default_settings
    now = datetime.now(timezone.utc)
    ttl_hours = int(expires_hours or config.JWT_EXPIRATION_HOURS or 24)
    expires_at = now + timedelta(hours=max(ttl_hours, 1))
    claims: Dict[str, Any] = {
        "sub": str(user_id),
        "type": SESSION_TOKEN_TYPE,
        "iat": int(now.timestamp()),
        "exp": int(expires_at.timestamp()),
    }
    if email:
        claims["email"] = email

    token = jwt.encode(claims, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)
    return {
        "token": token,
        "expires_at": int(expires_at.timestamp()),
    }


def decode_session_token(token: str, app_settings: Optional[Settings] = None) -> Dict[str, Any]:
    """Decode and validate a signed session token."""
    config = app_settings or default_settings
    try:
        payload = jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALGORITHM])
    except JWTError as exc:
        raise ValueError("Invalid or expired session token.") from exc

    token_type = str(payload.get("type", "")).strip()
    if token_type != SESSION_TOKEN_TYPE:
        raise ValueError("Invalid session token type.")

    subject = str(payload.get("sub", "")).strip()
    if not subject.isdigit():
        raise ValueError("Session token missing subject.")

    return payload
