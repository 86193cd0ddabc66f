"""Authentication dependencies for API user scoping."""

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from config import Settings
from services.audit import AuditRecorder
from services.errors import AuthzError
from services.session_token import decode_session_token


auth_scheme = HTTPBearer(auto_error=False)


@dataclass
class AuthContext:
    user_id: int
    email: Optional[str] = None


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_audit_recorder(request: Request) -> AuditRecorder:
    return request.app.state.audit_recorder


async def get_auth_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(auth_scheme),
    app_settings: Settings = Depends(get_settings),
) -> AuthContext:
    """Resolve authenticated user from Bearer session token."""
    if not credentials or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        raise AuthzError("Token de acceso requerido", status_code=401)

    try:
        payload = decode_session_token(credentials.credentials, app_settings)
    except ValueError as exc:
        raise AuthzError("Token inválido", status_code=403) from exc

    return AuthContext(
        user_id=int(payload["sub"]),
        email=str(payload.get("email", "")) or None,
    )
