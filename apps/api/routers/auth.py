"""
Authentication router: login, registration and token verification.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from config import Settings
from database import get_db
from routers.auth_scope import AuthContext, get_auth_context, get_settings
from routers.rate_limit import rate_limit
from services.accounts import MIN_PASSWORD_LENGTH, authenticate_user, create_user
from services.errors import ValidationError
from services.session_token import create_session_token

router = APIRouter()


class CredentialsRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class UserResponse(BaseModel):
    id: int
    email: str


class SessionResponse(BaseModel):
    message: str
    token: str
    expires_at: int
    user: UserResponse


class VerifyTokenResponse(BaseModel):
    valid: bool
    user: UserResponse


def _require_credentials(request: CredentialsRequest) -> tuple:
    email = (request.email or "").strip()
    password = request.password or ""
    if not email or not password:
        raise ValidationError("Email y contraseña son requeridos")
    return email, password


@router.post(
    "/auth/login",
    response_model=SessionResponse,
    dependencies=[Depends(rate_limit("login"))],
)
async def login(
    request: CredentialsRequest,
    db: AsyncSession = Depends(get_db),
    app_settings: Settings = Depends(get_settings),
):
    """Exchange email and password for a bearer token."""
    email, password = _require_credentials(request)
    user = await authenticate_user(db, email, password)
    session = create_session_token(user.id, user.email, app_settings=app_settings)
    return SessionResponse(
        message="Inicio de sesión exitoso",
        token=session["token"],
        expires_at=session["expires_at"],
        user=UserResponse(id=user.id, email=user.email),
    )


@router.post(
    "/auth/register",
    response_model=SessionResponse,
    dependencies=[Depends(rate_limit("register"))],
)
async def register(
    request: CredentialsRequest,
    db: AsyncSession = Depends(get_db),
    app_settings: Settings = Depends(get_settings),
):
    """Create an administrator account and log it in."""
    email, password = _require_credentials(request)
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"La contraseña debe tener al menos {MIN_PASSWORD_LENGTH} caracteres")

    user = await create_user(db, email, password, rounds=app_settings.BCRYPT_ROUNDS)
    session = create_session_token(user.id, user.email, app_settings=app_settings)
    return SessionResponse(
        message="Usuario registrado exitosamente",
        token=session["token"],
        expires_at=session["expires_at"],
        user=UserResponse(id=user.id, email=user.email),
    )


@router.get("/verify-token", response_model=VerifyTokenResponse)
async def verify_token(auth: AuthContext = Depends(get_auth_context)):
    return VerifyTokenResponse(valid=True, user=UserResponse(id=auth.user_id, email=auth.email or ""))
