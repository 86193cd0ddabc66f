"""Administrator account helpers."""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.future import select

from models.user import User
from services.errors import AuthError
from services.passwords import hash_password, verify_password

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def create_user(db: AsyncSession, email: str, password: str, rounds: int = 10) -> User:
    if await get_user_by_email(db, email):
        raise AuthError("El usuario ya existe", status_code=400)

    user = User(email=email, password=hash_password(password, rounds=rounds))
    db.add(user)
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise AuthError("El usuario ya existe", status_code=400) from exc
    await db.refresh(user)
    return user


async def authenticate_user(db: AsyncSession, email: str, password: str) -> User:
    user = await get_user_by_email(db, email)
    if not user or not verify_password(password, user.password):
        raise AuthError("Credenciales inválidas", status_code=401)
    return user


async def ensure_admin_account(session_maker: async_sessionmaker, email: str, password: str, rounds: int = 10) -> bool:
    """Create the default administrator when missing. Returns True when created."""
    if not email or not password:
        return False
    async with session_maker() as session:
        if await get_user_by_email(session, email):
            return False
        session.add(User(email=email, password=hash_password(password, rounds=rounds)))
        await session.commit()
    logger.info("Default admin account created: %s", email)
    return True
