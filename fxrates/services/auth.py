"""JWT authentication and account service."""

from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from fxrates.config import get_settings
from fxrates.database import get_db
from fxrates.errors import api_error
from fxrates.models import User

settings = get_settings()
security = HTTPBearer(auto_error=False)

ALGORITHM = "HS256"
MIN_PASSWORD_LENGTH = 8


class AuthError(Exception):
    """Registration or login was refused."""


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))


def normalize_email(email: str) -> str:
    return email.strip().lower()


def is_valid_email(email: str) -> bool:
    return email.count("@") == 1 and len(email) >= 6 and "." in email


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    to_encode.update({"exp": expire, "iat": datetime.now(timezone.utc)})
    return jwt.encode(to_encode, settings.secret_key, algorithm=ALGORITHM)


def _unauthorized(message: str) -> HTTPException:
    return api_error(
        status.HTTP_401_UNAUTHORIZED,
        "unauthorized",
        message,
        headers={"WWW-Authenticate": "Bearer"},
    )


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except JWTError:
        raise _unauthorized("Invalid or expired token")


def token_for(user: User) -> str:
    return create_access_token({"sub": str(user.id), "email": user.email, "ver": user.token_version})


async def register_user(db: AsyncSession, email: str, password: str) -> User:
    email = normalize_email(email)
    if not email or not password:
        raise AuthError("email and password are required")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise AuthError(f"password must be at least {MIN_PASSWORD_LENGTH} characters")
    if not is_valid_email(email):
        raise AuthError("invalid email format")

    existing = await db.execute(select(User).where(User.email == email))
    if existing.scalar_one_or_none():
        raise AuthError("email already registered")

    user = User(email=email, password_hash=hash_password(password), token_version=0)
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def revoke_tokens(db: AsyncSession, user_id: int) -> None:
    await db.execute(
        update(User).where(User.id == user_id).values(token_version=User.token_version + 1)
    )
    await db.commit()


async def login_user(db: AsyncSession, email: str, password: str) -> tuple[str, User]:
    """Check credentials and issue a token, revoking earlier sessions."""
    email = normalize_email(email)
    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()
    if user is None or not verify_password(password, user.password_hash):
        raise AuthError("invalid email or password")

    await revoke_tokens(db, user.id)
    await db.refresh(user)
    return token_for(user), user


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Dependency: validate the bearer token against the user's token version."""
    if not credentials:
        raise _unauthorized("Not authenticated")
    payload = decode_token(credentials.credentials)

    try:
        user_id = int(payload.get("sub", ""))
    except (TypeError, ValueError):
        raise _unauthorized("Invalid or expired token")

    user = await db.get(User, user_id)
    if user is None:
        raise _unauthorized("user not found")
    if user.token_version != payload.get("ver"):
        raise _unauthorized("token revoked")
    return user
