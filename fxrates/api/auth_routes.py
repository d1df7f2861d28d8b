"""Auth API — register, login, logout, current user."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from fxrates.config import get_settings
from fxrates.database import get_db
from fxrates.errors import api_error
from fxrates.models import User
from fxrates.schemas import LoginRequest, MessageOut, RegisterRequest, TokenResponse, UserInfo
from fxrates.services.auth import AuthError, get_current_user, login_user, register_user, revoke_tokens

router = APIRouter(prefix="/auth", tags=["auth"])
settings = get_settings()


@router.post("/register", response_model=MessageOut, status_code=201)
async def register(data: RegisterRequest, db: AsyncSession = Depends(get_db)):
    try:
        await register_user(db, data.email, data.password)
    except AuthError as e:
        raise api_error(400, "registration_failed", str(e))
    return MessageOut(message="registered")


@router.post("/login", response_model=TokenResponse)
async def login(data: LoginRequest, db: AsyncSession = Depends(get_db)):
    """Authenticate and return JWT. Earlier tokens of the user stop working."""
    try:
        token, _ = await login_user(db, data.email, data.password)
    except AuthError as e:
        raise api_error(401, "login_failed", str(e))
    return TokenResponse(access_token=token, expires_in=settings.jwt_expire_minutes * 60)


@router.post("/logout", response_model=MessageOut)
async def logout(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    await revoke_tokens(db, user.id)
    return MessageOut(message="logged out")


@router.get("/me", response_model=UserInfo)
async def get_me(user: User = Depends(get_current_user)):
    return user
