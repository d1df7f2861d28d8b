"""Pydantic schemas for the API."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


# ── Auth ─────────────────────────────────────────────────
class RegisterRequest(BaseModel):
    email: str = Field(min_length=1, max_length=100)
    password: str = Field(min_length=8, max_length=128)


class LoginRequest(BaseModel):
    email: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int


class UserInfo(BaseModel):
    id: int
    email: str

    model_config = {"from_attributes": True}


class MessageOut(BaseModel):
    message: str


# ── Rates ────────────────────────────────────────────────
class RatesOut(BaseModel):
    base: str
    rates: dict[str, float]
    updated_at: datetime


class ConversionOut(BaseModel):
    from_currency: str = Field(alias="from")
    to: str
    amount: float
    rate: float
    result: float
    updated_at: datetime

    model_config = {"populate_by_name": True}


class RefreshStatus(BaseModel):
    base: Optional[str] = None
    updated_at: Optional[datetime] = None
    last_success_at: Optional[datetime] = None
    last_error: Optional[str] = None


class HealthOut(BaseModel):
    status: str
    service: str
    version: str
    rates: RefreshStatus
