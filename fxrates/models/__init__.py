"""Database models."""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Float, Integer, String

from fxrates.database import Base


def utcnow():
    return datetime.now(timezone.utc)


class Rate(Base):
    """Latest rate of one currency against the configured reference base."""
    __tablename__ = "rates"

    currency = Column(String(3), primary_key=True)
    rate = Column(Float, nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False, index=True)


class User(Base):
    """API account. Bumping token_version revokes every issued token."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(100), unique=True, nullable=False, index=True)
    password_hash = Column(String(200), nullable=False)
    token_version = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=utcnow)
