"""Test fixtures."""

from datetime import datetime, timezone
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from fxrates.api.rates import get_rate_service
from fxrates.database import Base, get_db
from fxrates.errors import ProviderError
from fxrates.main import app
from fxrates.models import User
from fxrates.services.auth import hash_password, token_for
from fxrates.services.rate_cache import RateCache, RateSnapshot
from fxrates.services.rate_provider import ProviderRates
from fxrates.services.rate_service import RateService
from fxrates.services.rate_store import RateStore

T0 = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


class StubProvider:
    """Stands in for RateProvider. Set `.result` to a ProviderRates or an exception."""

    def __init__(self, result=None):
        self.result = result if result is not None else ProviderError("provider not configured")
        self.calls: list[str] = []

    async def fetch_latest(self, base: str) -> ProviderRates:
        self.calls.append(base)
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


@pytest_asyncio.fixture
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    # SQLite for tests (no external DB needed)
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest_asyncio.fixture
async def rate_store(session_factory) -> RateStore:
    return RateStore(session_factory)


@pytest.fixture
def provider() -> StubProvider:
    return StubProvider(ProviderRates(base="USD", rates={"THB": 35.0, "EUR": 0.9}))


@pytest_asyncio.fixture
async def rate_service(rate_store, provider) -> RateService:
    return RateService(cache=RateCache(), store=rate_store, provider=provider, reference_base="USD")


@pytest.fixture
def usd_snapshot() -> RateSnapshot:
    return RateSnapshot.build("USD", {"USD": 1.0, "THB": 35.0, "EUR": 0.9}, T0)


def _reset_rate_limiter():
    """Reset the in-memory rate limiter between tests to avoid 429s."""
    cur = app.middleware_stack
    while cur is not None:
        if hasattr(cur, "limiter"):
            cur.limiter.reset()
            return
        cur = getattr(cur, "app", None)


@pytest_asyncio.fixture(autouse=True)
async def reset_rate_limits():
    """Auto-reset rate limiter before each test."""
    _reset_rate_limiter()
    yield


@pytest_asyncio.fixture
async def client(session_factory, rate_service) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_rate_service] = lambda: rate_service
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def user(session_factory) -> User:
    async with session_factory() as session:
        u = User(email="alice@example.com", password_hash=hash_password("s3cret-pass"), token_version=0)
        session.add(u)
        await session.commit()
        await session.refresh(u)
        return u


@pytest_asyncio.fixture
async def auth_headers(user) -> dict:
    return {"Authorization": f"Bearer {token_for(user)}"}
