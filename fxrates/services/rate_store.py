"""Durable storage of the latest rate per currency."""

from datetime import datetime, timezone
from typing import Mapping, Optional

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from fxrates.models import Rate

_UPSERT_BY_DIALECT = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class RateStore:
    """One row per currency, always relative to the configured reference base.

    Sessions are opened per call from the factory, so the store can be used
    from the background refresher as well as from request handlers.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def upsert_rates(self, rates: Mapping[str, float], now: datetime) -> None:
        """Insert or update every currency in one transaction."""
        if not rates:
            return
        rows = [{"currency": code, "rate": float(value), "updated_at": now} for code, value in rates.items()]
        async with self._session_factory() as session:
            async with session.begin():
                dialect = session.get_bind().dialect.name
                insert = _UPSERT_BY_DIALECT.get(dialect)
                if insert is None:
                    raise ValueError(f"upsert not supported for dialect {dialect!r}")
                stmt = insert(Rate).values(rows)
                stmt = stmt.on_conflict_do_update(
                    index_elements=[Rate.currency],
                    set_={"rate": stmt.excluded.rate, "updated_at": stmt.excluded.updated_at},
                )
                await session.execute(stmt)

    async def get_all_rates(self) -> tuple[dict[str, float], Optional[datetime]]:
        """All persisted rates and the most recent update time among them."""
        async with self._session_factory() as session:
            result = await session.execute(select(Rate))
            rows = result.scalars().all()

        rates: dict[str, float] = {}
        latest: Optional[datetime] = None
        for row in rows:
            rates[row.currency] = row.rate
            updated = _as_utc(row.updated_at)
            if latest is None or updated > latest:
                latest = updated
        return rates, latest
