"""Exchange rate service: refresh, snapshot resolution, rate queries."""

import logging
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError

from fxrates.errors import ProviderError, RatesUnavailableError, UnsupportedCurrencyError
from fxrates.services import conversion
from fxrates.services.conversion import ConversionResult
from fxrates.services.rate_cache import RateCache, RateSnapshot
from fxrates.services.rate_provider import RateProvider
from fxrates.services.rate_store import RateStore

logger = logging.getLogger(__name__)


class RateService:
    """Serves rates from the cache, falling back to the store when cold.

    `reference_base` is the currency every stored row is quoted against. The
    store is trusted to hold rates in that base; rows written under a
    different, earlier configuration are not detected.
    """

    def __init__(
        self,
        cache: RateCache,
        store: RateStore,
        provider: RateProvider,
        reference_base: str = "USD",
    ):
        self.cache = cache
        self.store = store
        self.provider = provider
        self.reference_base = reference_base.strip().upper() or "USD"

    async def refresh(self) -> RateSnapshot:
        """Fetch, persist, then install one new snapshot.

        Any failure propagates and leaves the cache and store as they were.
        """
        fetched = await self.provider.fetch_latest(self.reference_base)
        now = datetime.now(timezone.utc)
        snapshot = RateSnapshot.build(fetched.base, fetched.rates, now)

        # stored rows must be quoted against the reference base
        if snapshot.base_currency != self.reference_base:
            try:
                snapshot = conversion.rebase(snapshot, self.reference_base)
            except UnsupportedCurrencyError as e:
                raise ProviderError(
                    f"provider answered in {fetched.base} without a rate for {self.reference_base}"
                ) from e

        await self.store.upsert_rates(snapshot.rates, now)
        self.cache.install(snapshot)
        logger.info(f"rates refreshed: base={snapshot.base_currency} count={len(snapshot.rates)}")
        return snapshot

    async def current_snapshot(self) -> RateSnapshot:
        """The cached snapshot, or one rebuilt from the store when the cache is cold."""
        snapshot = self.cache.get()
        if self.cache.is_populated:
            return snapshot

        try:
            rates, updated_at = await self.store.get_all_rates()
        except (SQLAlchemyError, OSError) as e:
            logger.warning(f"rate store read failed: {e}")
            raise RatesUnavailableError("rates are not available yet") from e

        if not rates or updated_at is None:
            raise RatesUnavailableError("rates are not available yet")
        return RateSnapshot.build(self.reference_base, rates, updated_at)

    async def get_rates(self, base: str | None = None) -> RateSnapshot:
        snapshot = await self.current_snapshot()
        return conversion.rebase(snapshot, base)

    async def convert(self, from_currency: str, to_currency: str, amount: float) -> ConversionResult:
        conversion.validate_conversion(from_currency, to_currency, amount)
        snapshot = await self.current_snapshot()
        return conversion.convert(snapshot, from_currency, to_currency, amount)
