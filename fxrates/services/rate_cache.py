"""In-memory cache of the latest exchange rate snapshot.

A snapshot is immutable; refreshing replaces the whole object. Readers take
the reference once and work on it, so they see either the old or the new
snapshot and never a mix of the two.
"""

from dataclasses import dataclass
from datetime import datetime
from types import MappingProxyType
from typing import Mapping, Optional


@dataclass(frozen=True)
class RateSnapshot:
    """Rates of one unit of `base_currency` expressed in every other currency."""
    base_currency: str
    rates: Mapping[str, float]
    updated_at: datetime

    @classmethod
    def build(cls, base_currency: str, rates: Mapping[str, float], updated_at: datetime) -> "RateSnapshot":
        base = base_currency.strip().upper()
        table = {code.strip().upper(): float(value) for code, value in rates.items()}
        table[base] = 1.0
        return cls(base_currency=base, rates=MappingProxyType(table), updated_at=updated_at)

    def as_dict(self) -> dict[str, float]:
        """Mutable copy of the rate table."""
        return dict(self.rates)


class RateCache:
    """Holds the most recent snapshot. Last install wins."""

    def __init__(self, snapshot: Optional[RateSnapshot] = None):
        self._snapshot = snapshot

    def get(self) -> Optional[RateSnapshot]:
        return self._snapshot

    def install(self, snapshot: RateSnapshot) -> None:
        self._snapshot = snapshot

    @property
    def is_populated(self) -> bool:
        snapshot = self._snapshot
        return snapshot is not None and len(snapshot.rates) > 0
