"""Rebasing and conversion math over a rate snapshot.

Every rate in a snapshot is quoted against the same base, so the rate between
any two currencies is derived by division:

    rate(X -> Y) = rate(base -> Y) / rate(base -> X)

These functions are pure. They receive a snapshot and return new values; the
snapshot itself is never modified.
"""

from dataclasses import dataclass
from datetime import datetime

from fxrates.errors import InvalidConversionError, UnsupportedCurrencyError
from fxrates.services.rate_cache import RateSnapshot


@dataclass(frozen=True)
class ConversionResult:
    from_currency: str
    to_currency: str
    amount: float
    rate: float
    result: float
    updated_at: datetime


def normalize_currency(code: str | None) -> str:
    return (code or "").strip().upper()


def is_currency_code(code: str) -> bool:
    """Three ASCII uppercase letters."""
    return len(code) == 3 and all("A" <= ch <= "Z" for ch in code)


def rebase(snapshot: RateSnapshot, base: str | None = None) -> RateSnapshot:
    """Return the snapshot re-expressed against `base`.

    An empty base, or the snapshot's own base, gives the snapshot's rates
    unchanged.
    """
    requested = normalize_currency(base)
    if not requested or requested == snapshot.base_currency:
        return RateSnapshot.build(snapshot.base_currency, snapshot.rates, snapshot.updated_at)

    base_rate = snapshot.rates.get(requested)
    if not base_rate:
        raise UnsupportedCurrencyError(f"unsupported base currency: {requested}")

    rebased = {code: rate / base_rate for code, rate in snapshot.rates.items()}
    return RateSnapshot.build(requested, rebased, snapshot.updated_at)


def validate_conversion(from_currency: str | None, to_currency: str | None, amount: float) -> tuple[str, str]:
    """Normalize the pair and reject obviously bad input before any lookup."""
    src = normalize_currency(from_currency)
    dst = normalize_currency(to_currency)
    if not src or not dst:
        raise InvalidConversionError("from and to currencies are required")
    if amount < 0:
        raise InvalidConversionError("amount must be non-negative")
    return src, dst


def convert(snapshot: RateSnapshot, from_currency: str, to_currency: str, amount: float) -> ConversionResult:
    src, dst = validate_conversion(from_currency, to_currency, amount)

    r_from = snapshot.rates.get(src)
    if not r_from:
        # a zero source rate would divide by zero
        raise UnsupportedCurrencyError(f"unsupported currency: {src}")
    r_to = snapshot.rates.get(dst)
    if r_to is None:
        raise UnsupportedCurrencyError(f"unsupported currency: {dst}")

    rate = r_to / r_from
    return ConversionResult(
        from_currency=src,
        to_currency=dst,
        amount=amount,
        rate=rate,
        result=amount * rate,
        updated_at=snapshot.updated_at,
    )
