"""Client for the external exchange rate API."""

import logging
from dataclasses import dataclass

import httpx
from pydantic import BaseModel, ValidationError

from fxrates.errors import ProviderError

logger = logging.getLogger(__name__)


class _LatestPayload(BaseModel):
    base: str = ""
    rates: dict[str, float] = {}


@dataclass
class ProviderRates:
    base: str
    rates: dict[str, float]


class RateProvider:
    """Fetches `{base, rates}` from an exchangerate.host-compatible endpoint.

    The httpx client is owned by the caller so its timeout and lifetime follow
    the application's. A 2xx answer with an empty `rates` table is treated as
    a failure too, so it can never replace a good cache with a table holding
    only the base currency.
    """

    def __init__(self, client: httpx.AsyncClient, url: str):
        self.client = client
        self.url = url

    async def fetch_latest(self, base: str) -> ProviderRates:
        try:
            resp = await self.client.get(self.url, params={"base": base})
        except httpx.HTTPError as e:
            raise ProviderError(f"rates api request failed: {e}") from e

        if not resp.is_success:
            raise ProviderError(f"rates api error: {resp.status_code} {resp.reason_phrase}")

        try:
            payload = _LatestPayload.model_validate_json(resp.content)
        except ValidationError as e:
            raise ProviderError(f"rates api returned an invalid payload: {e.error_count()} error(s)") from e

        if not payload.rates:
            raise ProviderError("rates api returned no rates")

        payload_base = payload.base.strip().upper() or base
        rates = {code.strip().upper(): value for code, value in payload.rates.items()}
        logger.debug(f"fetched {len(rates)} rates for base {payload_base}")
        return ProviderRates(base=payload_base, rates=rates)
