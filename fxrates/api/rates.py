"""Exchange rates and conversion API."""

import math
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from fxrates.errors import RateServiceError, api_error
from fxrates.schemas import ConversionOut, RatesOut
from fxrates.services.auth import get_current_user
from fxrates.services.conversion import is_currency_code, normalize_currency
from fxrates.services.rate_service import RateService

router = APIRouter(tags=["rates"], dependencies=[Depends(get_current_user)])


def get_rate_service(request: Request) -> RateService:
    return request.app.state.rate_service


@router.get("/rates", response_model=RatesOut)
async def get_rates(
    base: Optional[str] = Query(None, description="3-letter base currency; defaults to the service base"),
    service: RateService = Depends(get_rate_service),
):
    code = normalize_currency(base)
    if code and not is_currency_code(code):
        raise api_error(400, "validation_error", "base must be a 3-letter currency code")
    try:
        snapshot = await service.get_rates(code)
    except RateServiceError as e:
        raise api_error(400, e.code, str(e))
    return RatesOut(base=snapshot.base_currency, rates=snapshot.as_dict(), updated_at=snapshot.updated_at)


@router.get("/convert", response_model=ConversionOut)
async def convert(
    from_currency: Optional[str] = Query(None, alias="from"),
    to: Optional[str] = Query(None),
    amount: Optional[float] = Query(None),
    service: RateService = Depends(get_rate_service),
):
    src = normalize_currency(from_currency)
    dst = normalize_currency(to)
    if not is_currency_code(src) or not is_currency_code(dst):
        raise api_error(400, "validation_error", "from and to must be 3-letter currency codes")
    if amount is None:
        raise api_error(400, "validation_error", "amount is required")
    if not math.isfinite(amount) or amount < 0:
        raise api_error(400, "validation_error", "amount must be a non-negative number")

    try:
        converted = await service.convert(src, dst, amount)
    except RateServiceError as e:
        raise api_error(400, e.code, str(e))
    return ConversionOut(
        from_currency=converted.from_currency,
        to=converted.to_currency,
        amount=converted.amount,
        rate=converted.rate,
        result=converted.result,
        updated_at=converted.updated_at,
    )
