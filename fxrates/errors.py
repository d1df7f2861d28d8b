"""Error types and JSON error handlers."""

import logging

from fastapi import HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status

logger = logging.getLogger(__name__)


class RateServiceError(Exception):
    """Base error of the rate service. `code` is the machine-readable kind."""
    code = "rate_error"


class RatesUnavailableError(RateServiceError):
    """Neither the cache nor the store holds any rates."""
    code = "rates_unavailable"


class UnsupportedCurrencyError(RateServiceError):
    """The snapshot exists but lacks the requested currency."""
    code = "unsupported_currency"


class InvalidConversionError(RateServiceError):
    code = "validation_error"


class ProviderError(Exception):
    """Fetching rates from the external provider failed."""


def api_error(status_code: int, code: str, message: str, headers: dict | None = None) -> HTTPException:
    return HTTPException(
        status_code=status_code,
        detail={"code": code, "message": message},
        headers=headers,
    )


def validation_error_handler(request: Request, exc: RequestValidationError):  # type: ignore
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "detail": {
                "code": "validation_error",
                "message": "validation error",
                "errors": jsonable_encoder(exc.errors()),
            }
        },
    )


def server_error_handler(request: Request, exc: Exception):  # type: ignore
    logger.exception(f"unhandled exception on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": {"code": "internal_error", "message": "internal server error"}},
    )
