"""Currency Converter API — FastAPI application entry point."""

from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError

from fxrates import __version__, errors
from fxrates.api import auth_routes, rates
from fxrates.config import get_settings
from fxrates.database import Base, async_session, engine
from fxrates.logging_setup import init_logging
from fxrates.middleware.rate_limit import RateLimitMiddleware
from fxrates.middleware.request_context import RequestContextMiddleware
from fxrates.schemas import HealthOut, RefreshStatus
from fxrates.services.rate_cache import RateCache
from fxrates.services.rate_provider import RateProvider
from fxrates.services.rate_service import RateService
from fxrates.services.rate_store import RateStore
from fxrates.services.refresh import RefreshLoop

settings = get_settings()


def build_rate_service(client: httpx.AsyncClient, session_factory=async_session) -> RateService:
    """Wire cache, store and provider into one service."""
    return RateService(
        cache=RateCache(),
        store=RateStore(session_factory),
        provider=RateProvider(client, settings.rate_provider_url),
        reference_base=settings.rate_base_currency,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create tables on startup (use migrations in production)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    client = httpx.AsyncClient(timeout=settings.http_client_timeout.total_seconds())
    service = build_rate_service(client)
    refresher = RefreshLoop(service.refresh, settings.rate_refresh_interval.total_seconds())
    app.state.rate_service = service
    app.state.refresher = refresher
    refresher.start()
    try:
        yield
    finally:
        await refresher.stop()
        await client.aclose()
        await engine.dispose()


init_logging(debug=settings.debug, json_output=settings.log_json)

app = FastAPI(
    title=settings.app_name,
    version=__version__,
    description="Currency exchange rates and conversion, refreshed from an external provider",
    lifespan=lifespan,
)

# Last added runs first: the request context wraps the limiter
app.add_middleware(
    RateLimitMiddleware,
    requests=settings.rate_limit_requests,
    window=settings.rate_limit_window.total_seconds(),
)
app.add_middleware(RequestContextMiddleware)

app.add_exception_handler(RequestValidationError, errors.validation_error_handler)
app.add_exception_handler(Exception, errors.server_error_handler)

app.include_router(auth_routes.router, prefix="/api/v1")
app.include_router(rates.router, prefix="/api/v1")


@app.get("/health", response_model=HealthOut)
async def health(request: Request):
    rates_status = RefreshStatus()
    service = getattr(request.app.state, "rate_service", None)
    if service is not None:
        snapshot = service.cache.get()
        if snapshot is not None:
            rates_status.base = snapshot.base_currency
            rates_status.updated_at = snapshot.updated_at
    refresher = getattr(request.app.state, "refresher", None)
    if refresher is not None:
        rates_status.last_error = refresher.last_error
        rates_status.last_success_at = refresher.last_success_at
    return HealthOut(status="ok", service=settings.app_name, version=__version__, rates=rates_status)
