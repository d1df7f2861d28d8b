"""Currency Converter CLI management tool.

Usage:
    python -m cli rates refresh
    python -m cli rates show --base EUR
    python -m cli convert USD THB 100
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from contextlib import asynccontextmanager

import httpx

from fxrates.config import get_settings
from fxrates.database import Base, engine
from fxrates.errors import ProviderError, RateServiceError
from fxrates.main import build_rate_service
from fxrates.services.rate_service import RateService


@asynccontextmanager
async def open_service():
    settings = get_settings()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async with httpx.AsyncClient(timeout=settings.http_client_timeout.total_seconds()) as client:
        try:
            yield build_rate_service(client)
        finally:
            await engine.dispose()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fxrates-cli",
        description="Currency Converter CLI",
    )
    sub = parser.add_subparsers(dest="command", help="Top-level command")

    # ── Rates ────────────────────────────────────────────
    rates_parser = sub.add_parser("rates", help="Exchange rates")
    rates_sub = rates_parser.add_subparsers(dest="action")
    rates_sub.add_parser("refresh", help="Fetch rates from the provider and store them")
    show = rates_sub.add_parser("show", help="Print stored rates")
    show.add_argument("--base", default="", help="Rebase to this currency")

    # ── Convert ──────────────────────────────────────────
    conv = sub.add_parser("convert", help="Convert an amount")
    conv.add_argument("source", help="Source currency")
    conv.add_argument("target", help="Target currency")
    conv.add_argument("amount", type=float, help="Amount to convert")

    return parser


async def run(args: argparse.Namespace, service: RateService) -> dict:
    if args.command == "rates" and args.action == "refresh":
        snapshot = await service.refresh()
        return {
            "base": snapshot.base_currency,
            "count": len(snapshot.rates),
            "updated_at": snapshot.updated_at.isoformat(),
        }
    if args.command == "rates" and args.action == "show":
        snapshot = await service.get_rates(args.base)
        return {
            "base": snapshot.base_currency,
            "rates": dict(sorted(snapshot.rates.items())),
            "updated_at": snapshot.updated_at.isoformat(),
        }
    if args.command == "convert":
        converted = await service.convert(args.source, args.target, args.amount)
        return {
            "from": converted.from_currency,
            "to": converted.to_currency,
            "amount": converted.amount,
            "rate": converted.rate,
            "result": converted.result,
            "updated_at": converted.updated_at.isoformat(),
        }
    raise ValueError("unknown command")


async def _main(args: argparse.Namespace) -> dict:
    async with open_service() as service:
        return await run(args, service)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command is None or (args.command == "rates" and args.action is None):
        parser.print_help()
        return 1

    try:
        output = asyncio.run(_main(args))
    except (RateServiceError, ProviderError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    print(json.dumps(output, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
