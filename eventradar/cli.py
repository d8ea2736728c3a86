#!/usr/bin/env python3
"""Command-line interface for the event aggregator.

Commands:
  - eventradar search : Aggregate events around a location and print them
  - eventradar logout : Release a user's materialized result

Typical usage:
  eventradar search --lat 42.36 --lon -71.06 --radius 25 --category Music
  eventradar search --city "Boston, MA" --max-price 30 --json
  SESSION_STORE=csv eventradar logout --user-id 42
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from datetime import datetime
from decimal import Decimal

from eventradar.aggregation.errors import InvalidCriteriaError, OriginUnresolvedError
from eventradar.aggregation.service import build_search_service
from eventradar.configs.config import Config
from eventradar.configs.settings import get_settings
from eventradar.schemas.event import Coordinates, SearchCriteria, SessionRow
from eventradar.sessions.materializer import rows_to_dataframe
from eventradar.utils.logging import LoggingOptions, setup_logging

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_BAD_REQUEST = 2


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    default_radius = float(Config.get_search_defaults().get("max_distance_km", 100))

    p = argparse.ArgumentParser(prog="eventradar", description="Event aggregation CLI")
    p.add_argument("--json-logs", action="store_true", help="Emit JSON logs")
    p.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    sub = p.add_subparsers(dest="cmd")

    # search
    ps = sub.add_parser("search", help="Aggregate events around a location")
    ps.add_argument("--lat", type=float, default=None, help="Origin latitude")
    ps.add_argument("--lon", type=float, default=None, help="Origin longitude")
    ps.add_argument("--city", default=None, help="City or address to geocode as origin")
    ps.add_argument("--radius", type=float, default=default_radius, help="Max distance in km")
    ps.add_argument("--category", default=None, help="Canonical category filter")
    ps.add_argument("--max-price", type=Decimal, default=None, help="Max price filter")
    ps.add_argument(
        "--start-after", type=datetime.fromisoformat, default=None, help="ISO datetime"
    )
    ps.add_argument(
        "--start-before", type=datetime.fromisoformat, default=None, help="ISO datetime"
    )
    ps.add_argument(
        "--addresses", action="store_true", help="Reverse-geocode locations to addresses"
    )
    ps.add_argument("--user-id", default="cli", help="Session owner")
    ps.add_argument("--json", action="store_true", help="Print results as JSON")

    # logout
    pl = sub.add_parser(
        "logout",
        help="Release a user's materialized result (needs SESSION_STORE=csv; "
        "the memory store does not outlive a single command)",
    )
    pl.add_argument("--user-id", required=True, help="Session owner")

    return p.parse_args(argv)


def _build_criteria(args: argparse.Namespace) -> SearchCriteria:
    origin = None
    if args.lat is not None or args.lon is not None:
        if args.lat is None or args.lon is None:
            raise InvalidCriteriaError("--lat and --lon must be given together")
        origin = Coordinates(latitude=args.lat, longitude=args.lon)

    return SearchCriteria(
        origin=origin,
        origin_text=args.city,
        max_distance_km=args.radius,
        category=args.category,
        max_price=args.max_price,
        start_after=args.start_after,
        start_before=args.start_before,
        resolve_addresses=args.addresses,
    )


async def _run_search(args: argparse.Namespace) -> int:
    service = build_search_service(get_settings())
    try:
        result = await service.search(args.user_id, _build_criteria(args))
    finally:
        await service.close()

    if args.json:
        payload = {
            "origin": result.origin.model_dump(),
            "failed_providers": result.gateway.failed_providers,
            "events": [e.model_dump(mode="json") for e in result.events],
        }
        print(json.dumps(payload, indent=2, ensure_ascii=False))
        return EXIT_OK

    rows = [SessionRow.from_event(i, e) for i, e in enumerate(result.events, start=1)]
    if not rows:
        print("No events found.")
        return EXIT_OK

    df = rows_to_dataframe(rows)
    print(df[["content_id", "title", "category", "distance_km", "amount", "start"]].to_string(index=False))
    if result.gateway.failed_providers:
        print(f"\nUnavailable providers: {', '.join(result.gateway.failed_providers)}")
    return EXIT_OK


async def _run_logout(args: argparse.Namespace, settings) -> int:
    if (settings.SESSION_STORE or "memory").lower() == "memory":
        print(
            "Note: SESSION_STORE=memory keeps results only inside one process; "
            "set SESSION_STORE=csv to release results from an earlier search.",
            file=sys.stderr,
        )
    service = build_search_service(settings)
    try:
        released = await service.logout(args.user_id)
    finally:
        await service.close()
    print("Session released." if released else "No session to release.")
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    """Run the CLI with the given arguments."""
    try:
        return _main_impl(argv)
    except (InvalidCriteriaError, OriginUnresolvedError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_BAD_REQUEST
    except ValueError as e:
        print(f"Error: invalid input: {e}", file=sys.stderr)
        return EXIT_BAD_REQUEST
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR


def _main_impl(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)

    if not args.cmd:
        print("Error: Command required. Use --help for usage info.", file=sys.stderr)
        return EXIT_ERROR

    settings = get_settings()
    setup_logging(
        LoggingOptions(
            level=args.log_level or settings.LOG_LEVEL,
            json_logs=args.json_logs or settings.JSON_LOGS,
        )
    )

    if args.cmd == "search":
        return asyncio.run(_run_search(args))
    if args.cmd == "logout":
        return asyncio.run(_run_logout(args, settings))

    print(f"Error: Unknown command '{args.cmd}'", file=sys.stderr)
    return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
