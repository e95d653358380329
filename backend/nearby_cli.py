#!/usr/bin/env python3
"""
LocalGuide command line

Ranks the places in a saved-places CSV by distance from a given position.
The CSV can be a local file or an http(s) URL.

Usage:
    python nearby_cli.py "SF Bay Area.csv" --lat 37.7749 --lng -122.4194
    python nearby_cli.py https://example.com/travel.csv --lat 48.85 --lng 2.35 --top 10
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

import httpx

from database import SessionLocal, init_db
from routers.settings import (
    get_batch_delay_seconds, get_batch_size, get_geocode_user_agent, get_top_n,
)
from services.location.errors import NearbyError
from services.location.geocode_cache import GeocodeCache, SettingsCacheStore
from services.location.geocoding import GeocodeResolver, default_providers, make_client
from services.location.ranking import NearbyPipeline, fixed_location

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [%(levelname)s] %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger(__name__)


async def load_csv_text(source: str, client: httpx.AsyncClient) -> str:
    """Read CSV text from a path or http(s) URL."""
    if source.startswith(('http://', 'https://')):
        response = await client.get(source)
        response.raise_for_status()
        return response.text
    return Path(source).read_text(encoding='utf-8-sig')


async def run(args, session_factory=SessionLocal, client_factory=make_client) -> int:
    db = session_factory()
    try:
        user_agent = get_geocode_user_agent(db)
        top_n = args.top if args.top is not None else get_top_n(db)
        batch_size = args.batch_size if args.batch_size is not None else get_batch_size(db)
        batch_delay = args.batch_delay if args.batch_delay is not None else get_batch_delay_seconds(db)
    finally:
        db.close()

    cache = GeocodeCache(SettingsCacheStore(session_factory))
    cache.load_all()

    async with client_factory() as client:
        try:
            csv_text = await load_csv_text(args.source, client)
        except (OSError, httpx.HTTPError) as e:
            print(f"Error loading {args.source}: {e}")
            return 1

        pipeline = NearbyPipeline(
            resolver=GeocodeResolver(cache, client, default_providers(user_agent)),
            cache=cache,
            top_n=top_n,
            batch_size=batch_size,
            batch_delay=batch_delay,
        )
        try:
            result = await pipeline.run(csv_text, fixed_location(args.lat, args.lng))
        except NearbyError as e:
            print(f"Error: {e.user_message}")
            return 1

    print(f"\n{result.message}")
    if not result.ok:
        return 1

    for i, loc in enumerate(result.locations, start=1):
        print(f"  {i}. {loc.name}")
        print(f"     {loc.distance_label} {loc.direction} ({loc.bearing:.0f}°)")
        print(f"     {loc.directions_url}")
    return 0


def positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: {value}")
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be 1 or more, got {number}")
    return number


def non_negative_float(value: str) -> float:
    try:
        number = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number: {value}")
    if not number >= 0:
        raise argparse.ArgumentTypeError(f"must be 0 or more, got {value}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Closest places from a saved-places CSV')
    parser.add_argument('source', help='CSV file path or http(s) URL')
    parser.add_argument('--lat', type=float, help='Your latitude')
    parser.add_argument('--lng', type=float, help='Your longitude')
    parser.add_argument('--top', type=positive_int, help='How many places to show (default: setting nearby.top_n, 4)')
    parser.add_argument('--batch-size', type=positive_int, help='Geocode requests per batch (default: setting, 30)')
    parser.add_argument('--batch-delay', type=non_negative_float, help='Seconds between geocode batches (default: setting, 2)')
    parser.add_argument('--debug', action='store_true', help='Enable debug logging')
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    init_db()
    try:
        exit_code = asyncio.run(run(args))
    except KeyboardInterrupt:
        print("\nInterrupted")
        exit_code = 1
    sys.exit(exit_code)


if __name__ == '__main__':
    main()
