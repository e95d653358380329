"""
Nearby Ranking Pipeline

One processing run, phase by phase:
    1. Acquire user location   (fatal if unavailable)
    2. Parse CSV               (fatal if zero rows)
    3. Direct extraction       (URL coords -> place name + cache -> queue)
    4. Batch geocode queue     (rate-limited, see batch.py)
    5. Filter unresolved
    6. Distance / bearing, stable sort, top N
    7. Publish NearbyResult    ("no_coordinates" if nothing survived)

State for a run lives on a RunContext, never on the module or pipeline.
Records are frozen. Each phase swaps in new records, so phase 6 can't
see a half-written record from phase 3/4.
"""

import asyncio
import logging
from collections import Counter
from dataclasses import dataclass, field, replace
from typing import Awaitable, Callable, Dict, List, Optional

from .batch import DEFAULT_BATCH_DELAY, DEFAULT_BATCH_SIZE, resolve_all
from .csv_parser import parse_locations_csv
from .distance import bearing_to_direction, format_distance, haversine_km, initial_bearing
from .errors import LocationUnavailableError, NoValidLocationsError
from .geocode_cache import GeocodeCache
from .types import (
    STATUS_NO_COORDINATES, STATUS_OK,
    Coordinate, LocationRecord, NearbyResult, RankedLocation,
)
from .url_coords import directions_url, extract_coordinates, extract_place_name

logger = logging.getLogger(__name__)

DEFAULT_TOP_N = 4

LocationSource = Callable[[], Awaitable[Optional[Coordinate]]]
StatusCallback = Callable[[str], None]


def fixed_location(lat: Optional[float], lng: Optional[float]) -> LocationSource:
    """Location source for callers that already know where the user is."""
    async def _source() -> Optional[Coordinate]:
        if lat is None or lng is None:
            return None
        return Coordinate.parse(lat, lng)
    return _source


@dataclass
class RunContext:
    user_location: Optional[Coordinate] = None
    records: List[LocationRecord] = field(default_factory=list)
    queued: List[str] = field(default_factory=list)   # unique place names, first-seen order


def rank_locations(
    origin: Coordinate,
    records: List[LocationRecord],
    top_n: int = DEFAULT_TOP_N,
) -> List[LocationRecord]:
    """
    Attach distance/bearing/direction and return the top_n closest.
    Records without coords are skipped. Ties keep input order.
    """
    measured = []
    for record in records:
        if record.coords is None:
            continue
        bearing = initial_bearing(origin.lat, origin.lng, record.coords.lat, record.coords.lng)
        measured.append(replace(
            record,
            distance=haversine_km(origin.lat, origin.lng, record.coords.lat, record.coords.lng),
            bearing=bearing,
            direction=bearing_to_direction(bearing),
        ))

    measured.sort(key=lambda r: (r.distance, r.index))
    return measured[:max(top_n, 0)]


def to_ranked(record: LocationRecord) -> RankedLocation:
    return RankedLocation(
        name=record.name,
        url=record.url,
        coords=record.coords,
        distance_km=record.distance,
        bearing=record.bearing,
        direction=record.direction,
        distance_label=format_distance(record.distance),
        directions_url=directions_url(record.coords),
    )


class NearbyPipeline:
    def __init__(
        self,
        resolver,
        cache: GeocodeCache,
        top_n: int = DEFAULT_TOP_N,
        batch_size: int = DEFAULT_BATCH_SIZE,
        batch_delay: float = DEFAULT_BATCH_DELAY,
        on_status: Optional[StatusCallback] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.resolver = resolver
        self.cache = cache
        self.top_n = top_n
        self.batch_size = batch_size
        self.batch_delay = batch_delay
        self.on_status = on_status
        self.sleep = sleep

    def _status(self, message: str) -> None:
        logger.info(message)
        if self.on_status:
            self.on_status(message)

    async def run(self, csv_text: str, location_source: LocationSource) -> NearbyResult:
        ctx = RunContext()

        self._status("Getting your location...")
        ctx.user_location = await self._acquire_location(location_source)

        self._status("Parsing CSV file...")
        self._parse(ctx, csv_text)
        self._status(f"Found {len(ctx.records)} locations. Processing coordinates...")

        self._extract_direct(ctx)
        resolved = sum(1 for r in ctx.records if r.coords)
        self._status(
            f"{resolved} locations have coordinates. "
            f"Geocoding {len(ctx.queued)} remaining..."
        )

        await self._batch_resolve(ctx, resolved)

        survivors = [r for r in ctx.records if r.coords]
        if not survivors:
            message = "Could not find coordinates for any locations"
            self._status(message)
            return NearbyResult(
                status=STATUS_NO_COORDINATES,
                message=message,
                total_records=len(ctx.records),
            )

        self._status(f"Calculating distances for {len(survivors)} locations...")
        closest = rank_locations(ctx.user_location, survivors, self.top_n)

        message = f"Found {len(survivors)} locations, showing closest {len(closest)}"
        self._status(message)
        return NearbyResult(
            status=STATUS_OK,
            message=message,
            locations=[to_ranked(r) for r in closest],
            total_records=len(ctx.records),
            resolved_records=len(survivors),
        )

    # -------------------------------------------------------------------------
    # Phases
    # -------------------------------------------------------------------------

    async def _acquire_location(self, location_source: LocationSource) -> Coordinate:
        try:
            location = await location_source()
        except LocationUnavailableError:
            raise
        except Exception as e:
            logger.error(f"Location source failed: {e}")
            raise LocationUnavailableError(detail=str(e)) from e

        if location is None:
            raise LocationUnavailableError()
        return location

    def _parse(self, ctx: RunContext, csv_text: str) -> None:
        rows = parse_locations_csv(csv_text)
        if not rows:
            raise NoValidLocationsError()
        ctx.records = [
            LocationRecord(index=i, name=row["name"], url=row["url"])
            for i, row in enumerate(rows)
        ]

    def _extract_direct(self, ctx: RunContext) -> None:
        """URL coords first, then place name + cache, else queue the name."""
        seen = set()
        updated = []
        for record in ctx.records:
            coords = extract_coordinates(record.url)
            if coords:
                updated.append(replace(record, coords=coords))
                continue

            place_name = extract_place_name(record.url)
            if not place_name:
                logger.debug(f"No coordinates or place name in URL for '{record.name}'")
                updated.append(record)
                continue

            cached = self.cache.get(place_name)
            updated.append(replace(record, place_name=place_name, coords=cached))
            if cached is None and place_name not in seen:
                seen.add(place_name)
                ctx.queued.append(place_name)

        ctx.records = updated

    async def _batch_resolve(self, ctx: RunContext, already_resolved: int) -> None:
        if not ctx.queued:
            return

        # rows per queued name, so progress counts records like already_resolved
        waiting = Counter(r.place_name for r in ctx.records if r.coords is None and r.place_name)

        def progress(done: int, total: int, succeeded: int) -> None:
            self._status(
                f"Geocoding... {done}/{total} "
                f"({already_resolved + succeeded} total successful)"
            )

        results: Dict[str, Optional[Coordinate]] = await resolve_all(
            self.resolver,
            ctx.queued,
            batch_size=self.batch_size,
            inter_batch_delay=self.batch_delay,
            on_progress=progress,
            sleep=self.sleep,
            weights=waiting,
        )

        ctx.records = [
            replace(r, coords=results.get(r.place_name))
            if r.coords is None and r.place_name in results else r
            for r in ctx.records
        ]
