import math

import pytest

from services.location.errors import LocationUnavailableError, NoValidLocationsError
from services.location.geocode_cache import GeocodeCache
from services.location.ranking import NearbyPipeline, fixed_location, rank_locations
from services.location.types import (
    STATUS_NO_COORDINATES, STATUS_OK, Coordinate, LocationRecord,
)

USER = Coordinate(37.0, -122.0)
KM_PER_DEGREE_LAT = 6371.0 * math.pi / 180


def north_of_user(km):
    return Coordinate(USER.lat + km / KM_PER_DEGREE_LAT, USER.lng)


def record(index, name, coords):
    return LocationRecord(index=index, name=name, url="https://example.com", coords=coords)


class FakeResolver:
    def __init__(self, answers=None):
        self.answers = answers or {}
        self.calls = []

    async def resolve(self, name):
        self.calls.append(name)
        return self.answers.get(name)


async def no_sleep(seconds):
    return None


def place_url(name):
    return "https://www.google.com/maps/place/" + name.replace(" ", "+") + "/data=!4m2"


def coords_url(c):
    return f'"https://maps.google.com/?q={c.lat},{c.lng}"'


@pytest.fixture
def cache(store_factory):
    return GeocodeCache(store_factory())


def test_rank_orders_by_distance():
    records = [
        record(0, "five", north_of_user(5)),
        record(1, "one", north_of_user(1)),
        record(2, "fifty", north_of_user(50)),
    ]
    ranked = rank_locations(USER, records)

    assert [r.name for r in ranked] == ["one", "five", "fifty"]
    assert [round(r.distance, 6) for r in ranked] == [1.0, 5.0, 50.0]
    assert all(r.direction == "N" for r in ranked)
    assert all(r.bearing == pytest.approx(0.0, abs=1e-6) for r in ranked)


def test_rank_truncates_to_top_n():
    records = [record(i, f"p{km}", north_of_user(km)) for i, km in enumerate([9, 3, 7, 1, 5, 2])]
    ranked = rank_locations(USER, records, top_n=4)
    assert [r.name for r in ranked] == ["p1", "p2", "p3", "p5"]


def test_rank_ties_keep_input_order():
    same = north_of_user(2)
    records = [record(0, "first", same), record(1, "second", same), record(2, "near", north_of_user(1))]
    assert [r.name for r in rank_locations(USER, records)] == ["near", "first", "second"]


def test_rank_skips_records_without_coords():
    records = [record(0, "none", None), record(1, "one", north_of_user(1))]
    assert [r.name for r in rank_locations(USER, records)] == ["one"]


@pytest.mark.asyncio
async def test_pipeline_end_to_end(cache):
    cache.put("Cached Cafe", north_of_user(3))
    resolver = FakeResolver({"Geocoded Park": north_of_user(1.2)})
    statuses = []

    csv_text = "\n".join([
        "Title,Note,URL",
        f"Direct Five,,{coords_url(north_of_user(5))}",
        f"Cached Cafe,,{place_url('Cached Cafe')}",
        f"Geocoded Park,,{place_url('Geocoded Park')}",
        f"Park Again,,{place_url('Geocoded Park')}",
        f"Unknown Spot,,{place_url('Unknown Spot')}",
        "Short Link,,https://maps.app.goo.gl/abc123",
        f"Far Away,,{coords_url(north_of_user(50))}",
    ])

    pipeline = NearbyPipeline(resolver, cache, sleep=no_sleep, on_status=statuses.append)
    result = await pipeline.run(csv_text, fixed_location(USER.lat, USER.lng))

    assert result.status == STATUS_OK
    assert result.ok
    assert [loc.name for loc in result.locations] == [
        "Geocoded Park", "Park Again", "Cached Cafe", "Direct Five",
    ]
    assert result.total_records == 7
    assert result.resolved_records == 5
    assert result.message == "Found 5 locations, showing closest 4"

    # each unresolved place name looked up once; cached one not at all
    assert resolver.calls == ["Geocoded Park", "Unknown Spot"]

    first = result.locations[0]
    assert first.distance_label == "1.2 km"
    assert first.direction == "N"
    assert first.directions_url.startswith("https://www.google.com/maps/dir/?api=1&destination=")

    assert statuses[0] == "Getting your location..."
    assert "Geocoding... 2/2 (5 total successful)" in statuses


@pytest.mark.asyncio
async def test_missing_location_aborts_before_geocoding(cache):
    resolver = FakeResolver()
    pipeline = NearbyPipeline(resolver, cache, sleep=no_sleep)
    csv_text = f"name,url\nSomewhere,{place_url('Somewhere')}\n"

    with pytest.raises(LocationUnavailableError) as exc:
        await pipeline.run(csv_text, fixed_location(None, None))

    assert exc.value.user_message == "Could not determine your current location"
    assert resolver.calls == []


@pytest.mark.asyncio
async def test_location_source_error_is_location_unavailable(cache):
    async def denied():
        raise PermissionError("user denied geolocation")

    pipeline = NearbyPipeline(FakeResolver(), cache, sleep=no_sleep)
    with pytest.raises(LocationUnavailableError):
        await pipeline.run("name,url\n", denied)


@pytest.mark.asyncio
async def test_no_rows_is_an_error(cache):
    pipeline = NearbyPipeline(FakeResolver(), cache, sleep=no_sleep)
    with pytest.raises(NoValidLocationsError):
        await pipeline.run("title,note\nFerry Building,market\n", fixed_location(37.0, -122.0))


@pytest.mark.asyncio
async def test_nothing_resolved_is_a_distinct_outcome(cache):
    pipeline = NearbyPipeline(FakeResolver(), cache, sleep=no_sleep)
    csv_text = f"name,url\nLost,{place_url('Lost')}\nShort,https://maps.app.goo.gl/x\n"

    result = await pipeline.run(csv_text, fixed_location(37.0, -122.0))

    assert result.status == STATUS_NO_COORDINATES
    assert not result.ok
    assert result.locations == []
    assert result.message == "Could not find coordinates for any locations"
