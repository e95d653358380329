import json

import pytest
from sqlalchemy import text

from services.location.geocode_cache import GeocodeCache, SettingsCacheStore
from services.location.types import Coordinate


def test_load_all_hydrates_valid_entries(store_factory):
    store = store_factory(json.dumps({
        "Ferry Building": {"lat": 37.7955, "lng": -122.3937},
        "Coit Tower": {"lat": 37.8024, "lng": -122.4058},
    }))
    cache = GeocodeCache(store)
    cache.load_all()

    assert len(cache) == 2
    assert cache.get("Ferry Building") == Coordinate(37.7955, -122.3937)


def test_load_all_skips_invalid_entries(store_factory):
    raw = (
        '{"good": {"lat": 1.0, "lng": 2.0},'
        ' "nan": {"lat": NaN, "lng": 2.0},'
        ' "range": {"lat": 200, "lng": 2.0},'
        ' "text": {"lat": "abc", "lng": 2.0},'
        ' "shape": [1, 2]}'
    )
    cache = GeocodeCache(store_factory(raw))
    cache.load_all()

    assert len(cache) == 1
    assert "good" in cache


def test_corrupt_cache_is_not_fatal(store_factory):
    cache = GeocodeCache(store_factory("{not json"))
    cache.load_all()
    assert len(cache) == 0


def test_non_mapping_cache_is_ignored(store_factory):
    cache = GeocodeCache(store_factory("[1, 2, 3]"))
    cache.load_all()
    assert len(cache) == 0


def test_read_failure_leaves_cache_empty(store_factory):
    cache = GeocodeCache(store_factory(fail_read=True))
    cache.load_all()
    assert len(cache) == 0


def test_put_persists_immediately(store_factory):
    store = store_factory()
    cache = GeocodeCache(store)
    cache.put("Ferry Building", Coordinate(37.7955, -122.3937))

    assert len(store.writes) == 1
    assert json.loads(store.writes[0]) == {
        "Ferry Building": {"lat": 37.7955, "lng": -122.3937},
    }


def test_write_failure_is_swallowed(store_factory):
    cache = GeocodeCache(store_factory(fail_write=True))
    cache.put("Ferry Building", Coordinate(37.7955, -122.3937))
    assert cache.get("Ferry Building") == Coordinate(37.7955, -122.3937)


def test_keys_are_exact(store_factory):
    cache = GeocodeCache(store_factory())
    cache.put("Ferry Building", Coordinate(37.7955, -122.3937))
    assert cache.get("ferry building") is None
    assert cache.get("Ferry Building ") is None


def test_settings_store_round_trip(session_factory):
    cache = GeocodeCache(SettingsCacheStore(session_factory))
    cache.load_all()
    cache.put("Ferry Building", Coordinate(37.7955, -122.3937))
    cache.put("Coit Tower", Coordinate(37.8024, -122.4058))

    reloaded = GeocodeCache(SettingsCacheStore(session_factory))
    reloaded.load_all()
    assert reloaded.get("Coit Tower") == Coordinate(37.8024, -122.4058)

    db = session_factory()
    try:
        rows = db.execute(
            text("SELECT value_type FROM settings WHERE category = 'geocode' AND key = 'cache'")
        ).fetchall()
    finally:
        db.close()
    assert [r[0] for r in rows] == ["json"]


@pytest.mark.parametrize("bad", [
    Coordinate(float("nan"), 0.0),
    Coordinate(0.0, float("inf")),
    Coordinate(91.0, 0.0),
    (1.0, 2.0),
    None,
])
def test_put_refuses_invalid_coordinates(store_factory, bad):
    store = store_factory()
    cache = GeocodeCache(store)

    assert cache.put("X", bad) is False
    assert "X" not in cache
    assert store.writes == []


@pytest.mark.asyncio
async def test_aput_persists_from_worker_thread(store_factory):
    store = store_factory()
    cache = GeocodeCache(store)

    assert await cache.aput("Ferry Building", Coordinate(37.7955, -122.3937)) is True
    assert await cache.aput("Bad", Coordinate(float("nan"), 0.0)) is False

    assert len(store.writes) == 1
    assert json.loads(store.payload) == {"Ferry Building": {"lat": 37.7955, "lng": -122.3937}}


def test_stale_snapshot_never_overwrites_newer(store_factory):
    store = store_factory()
    cache = GeocodeCache(store)
    cache.put("A", Coordinate(1.0, 1.0))
    cache.put("B", Coordinate(2.0, 2.0))

    cache._persist(1, {"A": Coordinate(1.0, 1.0)})

    assert len(store.writes) == 2
    assert set(json.loads(store.payload)) == {"A", "B"}
