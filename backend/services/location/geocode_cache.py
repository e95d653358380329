"""
Geocode Cache

Name -> Coordinate map kept in memory and persisted as one JSON blob.
Entries never expire. Keys are the exact place-name strings, no trimming
or case folding, so "Ferry Building" and "ferry building" cache separately.

Cache I/O is never fatal:
    - load failure  -> empty cache, logged
    - write failure -> in-memory entry kept, logged

put() refuses anything that does not re-parse as a finite, in-range
Coordinate. aput() does the store write in a worker thread; writes carry a
version so a slow older snapshot never overwrites a newer one.

Default store is a single row in the settings table (geocode / cache).
"""

import asyncio
import json
import logging
import threading
from typing import Dict, Optional, Protocol, Tuple

from settings_helper import get_raw_setting, set_setting_value
from .types import Coordinate

logger = logging.getLogger(__name__)

CACHE_CATEGORY = "geocode"
CACHE_KEY = "cache"


class CacheStore(Protocol):
    def read(self) -> Optional[str]: ...
    def write(self, payload: str) -> None: ...


class SettingsCacheStore:
    """Keeps the serialized cache in settings(category='geocode', key='cache')."""

    def __init__(self, session_factory, category: str = CACHE_CATEGORY, key: str = CACHE_KEY):
        self.session_factory = session_factory
        self.category = category
        self.key = key

    def read(self) -> Optional[str]:
        db = self.session_factory()
        try:
            return get_raw_setting(db, self.category, self.key)
        finally:
            db.close()

    def write(self, payload: str) -> None:
        db = self.session_factory()
        try:
            set_setting_value(
                db, self.category, self.key, payload,
                value_type='json',
                description='Geocoded place name coordinates',
            )
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()


class GeocodeCache:
    def __init__(self, store: CacheStore):
        self.store = store
        self._entries: Dict[str, Coordinate] = {}
        self._version = 0
        self._written_version = 0
        self._write_lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, name: str) -> bool:
        return name in self._entries

    def get(self, name: str) -> Optional[Coordinate]:
        return self._entries.get(name)

    def put(self, name: str, coords: Coordinate) -> bool:
        """Store and persist immediately. Persistence errors are swallowed."""
        if not self._accept(name, coords):
            return False
        self._persist(*self._snapshot())
        return True

    async def aput(self, name: str, coords: Coordinate) -> bool:
        """put() with the store write moved off the event loop."""
        if not self._accept(name, coords):
            return False
        await asyncio.to_thread(self._persist, *self._snapshot())
        return True

    def load_all(self) -> None:
        """Hydrate from the store. A missing or corrupt blob leaves the cache empty."""
        self._entries = {}
        try:
            raw = self.store.read()
            if not raw:
                logger.info("Geocode cache empty")
                return
            data = json.loads(raw)
        except Exception as e:
            logger.error(f"Failed to load geocode cache: {e}")
            return

        if not isinstance(data, dict):
            logger.error(f"Geocode cache has unexpected type {type(data).__name__} - ignoring")
            return

        skipped = 0
        for name, value in data.items():
            coords = None
            if isinstance(value, dict):
                coords = Coordinate.parse(value.get("lat"), value.get("lng"))
            if coords is None:
                skipped += 1
                continue
            self._entries[name] = coords

        if skipped:
            logger.warning(f"Skipped {skipped} invalid geocode cache entries")
        logger.info(f"Loaded {len(self._entries)} geocode cache entries")

    def _accept(self, name: str, coords: Coordinate) -> bool:
        valid = Coordinate.validate(coords)
        if valid is None:
            logger.warning(f"Refusing to cache invalid coordinates for '{name}': {coords!r}")
            return False
        self._entries[name] = valid
        self._version += 1
        return True

    def _snapshot(self) -> Tuple[int, Dict[str, Coordinate]]:
        return self._version, dict(self._entries)

    def _persist(self, version: int, entries: Dict[str, Coordinate]) -> None:
        with self._write_lock:
            if version <= self._written_version:
                return
            try:
                payload = json.dumps({name: c.to_dict() for name, c in entries.items()})
                self.store.write(payload)
                self._written_version = version
            except Exception as e:
                logger.error(f"Failed to save geocode cache: {e}")
