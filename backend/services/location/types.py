"""
Location Data Types

Coordinate, per-row LocationRecord, and the ranked output handed to the
presentation layer. Records are frozen; each pipeline phase builds a new
record with dataclasses.replace().
"""

import math
from dataclasses import dataclass, field
from typing import Any, List, Optional


@dataclass(frozen=True)
class Coordinate:
    lat: float
    lng: float

    @classmethod
    def parse(cls, lat: Any, lng: Any) -> Optional["Coordinate"]:
        """
        Build a Coordinate from untrusted values (provider payloads, cache
        JSON, URL captures). Returns None unless both values are finite and
        inside the valid lat/lng range.
        """
        try:
            lat_f = float(lat)
            lng_f = float(lng)
        except (TypeError, ValueError):
            return None

        if not (math.isfinite(lat_f) and math.isfinite(lng_f)):
            return None
        if not (-90.0 <= lat_f <= 90.0 and -180.0 <= lng_f <= 180.0):
            return None

        return cls(lat=lat_f, lng=lng_f)

    @classmethod
    def validate(cls, value: Any) -> Optional["Coordinate"]:
        """Re-check a value that claims to be a Coordinate (e.g. from a plug-in provider)."""
        if not isinstance(value, cls):
            return None
        return cls.parse(value.lat, value.lng)

    def to_dict(self) -> dict:
        return {"lat": self.lat, "lng": self.lng}


@dataclass(frozen=True)
class LocationRecord:
    """One CSV data row as it moves through the pipeline."""
    index: int
    name: str
    url: str
    place_name: Optional[str] = None
    coords: Optional[Coordinate] = None
    distance: Optional[float] = None            # km
    bearing: Optional[float] = None             # degrees, [0, 360)
    direction: Optional[str] = None             # 16-point compass label


@dataclass(frozen=True)
class RankedLocation:
    """Output record consumed by the presentation layer."""
    name: str
    url: str
    coords: Coordinate
    distance_km: float
    bearing: float
    direction: str
    distance_label: str
    directions_url: str


STATUS_OK = "ok"
STATUS_NO_COORDINATES = "no_coordinates"


@dataclass
class NearbyResult:
    status: str
    message: str
    locations: List[RankedLocation] = field(default_factory=list)
    total_records: int = 0
    resolved_records: int = 0

    @property
    def ok(self) -> bool:
        return self.status == STATUS_OK
