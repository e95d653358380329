"""
Pydantic Schemas for the Nearby Locations API
"""

from pydantic import BaseModel
from typing import List, Optional


class CoordinateSchema(BaseModel):
    lat: float
    lng: float


class NearbyRequest(BaseModel):
    """
    CSV text plus the user's position (from the browser's geolocation).
    Missing or out-of-range coordinates are a 400 "location unavailable",
    same as the upload form.
    """
    csv_text: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class NearbyLocation(BaseModel):
    name: str
    url: str
    coords: CoordinateSchema
    distance_km: float
    distance_label: str                 # "500 m", "3.3 km", "42 km"
    bearing: float                      # degrees, 0 = north
    direction: str                      # 16-point compass label
    directions_url: str


class NearbyResponse(BaseModel):
    status: str                         # 'ok' or 'no_coordinates'
    message: str
    total_records: int = 0
    resolved_records: int = 0
    locations: List[NearbyLocation] = []


class CacheStatsResponse(BaseModel):
    entries: int
