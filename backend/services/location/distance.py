"""
Distance Calculations for Location Services

Haversine formula for great-circle distance between two lat/lng points,
initial bearing, and the compass / distance labels shown on result cards.
"""

import math


COMPASS_POINTS = [
    'N', 'NNE', 'NE', 'ENE', 'E', 'ESE', 'SE', 'SSE',
    'S', 'SSW', 'SW', 'WSW', 'W', 'WNW', 'NW', 'NNW',
]
SECTOR_DEGREES = 360.0 / len(COMPASS_POINTS)  # 22.5


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """
    Calculate great-circle distance between two points in kilometers.
    Uses the Haversine formula.
    """
    R = 6371.0  # Earth radius in km

    lat1_r = math.radians(lat1)
    lat2_r = math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlng = math.radians(lng2 - lng1)

    a = (math.sin(dlat / 2) ** 2 +
         math.cos(lat1_r) * math.cos(lat2_r) * math.sin(dlng / 2) ** 2)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return R * c


def initial_bearing(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """
    Initial compass bearing from point 1 toward point 2, in [0, 360).
    0 = north, 90 = east. Not symmetric.
    """
    lat1_r = math.radians(lat1)
    lat2_r = math.radians(lat2)
    dlng = math.radians(lng2 - lng1)

    y = math.sin(dlng) * math.cos(lat2_r)
    x = (math.cos(lat1_r) * math.sin(lat2_r) -
         math.sin(lat1_r) * math.cos(lat2_r) * math.cos(dlng))

    bearing = (math.degrees(math.atan2(y, x)) + 360.0) % 360.0
    # -0.0 and float rounding can land exactly on 360
    return 0.0 if bearing >= 360.0 else bearing


def bearing_to_direction(bearing: float) -> str:
    """Map a bearing to the nearest of 16 compass labels (N, NNE, ... NNW)."""
    index = math.floor((bearing % 360.0) / SECTOR_DEGREES + 0.5) % len(COMPASS_POINTS)
    return COMPASS_POINTS[index]


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def format_distance(km: float) -> str:
    """
    Human-readable distance:
        < 1 km  -> "500 m"
        < 10 km -> "3.3 km"
        else    -> "42 km"
    """
    if km < 1:
        return f"{_round_half_up(km * 1000)} m"
    if km < 10:
        return f"{_round_half_up(km * 10) / 10:.1f} km"
    return f"{_round_half_up(km)} km"
