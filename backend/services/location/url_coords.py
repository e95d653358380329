"""
URL Coordinate Extraction

Pulls lat/lng straight out of a shared map link so most CSV rows never
need a geocoder. Patterns are tried in order; first valid match wins.

Supported shapes:
    maps.google.com/?q=37.77,-122.41
    google.com/maps/@37.77,-122.41,15z
    google.com/maps/place/Ferry+Building/@37.79,-122.39,17z
    maps.google.com/?ll=37.77,-122.41
"""

import re
import logging
from typing import Optional
from urllib.parse import unquote

from .types import Coordinate

logger = logging.getLogger(__name__)

_NUM = r'(-?\d+\.?\d*)'

# Priority order matters - see module docstring
COORD_PATTERNS = [
    ('q_param', re.compile(r'[?&]q=' + _NUM + ',' + _NUM)),
    ('at_marker', re.compile(r'@' + _NUM + ',' + _NUM)),
    ('place_at_marker', re.compile(r'place/[^/]+/@' + _NUM + ',' + _NUM)),
    ('ll_param', re.compile(r'[?&]ll=' + _NUM + ',' + _NUM)),
]

PLACE_NAME_PATTERN = re.compile(r'place/([^/]+)')

DIRECTIONS_BASE = "https://www.google.com/maps/dir/"


def extract_coordinates(url: str) -> Optional[Coordinate]:
    """Return the coordinate embedded in a map URL, or None."""
    if not url:
        return None

    for label, pattern in COORD_PATTERNS:
        match = pattern.search(url)
        if not match:
            continue
        coords = Coordinate.parse(match.group(1), match.group(2))
        if coords:
            logger.debug(f"Extracted {coords} from URL via {label}")
            return coords

    return None


def extract_place_name(url: str) -> Optional[str]:
    """
    Pull the place name out of a /place/<name>/ segment.
    '+' is treated as a space before percent-decoding.
    """
    if not url:
        return None

    match = PLACE_NAME_PATTERN.search(url)
    if not match:
        return None

    name = unquote(match.group(1).replace('+', ' ')).strip()
    return name or None


def directions_url(coords: Coordinate) -> str:
    """Navigation link to a coordinate."""
    return f"{DIRECTIONS_BASE}?api=1&destination={coords.lat},{coords.lng}"
