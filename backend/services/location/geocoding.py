"""
Geocoding Service for Location Services

Primary:  Photon (komoot, OpenStreetMap data, no API key)
Fallback: Nominatim (OpenStreetMap, requires descriptive User-Agent)

Strategy:
    1. Cache hit -> return it, no network
    2. Walk the provider list in order, first coordinate wins
    3. Winner is re-validated and written to the cache
    4. If all fail -> return None (record gets dropped from ranking)

Providers are plain data. Adding a third one means appending to the list
returned by default_providers(), no control-flow changes.

All provider payloads are untrusted. Every failure (HTTP status, network,
bad JSON, empty result) is logged and degrades to None.
"""

import logging
from dataclasses import dataclass
from functools import partial
from typing import Awaitable, Callable, List, Optional

import httpx

from .geocode_cache import GeocodeCache
from .types import Coordinate

logger = logging.getLogger(__name__)

# Photon API
PHOTON_BASE = "https://photon.komoot.io/api/"

# Nominatim API
NOMINATIM_BASE = "https://nominatim.openstreetmap.org/search"

DEFAULT_USER_AGENT = "LocalGuide/1.0"
GEOCODE_TIMEOUT = 10  # seconds, per request


@dataclass(frozen=True)
class GeocodeProvider:
    name: str
    geocode: Callable[[httpx.AsyncClient, str], Awaitable[Optional[Coordinate]]]


async def _fetch_json(client: httpx.AsyncClient, provider: str, url: str, name: str, **kwargs):
    """GET + status check + JSON decode. Returns None on any failure."""
    try:
        response = await client.get(url, **kwargs)
        response.raise_for_status()
        return response.json()
    except httpx.TimeoutException:
        logger.warning(f"{provider} timeout for: {name}")
    except httpx.HTTPStatusError as e:
        logger.warning(f"{provider}: HTTP {e.response.status_code} for '{name}'")
    except Exception as e:
        logger.error(f"{provider} error for '{name}': {e}")
    return None


async def geocode_photon(client: httpx.AsyncClient, name: str) -> Optional[Coordinate]:
    """
    Query Photon. Response is GeoJSON, so coordinates come back [lng, lat].
    """
    data = await _fetch_json(
        client, "Photon", PHOTON_BASE, name,
        params={"q": name, "limit": 1},
    )
    if data is None:
        return None

    features = data.get("features") if isinstance(data, dict) else None
    if not features or not isinstance(features, list):
        logger.info(f"Photon: no results for '{name}'")
        return None

    first = features[0] if isinstance(features[0], dict) else {}
    geometry = first.get("geometry") or {}
    position = geometry.get("coordinates") if isinstance(geometry, dict) else None
    if not isinstance(position, (list, tuple)) or len(position) < 2:
        logger.warning(f"Photon: malformed geometry for '{name}'")
        return None

    coords = Coordinate.parse(position[1], position[0])
    if coords is None:
        logger.warning(f"Photon: invalid coordinates {position!r} for '{name}'")
    return coords


async def geocode_nominatim(
    client: httpx.AsyncClient,
    name: str,
    user_agent: str = DEFAULT_USER_AGENT,
) -> Optional[Coordinate]:
    """
    Query Nominatim. Usage policy requires an identifying User-Agent.
    lat/lon come back as strings.
    """
    data = await _fetch_json(
        client, "Nominatim", NOMINATIM_BASE, name,
        params={"q": name, "format": "json", "limit": 1},
        headers={"User-Agent": user_agent},
    )
    if data is None:
        return None

    if not data or not isinstance(data, list):
        logger.info(f"Nominatim: no results for '{name}'")
        return None

    first = data[0] if isinstance(data[0], dict) else {}
    coords = Coordinate.parse(first.get("lat"), first.get("lon"))
    if coords is None:
        logger.warning(f"Nominatim: invalid coordinates for '{name}'")
    return coords


def default_providers(user_agent: str = DEFAULT_USER_AGENT) -> List[GeocodeProvider]:
    return [
        GeocodeProvider("photon", geocode_photon),
        GeocodeProvider("nominatim", partial(geocode_nominatim, user_agent=user_agent)),
    ]


class GeocodeResolver:
    """
    Resolves place names through the cache and the provider chain.
    resolve() never raises.
    """

    def __init__(
        self,
        cache: GeocodeCache,
        client: httpx.AsyncClient,
        providers: Optional[List[GeocodeProvider]] = None,
    ):
        self.cache = cache
        self.client = client
        self.providers = providers if providers is not None else default_providers()

    async def resolve(self, name: str) -> Optional[Coordinate]:
        if not name or not name.strip():
            return None

        cached = self.cache.get(name)
        if cached:
            return cached

        for provider in self.providers:
            try:
                coords = await provider.geocode(self.client, name)
            except Exception as e:
                logger.error(f"Geocoder '{provider.name}' raised for '{name}': {e}")
                coords = None

            if coords is not None and Coordinate.validate(coords) is None:
                logger.warning(
                    f"Geocoder '{provider.name}' returned invalid coordinates "
                    f"for '{name}': {coords!r}"
                )
                coords = None

            if coords:
                await self.cache.aput(name, coords)
                logger.info(f"Geocoded '{name}' via {provider.name}: {coords.lat}, {coords.lng}")
                return coords

            logger.debug(f"Geocoder '{provider.name}' had nothing for '{name}'")

        logger.warning(f"Geocoding failed for: {name}")
        return None


def make_client(timeout: float = GEOCODE_TIMEOUT, **kwargs) -> httpx.AsyncClient:
    """AsyncClient used for a processing run. Caller closes it."""
    return httpx.AsyncClient(timeout=timeout, follow_redirects=True, **kwargs)
