"""
Nearby Locations Router

Takes a saved-places CSV plus the user's position and returns the closest
places with distance and compass direction.

Endpoints:
    POST /api/nearby          - JSON body {csv_text, latitude, longitude}
    POST /api/nearby/upload   - multipart CSV file + latitude/longitude form fields
    GET  /api/nearby/cache    - geocode cache size
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile
from sqlalchemy.orm import Session

from database import get_db
from routers.settings import (
    get_batch_delay_seconds, get_batch_size, get_geocode_user_agent, get_top_n,
)
from schemas_nearby import (
    CacheStatsResponse, CoordinateSchema, NearbyLocation, NearbyRequest, NearbyResponse,
)
from services.location.errors import NearbyError
from services.location.geocode_cache import GeocodeCache
from services.location.geocoding import (
    GeocodeProvider, GeocodeResolver, default_providers, make_client,
)
from services.location.ranking import NearbyPipeline, fixed_location
from services.location.types import NearbyResult

logger = logging.getLogger(__name__)

router = APIRouter()

MAX_CSV_BYTES = 5 * 1024 * 1024


# =============================================================================
# DEPENDENCIES
# =============================================================================

def get_geocode_cache(request: Request) -> GeocodeCache:
    """Process-wide cache, loaded once in the app lifespan"""
    return request.app.state.geocode_cache


def get_geocode_providers(db: Session = Depends(get_db)) -> List[GeocodeProvider]:
    return default_providers(user_agent=get_geocode_user_agent(db))


# =============================================================================
# HELPERS
# =============================================================================

def _to_response(result: NearbyResult) -> NearbyResponse:
    return NearbyResponse(
        status=result.status,
        message=result.message,
        total_records=result.total_records,
        resolved_records=result.resolved_records,
        locations=[
            NearbyLocation(
                name=loc.name,
                url=loc.url,
                coords=CoordinateSchema(lat=loc.coords.lat, lng=loc.coords.lng),
                distance_km=round(loc.distance_km, 3),
                distance_label=loc.distance_label,
                bearing=round(loc.bearing, 1),
                direction=loc.direction,
                directions_url=loc.directions_url,
            )
            for loc in result.locations
        ],
    )


async def _run_nearby(
    csv_text: str,
    latitude: Optional[float],
    longitude: Optional[float],
    db: Session,
    cache: GeocodeCache,
    providers: List[GeocodeProvider],
) -> NearbyResponse:
    async with make_client() as client:
        pipeline = NearbyPipeline(
            resolver=GeocodeResolver(cache, client, providers),
            cache=cache,
            top_n=get_top_n(db),
            batch_size=get_batch_size(db),
            batch_delay=get_batch_delay_seconds(db),
        )
        try:
            result = await pipeline.run(csv_text, fixed_location(latitude, longitude))
        except NearbyError as e:
            logger.info(f"Nearby run aborted: {e}")
            raise HTTPException(status_code=400, detail=e.user_message)

    return _to_response(result)


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.post("", response_model=NearbyResponse)
async def find_nearby(
    request: NearbyRequest,
    db: Session = Depends(get_db),
    cache: GeocodeCache = Depends(get_geocode_cache),
    providers: List[GeocodeProvider] = Depends(get_geocode_providers),
):
    """
    Rank the CSV's places by distance from the given position.
    status='no_coordinates' means nothing could be located (not an error).
    """
    return await _run_nearby(
        request.csv_text, request.latitude, request.longitude, db, cache, providers,
    )


@router.post("/upload", response_model=NearbyResponse)
async def find_nearby_upload(
    file: UploadFile = File(...),
    latitude: Optional[float] = Form(None),
    longitude: Optional[float] = Form(None),
    db: Session = Depends(get_db),
    cache: GeocodeCache = Depends(get_geocode_cache),
    providers: List[GeocodeProvider] = Depends(get_geocode_providers),
):
    """Same as POST /api/nearby but takes the CSV as a file upload."""
    content = await file.read()
    if not content:
        raise HTTPException(status_code=400, detail="CSV file is empty")
    if len(content) > MAX_CSV_BYTES:
        raise HTTPException(status_code=400, detail="CSV file too large (max 5MB)")

    csv_text = content.decode('utf-8-sig', errors='replace')
    return await _run_nearby(csv_text, latitude, longitude, db, cache, providers)


@router.get("/cache", response_model=CacheStatsResponse)
async def cache_stats(cache: GeocodeCache = Depends(get_geocode_cache)):
    return CacheStatsResponse(entries=len(cache))
