"""
Settings router - Runtime configuration from database
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from sqlalchemy import text
from typing import Optional
from pydantic import BaseModel

from database import get_db
from settings_helper import get_setting_value, set_setting_value, _parse_value
from services.location.batch import DEFAULT_BATCH_DELAY, DEFAULT_BATCH_SIZE
from services.location.geocode_cache import CACHE_CATEGORY, CACHE_KEY
from services.location.geocoding import DEFAULT_USER_AGENT
from services.location.ranking import DEFAULT_TOP_N

router = APIRouter()

VALUE_TYPES = {'string', 'number', 'boolean', 'json'}


class SettingUpdate(BaseModel):
    value: str
    value_type: str = 'string'
    description: Optional[str] = None


def _is_internal(category: str, key: str) -> bool:
    # The geocode cache blob lives in this table but isn't a setting
    return category == CACHE_CATEGORY and key == CACHE_KEY


# =============================================================================
# SETTINGS CRUD
# =============================================================================

@router.get("")
async def list_all_settings(db: Session = Depends(get_db)):
    """Get all settings grouped by category"""
    result = db.execute(text("""
        SELECT id, category, key, value, value_type, description
        FROM settings
        ORDER BY category, key
    """))

    settings = {}
    for row in result:
        if _is_internal(row[1], row[2]):
            continue
        settings.setdefault(row[1], []).append({
            "id": row[0],
            "category": row[1],
            "key": row[2],
            "value": _parse_value(row[3], row[4]),
            "raw_value": row[3],
            "value_type": row[4],
            "description": row[5],
        })

    return settings


@router.put("/{category}/{key}")
async def update_setting(
    category: str,
    key: str,
    update: SettingUpdate,
    db: Session = Depends(get_db),
):
    """Create or update a setting"""
    if _is_internal(category, key):
        raise HTTPException(status_code=400, detail="Setting is managed internally")
    if update.value_type not in VALUE_TYPES:
        raise HTTPException(status_code=400, detail=f"Invalid value_type: {update.value_type}")

    set_setting_value(db, category, key, update.value, update.value_type, update.description)
    db.commit()

    return {
        "category": category,
        "key": key,
        "value": _parse_value(update.value, update.value_type),
    }


# =============================================================================
# TYPED GETTERS
# =============================================================================

def _positive_number(value, default, cast):
    try:
        value = cast(value)
    except (TypeError, ValueError):
        return default
    return value if value > 0 else default


def get_geocode_user_agent(db: Session) -> str:
    """User-Agent sent to Nominatim"""
    value = get_setting_value(db, 'geocode', 'user_agent', DEFAULT_USER_AGENT)
    return str(value).strip() or DEFAULT_USER_AGENT


def get_batch_size(db: Session) -> int:
    value = get_setting_value(db, 'geocode', 'batch_size', DEFAULT_BATCH_SIZE)
    return _positive_number(value, DEFAULT_BATCH_SIZE, int)


def get_batch_delay_seconds(db: Session) -> float:
    """Stored as milliseconds"""
    value = get_setting_value(db, 'geocode', 'batch_delay_ms', DEFAULT_BATCH_DELAY * 1000)
    try:
        ms = float(value)
    except (TypeError, ValueError):
        return DEFAULT_BATCH_DELAY
    return ms / 1000.0 if ms >= 0 else DEFAULT_BATCH_DELAY


def get_top_n(db: Session) -> int:
    value = get_setting_value(db, 'nearby', 'top_n', DEFAULT_TOP_N)
    return _positive_number(value, DEFAULT_TOP_N, int)
