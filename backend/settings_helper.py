"""
Settings Helper - Read/write settings rows through a SQLAlchemy session
Shared by the settings router, the geocode cache store, and the CLI.
"""

import json
from typing import Any

from sqlalchemy import text
from sqlalchemy.orm import Session


def get_setting_value(db: Session, category: str, key: str, default: Any = None) -> Any:
    """Get a setting value with type conversion"""
    result = db.execute(
        text("SELECT value, value_type FROM settings WHERE category = :cat AND key = :key"),
        {"cat": category, "key": key}
    ).fetchone()

    if not result:
        return default

    return _parse_value(result[0], result[1])


def get_raw_setting(db: Session, category: str, key: str):
    """Get the unparsed text value, or None if the row doesn't exist"""
    result = db.execute(
        text("SELECT value FROM settings WHERE category = :cat AND key = :key"),
        {"cat": category, "key": key}
    ).fetchone()
    return result[0] if result else None


def set_setting_value(
    db: Session,
    category: str,
    key: str,
    value: str,
    value_type: str = 'string',
    description: str = None,
) -> None:
    """Upsert a setting row. Caller commits."""
    updated = db.execute(
        text("""
            UPDATE settings
            SET value = :value, value_type = :value_type, updated_at = CURRENT_TIMESTAMP
            WHERE category = :cat AND key = :key
        """),
        {"value": value, "value_type": value_type, "cat": category, "key": key}
    )
    if updated.rowcount:
        return

    db.execute(
        text("""
            INSERT INTO settings (category, key, value, value_type, description, updated_at)
            VALUES (:cat, :key, :value, :value_type, :description, CURRENT_TIMESTAMP)
        """),
        {
            "cat": category,
            "key": key,
            "value": value,
            "value_type": value_type,
            "description": description,
        }
    )


def _parse_value(value: str, value_type: str) -> Any:
    """Parse string value to appropriate type"""
    if value is None:
        return None

    if value_type == 'number':
        try:
            if '.' in value:
                return float(value)
            return int(value)
        except ValueError:
            return value
    elif value_type == 'boolean':
        return value.lower() in ('true', '1', 'yes')
    elif value_type == 'json':
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return value
    return value
