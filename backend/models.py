"""
SQLAlchemy models for LocalGuide
"""

from sqlalchemy import Column, Integer, String, Text, TIMESTAMP, UniqueConstraint, func

from database import Base


# =============================================================================
# SETTINGS
# =============================================================================

class Setting(Base):
    """
    Runtime configuration stored in database.
    Also holds the geocode cache as a single json row (geocode / cache).
    """
    __tablename__ = "settings"

    id = Column(Integer, primary_key=True)
    category = Column(String(50), nullable=False)
    key = Column(String(50), nullable=False)
    value = Column(Text)
    value_type = Column(String(20), default='string')  # string, number, boolean, json
    description = Column(Text)
    updated_at = Column(TIMESTAMP(timezone=True), default=func.current_timestamp())

    __table_args__ = (
        UniqueConstraint('category', 'key', name='uq_settings_category_key'),
        {'sqlite_autoincrement': True},
    )
