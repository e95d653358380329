"""
Database connection for LocalGuide
"""

import os

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

DATABASE_URL = os.getenv("LOCALGUIDE_DATABASE_URL", "sqlite:///./localguide.db")


def make_engine(url: str = DATABASE_URL):
    if url.startswith("sqlite"):
        # Geocode batches run in the event loop thread, FastAPI sync deps in a pool
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(
        url,
        pool_size=10,
        max_overflow=20,
        pool_timeout=30,
        pool_recycle=1800,
        pool_pre_ping=True,
    )


engine = make_engine()
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind=None):
    """Create tables. Safe to call repeatedly."""
    import models  # noqa: F401 - registers tables on Base.metadata
    Base.metadata.create_all(bind=bind or engine)
