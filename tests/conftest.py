"""
Shared fixtures: in-memory SQLite settings table and a dict-backed cache store.
"""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import init_db


class MemoryStore:
    """CacheStore double. Records every write."""

    def __init__(self, payload=None, fail_read=False, fail_write=False):
        self.payload = payload
        self.fail_read = fail_read
        self.fail_write = fail_write
        self.writes = []

    def read(self):
        if self.fail_read:
            raise OSError("store unavailable")
        return self.payload

    def write(self, payload):
        if self.fail_write:
            raise OSError("disk full")
        self.writes.append(payload)
        self.payload = payload


@pytest.fixture
def store_factory():
    return MemoryStore


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()
