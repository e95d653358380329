"""
LocalGuide - Nearest saved places
Upload a saved-places CSV, get the four closest spots with direction and distance.
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from database import SessionLocal, init_db
from routers import nearby, settings
from services.location.geocode_cache import GeocodeCache, SettingsCacheStore

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("LocalGuide starting up...")
    init_db()
    cache = GeocodeCache(SettingsCacheStore(SessionLocal))
    cache.load_all()
    app.state.geocode_cache = cache
    yield
    # Shutdown
    logger.info("LocalGuide shutting down...")


app = FastAPI(
    title="LocalGuide API",
    description="Find the closest places from a saved-places CSV",
    version="1.0.0",
    lifespan=lifespan
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Tighten in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(nearby.router, prefix="/api/nearby", tags=["Nearby"])
app.include_router(settings.router, prefix="/api/settings", tags=["Settings"])


@app.get("/")
async def root():
    return {"status": "ok", "service": "LocalGuide API", "version": "1.0.0"}


@app.get("/health")
async def health():
    return {"status": "healthy"}
