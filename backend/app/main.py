"""
FastAPI app entrypoint.

Nearby restaurants around a fixed search center, with dinner groups (one per user).
"""
import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from apscheduler.schedulers.background import BackgroundScheduler
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Load .env from backend/ before any app code
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

from app.api.deps import build_container
from app.api.routes import photos, restaurants
from app.config import settings
from app.core.constants import VENUE_CACHE_WARM_JOB_ID
from app.db.session import SessionLocal
from app.scheduler.venue_cache_job import run_venue_cache_warm

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Missing GOOGLE_PLACES_API_KEY raises ConfigurationError here and the app does not start
    container = build_container(SessionLocal)
    app.state.container = container

    scheduler = BackgroundScheduler()
    if settings.venue_cache_warm_minutes > 0:
        scheduler.add_job(
            run_venue_cache_warm,
            "interval",
            minutes=settings.venue_cache_warm_minutes,
            id=VENUE_CACHE_WARM_JOB_ID,
            args=[container],
        )
        # One tick on startup so the first request finds a warm cache
        container.executor.submit(run_venue_cache_warm, container)
    scheduler.start()
    app.state.scheduler = scheduler
    logger.info(
        "Backend ready; search center (%s, %s), cache warm every %s min",
        settings.search_center_lat,
        settings.search_center_lng,
        settings.venue_cache_warm_minutes,
    )
    yield
    scheduler.shutdown(wait=False)
    container.shutdown()


app = FastAPI(title="Dinner Groups", version="0.1.0", lifespan=lifespan)

# CORS: dev origins + optional CORS_ORIGINS (comma-separated) for production frontend
_cors_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
_cors_extra = settings.cors_origins or os.getenv("CORS_ORIGINS", "")
if _cors_extra:
    _cors_origins.extend(o.strip() for o in _cors_extra.split(",") if o.strip())
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(restaurants.router, prefix="/restaurants", tags=["restaurants"])
app.include_router(photos.router, prefix="/resources/maps", tags=["photos"])


@app.get("/", include_in_schema=False)
def root():
    """Root: point to API docs and health."""
    return {"message": "Dinner Groups API", "docs": "/docs", "health": "/health"}


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
