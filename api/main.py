"""
Harvest Scheduling: FastAPI Backend
Fulfillment date availability and recurring order subscriptions
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import settings
from db.database import engine
from routers import availability, schedules, assignments, zones, locations, subscriptions, cron
from services.errors import SchedulingError

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logger.info("Scheduling API starting (timezone=%s)", settings.TIMEZONE)
    yield
    await engine.dispose()
    logger.info("Scheduling API shut down")


app = FastAPI(
    title="Harvest Scheduling API",
    description="Fulfillment schedules, availability and subscription renewals",
    version="1.0.0",
    lifespan=lifespan,
)

# ── CORS ───────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Domain errors ──────────────────────────────────────────
@app.exception_handler(SchedulingError)
async def scheduling_error_handler(request: Request, exc: SchedulingError):
    if exc.status_code >= 409:
        logger.warning("%s %s → %s: %s", request.method, request.url.path, type(exc).__name__, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": type(exc).__name__},
    )


# ── Routers ────────────────────────────────────────────────
app.include_router(availability.router, prefix="/api/availability", tags=["Availability"])
app.include_router(schedules.router, prefix="/api/schedules", tags=["Schedules"])
app.include_router(assignments.router, prefix="/api/schedule-assignments", tags=["Schedule Assignments"])
app.include_router(zones.router, prefix="/api/zones", tags=["Zones"])
app.include_router(locations.router, prefix="/api/locations", tags=["Pickup Locations"])
app.include_router(subscriptions.router, prefix="/api/subscriptions", tags=["Subscriptions"])
app.include_router(cron.router, prefix="/api/cron", tags=["Cron"])


@app.get("/health")
async def health_check():
    return {"status": "healthy", "service": "Harvest Scheduling API"}


@app.get("/health/db")
async def health_db():
    """Verify the database connection."""
    from sqlalchemy import text
    try:
        async with engine.connect() as conn:
            row = (await conn.execute(text("SELECT current_database(), current_user"))).first()
        return {"status": "ok", "database": row[0], "user": row[1]}
    except Exception as e:
        logger.error("Database health check failed: %s", e)
        return {"status": "error", "detail": str(e)}
