"""
FastAPI application entry point for the Job Tracker.

Serves the collector trigger and the department admin endpoints. The
department cache lives on app.state so the collector and the keyword
endpoints share (and invalidate) the same tables.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app import database
from app.api import collector, departments
from app.services.department_classifier import DepartmentCache

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

SERVICE_NAME = "Job Tracker API"
VERSION = "1.0.0"


def _database_label(url: str) -> str:
    """Database URL without credentials, for the startup log."""
    return url.split('@')[1] if '@' in url else url.split('://')[0]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create missing tables on startup; dispose the engine on shutdown."""
    logger.info(f"Starting {SERVICE_NAME} (database: {_database_label(settings.database_url)}, debug: {settings.debug})")
    if not settings.api_secret:
        logger.warning("API_SECRET is not set; trigger endpoints will refuse requests")

    await database.init_db()

    yield

    logger.info(f"Shutting down {SERVICE_NAME}")
    await database.engine.dispose()


app = FastAPI(
    title=SERVICE_NAME,
    description="Collects job postings from Ashby and Greenhouse boards and tracks their changes",
    version=VERSION,
    debug=settings.debug,
    lifespan=lifespan,
)

# Shared by the collector and the keyword endpoints
app.state.department_cache = DepartmentCache()


@app.get("/health")
async def health_check(db: AsyncSession = Depends(database.get_db)):
    """Liveness plus a database round trip."""
    try:
        await db.execute(text("SELECT 1"))
        db_status = "ok"
    except SQLAlchemyError as e:
        logger.error(f"Health check database error: {e}")
        db_status = "unavailable"

    return {
        "status": "healthy" if db_status == "ok" else "degraded",
        "service": SERVICE_NAME,
        "version": VERSION,
        "database": db_status,
    }


@app.get("/")
async def root():
    return {
        "message": SERVICE_NAME,
        "version": VERSION,
        "endpoints": {
            "trigger": "/api/collector/run?secret=...",
            "departments": "/api/departments",
            "health": "/health",
            "docs": "/docs",
        },
    }


app.include_router(collector.router, prefix="/api/collector", tags=["collector"])
app.include_router(departments.router, prefix="/api/departments", tags=["departments"])
