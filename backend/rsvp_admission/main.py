"""
Event RSVP Admission API - Main Application Entry Point

Capacity-checked RSVP admission for events:
- Atomic status transitions guarded by an optimistic version check
- Waitlist with dense 1..k positions and tier-biased insertion
- One retry on a conflicting concurrent write, then a retryable error
- Structured logging with request and event correlation
"""

from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from rsvp_admission.api.middleware import RequestLoggingMiddleware
from rsvp_admission.api.router import api_router
from rsvp_admission.core.config import get_settings
from rsvp_admission.core.exceptions import AdmissionError
from rsvp_admission.core.logging import get_logger, setup_logging
from rsvp_admission.core.metrics import metrics_endpoint
from rsvp_admission.db.session import get_session_factory
from rsvp_admission.infrastructure.redis_client import close_redis, get_redis
from rsvp_admission.services.cache_service import get_cache_stats

settings = get_settings()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle: startup and shutdown hooks."""
    setup_logging()

    logger.info(
        "application_starting",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
        waitlist_priority_mode=settings.WAITLIST_PRIORITY_MODE,
    )

    redis_client = await get_redis()
    if redis_client:
        logger.info("redis_ready")
    elif settings.REDIS_ENABLED:
        logger.warning("redis_unavailable", message="Running without tier cache and slot channel")

    yield

    await close_redis()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Capacity-checked RSVP admission with waitlist management",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestLoggingMiddleware)

app.include_router(api_router)


@app.exception_handler(AdmissionError)
async def admission_error_handler(request: Request, exc: AdmissionError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def _database_status(session_factory: async_sessionmaker[AsyncSession]) -> str:
    try:
        async with session_factory() as session:
            await session.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        logger.error("health_database_unreachable", error=str(e))
        return "unavailable"
    return "connected"


@app.get("/health", tags=["Health"])
async def health_check(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
):
    """Liveness plus dependency status. Redis is optional; the database is not."""
    database = await _database_status(session_factory)
    return {
        "status": "healthy" if database == "connected" else "degraded",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "database": database,
        "cache": await get_cache_stats(),
    }


@app.get("/metrics", tags=["Health"], include_in_schema=False)
def metrics():
    return metrics_endpoint()
