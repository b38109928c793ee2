"""
School Back-Office API - Main Application Entry Point

This module initializes and configures the FastAPI application including:
- Logging
- Database and Redis connections
- Upload storage
- CORS middleware and the error envelope
- API routing
- Health check endpoints
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from backoffice.api import api_router
from backoffice.core import database
from backoffice.core.config import settings
from backoffice.core.database import close_db, init_db
from backoffice.core.exceptions import register_exception_handlers
from backoffice.core.logging_config import configure_logging
from backoffice.core.redis import close_redis, init_redis, redis_status
from backoffice.core.storage import FileStorage

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events including:
    - Logging configuration
    - Redis connection (optional outside production)
    - Database connection
    - Upload directory
    """
    configure_logging()

    # Startup
    print(f"Starting Back-Office API in {settings.python_env} mode...")

    # Initialize Redis
    try:
        await init_redis()
        print("[OK] Redis connected")
    except Exception as e:
        print(f"[FAIL] Redis connection failed: {e}")
        if settings.is_production:
            raise

    # Initialize Database
    try:
        await init_db()
        print("[OK] Database connected")
    except Exception as e:
        print(f"[FAIL] Database connection failed: {e}")
        if settings.is_production:
            raise

    # Initialize upload storage
    storage = FileStorage.from_settings()
    storage.ensure_root()
    app.state.storage = storage
    print(f"[OK] Upload storage ready at {storage.root}")

    yield  # Application runs here

    # Shutdown
    print("Shutting down Back-Office API...")

    await close_redis()
    await close_db()
    print("[OK] Cleanup complete")


app = FastAPI(
    title="School Back-Office API",
    description="Admissions and contact management for École Saint Pierre Claver",
    version="0.1.0",
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
    lifespan=lifespan,
)

app.include_router(api_router, prefix="/api/v1")

register_exception_handlers(app)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """Root endpoint - API welcome message."""
    return {
        "message": "Welcome to the School Back-Office API",
        "status": "running",
        "environment": settings.python_env,
    }


@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, str]:
    """Health check endpoint for container orchestration."""
    return {"status": "healthy"}


@app.get("/ready", tags=["Health"])
async def readiness_check() -> JSONResponse:
    """
    Readiness check.

    The database is required; Redis is reported but optional, since the
    rate limiter falls back to memory without it.
    """
    db_status = "connected"
    try:
        if database.async_session_maker is None:
            db_status = "not initialized"
        else:
            async with database.async_session_maker() as session:
                await session.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning(f"Readiness database check failed: {e}")
        db_status = "error"

    ready = db_status == "connected"
    return JSONResponse(
        status_code=200 if ready else 503,
        content={
            "status": "ready" if ready else "not ready",
            "database": db_status,
            "redis": await redis_status(),
        },
    )
