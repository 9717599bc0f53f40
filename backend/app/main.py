"""FastAPI application for the Care Continuity Engine."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api import continuity_router, suggestions_router
from app.core.config import settings
from app.core.database import close_db, init_db
from app.core.exceptions import EngineError
from app.services.program_matcher import get_program_matcher
from app.services.template_scorer import get_template_scorer

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Handles startup and shutdown events:
    - Startup: Create tables in debug mode
    - Shutdown: Dispose database engines
    """
    if settings.debug:
        await init_db()

    logger.info(
        f"Server ready - validity window {settings.continuity_validity_hours}h, "
        f"matcher weights {get_program_matcher().get_stats()}"
    )

    yield

    await close_db()


app = FastAPI(
    title=settings.app_name,
    description="Scores observation reuse against assessment templates and governs billing-program suggestions.",
    version="0.1.0",
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://localhost:3001"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(EngineError)
async def engine_error_handler(request: Request, exc: EngineError) -> JSONResponse:
    """Render engine errors with their specific reason."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected ({exc.code}): {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.code, "detail": exc.message},
    )


# Include routers
app.include_router(continuity_router)
app.include_router(suggestions_router)


@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, Any]:
    """Health check endpoint (liveness probe).

    Returns service status and scoring configuration for monitoring.
    """
    return {
        "status": "healthy",
        "service": "care-continuity-engine",
        "version": "0.1.0",
        "timestamp": datetime.now(UTC).isoformat(),
        "template_scorer": get_template_scorer().get_stats(),
        "program_matcher": get_program_matcher().get_stats(),
    }


@app.get("/", tags=["Health"])
async def root() -> dict[str, str]:
    """Root endpoint with API info."""
    return {
        "service": "Care Continuity Engine API",
        "version": "0.1.0",
        "docs": "/docs",
        "health": "/health",
    }
