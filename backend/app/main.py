"""
Tonr - FastAPI Application

Main entry point for the backend API.
Provides endpoints for tier selection, usage, speech analysis and payments.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from app.api.rate_limit import limiter
from app.config.settings import settings
from app.infrastructure.exceptions import (
    AIServiceError,
    EntitlementDeniedError,
    NotFoundError,
    StorageUnavailableError,
    TonrError,
    ValidationError,
)

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    # Startup
    logger.info(f"Tonr Backend starting in {settings.environment} mode...")

    # Initialize SQLModel database if URL is configured
    if settings.database_url:
        from app.infrastructure.db.database import init_db
        await init_db()
        logger.info("SQLModel database connection pool initialized")
    else:
        logger.warning("DATABASE_URL not set, storage-backed routes will fail")

    yield

    # Shutdown
    if settings.database_url:
        from app.infrastructure.db.database import close_db
        await close_db()
        logger.info("SQLModel database connection pool closed")

    logger.info("Tonr Backend shutting down...")


app = FastAPI(
    title="Tonr",
    description="Speech coaching API with tiered access",
    version="1.0.0",
    lifespan=lifespan,
    debug=settings.debug,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS configuration from Settings
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# Exception Handlers
# ============================================================================

@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    """Handle validation errors, including invalid tier requests."""
    return JSONResponse(
        status_code=400,
        content=exc.to_dict(),
    )


@app.exception_handler(EntitlementDeniedError)
async def entitlement_denied_handler(request: Request, exc: EntitlementDeniedError):
    """Handle policy denials. The reason code is in ``details.reason``."""
    return JSONResponse(
        status_code=403,
        content=exc.to_dict(),
    )


@app.exception_handler(NotFoundError)
async def not_found_error_handler(request: Request, exc: NotFoundError):
    """Handle not found errors."""
    return JSONResponse(
        status_code=404,
        content=exc.to_dict(),
    )


@app.exception_handler(StorageUnavailableError)
async def storage_unavailable_handler(request: Request, exc: StorageUnavailableError):
    """Handle storage outages."""
    logger.error(f"Storage unavailable: {exc.message}")
    return JSONResponse(
        status_code=503,
        content=exc.to_dict(),
    )


@app.exception_handler(AIServiceError)
async def ai_service_error_handler(request: Request, exc: AIServiceError):
    """Handle scorer failures. No partial result is returned."""
    return JSONResponse(
        status_code=502,
        content=exc.to_dict(),
    )


@app.exception_handler(TonrError)
async def general_error_handler(request: Request, exc: TonrError):
    """Handle all other application errors."""
    logger.error(f"Unhandled application error: {exc.message}")
    return JSONResponse(
        status_code=500,
        content=exc.to_dict(),
    )


# ============================================================================
# Health Check
# ============================================================================

@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "tonr"}


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Tonr API",
        "version": "1.0.0",
        "docs": "/docs",
    }


# ============================================================================
# Import and register routers
# ============================================================================

from app.api.routes import analysis, subscriptions, users, webhooks

app.include_router(users.router, prefix="/api", tags=["Users"])
app.include_router(analysis.router, prefix="/api", tags=["Analysis"])
app.include_router(subscriptions.router, prefix="/api", tags=["Subscriptions"])
app.include_router(webhooks.router, prefix="/api", tags=["Webhooks"])
