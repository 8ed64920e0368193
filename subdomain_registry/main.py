"""FastAPI application factory and configuration."""

import logging
import time
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import InterfaceError, OperationalError

from subdomain_registry.config import settings
from subdomain_registry.errors import RegistryError, UpstreamUnavailable
from subdomain_registry.schemas.common import error_body
from subdomain_registry.utils.email_masking import mask_email
from subdomain_registry.utils.rate_limiter import SlidingWindowRateLimiter

logger = logging.getLogger(__name__)
request_logger = logging.getLogger("subdomain_registry.request")


def configure_logging() -> None:
    """Configure root logging from LOG_LEVEL."""
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    logger.info(f"Starting Subdomain Registry in {settings.ENVIRONMENT} mode")
    logger.info(f"Parent zone: {settings.PARENT_ZONE} via {settings.DNS_API_URL}")
    logger.info(f"Moderation mode: {'on' if settings.MODERATION_MODE else 'off (auto-approve)'}")
    logger.info(f"Database: {settings.DATABASE_URL.split('@')[-1]}")  # Hide credentials
    yield
    # Shutdown
    logger.info("Shutting down Subdomain Registry")


async def registry_error_handler(request: Request, exc: RegistryError) -> JSONResponse:
    """Render registry errors in the standard error envelope."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": error_body(exc.code, exc.message, exc.details)},
    )


async def store_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Database outages outside a registry call (e.g. on commit) surface as 503."""
    logger.error(f"Subdomain store unavailable: {exc}")
    return await registry_error_handler(
        request, UpstreamUnavailable("Subdomain store is unavailable")
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    configure_logging()

    app = FastAPI(
        title="Subdomain Registry",
        description="Claim subdomains under a managed zone with PowerDNS-backed records",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # One limiter per application instance
    app.state.rate_limiter = SlidingWindowRateLimiter(
        max_requests=settings.RATE_LIMIT_CREATE_MAX,
        window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure based on environment in production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed = (time.perf_counter() - start) * 1000
        actor = getattr(request.state, "actor", None)
        request_logger.info(
            f"{request.method} {request.url.path} {response.status_code} "
            f"{elapsed:.0f}ms {mask_email(actor.email) if actor else '-'}"
        )
        return response

    app.add_exception_handler(RegistryError, registry_error_handler)
    app.add_exception_handler(OperationalError, store_error_handler)
    app.add_exception_handler(InterfaceError, store_error_handler)

    # Health check endpoint
    @app.get("/health", tags=["Health"])
    async def health_check() -> dict[str, Any]:
        """Health check endpoint."""
        return {
            "status": "healthy",
            "service": "subdomain-registry",
            "version": "0.1.0",
            "environment": settings.ENVIRONMENT,
        }

    # Root endpoint
    @app.get("/", tags=["Root"])
    async def root() -> dict[str, str]:
        """Root endpoint with API information."""
        return {
            "message": "Subdomain Registry API",
            "docs": "/docs",
            "health": "/health",
        }

    # Mount routes
    from subdomain_registry.routes import subdomains

    app.include_router(subdomains.router, prefix="/api", tags=["Subdomains"])

    return app


# Create application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "subdomain_registry.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.ENVIRONMENT == "development",
        log_level=settings.LOG_LEVEL.lower(),
    )
