"""
FastAPI application factory.

Creates and configures the FastAPI application instance.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shared.config import get_settings
from .errors import register_exception_handlers
from .routes import health, users
from modules.auth.routes import router as auth_router
from modules.leases.routes import router as leases_router
from modules.ledger.routes import router as transactions_router
from modules.listings.routes import domain_router, router as listings_router
from modules.tokens.routes import router as tokens_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Runs startup and shutdown logic.
    """
    # Startup
    settings = get_settings()
    logger.info(f"Starting {settings.app_name} on {settings.host}:{settings.port}")
    if settings.in_memory_store:
        logger.warning("Using in-memory storage; data is lost on restart")
    yield
    # Shutdown
    logger.info(f"Shutting down {settings.app_name}")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI instance
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Domain name lease marketplace API",
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/api/docs" if settings.debug else None,
        redoc_url="/api/redoc" if settings.debug else None,
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    register_exception_handlers(app)

    # Register routes
    app.include_router(health.router, prefix="/api", tags=["health"])
    app.include_router(auth_router, prefix="/api/auth", tags=["auth"])
    app.include_router(users.router, prefix="/api/users", tags=["users"])
    app.include_router(listings_router, prefix="/api/listings", tags=["listings"])
    app.include_router(domain_router, prefix="/api/domains", tags=["domains"])
    app.include_router(leases_router, prefix="/api/leases", tags=["leases"])
    app.include_router(transactions_router, prefix="/api/transactions", tags=["transactions"])
    app.include_router(tokens_router, prefix="/api/tokens", tags=["tokens"])

    return app


# Application instance for uvicorn
app = create_app()
