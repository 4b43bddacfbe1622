"""
==============================================================================
Book Catalog & ISBN Scanner - Application Entry Point
==============================================================================

FastAPI application with:
- RESTful API endpoints for the book catalog
- ISBN metadata lookup
- WebSocket live ISBN scanning (barcode + OCR)

Usage:
------
    # Development
    uvicorn app.main:app --reload

    # Production
    uvicorn app.main:app --host 0.0.0.0 --port 8000

==============================================================================
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse
from fastapi.staticfiles import StaticFiles

from app.api.router import api_router
from app.catalog import StorageError
from app.config import Settings, get_settings
from app.core.dependencies import get_book_store, get_scan_service
from app.core.exceptions import register_exception_handlers
from app.websockets import scanner_router


# ============================================================================
# LOGGING SETUP
# ============================================================================

settings = get_settings()

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
)

logger = logging.getLogger(__name__)


# ============================================================================
# APPLICATION FACTORY
# ============================================================================

class Application:
    """
    FastAPI application factory and manager.

    Handles application lifecycle including:
    - Startup and shutdown events
    - Middleware configuration
    - Router registration
    - Exception handler setup
    """

    def __init__(self, settings: Optional[Settings] = None):
        """Initialize the application."""
        self._settings = settings or get_settings()
        self._app = self._create_app()

    def _create_app(self) -> FastAPI:
        """Create and configure the FastAPI application."""
        app = FastAPI(
            title=self._settings.app_name,
            version="1.0.0",
            description="Personal book catalog with live ISBN scanning",
            lifespan=self._lifespan,
            docs_url="/docs" if self._settings.docs_enabled else None,
            redoc_url="/redoc" if self._settings.docs_enabled else None,
        )

        # Configure middleware
        self._configure_middleware(app)

        # Register exception handlers
        register_exception_handlers(app)

        # Register routers
        self._register_routers(app)

        # Mount static files directory when a frontend is deployed
        if self._settings.static_path.is_dir():
            app.mount(
                "/static",
                StaticFiles(directory=str(self._settings.static_path)),
                name="static"
            )

        # Register root endpoint
        self._register_root(app)

        return app

    @asynccontextmanager
    async def _lifespan(self, app: FastAPI):
        """Application lifespan manager."""
        # Startup
        self._startup()
        yield
        # Shutdown
        self._shutdown()

    def _startup(self) -> None:
        """Application startup tasks."""
        logger.info("=" * 60)
        logger.info(f"🚀 Starting {self._settings.app_name}")
        logger.info("=" * 60)

        self._settings.ensure_directories()
        self._prepare_store()

        logger.info("=" * 60)
        logger.info(f"✅ {self._settings.app_name} ready")
        if self._settings.docs_enabled:
            logger.info(f"📖 API Docs: http://{self._settings.host}:{self._settings.port}/docs")
        logger.info("=" * 60)

    def _shutdown(self) -> None:
        """Application shutdown tasks."""
        logger.info("🛑 Shutting down...")
        # Release the local camera if a scan is still holding it
        get_scan_service().controller.stop()
        logger.info("✅ Shutdown complete")

    def _prepare_store(self) -> None:
        """Create the books file if needed and report its size."""
        store = get_book_store()
        try:
            store.ensure_exists()
            logger.info(f"✅ Loaded {len(store.list_books())} books from {store.path}")
        except StorageError as e:
            logger.error(f"❌ Book store unavailable: {e}")

    def _configure_middleware(self, app: FastAPI) -> None:
        """Configure application middleware."""
        app.add_middleware(
            CORSMiddleware,
            allow_origins=self._settings.cors_origins_list,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    def _register_routers(self, app: FastAPI) -> None:
        """Register API routers."""
        # REST API routes
        app.include_router(api_router)

        # WebSocket routes
        app.include_router(scanner_router)

    def _register_root(self, app: FastAPI) -> None:
        """Register root endpoint."""

        @app.get("/", include_in_schema=False)
        async def root():
            """Redirect to the frontend, the API docs or the health check."""
            if self._settings.static_path.is_dir():
                return RedirectResponse(url="/static/index.html")
            if self._settings.docs_enabled:
                return RedirectResponse(url="/docs")
            return RedirectResponse(url="/api/v1/health")

    @property
    def app(self) -> FastAPI:
        """Get the FastAPI application instance."""
        return self._app


# ============================================================================
# APPLICATION INSTANCE
# ============================================================================

# Create application instance
application = Application()
app = application.app


# ============================================================================
# ENTRY POINT
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level="debug" if settings.debug else "info"
    )
