"""
==============================================================================
Marine Catalog API - Application Entry Point
==============================================================================

FastAPI application with:
- Public product catalog reads
- Admin login and product create/edit/delete with image uploads
- Blob store persistence with an in-memory fallback

Usage:
------
    # Development
    uvicorn marine_catalog.main:app --reload

    # Production
    uvicorn marine_catalog.main:app --host 0.0.0.0 --port 8000

==============================================================================
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from marine_catalog.api.router import api_router
from marine_catalog.config import Settings, get_settings
from marine_catalog.core.exceptions import register_exception_handlers
from marine_catalog.services.catalog_service import CatalogService
from marine_catalog.services.image_service import ImageService
from marine_catalog.storage.blob_client import BlobClient
from marine_catalog.storage.document_store import build_blob_client, build_store


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
    - Storage backend selection and service wiring on startup
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
            description="Marine and industrial equipment catalog",
            lifespan=self._lifespan,
            docs_url=None if self._settings.is_production else "/docs",
            redoc_url=None if self._settings.is_production else "/redoc",
        )

        self._configure_middleware(app)
        register_exception_handlers(app)
        app.include_router(api_router)

        return app

    @asynccontextmanager
    async def _lifespan(self, app: FastAPI):
        """Application lifespan manager."""
        self._startup(app)
        yield
        self._shutdown(app)

    def _startup(self, app: FastAPI) -> None:
        """Wire storage and services onto app.state."""
        logger.info("=" * 60)
        logger.info(f"🚀 Starting {self._settings.app_name}")
        logger.info("=" * 60)

        app.state.catalog_service = self.build_catalog_service(self._settings)

        logger.info(f"✅ {self._settings.app_name} ready")
        if not self._settings.is_production:
            logger.info(f"📖 API Docs: http://{self._settings.host}:{self._settings.port}/docs")
        logger.info("=" * 60)

    def _shutdown(self, app: FastAPI) -> None:
        """Application shutdown tasks."""
        logger.info("🛑 Shutting down...")
        service = getattr(app.state, "catalog_service", None)
        if service is not None:
            service.store.close()
        logger.info("✅ Shutdown complete")

    @staticmethod
    def build_catalog_service(
        settings: Settings,
        client: Optional[BlobClient] = None
    ) -> CatalogService:
        """
        Build the catalog service for the configured storage backend.

        Args:
            settings: Application settings
            client: Blob client to use instead of one built from settings
        """
        if settings.resolved_storage_backend == "blob":
            client = client or build_blob_client(settings)
        else:
            client = None

        images = ImageService(
            client,
            prefix=settings.upload_prefix,
            host_marker=settings.blob_host_marker,
        )
        return CatalogService(
            build_store(settings, client),
            images,
            max_attempts=settings.max_save_attempts,
        )

    def _configure_middleware(self, app: FastAPI) -> None:
        """Configure application middleware."""
        app.add_middleware(
            CORSMiddleware,
            allow_origins=self._settings.cors_origins_list,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @property
    def app(self) -> FastAPI:
        """Get the FastAPI application instance."""
        return self._app


# ============================================================================
# APPLICATION INSTANCE
# ============================================================================

application = Application()
app = application.app


# ============================================================================
# ENTRY POINT
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "marine_catalog.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level="debug" if settings.debug else "info"
    )
