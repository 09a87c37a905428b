"""
==============================================================================
Health Check Endpoints
==============================================================================

System health status endpoints for monitoring and orchestration.

==============================================================================
"""

from fastapi import APIRouter, Depends
from starlette.concurrency import run_in_threadpool

from marine_catalog.core.dependencies import get_catalog_service
from marine_catalog.services.catalog_service import CatalogService


router = APIRouter(prefix="/health", tags=["Health"])


class HealthController:
    """Controller for health check operations."""

    def __init__(self, service: CatalogService):
        self._service = service

    def check_storage(self) -> dict:
        """Report the active backend and whether reads are durable."""
        snapshot = self._service.store.load()
        return {
            "backend": self._service.store.backend_name,
            "status": "healthy" if snapshot.durable else "degraded",
            "products": len(snapshot.document.products),
        }

    def get_health(self) -> dict:
        """Get full health status."""
        storage = self.check_storage()

        return {
            "status": storage["status"],
            "components": {
                "api": "healthy",
                "storage": storage["status"],
            },
            "details": {
                "storage_backend": storage["backend"],
                "products_loaded": storage["products"],
            },
        }


@router.get("")
async def health_check(service: CatalogService = Depends(get_catalog_service)):
    """
    Health check endpoint.

    Returns API and catalog storage status. A blob store served from its
    memory fallback reports "degraded".
    """
    controller = HealthController(service)
    return await run_in_threadpool(controller.get_health)


@router.get("/ready")
async def readiness_check():
    """Readiness probe for container orchestration."""
    return {"ready": True}


@router.get("/live")
async def liveness_check():
    """Liveness probe for container orchestration."""
    return {"alive": True}
