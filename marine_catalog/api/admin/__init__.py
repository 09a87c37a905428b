"""
==============================================================================
Admin API Endpoints
==============================================================================

Routers:
--------
- auth: Admin login
- products: Product catalog reads and admin mutations

==============================================================================
"""

from fastapi import APIRouter

from . import auth, products

router = APIRouter(prefix="/admin")
router.include_router(auth.router)
router.include_router(products.router)

__all__ = ["auth", "products", "router"]
