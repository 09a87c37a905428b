"""
==============================================================================
Services Package - Business Logic Layer
==============================================================================

This package provides:
- AuthService: Admin login and token issuance
- CatalogService: Product catalog reads and mutations
- ImageService: Product image upload and garbage collection

Architecture Pattern: Service Layer
----------------------------------
    ┌─────────────────┐
    │   API Router    │
    └────────┬────────┘
             │
    ┌────────▼────────┐
    │    Service      │  ← Business Logic
    └────────┬────────┘
             │
    ┌────────▼────────┐
    │ Document Store  │  ← Blob store / memory
    └─────────────────┘

==============================================================================
"""

from .auth_service import AuthService
from .catalog_service import CatalogService
from .image_service import ImageService

__all__ = [
    "AuthService",
    "CatalogService",
    "ImageService",
]
