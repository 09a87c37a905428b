"""
==============================================================================
Catalog Package - Product Data Model
==============================================================================

Pydantic models for the catalog document.

Classes:
--------
- Product: A catalog item with its ordered image list
- CatalogDocument: The single persisted document
- ProductUpdate: JSON partial-update body
- UploadedImage: In-memory uploaded file

==============================================================================
"""

from .models import (
    CatalogDocument,
    Product,
    ProductUpdate,
    Specification,
    UploadedImage,
)

__all__ = [
    "CatalogDocument",
    "Product",
    "ProductUpdate",
    "Specification",
    "UploadedImage",
]
