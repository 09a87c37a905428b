"""
==============================================================================
Product Catalog Endpoints
==============================================================================

Public catalog reads and admin-only catalog mutations.

Request Shapes:
---------------
- POST   multipart: category, name, description, link, partNumber?,
         condition?, files under "images"
- PUT    multipart: id, scalar fields?, keepImages? (JSON array), files
         under "newImages"  -- or --  JSON: {id, scalar fields?, images?}
- DELETE query parameter ?id=

==============================================================================
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Request
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import FormData, UploadFile

from marine_catalog.catalog.models import UploadedImage
from marine_catalog.core import exceptions
from marine_catalog.core.dependencies import get_catalog_service, require_admin
from marine_catalog.schemas.common import MessageResponse
from marine_catalog.services.catalog_service import CatalogService


router = APIRouter(prefix="/products", tags=["Products"])


# =============================================================================
# FORM HELPERS
# =============================================================================

def form_fields(form: FormData) -> Dict[str, str]:
    """Text fields of a form, first value per key."""
    fields: Dict[str, str] = {}
    for key, value in form.multi_items():
        if isinstance(value, str) and key not in fields:
            fields[key] = value
    return fields


async def form_files(form: FormData, key: str) -> List[UploadedImage]:
    """Read every file sent under `key`, preserving order."""
    images = []
    for value in form.getlist(key):
        if not isinstance(value, UploadFile):
            continue
        images.append(UploadedImage(
            content=await value.read(),
            filename=value.filename or "",
            content_type=value.content_type,
        ))
    return images


def is_form_request(request: Request) -> bool:
    content_type = request.headers.get("content-type", "").lower()
    return (
        content_type.startswith("multipart/form-data")
        or content_type.startswith("application/x-www-form-urlencoded")
    )


# =============================================================================
# CONTROLLER
# =============================================================================

class ProductController:
    """Controller for product catalog operations."""

    def __init__(self, service: CatalogService):
        self._service = service

    def list_products(self) -> dict:
        """Full catalog document."""
        return self._service.list_products()

    def get_product(self, product_id: str) -> dict:
        product = self._service.get_product(product_id)
        return {"success": True, "product": product.to_dict()}

    def create(self, fields: Dict[str, str], images: List[UploadedImage]) -> dict:
        product = self._service.create_product(fields, images)
        return {
            "success": True,
            "product": product.to_dict(),
            "message": "Product added successfully",
        }

    def update_form(
        self,
        fields: Dict[str, str],
        new_images: List[UploadedImage]
    ) -> dict:
        product = self._service.update_product_form(
            fields,
            keep_images=fields.get("keepImages"),
            new_images=new_images,
        )
        return {"success": True, "product": product.to_dict()}

    def update_json(self, body: Any) -> dict:
        product = self._service.update_product_json(body)
        return {"success": True, "product": product.to_dict()}

    def delete(self, product_id: Optional[str]) -> dict:
        self._service.delete_product(product_id)
        return {"success": True, "message": "Product deleted successfully"}


# =============================================================================
# ROUTES
# =============================================================================

@router.get("")
async def list_products(service: CatalogService = Depends(get_catalog_service)):
    """Return every product; filtering and sorting happen client-side."""
    controller = ProductController(service)
    return await run_in_threadpool(controller.list_products)


@router.get("/{product_id}")
async def get_product(
    product_id: str,
    service: CatalogService = Depends(get_catalog_service)
):
    """Get a single product by id."""
    controller = ProductController(service)
    return await run_in_threadpool(controller.get_product, product_id)


@router.post("")
async def create_product(
    request: Request,
    service: CatalogService = Depends(get_catalog_service),
    admin: dict = Depends(require_admin)
):
    """Create a product from a multipart form with optional images."""
    form = await request.form()
    fields = form_fields(form)
    images = await form_files(form, "images")

    controller = ProductController(service)
    return await run_in_threadpool(controller.create, fields, images)


@router.put("")
async def update_product(
    request: Request,
    service: CatalogService = Depends(get_catalog_service),
    admin: dict = Depends(require_admin)
):
    """
    Patch a product.

    Multipart requests may reorder/remove images via keepImages and append
    new files; JSON requests may replace the image list wholesale.
    """
    controller = ProductController(service)

    if is_form_request(request):
        form = await request.form()
        fields = form_fields(form)
        new_images = await form_files(form, "newImages")
        return await run_in_threadpool(controller.update_form, fields, new_images)

    try:
        body = await request.json()
    except ValueError:
        raise exceptions.validation_error("Request body must be JSON or multipart form data")

    return await run_in_threadpool(controller.update_json, body)


@router.delete("", response_model=MessageResponse)
async def delete_product(
    id: Optional[str] = Query(None),
    service: CatalogService = Depends(get_catalog_service),
    admin: dict = Depends(require_admin)
):
    """Delete a product and its blob-hosted images."""
    controller = ProductController(service)
    return await run_in_threadpool(controller.delete, id)
