"""
==============================================================================
Catalog Service Module
==============================================================================

Business logic for reading and mutating the product catalog.

Mutation Flow:
--------------
    ┌─────────────┐
    │   Upload    │  new images, once, before touching the document
    └──────┬──────┘
           │
    ┌──────▼──────┐
    │    Load     │◀─────────────┐
    └──────┬──────┘              │
           │                     │ RevisionConflict
    ┌──────▼──────┐              │ (up to max_attempts)
    │   Apply     │  pure, in-memory
    └──────┬──────┘              │
           │                     │
    ┌──────▼──────┐              │
    │    Save     │──────────────┘
    └──────┬──────┘
           │
    ┌──────▼──────┐
    │  Delete     │  orphaned blob images, best effort
    └─────────────┘

Validation and not-found conditions surface as AppException (400/404);
storage and upload failures are absorbed by the store and image fallbacks.

==============================================================================
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, TypeVar

from pydantic import ValidationError

from marine_catalog.catalog.models import CatalogDocument, Product, ProductUpdate, UploadedImage
from marine_catalog.core import exceptions
from marine_catalog.core.exceptions import AppException
from marine_catalog.services.image_service import ImageService, now_millis
from marine_catalog.storage.document_store import DocumentStore, RevisionConflict


# Module logger
logger = logging.getLogger(__name__)

T = TypeVar("T")

REQUIRED_CREATE_FIELDS = ("category", "name", "description", "link")

# Wire (form/JSON) field name -> Product attribute
PATCHABLE_FIELDS = {
    "name": "name",
    "description": "description",
    "partNumber": "part_number",
    "condition": "condition",
    "category": "category",
    "link": "link",
}


def iso_timestamp(millis: int) -> str:
    """ISO-8601 UTC with milliseconds and a trailing Z."""
    moment = datetime.fromtimestamp(millis / 1000, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_keep_images(raw: Optional[str]) -> Optional[List[str]]:
    """
    Parse the multipart `keepImages` field.

    Returns:
        None when the field was not sent, else the ordered URL list

    Raises:
        AppException: Field is not a JSON array of strings
    """
    if raw is None:
        return None

    try:
        value = json.loads(raw) if raw.strip() else []
    except json.JSONDecodeError:
        raise exceptions.validation_error("keepImages must be a JSON array of URLs")

    if not isinstance(value, list) or not all(isinstance(url, str) for url in value):
        raise exceptions.validation_error("keepImages must be a JSON array of URLs")

    return value


class CatalogService:
    """
    Catalog operations over an injected document store and image service.

    Attributes:
        _store: Document store holding the catalog
        _images: Image upload/delete service
        _max_attempts: Load-apply-save attempts before giving up
        _clock: Millisecond clock for ids and timestamps

    Example:
        >>> service = CatalogService(MemoryDocumentStore(), ImageService(None))
        >>> product = service.create_product(
        ...     {"category": "automation", "name": "PLC", "description": "S7", "link": "https://x"},
        ...     [],
        ... )
        >>> service.delete_product(product.id)
    """

    def __init__(
        self,
        store: DocumentStore,
        images: ImageService,
        max_attempts: int = 5,
        clock: Callable[[], int] = now_millis,
    ) -> None:
        self._store = store
        self._images = images
        self._max_attempts = max_attempts
        self._clock = clock

    @property
    def store(self) -> DocumentStore:
        return self._store

    # =========================================================================
    # READ OPERATIONS
    # =========================================================================

    def list_products(self) -> Dict[str, Any]:
        """Return the full catalog document."""
        return self._store.load().document.to_dict()

    def get_product(self, product_id: str) -> Product:
        product = self._store.load().document.find(product_id)
        if product is None:
            raise exceptions.product_not_found(product_id)
        return product

    # =========================================================================
    # MUTATION PLUMBING
    # =========================================================================

    def _mutate(self, apply: Callable[[CatalogDocument], T]) -> T:
        """
        Run load -> apply -> conditional save, reapplying on conflicts.

        `apply` mutates the loaded document in place and must have no other
        side effects, since it may run more than once.
        """
        for attempt in range(1, self._max_attempts + 1):
            snapshot = self._store.load()
            result = apply(snapshot.document)

            try:
                self._store.save(snapshot.document, expected=snapshot)
                return result
            except RevisionConflict as e:
                logger.warning(
                    f"Catalog changed during write (attempt {attempt}/{self._max_attempts}): {e}"
                )

        raise exceptions.storage_conflict(self._max_attempts)

    def _require_existing(self, product_id: str) -> None:
        if not self._store.load().document.has_id(product_id):
            raise exceptions.product_not_found(product_id)

    @staticmethod
    def _real_files(images: Sequence[UploadedImage]) -> List[UploadedImage]:
        return [image for image in images if not image.is_empty]

    # =========================================================================
    # CREATE
    # =========================================================================

    def create_product(
        self,
        fields: Mapping[str, Optional[str]],
        images: Sequence[UploadedImage] = ()
    ) -> Product:
        """
        Create a product from form fields and uploaded images.

        Args:
            fields: Wire-named fields (category, name, description, link,
                partNumber, condition)
            images: Files in display order, may be empty

        Returns:
            The persisted product

        Raises:
            AppException: VALIDATION_ERROR if a required field is missing
        """
        missing = [name for name in REQUIRED_CREATE_FIELDS if not fields.get(name)]
        if missing:
            raise exceptions.missing_fields(missing)

        urls = self._images.upload_all(self._real_files(images))
        timestamp = self._clock()
        category = fields["category"]

        def apply(document: CatalogDocument) -> Product:
            stamp = timestamp
            while document.has_id(f"{category}-{stamp}"):
                stamp += 1

            product = Product(
                id=f"{category}-{stamp}",
                category=category,
                name=fields["name"],
                description=fields["description"],
                link=fields["link"],
                part_number=fields.get("partNumber") or "",
                condition=fields.get("condition") or "",
                images=list(urls),
                created_at=iso_timestamp(stamp),
            )
            document.products.append(product)
            return product

        product = self._mutate(apply)
        logger.info(f"✅ Product created: {product.id} ({len(urls)} image(s))")
        return product

    # =========================================================================
    # UPDATE
    # =========================================================================

    def update_product_form(
        self,
        fields: Mapping[str, Optional[str]],
        keep_images: Optional[str] = None,
        new_images: Sequence[UploadedImage] = ()
    ) -> Product:
        """
        Apply a multipart update.

        Scalar fields present in `fields` overwrite the product. When
        `keep_images` is sent, the image list becomes the kept URLs (in the
        given order) followed by the new uploads, and every previous image not
        kept is deleted from the blob store. Without it, existing images stay
        and new uploads are appended.

        Raises:
            AppException: VALIDATION_ERROR (missing id, bad keepImages),
                PRODUCT_NOT_FOUND
        """
        product_id = fields.get("id")
        if not product_id:
            raise exceptions.product_id_required()

        kept = parse_keep_images(keep_images)
        changes = {
            attr: fields[wire]
            for wire, attr in PATCHABLE_FIELDS.items()
            if isinstance(fields.get(wire), str)
        }

        self._require_existing(product_id)
        uploaded = self._images.upload_all(self._real_files(new_images), tag_prefix="edit-")

        def apply(document: CatalogDocument) -> Tuple[Product, List[str]]:
            index = document.find_index(product_id)
            if index < 0:
                raise exceptions.product_not_found(product_id)

            current = document.products[index]
            if kept is None:
                images = current.images + uploaded
                removed: List[str] = []
            else:
                images = kept + uploaded
                removed = [url for url in current.images if url not in kept]

            updated = current.model_copy(update={**changes, "images": images})
            document.products[index] = updated
            return updated, removed

        try:
            product, removed = self._mutate(apply)
        except AppException:
            self._images.delete_all(uploaded)
            raise

        deleted = self._images.delete_all(removed)
        logger.info(
            f"✅ Product updated: {product.id} "
            f"(+{len(uploaded)} image(s), {deleted} blob image(s) removed)"
        )
        return product

    def update_product_json(self, body: Any) -> Product:
        """
        Apply a JSON update.

        `images`, when given, replaces the list as-is; images dropped this way
        are not deleted from the blob store.

        Raises:
            AppException: VALIDATION_ERROR (bad body, missing id),
                PRODUCT_NOT_FOUND
        """
        try:
            update = ProductUpdate.model_validate(body)
        except ValidationError as e:
            fields = [".".join(str(part) for part in error["loc"]) for error in e.errors()]
            raise exceptions.validation_error("Invalid update body", {"fields": fields})

        if not update.id:
            raise exceptions.product_id_required()

        changes: Dict[str, Any] = update.scalar_changes()
        if update.images is not None:
            changes["images"] = list(update.images)

        def apply(document: CatalogDocument) -> Product:
            index = document.find_index(update.id)
            if index < 0:
                raise exceptions.product_not_found(update.id)

            updated = document.products[index].model_copy(update=changes)
            document.products[index] = updated
            return updated

        product = self._mutate(apply)
        logger.info(f"✅ Product updated: {product.id} ({', '.join(sorted(changes)) or 'no changes'})")
        return product

    # =========================================================================
    # DELETE
    # =========================================================================

    def delete_product(self, product_id: Optional[str]) -> Product:
        """
        Remove a product and garbage-collect its blob-hosted images.

        Returns:
            The removed product

        Raises:
            AppException: VALIDATION_ERROR (missing id), PRODUCT_NOT_FOUND
        """
        if not product_id:
            raise exceptions.product_id_required()

        def apply(document: CatalogDocument) -> Product:
            index = document.find_index(product_id)
            if index < 0:
                raise exceptions.product_not_found(product_id)
            return document.products.pop(index)

        product = self._mutate(apply)
        deleted = self._images.delete_all(product.image_urls())
        logger.info(f"🗑️ Product deleted: {product_id} ({deleted} blob image(s) removed)")
        return product
