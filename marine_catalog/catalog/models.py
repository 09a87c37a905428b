"""
==============================================================================
Catalog Models Module
==============================================================================

Pydantic models for the persisted catalog document and its products.

JSON Structure:
--------------
{
  "products": [
    {
      "id": "automation-1718000000000",
      "category": "automation",
      "name": "PLC Module",
      "description": "...",
      "link": "https://...",
      "partNumber": "6ES7-214",
      "condition": "used",
      "images": ["https://...", "data:image/png;base64,..."],
      "image": "https://...",
      "createdAt": "2024-06-10T08:53:20.000Z",
      "specifications": [{"name": "Voltage", "value": "24V"}]
    }
  ]
}

The stored image list is `images`; `image` is only ever a projection of its
first entry, kept in the JSON for older clients.

==============================================================================
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator
from pydantic.alias_generators import to_camel


SCALAR_FIELDS = ("name", "description", "part_number", "condition", "category", "link")


class Specification(BaseModel):
    """Display-only name/value pair, kept as stored (values may be numbers)."""

    model_config = ConfigDict(extra="allow")

    name: Any = ""
    value: Any = ""


class Product(BaseModel):
    """
    Product model for catalog items.

    Attributes:
        id: "<category>-<unixMillis>", generated at creation, immutable
        category: Free-form category (e.g., "automation", "electronics")
        name: Product display name
        description: Long description
        link: External listing link
        part_number: Manufacturer part number
        condition: Free-form condition label
        images: Ordered image URLs, index 0 is the primary image
        created_at: ISO-8601 creation timestamp
        specifications: Optional name/value pairs
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    id: str = ""
    category: str = ""
    name: str = ""
    description: str = ""
    link: str = ""
    part_number: str = ""
    condition: str = ""
    images: List[str] = Field(default_factory=list)
    created_at: str = ""
    specifications: Optional[List[Specification]] = None

    @model_validator(mode="before")
    @classmethod
    def fold_legacy_image(cls, data: Any) -> Any:
        """Move a legacy singular `image` into `images`."""
        if not isinstance(data, dict) or "image" not in data:
            return data

        data = dict(data)
        legacy = data.pop("image")
        if not isinstance(data.get("images"), list) and isinstance(legacy, str) and legacy:
            data["images"] = [legacy]
        return data

    @field_validator(
        "id", "category", "name", "description", "link",
        "part_number", "condition", "created_at",
        mode="before"
    )
    @classmethod
    def coerce_text(cls, value: Any) -> Any:
        """Stored records are hand-editable; read missing or numeric text leniently."""
        if value is None:
            return ""
        if isinstance(value, (int, float)):
            return str(value)
        return value

    @field_validator("images", mode="before")
    @classmethod
    def drop_non_string_images(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, list):
            return [url for url in value if isinstance(url, str)]
        return value

    @computed_field
    @property
    def image(self) -> Optional[str]:
        """Primary image, mirrored for clients that only read one image."""
        return self.images[0] if self.images else None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with wire field names, omitting absent optionals."""
        return self.model_dump(by_alias=True, exclude_none=True)

    def image_urls(self) -> List[str]:
        """Distinct image URLs in display order."""
        return list(dict.fromkeys(self.images))


class CatalogDocument(BaseModel):
    """The single persisted document holding every product."""

    model_config = ConfigDict(extra="allow")

    products: List[Product] = Field(default_factory=list)

    def find_index(self, product_id: str) -> int:
        """Position of a product by id, -1 if absent."""
        for index, product in enumerate(self.products):
            if product.id == product_id:
                return index
        return -1

    def find(self, product_id: str) -> Optional[Product]:
        index = self.find_index(product_id)
        return self.products[index] if index >= 0 else None

    def has_id(self, product_id: str) -> bool:
        return self.find_index(product_id) >= 0

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class ProductUpdate(BaseModel):
    """
    JSON body of a product update.

    Only fields that are present overwrite the stored product; `images`, when
    given, replaces the whole list.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    id: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    part_number: Optional[str] = None
    condition: Optional[str] = None
    category: Optional[str] = None
    link: Optional[str] = None
    images: Optional[List[str]] = None

    def scalar_changes(self) -> Dict[str, str]:
        """Scalar fields present in the body, keyed by attribute name."""
        return {
            field: getattr(self, field)
            for field in SCALAR_FIELDS
            if getattr(self, field) is not None
        }


@dataclass
class UploadedImage:
    """A single uploaded file held in memory."""

    content: bytes
    filename: str = ""
    content_type: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        """Browsers send an empty part when no file was chosen."""
        return not self.content and not self.filename
