"""Pydantic records for the persisted catalog document.

The on-disk format keeps the PascalCase keys of the storefront's data
file (``Products``, ``Categories``, ``LastUpdated``) so existing files
load unchanged.
"""

from datetime import datetime
from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, field_validator
from pydantic.alias_generators import to_pascal

from pcstore.catalog.models import Category, Product


def _price_to_json(value: Decimal) -> int | float:
    if value == value.to_integral_value():
        return int(value)
    return float(value)


# Prices are written as JSON numbers, as in the storefront's data file.
Price = Annotated[Decimal, PlainSerializer(_price_to_json, return_type=int | float, when_used="json")]


class CatalogRecord(BaseModel):
    """Base record with PascalCase aliases."""

    model_config = ConfigDict(
        alias_generator=to_pascal,
        populate_by_name=True,
        extra="ignore",
    )


class CategoryRecord(CatalogRecord):
    """Serialized category."""

    id: int
    name: str = ""
    description: str = ""
    image_url: str = ""

    @field_validator("name", "description", "image_url", mode="before")
    @classmethod
    def _none_to_empty(cls, value: object) -> object:
        return "" if value is None else value

    @classmethod
    def from_category(cls, category: Category) -> "CategoryRecord":
        """Build a record from a domain category."""
        return cls(
            id=category.id,
            name=category.name,
            description=category.description,
            image_url=category.image_url,
        )

    def to_category(self) -> Category:
        """Convert to a domain category."""
        return Category(
            id=self.id,
            name=self.name,
            description=self.description,
            image_url=self.image_url,
        )


class ProductRecord(CatalogRecord):
    """Serialized product."""

    id: int = 0
    name: str = ""
    description: str = ""
    brand: str = ""
    model_code: str = ""
    warranty: str = ""
    price: Price = Decimal("0")
    old_price: Price | None = None
    image_url: str = ""
    extra_images: list[str] = Field(default_factory=list)
    specs: str = ""
    category_id: int = 0
    is_featured: bool = False
    stock: int = 0

    @field_validator(
        "name", "description", "brand", "model_code", "warranty",
        "image_url", "specs",
        mode="before",
    )
    @classmethod
    def _none_to_empty(cls, value: object) -> object:
        return "" if value is None else value

    @field_validator("extra_images", mode="before")
    @classmethod
    def _split_extra_images(cls, value: object) -> object:
        # Older data files store secondary images as one ';'-joined string.
        if value is None:
            return []
        if isinstance(value, str):
            return [part.strip() for part in value.split(";") if part.strip()]
        return value

    @classmethod
    def from_product(cls, product: Product) -> "ProductRecord":
        """Build a record from a domain product."""
        return cls(
            id=product.id,
            name=product.name,
            description=product.description,
            brand=product.brand,
            model_code=product.model_code,
            warranty=product.warranty,
            price=product.price,
            old_price=product.old_price,
            image_url=product.image_url,
            extra_images=list(product.extra_images),
            specs=product.specs,
            category_id=product.category_id,
            is_featured=product.is_featured,
            stock=product.stock,
        )

    def to_product(self) -> Product:
        """Convert to a domain product."""
        return Product(
            id=self.id,
            name=self.name,
            description=self.description,
            price=self.price,
            old_price=self.old_price,
            category_id=self.category_id,
            stock=self.stock,
            is_featured=self.is_featured,
            image_url=self.image_url,
            extra_images=list(self.extra_images),
            brand=self.brand,
            model_code=self.model_code,
            warranty=self.warranty,
            specs=self.specs,
        )


class CatalogDocument(CatalogRecord):
    """The whole persisted catalog."""

    products: list[ProductRecord] = Field(default_factory=list)
    categories: list[CategoryRecord] = Field(default_factory=list)
    last_updated: datetime | None = None
