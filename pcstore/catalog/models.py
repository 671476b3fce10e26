"""Catalog domain model.

Plain dataclasses for products and categories. The catalog store owns
the canonical instances and only hands out copies made with ``clone()``.
"""

from dataclasses import dataclass, field, fields
from decimal import Decimal


@dataclass
class Category:
    """A product category.

    Attributes:
        id: Category ID (positive, unique within the catalog).
        name: Display name (e.g., "CPU - Bộ vi xử lý").
        description: Short description.
        image_url: Category image URL.
    """

    id: int = 0
    name: str = ""
    description: str = ""
    image_url: str = ""

    def clone(self) -> "Category":
        """Return an independent copy."""
        return Category(
            id=self.id,
            name=self.name,
            description=self.description,
            image_url=self.image_url,
        )


@dataclass
class Product:
    """A product in the catalog.

    Attributes:
        id: Product ID (positive, unique within the catalog).
        name: Product name.
        description: Product description.
        price: Current price.
        old_price: Previous price shown as struck-through, if any.
        category_id: ID of the category the product is filed under.
        stock: Units in stock.
        is_featured: Whether the product is shown on the home page.
        image_url: Main image URL.
        extra_images: Secondary image URLs, in display order.
        brand: Brand name.
        model_code: Manufacturer model code.
        warranty: Warranty terms.
        specs: Free-text technical specifications.
    """

    id: int = 0
    name: str = ""
    description: str = ""
    price: Decimal = Decimal("0")
    old_price: Decimal | None = None
    category_id: int = 0
    stock: int = 0
    is_featured: bool = False
    image_url: str = ""
    extra_images: list[str] = field(default_factory=list)
    brand: str = ""
    model_code: str = ""
    warranty: str = ""
    specs: str = ""

    def clone(self) -> "Product":
        """Return an independent plain ``Product`` copy.

        Subclass-only attributes (such as an import label) are dropped.
        """
        values = {f.name: getattr(self, f.name) for f in fields(Product)}
        values["extra_images"] = list(self.extra_images)
        return Product(**values)


@dataclass
class ImportedProduct(Product):
    """A product as handed over by an external feed reader.

    Attributes:
        category_name: Category label from the feed, used to resolve
            ``category_id`` when the feed carries no usable id.
    """

    category_name: str = ""
