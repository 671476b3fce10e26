"""Query/filter layer.

Category-scoped, brand-filtered, price-ranged and sorted product views
for the presentation layer. Results are copies taken from the store
snapshot; nothing here mutates the catalog.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation

import structlog

from pcstore.catalog.models import Product
from pcstore.catalog.resolver import CategoryResolver
from pcstore.catalog.store import CatalogStore

logger = structlog.get_logger()


SORT_NAME = "name"
SORT_NAME_DESC = "name-desc"
SORT_PRICE_ASC = "price-asc"
SORT_PRICE_DESC = "price-desc"
SORT_KEYS = (SORT_NAME, SORT_NAME_DESC, SORT_PRICE_ASC, SORT_PRICE_DESC)


@dataclass(frozen=True)
class PriceRange:
    """Inclusive price bounds."""

    min_price: Decimal
    max_price: Decimal

    @classmethod
    def parse(cls, value: str | None) -> "PriceRange | None":
        """Parse a ``"min-max"`` range.

        Args:
            value: Range text, e.g. "1000000-5000000".

        Returns:
            Parsed range, or None if the text is empty or malformed.
        """
        if not value:
            return None
        parts = value.split("-")
        if len(parts) != 2:
            return None
        try:
            low, high = Decimal(parts[0].strip()), Decimal(parts[1].strip())
        except InvalidOperation:
            return None
        if not (low.is_finite() and high.is_finite()):
            return None
        return cls(min_price=low, max_price=high)

    def contains(self, price: Decimal) -> bool:
        return self.min_price <= price <= self.max_price


@dataclass
class CategoryListing:
    """Products of one category, as shown on a category page.

    Attributes:
        category_id: Resolved category id.
        category_name: Display name.
        products: Matching products, possibly empty.
    """

    category_id: int
    category_name: str
    products: list[Product] = field(default_factory=list)


def filter_products(
    products: Iterable[Product],
    brand: str | None = None,
    price_range: str | None = None,
) -> list[Product]:
    """Apply brand and price filters.

    The brand filter is a case-insensitive substring match against name
    or description. A malformed price range is ignored.
    """
    filtered = list(products)

    if brand:
        needle = brand.casefold()
        filtered = [
            p for p in filtered
            if needle in p.name.casefold() or needle in p.description.casefold()
        ]

    bounds = PriceRange.parse(price_range)
    if bounds is not None:
        filtered = [p for p in filtered if bounds.contains(p.price)]

    return filtered


def sort_products(products: Iterable[Product], sort_by: str | None = SORT_NAME) -> list[Product]:
    """Sort products; unknown keys fall back to name ascending."""
    items = list(products)
    if sort_by == SORT_PRICE_ASC:
        return sorted(items, key=lambda p: p.price)
    if sort_by == SORT_PRICE_DESC:
        return sorted(items, key=lambda p: p.price, reverse=True)
    if sort_by == SORT_NAME_DESC:
        return sorted(items, key=lambda p: p.name.casefold(), reverse=True)
    return sorted(items, key=lambda p: p.name.casefold())


class CatalogQueryService:
    """Read-only product views over a catalog store.

    Example usage:
        queries = CatalogQueryService(store, resolver)
        rams = queries.get_products_by_category(3, brand="Kingston", sort_by="price-asc")
        listing = queries.get_products_by_category_name("vga")
    """

    def __init__(
        self,
        store: CatalogStore,
        resolver: CategoryResolver,
        low_stock_threshold: int = 10,
        featured_limit: int = 12,
    ) -> None:
        """Initialize query service.

        Args:
            store: Catalog store to read from.
            resolver: Resolver for category routes addressed by name.
            low_stock_threshold: Default threshold for low-stock reports.
            featured_limit: Default number of featured products.
        """
        self.store = store
        self.resolver = resolver
        self.low_stock_threshold = low_stock_threshold
        self.featured_limit = featured_limit

    def get_products_by_category(
        self,
        category_id: int,
        brand: str | None = None,
        price_range: str | None = None,
        sort_by: str | None = SORT_NAME,
    ) -> list[Product]:
        """Get the products filed under exactly ``category_id``.

        Args:
            category_id: Category ID.
            brand: Optional brand substring.
            price_range: Optional "min-max" range.
            sort_by: One of ``SORT_KEYS``.

        Returns:
            Matching products; empty when there are none.
        """
        products = [p for p in self.store.get_all_products() if p.category_id == category_id]
        return sort_products(filter_products(products, brand, price_range), sort_by)

    def get_products_by_category_name(
        self,
        label: str,
        brand: str | None = None,
        price_range: str | None = None,
        sort_by: str | None = SORT_NAME,
    ) -> CategoryListing:
        """Get a category page addressed by a label such as "ram" or "vga".

        The label is resolved to an id first; products are then matched on
        that id only.
        """
        categories = self.store.get_all_categories()
        category = self.resolver.match(label, categories)
        if category is None:
            category_id = self.resolver.resolve(label, categories)
            category = next((c for c in categories if c.id == category_id), None)
        else:
            category_id = category.id

        products = self.get_products_by_category(category_id, brand, price_range, sort_by)
        if not products:
            logger.info("No products for category", label=label, category_id=category_id)

        return CategoryListing(
            category_id=category_id,
            category_name=category.name if category else label,
            products=products,
        )

    def search(self, text: str, sort_by: str | None = SORT_NAME) -> list[Product]:
        """Search products by name or description (case-insensitive)."""
        needle = (text or "").strip().casefold()
        if not needle:
            return []
        matches = [
            p for p in self.store.get_all_products()
            if needle in p.name.casefold() or needle in p.description.casefold()
        ]
        return sort_products(matches, sort_by)

    def get_featured_products(self, limit: int | None = None) -> list[Product]:
        """Get featured products for the home page.

        Falls back to the first products of the catalog when none is
        marked featured.
        """
        limit = self.featured_limit if limit is None else limit
        products = self.store.get_all_products()
        featured = [p for p in products if p.is_featured]
        return (featured or products)[:limit]

    def get_low_stock_products(self, threshold: int | None = None) -> list[Product]:
        """Get products with stock below ``threshold``, lowest first."""
        threshold = self.low_stock_threshold if threshold is None else threshold
        low = [p for p in self.store.get_all_products() if p.stock < threshold]
        return sorted(low, key=lambda p: p.stock)

    def count_by_category(self) -> dict[int, int]:
        """Count products per category id."""
        counts: dict[int, int] = {}
        for product in self.store.get_all_products():
            counts[product.category_id] = counts.get(product.category_id, 0) + 1
        return counts
