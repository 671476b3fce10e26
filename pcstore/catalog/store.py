"""Catalog store.

Single source of truth for products and categories. Reads return copies,
writes are persisted immediately through the configured backend.
"""

import threading
from collections.abc import Iterable
from decimal import Decimal
from types import TracebackType

import structlog

from pcstore.catalog.models import Category, Product
from pcstore.catalog.persistence import CatalogBackend, CatalogSnapshot
from pcstore.domain.exceptions import (
    CatalogValidationError,
    CategoryNotFoundError,
    DuplicateIdError,
    PersistenceError,
    ProductNotFoundError,
)

logger = structlog.get_logger()


def _next_id(ids: Iterable[int]) -> int:
    return max(ids, default=0) + 1


class CatalogStore:
    """In-memory catalog backed by a persistence backend.

    Every public method takes the store lock, so a reader never observes
    a collection in the middle of a write. The lock is re-entrant and is
    exposed as ``lock`` for callers that need several operations to run
    as one step (the import engine holds it across read-filter-append).

    If a save fails, the in-memory change is kept and ``PersistenceError``
    is raised; memory stays authoritative until the next successful save
    or reload.

    If the stored data cannot be loaded, the store starts empty and the
    unreadable data is left in place; the first save moves it aside
    before writing. Writing to a store that was never opened loads it
    first.

    Example usage:
        with CatalogStore(JsonFileBackend("Data/datastore.json")) as store:
            product = store.add_product(Product(name="RAM DDR5 32GB", price=Decimal("3990000")))
            store.get_product_by_id(product.id)
    """

    def __init__(self, backend: CatalogBackend) -> None:
        """Initialize an empty, unopened store.

        Args:
            backend: Storage the catalog is loaded from and saved to.
        """
        self.backend = backend
        self._lock = threading.RLock()
        self._products: dict[int, Product] = {}
        self._categories: dict[int, Category] = {}
        self._opened = False
        self._load_failed = False

    # ========================================================================
    # Lifecycle
    # ========================================================================

    @property
    def lock(self) -> threading.RLock:
        """Re-entrant lock guarding both collections."""
        return self._lock

    @property
    def is_open(self) -> bool:
        return self._opened

    def open(self) -> "CatalogStore":
        """Load the catalog from the backend, or start empty."""
        with self._lock:
            self._load()
            self._opened = True
        return self

    def close(self) -> None:
        """Flush the catalog to the backend one last time.

        Nothing is written when the stored data could not be loaded and
        the catalog was not changed since.
        """
        with self._lock:
            if not self._opened:
                return
            self._opened = False
            if self._load_failed:
                logger.warning(
                    "Catalog store closed without saving, stored data was unreadable",
                    location=self.backend.location,
                )
                return
            self._persist()
            logger.info("Catalog store closed", location=self.backend.location)

    def __enter__(self) -> "CatalogStore":
        return self.open()

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def reload_data(self) -> None:
        """Discard in-memory state and re-read the backend."""
        with self._lock:
            self._load()

    def save_data(self) -> None:
        """Persist the current in-memory state.

        Raises:
            PersistenceError: If the backend cannot be written.
        """
        with self._lock:
            self._ensure_loaded()
            self._persist()

    def _ensure_loaded(self) -> None:
        if self._opened:
            return
        logger.info("Catalog store written before open, loading first", location=self.backend.location)
        self._load()
        self._opened = True

    def _load(self) -> None:
        try:
            snapshot = self.backend.load()
            self._load_failed = False
        except PersistenceError as e:
            logger.error(
                "Failed to load catalog, starting empty",
                location=self.backend.location,
                error=e.message,
            )
            snapshot = CatalogSnapshot()
            self._load_failed = True

        self._categories = {c.id: c.clone() for c in snapshot.categories}
        self._products = {p.id: p.clone() for p in snapshot.products}
        logger.info(
            "Catalog loaded",
            location=self.backend.location,
            product_count=len(self._products),
            category_count=len(self._categories),
        )

    def _persist(self) -> None:
        snapshot = CatalogSnapshot(
            categories=list(self._categories.values()),
            products=list(self._products.values()),
        )
        try:
            if self._load_failed:
                self.backend.quarantine()
                self._load_failed = False
            self.backend.save(snapshot)
        except PersistenceError as e:
            logger.error(
                "Failed to save catalog, change kept in memory only",
                location=self.backend.location,
                error=e.message,
            )
            raise
        logger.debug(
            "Catalog saved",
            location=self.backend.location,
            product_count=len(self._products),
            category_count=len(self._categories),
        )

    # ========================================================================
    # Validation
    # ========================================================================

    @staticmethod
    def _validate_product(product: Product) -> None:
        if not product.name or not product.name.strip():
            raise CatalogValidationError("Product", "name", "must not be blank")
        if product.price <= Decimal("0"):
            raise CatalogValidationError("Product", "price", "must be positive")
        if product.old_price is not None and product.old_price < Decimal("0"):
            raise CatalogValidationError("Product", "old_price", "must not be negative")
        if product.stock < 0:
            raise CatalogValidationError("Product", "stock", "must not be negative")

    @staticmethod
    def _validate_category(category: Category) -> None:
        if not category.name or not category.name.strip():
            raise CatalogValidationError("Category", "name", "must not be blank")

    # ========================================================================
    # Products
    # ========================================================================

    @property
    def product_count(self) -> int:
        with self._lock:
            return len(self._products)

    def get_all_products(self) -> list[Product]:
        """Get a snapshot of all products.

        Returns:
            Copies of all products in insertion order.
        """
        with self._lock:
            return [p.clone() for p in self._products.values()]

    def get_product_by_id(self, product_id: int) -> Product | None:
        """Get product by ID.

        Args:
            product_id: Product ID.

        Returns:
            Copy of the product, or None if not found.
        """
        with self._lock:
            product = self._products.get(product_id)
            return product.clone() if product else None

    def add_product(self, product: Product) -> Product:
        """Add a product.

        A non-positive ``product.id`` gets the next free id; a positive id
        is kept as given.

        Args:
            product: Product to add. The caller's instance is not modified.

        Returns:
            Copy of the stored product.

        Raises:
            CatalogValidationError: If a field is missing or out of range.
            DuplicateIdError: If the supplied id is already taken.
            PersistenceError: If the change could not be saved.
        """
        self._validate_product(product)
        with self._lock:
            self._ensure_loaded()
            stored = product.clone()
            if stored.id <= 0:
                stored.id = _next_id(self._products)
            elif stored.id in self._products:
                raise DuplicateIdError("Product", stored.id)

            self._products[stored.id] = stored
            logger.info("Product added", product_id=stored.id, category_id=stored.category_id)
            self._persist()
            return stored.clone()

    def update_product(self, product: Product) -> Product:
        """Replace all fields of an existing product.

        Raises:
            CatalogValidationError: If a field is missing or out of range.
            ProductNotFoundError: If no product has ``product.id``.
            PersistenceError: If the change could not be saved.
        """
        self._validate_product(product)
        with self._lock:
            self._ensure_loaded()
            if product.id not in self._products:
                raise ProductNotFoundError(product.id)

            stored = product.clone()
            self._products[stored.id] = stored
            logger.info("Product updated", product_id=stored.id)
            self._persist()
            return stored.clone()

    def delete_product(self, product_id: int) -> bool:
        """Delete a product. Deleting an unknown id is a no-op.

        Returns:
            True if a product was removed.
        """
        with self._lock:
            self._ensure_loaded()
            if self._products.pop(product_id, None) is None:
                return False
            logger.info("Product deleted", product_id=product_id)
            self._persist()
            return True

    def clear_all_products(self) -> int:
        """Remove every product, keeping categories.

        Returns:
            Number of products removed.
        """
        with self._lock:
            self._ensure_loaded()
            removed = len(self._products)
            self._products.clear()
            logger.info("All products cleared", removed=removed)
            self._persist()
            return removed

    def adjust_stock(self, product_id: int, delta: int) -> Product:
        """Add ``delta`` units (negative to remove) to a product's stock.

        Raises:
            ProductNotFoundError: If the product does not exist.
            CatalogValidationError: If stock would drop below zero.
        """
        with self._lock:
            self._ensure_loaded()
            product = self._products.get(product_id)
            if product is None:
                raise ProductNotFoundError(product_id)
            new_stock = product.stock + delta
            if new_stock < 0:
                raise CatalogValidationError(
                    "Product", "stock", f"cannot remove {-delta} of {product.stock} units"
                )

            product.stock = new_stock
            logger.info("Stock adjusted", product_id=product_id, delta=delta, stock=new_stock)
            self._persist()
            return product.clone()

    def update_product_images(
        self,
        product_id: int,
        image_url: str,
        extra_images: list[str] | None = None,
    ) -> Product:
        """Write back images found by an enrichment job.

        Callers fetch images without holding the lock; only this
        write-back is serialized with other catalog access.

        Args:
            product_id: Product ID.
            image_url: New main image URL.
            extra_images: New secondary images; unchanged if None.

        Raises:
            ProductNotFoundError: If the product was deleted meanwhile.
        """
        with self._lock:
            self._ensure_loaded()
            product = self._products.get(product_id)
            if product is None:
                raise ProductNotFoundError(product_id)

            product.image_url = image_url
            if extra_images is not None:
                product.extra_images = list(extra_images)
            self._persist()
            return product.clone()

    # ========================================================================
    # Categories
    # ========================================================================

    @property
    def category_count(self) -> int:
        with self._lock:
            return len(self._categories)

    def get_all_categories(self) -> list[Category]:
        """Get a snapshot of all categories."""
        with self._lock:
            return [c.clone() for c in self._categories.values()]

    def get_category_by_id(self, category_id: int) -> Category | None:
        """Get category by ID, or None if not found."""
        with self._lock:
            category = self._categories.get(category_id)
            return category.clone() if category else None

    def add_category(self, category: Category) -> Category:
        """Add a category.

        Raises:
            CatalogValidationError: If the name is blank.
            DuplicateIdError: If the supplied id is already taken.
        """
        self._validate_category(category)
        with self._lock:
            self._ensure_loaded()
            stored = category.clone()
            if stored.id <= 0:
                stored.id = _next_id(self._categories)
            elif stored.id in self._categories:
                raise DuplicateIdError("Category", stored.id)

            self._categories[stored.id] = stored
            logger.info("Category added", category_id=stored.id, name=stored.name)
            self._persist()
            return stored.clone()

    def update_category(self, category: Category) -> Category:
        """Replace all fields of an existing category.

        Raises:
            CatalogValidationError: If the name is blank.
            CategoryNotFoundError: If no category has ``category.id``.
        """
        self._validate_category(category)
        with self._lock:
            self._ensure_loaded()
            if category.id not in self._categories:
                raise CategoryNotFoundError(category.id)

            stored = category.clone()
            self._categories[stored.id] = stored
            logger.info("Category updated", category_id=stored.id)
            self._persist()
            return stored.clone()

    def delete_category(self, category_id: int) -> bool:
        """Delete a category together with the products filed under it.

        Deleting an unknown id is a no-op.

        Returns:
            True if a category was removed.
        """
        with self._lock:
            self._ensure_loaded()
            if self._categories.pop(category_id, None) is None:
                return False

            orphaned = [pid for pid, p in self._products.items() if p.category_id == category_id]
            for pid in orphaned:
                del self._products[pid]
            logger.info(
                "Category deleted",
                category_id=category_id,
                products_removed=len(orphaned),
            )
            self._persist()
            return True

    # ========================================================================
    # Bulk operations
    # ========================================================================

    def replace_all(
        self,
        categories: Iterable[Category],
        products: Iterable[Product],
    ) -> None:
        """Replace the whole catalog with the given records.

        Positive ids are kept; non-positive or repeated ids are given the
        next free id so the uniqueness invariant holds.
        """
        with self._lock:
            self._ensure_loaded()
            self._categories = self._index(c.clone() for c in categories)
            self._products = self._index(p.clone() for p in products)
            logger.info(
                "Catalog replaced",
                product_count=len(self._products),
                category_count=len(self._categories),
            )
            self._persist()

    def append(
        self,
        categories: Iterable[Category],
        products: Iterable[Product],
    ) -> tuple[list[Category], list[Product]]:
        """Append records in one write.

        Categories keep their ids. Products with a non-positive id receive
        fresh ids in increasing order.

        Returns:
            Copies of the stored categories and products.

        Raises:
            DuplicateIdError: If a supplied id is already taken; nothing is
                appended in that case.
        """
        with self._lock:
            self._ensure_loaded()
            new_categories = [c.clone() for c in categories]
            new_products = [p.clone() for p in products]

            seen_categories = set(self._categories)
            for category in new_categories:
                if category.id <= 0 or category.id in seen_categories:
                    raise DuplicateIdError("Category", category.id)
                seen_categories.add(category.id)

            seen_products = set(self._products)
            for product in new_products:
                if product.id > 0 and product.id in seen_products:
                    raise DuplicateIdError("Product", product.id)
                seen_products.add(product.id)

            for category in new_categories:
                self._categories[category.id] = category
            next_id = _next_id(seen_products)
            for product in new_products:
                if product.id <= 0:
                    product.id = next_id
                    next_id += 1
                self._products[product.id] = product

            self._persist()
            return (
                [c.clone() for c in new_categories],
                [p.clone() for p in new_products],
            )

    @staticmethod
    def _index(items: Iterable[Category | Product]) -> dict:
        records = list(items)
        taken = {r.id for r in records if r.id > 0}
        next_id = _next_id(taken)
        indexed: dict = {}
        for record in records:
            if record.id <= 0 or record.id in indexed:
                record.id = next_id
                next_id += 1
            indexed[record.id] = record
        return indexed
