"""Import/merge engine.

Reconciles externally parsed category and product batches into the
catalog store under one of two policies:

- replace: the batch becomes the whole catalog (initial seeding);
- merge: only new, valid, non-duplicate records are appended, so the
  same feed can be ingested repeatedly without inflating the catalog.
"""

import os
from collections.abc import Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path

import structlog

from pcstore.catalog.feeds import read_feed
from pcstore.catalog.models import Category, ImportedProduct, Product
from pcstore.catalog.resolver import CategoryResolver, normalize_label
from pcstore.catalog.store import CatalogStore
from pcstore.domain.exceptions import ImportIntegrityError, PersistenceError

logger = structlog.get_logger()


# Rejection reasons
CATEGORY_INVALID_ID = "category_invalid_id"
PRODUCT_BLANK_NAME = "product_blank_name"
PRODUCT_UNKNOWN_CATEGORY = "product_unknown_category"
PRODUCT_INVALID_FIELDS = "product_invalid_fields"
FEED_MALFORMED_ROW = "feed_malformed_row"


@dataclass
class ImportReport:
    """Outcome of an import.

    Attributes:
        mode: "replace" or "merge".
        categories_accepted: Categories written to the store.
        categories_rejected: Categories dropped as invalid.
        categories_skipped: Categories already present (merge only).
        products_accepted: Products written to the store.
        products_rejected: Products dropped as invalid.
        products_skipped: Duplicate-name products (merge only).
        rejection_reasons: Count of dropped records per reason.
        persisted: Whether the result reached the backend.
        error: Persistence error message, if any.
    """

    mode: str
    categories_accepted: int = 0
    categories_rejected: int = 0
    categories_skipped: int = 0
    products_accepted: int = 0
    products_rejected: int = 0
    products_skipped: int = 0
    rejection_reasons: dict[str, int] = field(default_factory=dict)
    persisted: bool = True
    error: str | None = None

    def reject(self, reason: str, count: int = 1) -> None:
        """Record ``count`` dropped records for ``reason``."""
        if count <= 0:
            return
        self.rejection_reasons[reason] = self.rejection_reasons.get(reason, 0) + count
        if reason.startswith("category"):
            self.categories_rejected += count
        else:
            self.products_rejected += count

    @property
    def integrity_error(self) -> ImportIntegrityError | None:
        """Aggregate error describing dropped records, if any were dropped."""
        if not self.categories_rejected and not self.products_rejected:
            return None
        return ImportIntegrityError(
            self.categories_rejected,
            self.products_rejected,
            self.rejection_reasons,
        )


class CatalogImporter:
    """Applies import batches to a catalog store.

    Example usage:
        importer = CatalogImporter(store, resolver)
        report = importer.merge_import(categories, products)
        if report.integrity_error:
            print(report.integrity_error.message)
    """

    def __init__(self, store: CatalogStore, resolver: CategoryResolver) -> None:
        """Initialize importer.

        Args:
            store: Catalog store to import into.
            resolver: Resolver for products that only name their category.
        """
        self.store = store
        self.resolver = resolver

    # ========================================================================
    # Replace
    # ========================================================================

    def replace_import(
        self,
        categories: Sequence[Category],
        products: Sequence[Product],
    ) -> ImportReport:
        """Replace the whole catalog with a batch.

        Args:
            categories: Parsed categories.
            products: Parsed products.

        Returns:
            Import report.
        """
        return self._replace(categories, products, ImportReport(mode="replace"))

    def _replace(
        self,
        categories: Sequence[Category],
        products: Sequence[Product],
        report: ImportReport,
    ) -> ImportReport:
        with self.store.lock:
            self._ensure_open()
            resolved = [self._resolve_category(p, categories) for p in products]
            report.categories_accepted = len(categories)
            report.products_accepted = len(resolved)
            try:
                self.store.replace_all(categories, resolved)
            except PersistenceError as e:
                report.persisted = False
                report.error = e.message
            self._finish(report)
        return report

    # ========================================================================
    # Merge
    # ========================================================================

    def merge_import(
        self,
        categories: Sequence[Category],
        products: Sequence[Product],
    ) -> ImportReport:
        """Append the new, valid, non-duplicate records of a batch.

        Categories with a non-positive id are dropped; categories whose id
        is already stored are skipped. Products are dropped when their
        name is blank, when their category is neither in the batch nor in
        the store, or when a field is out of range. Products whose name
        matches an existing or earlier batch product (case-insensitive)
        are skipped. Survivors get fresh ids.

        Args:
            categories: Parsed categories.
            products: Parsed products.

        Returns:
            Import report.
        """
        return self._merge(categories, products, ImportReport(mode="merge"))

    def _merge(
        self,
        categories: Sequence[Category],
        products: Sequence[Product],
        report: ImportReport,
    ) -> ImportReport:
        valid_categories = [c for c in categories if c.id > 0]
        report.reject(CATEGORY_INVALID_ID, len(categories) - len(valid_categories))

        with self.store.lock:
            self._ensure_open()
            existing_categories = self.store.get_all_categories()
            known_ids = {c.id for c in existing_categories}

            new_categories: list[Category] = []
            for category in valid_categories:
                if category.id in known_ids:
                    report.categories_skipped += 1
                    continue
                known_ids.add(category.id)
                new_categories.append(category)

            lookup = valid_categories + existing_categories
            taken_names = {normalize_label(p.name) for p in self.store.get_all_products()}

            new_products: list[Product] = []
            for incoming in products:
                product = self._resolve_category(incoming, lookup)
                name_key = normalize_label(product.name)
                if not name_key:
                    report.reject(PRODUCT_BLANK_NAME)
                elif product.category_id not in known_ids:
                    report.reject(PRODUCT_UNKNOWN_CATEGORY)
                elif not self._in_range(product):
                    report.reject(PRODUCT_INVALID_FIELDS)
                elif name_key in taken_names:
                    report.products_skipped += 1
                else:
                    taken_names.add(name_key)
                    product.id = 0
                    new_products.append(product)

            report.categories_accepted = len(new_categories)
            report.products_accepted = len(new_products)
            try:
                self.store.append(new_categories, new_products)
            except PersistenceError as e:
                report.persisted = False
                report.error = e.message
            self._finish(report)
        return report

    # ========================================================================
    # Feeds
    # ========================================================================

    def merge_feed(self, path: str | Path) -> ImportReport:
        """Read a JSON feed and merge it."""
        return self._import_feed(path, replace=False)

    def replace_feed(self, path: str | Path) -> ImportReport:
        """Read a JSON feed and replace the catalog with it."""
        return self._import_feed(path, replace=True)

    def feed_is_newer(self, path: str | Path) -> bool:
        """Check whether a feed changed after the catalog was last saved.

        Returns:
            True if the feed exists and the catalog is older or missing.
        """
        try:
            feed_mtime = os.path.getmtime(path)
        except OSError:
            return False
        stored_mtime = self.store.backend.last_modified()
        return stored_mtime is None or feed_mtime > stored_mtime

    def _import_feed(self, path: str | Path, replace: bool) -> ImportReport:
        mode = "replace" if replace else "merge"
        try:
            batch = read_feed(path)
        except PersistenceError as e:
            logger.error("Failed to read import feed", path=str(path), error=e.message)
            return ImportReport(mode=mode, persisted=False, error=e.message)

        report = ImportReport(mode=mode)
        if batch.skipped_rows:
            report.reject(CATEGORY_INVALID_ID, batch.skipped_categories)
            report.reject(FEED_MALFORMED_ROW, batch.skipped_products)
            logger.warning(
                "Feed rows skipped before import",
                path=str(path),
                skipped_categories=batch.skipped_categories,
                skipped_products=batch.skipped_products,
            )

        if replace:
            return self._replace(batch.categories, batch.products, report)
        return self._merge(batch.categories, batch.products, report)

    # ========================================================================
    # Helpers
    # ========================================================================

    def _ensure_open(self) -> None:
        if not self.store.is_open:
            self.store.open()

    def _resolve_category(
        self,
        product: Product,
        categories: Sequence[Category],
    ) -> Product:
        resolved = product.clone()
        if isinstance(product, ImportedProduct) and product.category_id <= 0 and product.category_name:
            resolved.category_id = self.resolver.resolve(product.category_name, categories)
        return resolved

    @staticmethod
    def _in_range(product: Product) -> bool:
        if product.price < Decimal("0") or product.stock < 0:
            return False
        return product.old_price is None or product.old_price >= Decimal("0")

    def _finish(self, report: ImportReport) -> None:
        if report.persisted:
            self.store.reload_data()
            logger.info(
                "Catalog import complete",
                mode=report.mode,
                categories_accepted=report.categories_accepted,
                products_accepted=report.products_accepted,
                categories_skipped=report.categories_skipped,
                products_skipped=report.products_skipped,
                product_count=self.store.product_count,
            )
        else:
            logger.error(
                "Catalog import applied in memory only",
                mode=report.mode,
                error=report.error,
            )

        integrity_error = report.integrity_error
        if integrity_error is not None:
            logger.warning(
                "Import dropped invalid records",
                mode=report.mode,
                **integrity_error.details,
            )
