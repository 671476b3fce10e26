"""JSON feed reader.

Turns an external catalog feed (same document shape as the data file)
into category and product batches for the import engine. Malformed
rows are skipped and counted instead of failing the whole feed.
"""

import json
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import structlog
from pydantic import ValidationError

from pcstore.catalog.models import Category, ImportedProduct, Product
from pcstore.catalog.records import CategoryRecord, ProductRecord
from pcstore.domain.exceptions import PersistenceError

logger = structlog.get_logger()


class FeedProductRecord(ProductRecord):
    """Feed product row, optionally naming its category instead of an id."""

    category_name: str | None = None

    def to_imported_product(self) -> ImportedProduct:
        """Convert to an imported product carrying the category label."""
        product = self.to_product()
        return ImportedProduct(
            **{f.name: getattr(product, f.name) for f in fields(Product)},
            category_name=self.category_name or "",
        )


@dataclass
class FeedBatch:
    """Parsed feed contents."""

    categories: list[Category] = field(default_factory=list)
    products: list[ImportedProduct] = field(default_factory=list)
    skipped_categories: int = 0
    skipped_products: int = 0

    @property
    def skipped_rows(self) -> int:
        return self.skipped_categories + self.skipped_products


def _section(root: dict[str, Any], name: str) -> list[Any]:
    value = root.get(name, root.get(name.lower()))
    return value if isinstance(value, list) else []


def parse_feed(payload: str | bytes) -> FeedBatch:
    """Parse a feed document.

    Args:
        payload: Raw JSON text.

    Returns:
        Batch of parsed rows.

    Raises:
        ValueError: If the payload is not a JSON object.
    """
    root = json.loads(payload)
    if not isinstance(root, dict):
        raise ValueError("feed root must be a JSON object")

    batch = FeedBatch()

    for row in _section(root, "Categories"):
        raw_id = row.get("Id", row.get("id")) if isinstance(row, dict) else None
        # Ids must be plain positive numbers; arrays, strings and bools are dropped.
        if not isinstance(raw_id, int) or isinstance(raw_id, bool) or raw_id <= 0:
            batch.skipped_categories += 1
            continue
        try:
            batch.categories.append(CategoryRecord.model_validate(row).to_category())
        except ValidationError:
            batch.skipped_categories += 1

    for row in _section(root, "Products"):
        try:
            record = FeedProductRecord.model_validate(row)
        except ValidationError:
            batch.skipped_products += 1
            continue
        if not record.name.strip():
            batch.skipped_products += 1
            continue
        batch.products.append(record.to_imported_product())

    return batch


def read_feed(path: str | Path) -> FeedBatch:
    """Read and parse a feed file.

    Args:
        path: Feed file location.

    Returns:
        Batch of parsed rows.

    Raises:
        PersistenceError: If the file cannot be read or is not a JSON object.
    """
    feed_path = Path(path)
    try:
        batch = parse_feed(feed_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise PersistenceError("read feed", str(feed_path), str(e)) from e

    logger.info(
        "Feed parsed",
        path=str(feed_path),
        categories=len(batch.categories),
        products=len(batch.products),
        skipped_rows=batch.skipped_rows,
    )
    return batch
