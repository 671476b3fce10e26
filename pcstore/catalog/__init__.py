"""Product catalog engine.

Holds the authoritative products and categories, persists them to a
file-backed store, reconciles bulk imports and serves filtered views.
"""

from pcstore.catalog.feeds import FeedBatch, read_feed
from pcstore.catalog.importer import CatalogImporter, ImportReport
from pcstore.catalog.models import Category, ImportedProduct, Product
from pcstore.catalog.persistence import (
    CatalogBackend,
    CatalogSnapshot,
    InMemoryBackend,
    JsonFileBackend,
)
from pcstore.catalog.query import CatalogQueryService, CategoryListing, PriceRange
from pcstore.catalog.resolver import CategoryResolver
from pcstore.catalog.store import CatalogStore

__all__ = [
    # Models
    "Category",
    "ImportedProduct",
    "Product",
    # Persistence
    "CatalogBackend",
    "CatalogSnapshot",
    "InMemoryBackend",
    "JsonFileBackend",
    # Store
    "CatalogStore",
    # Resolver
    "CategoryResolver",
    # Import
    "CatalogImporter",
    "FeedBatch",
    "ImportReport",
    "read_feed",
    # Queries
    "CatalogQueryService",
    "CategoryListing",
    "PriceRange",
]
