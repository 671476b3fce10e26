"""Catalog wiring and lifecycle.

Builds one explicitly constructed catalog store and injects it into the
resolver, importer and query service. Request handlers receive the
``Catalog`` from whoever owns the lifecycle instead of looking up a
global.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

import structlog

from pcstore.catalog.importer import CatalogImporter
from pcstore.catalog.persistence import CatalogBackend, JsonFileBackend
from pcstore.catalog.query import CatalogQueryService
from pcstore.catalog.resolver import CategoryResolver
from pcstore.catalog.store import CatalogStore
from pcstore.infrastructure.config import Settings, settings as default_settings
from pcstore.infrastructure.logging_config import configure_logging

logger = structlog.get_logger()


@dataclass
class Catalog:
    """The catalog components sharing one store."""

    store: CatalogStore
    resolver: CategoryResolver
    importer: CatalogImporter
    queries: CatalogQueryService


def build_catalog(
    settings: Settings | None = None,
    backend: CatalogBackend | None = None,
) -> Catalog:
    """Construct the catalog components around an unopened store.

    Args:
        settings: Settings to use; defaults to the environment settings.
        backend: Storage backend; defaults to the JSON file at
            ``settings.data_path``.

    Returns:
        Catalog with an unopened store.
    """
    settings = settings or default_settings
    store = CatalogStore(backend or JsonFileBackend(settings.data_path))
    resolver = CategoryResolver(
        store.get_all_categories,
        default_category_id=settings.default_category_id,
    )
    return Catalog(
        store=store,
        resolver=resolver,
        importer=CatalogImporter(store, resolver),
        queries=CatalogQueryService(
            store,
            resolver,
            low_stock_threshold=settings.low_stock_threshold,
            featured_limit=settings.featured_limit,
        ),
    )


@contextmanager
def catalog_lifespan(
    settings: Settings | None = None,
    backend: CatalogBackend | None = None,
) -> Iterator[Catalog]:
    """Open the catalog on entry and flush it on exit.

    Args:
        settings: Settings to use; defaults to the environment settings.
        backend: Optional storage backend override.

    Yields:
        Catalog with an open store.
    """
    settings = settings or default_settings
    configure_logging(settings.log_level)

    # Startup
    catalog = build_catalog(settings, backend)
    catalog.store.open()
    logger.info(
        "Catalog started",
        location=catalog.store.backend.location,
        product_count=catalog.store.product_count,
        category_count=catalog.store.category_count,
    )

    try:
        yield catalog
    finally:
        # Shutdown
        catalog.store.close()
        logger.info("Catalog shutdown complete")
