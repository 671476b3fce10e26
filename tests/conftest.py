"""Shared fixtures for catalog tests."""

from decimal import Decimal

import pytest

from pcstore.catalog.models import Category, Product
from pcstore.catalog.persistence import CatalogSnapshot, InMemoryBackend
from pcstore.catalog.resolver import CategoryResolver
from pcstore.catalog.store import CatalogStore


@pytest.fixture
def categories() -> list[Category]:
    """Standard storefront categories used across tests."""
    return [
        Category(id=1, name="CPU - Bộ vi xử lý"),
        Category(id=3, name="RAM - Bộ nhớ trong"),
        Category(id=4, name="GPU - Card màn hình"),
        Category(id=5, name="Nguồn máy tính"),
    ]


@pytest.fixture
def products() -> list[Product]:
    """A few products spread over the standard categories."""
    return [
        Product(
            id=1,
            name="Intel Core i5-13400F",
            description="Intel 10 nhân 16 luồng",
            price=Decimal("4590000"),
            category_id=1,
            stock=25,
            is_featured=True,
        ),
        Product(
            id=2,
            name="AMD Ryzen 5 7600",
            description="AMD AM5",
            price=Decimal("5290000"),
            category_id=1,
            stock=4,
        ),
        Product(
            id=3,
            name="Kingston Fury Beast 16GB DDR5",
            description="Kingston RAM",
            price=Decimal("1490000"),
            category_id=3,
            stock=40,
        ),
        Product(
            id=4,
            name="ASUS Dual RTX 4060",
            description="ASUS GPU 8GB",
            price=Decimal("8990000"),
            category_id=4,
            stock=0,
        ),
    ]


@pytest.fixture
def backend(categories: list[Category], products: list[Product]) -> InMemoryBackend:
    """In-memory backend seeded with the standard catalog."""
    return InMemoryBackend(CatalogSnapshot(categories=categories, products=products))


@pytest.fixture
def store(backend: InMemoryBackend) -> CatalogStore:
    """Open store over the seeded in-memory backend."""
    return CatalogStore(backend).open()


@pytest.fixture
def empty_store() -> CatalogStore:
    """Open store with no data."""
    return CatalogStore(InMemoryBackend()).open()


@pytest.fixture
def resolver(store: CatalogStore) -> CategoryResolver:
    """Resolver reading categories from the seeded store."""
    return CategoryResolver(store.get_all_categories)
