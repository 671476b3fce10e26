"""Tests for the catalog store."""

import threading
from decimal import Decimal
from pathlib import Path

import pytest

from pcstore.catalog.models import Category, Product
from pcstore.catalog.persistence import CatalogSnapshot, InMemoryBackend, JsonFileBackend
from pcstore.catalog.store import CatalogStore
from pcstore.domain.exceptions import (
    CatalogValidationError,
    CategoryNotFoundError,
    DuplicateIdError,
    PersistenceError,
    ProductNotFoundError,
)


class FailingBackend(InMemoryBackend):
    """Backend whose saves fail once ``fail`` is set."""

    def __init__(self, snapshot: CatalogSnapshot | None = None) -> None:
        super().__init__(snapshot)
        self.fail = False

    def save(self, snapshot: CatalogSnapshot) -> None:
        if self.fail:
            raise PersistenceError("save", self.location, "disk full")
        super().save(snapshot)


class BrokenLoadBackend(InMemoryBackend):
    """Backend whose stored data cannot be read."""

    def load(self) -> CatalogSnapshot:
        raise PersistenceError("load", self.location, "corrupt")


def new_product(name: str = "Corsair RM750e", price: str = "2490000", **kwargs) -> Product:
    """Build an unsaved product."""
    kwargs.setdefault("category_id", 5)
    return Product(name=name, price=Decimal(price), **kwargs)


class TestLifecycle:
    """Tests for open, close and reload."""

    def test_open_loads_backend(self, store: CatalogStore) -> None:
        """Opening reads everything from the backend."""
        assert store.is_open
        assert store.product_count == 4
        assert store.category_count == 4

    def test_load_failure_starts_empty(self) -> None:
        """Unreadable data leaves an empty, usable store."""
        store = CatalogStore(BrokenLoadBackend()).open()
        assert store.product_count == 0
        assert store.get_all_categories() == []

    def test_context_manager_flushes(self) -> None:
        """Leaving the context saves the catalog."""
        backend = InMemoryBackend()
        with CatalogStore(backend) as store:
            store.add_category(Category(name="Chuột"))
        saves = backend.save_count
        assert backend.load().categories[0].name == "Chuột"
        assert not store.is_open
        store.close()
        assert backend.save_count == saves

    def test_reload_discards_unsaved_state(self) -> None:
        """Reload re-reads the backend, dropping memory-only changes."""
        backend = FailingBackend()
        store = CatalogStore(backend).open()
        backend.fail = True
        with pytest.raises(PersistenceError):
            store.add_product(new_product())
        assert store.product_count == 1

        store.reload_data()
        assert store.product_count == 0

    def test_unreadable_file_survives_close(self, tmp_path: Path) -> None:
        """Opening and closing over unreadable data leaves the file as it was."""
        path = tmp_path / "datastore.json"
        original = '{"Products": [{"Id": 1, "Name": "X", "Price": "oops"}], "Categories": []}'
        path.write_text(original, encoding="utf-8")

        with CatalogStore(JsonFileBackend(path)) as store:
            assert store.product_count == 0

        assert path.read_text(encoding="utf-8") == original

    def test_unreadable_file_moved_aside_on_save(self, tmp_path: Path) -> None:
        """The first save after a failed load keeps the old data under a new name."""
        path = tmp_path / "datastore.json"
        original = "{not json"
        path.write_text(original, encoding="utf-8")

        store = CatalogStore(JsonFileBackend(path)).open()
        store.add_category(Category(id=1, name="CPU"))
        store.close()

        moved = [p for p in tmp_path.iterdir() if p.name.startswith("datastore.json.corrupt-")]
        assert len(moved) == 1
        assert moved[0].read_text(encoding="utf-8") == original
        assert [c.name for c in JsonFileBackend(path).load().categories] == ["CPU"]

    def test_write_before_open_loads_first(self, backend: InMemoryBackend) -> None:
        """Writing to an unopened store keeps the stored records."""
        store = CatalogStore(backend)
        added = store.add_product(new_product())

        assert store.is_open
        assert added.id == 5
        assert len(backend.load().products) == 5
        assert len(backend.load().categories) == 4

    def test_save_before_open_keeps_file(self, tmp_path: Path) -> None:
        """Saving an unopened store does not replace the file with nothing."""
        path = tmp_path / "datastore.json"
        seeded = CatalogStore(JsonFileBackend(path)).open()
        seeded.add_category(Category(id=1, name="CPU"))
        seeded.add_product(new_product(category_id=1))

        CatalogStore(JsonFileBackend(path)).save_data()

        reloaded = JsonFileBackend(path).load()
        assert len(reloaded.products) == 1
        assert len(reloaded.categories) == 1

    def test_save_and_reload_round_trip(self, store: CatalogStore) -> None:
        """Saving then reloading keeps the same records."""
        before_products = {(p.id, p.name, p.price) for p in store.get_all_products()}
        before_categories = {(c.id, c.name) for c in store.get_all_categories()}

        store.save_data()
        store.reload_data()

        assert {(p.id, p.name, p.price) for p in store.get_all_products()} == before_products
        assert {(c.id, c.name) for c in store.get_all_categories()} == before_categories


class TestProducts:
    """Tests for product operations."""

    def test_get_by_id(self, store: CatalogStore) -> None:
        """Products can be found by ID."""
        product = store.get_product_by_id(3)
        assert product is not None
        assert product.name == "Kingston Fury Beast 16GB DDR5"

    def test_get_by_id_not_found(self, store: CatalogStore) -> None:
        """Unknown ID returns None."""
        assert store.get_product_by_id(999) is None

    def test_reads_return_copies(self, store: CatalogStore) -> None:
        """Mutating a returned product does not touch the store."""
        product = store.get_product_by_id(1)
        product.name = "changed"
        product.extra_images.append("x.jpg")

        stored = store.get_product_by_id(1)
        assert stored.name == "Intel Core i5-13400F"
        assert stored.extra_images == []

    def test_add_assigns_increasing_ids(self, store: CatalogStore) -> None:
        """Added products get ids above every existing id."""
        first = store.add_product(new_product("PSU A"))
        second = store.add_product(new_product("PSU B"))
        assert first.id == 5
        assert second.id == 6

    def test_add_does_not_modify_input(self, empty_store: CatalogStore) -> None:
        """The caller's instance keeps its id."""
        product = new_product()
        stored = empty_store.add_product(product)
        assert stored.id == 1
        assert product.id == 0

    def test_add_keeps_explicit_id(self, store: CatalogStore) -> None:
        """A free positive id is kept as given."""
        stored = store.add_product(new_product(id=50))
        assert stored.id == 50
        assert store.add_product(new_product("next")).id == 51

    def test_add_duplicate_id(self, store: CatalogStore) -> None:
        """A taken id is rejected."""
        with pytest.raises(DuplicateIdError):
            store.add_product(new_product(id=1))
        assert store.product_count == 4

    @pytest.mark.parametrize(
        "product",
        [
            Product(name="", price=Decimal("100")),
            Product(name="   ", price=Decimal("100")),
            Product(name="Zero", price=Decimal("0")),
            Product(name="Negative", price=Decimal("-1")),
            Product(name="Old", price=Decimal("100"), old_price=Decimal("-5")),
            Product(name="Stock", price=Decimal("100"), stock=-1),
        ],
    )
    def test_add_invalid(self, store: CatalogStore, product: Product) -> None:
        """Blank names and out-of-range fields are rejected."""
        with pytest.raises(CatalogValidationError):
            store.add_product(product)
        assert store.product_count == 4

    def test_update(self, store: CatalogStore) -> None:
        """Update replaces all fields."""
        product = store.get_product_by_id(2)
        product.price = Decimal("4990000")
        product.old_price = Decimal("5290000")
        store.update_product(product)

        stored = store.get_product_by_id(2)
        assert stored.price == Decimal("4990000")
        assert stored.old_price == Decimal("5290000")

    def test_update_not_found(self, store: CatalogStore) -> None:
        """Updating an unknown id fails."""
        with pytest.raises(ProductNotFoundError):
            store.update_product(new_product(id=999))

    def test_delete_idempotent(self, store: CatalogStore) -> None:
        """Deleting twice removes once."""
        assert store.delete_product(1) is True
        assert store.delete_product(1) is False
        assert store.get_product_by_id(1) is None
        assert store.product_count == 3

    def test_clear_all_keeps_categories(self, store: CatalogStore) -> None:
        """Clearing products leaves categories alone."""
        assert store.clear_all_products() == 4
        assert store.product_count == 0
        assert store.category_count == 4

    def test_ids_not_reused_after_delete(self, store: CatalogStore) -> None:
        """New ids stay above the highest remaining id."""
        store.delete_product(2)
        assert store.add_product(new_product()).id == 5


class TestStockAndImages:
    """Tests for stock adjustment and image write-back."""

    def test_adjust_stock(self, store: CatalogStore) -> None:
        """Receiving stock adds to the count."""
        assert store.adjust_stock(4, 12).stock == 12
        assert store.adjust_stock(4, -2).stock == 10

    def test_adjust_stock_below_zero(self, store: CatalogStore) -> None:
        """Stock cannot go negative."""
        with pytest.raises(CatalogValidationError):
            store.adjust_stock(2, -5)
        assert store.get_product_by_id(2).stock == 4

    def test_adjust_stock_not_found(self, store: CatalogStore) -> None:
        """Adjusting an unknown product fails."""
        with pytest.raises(ProductNotFoundError):
            store.adjust_stock(999, 1)

    def test_update_images(self, store: CatalogStore) -> None:
        """Image write-back replaces the main and secondary images."""
        store.update_product_images(3, "main.jpg", ["a.jpg", "b.jpg"])
        product = store.get_product_by_id(3)
        assert product.image_url == "main.jpg"
        assert product.extra_images == ["a.jpg", "b.jpg"]

        store.update_product_images(3, "other.jpg")
        assert store.get_product_by_id(3).extra_images == ["a.jpg", "b.jpg"]

    def test_update_images_deleted_product(self, store: CatalogStore) -> None:
        """Writing images for a deleted product fails."""
        store.delete_product(3)
        with pytest.raises(ProductNotFoundError):
            store.update_product_images(3, "main.jpg")


class TestCategories:
    """Tests for category operations."""

    def test_get_by_id(self, store: CatalogStore) -> None:
        """Categories can be found by ID."""
        assert store.get_category_by_id(4).name == "GPU - Card màn hình"
        assert store.get_category_by_id(99) is None

    def test_add_assigns_id(self, store: CatalogStore) -> None:
        """Added categories get the next free id."""
        assert store.add_category(Category(name="SSD")).id == 6

    def test_add_duplicate_id(self, store: CatalogStore) -> None:
        """A taken category id is rejected."""
        with pytest.raises(DuplicateIdError):
            store.add_category(Category(id=3, name="RAM"))

    def test_add_blank_name(self, store: CatalogStore) -> None:
        """Blank category names are rejected."""
        with pytest.raises(CatalogValidationError):
            store.add_category(Category(name=" "))

    def test_update(self, store: CatalogStore) -> None:
        """Update replaces the category."""
        store.update_category(Category(id=5, name="PSU - Nguồn"))
        assert store.get_category_by_id(5).name == "PSU - Nguồn"

    def test_update_not_found(self, store: CatalogStore) -> None:
        """Updating an unknown category fails."""
        with pytest.raises(CategoryNotFoundError):
            store.update_category(Category(id=99, name="Loa"))

    def test_delete_cascades(self, store: CatalogStore) -> None:
        """Deleting a category removes its products."""
        assert store.delete_category(1) is True
        assert store.get_category_by_id(1) is None
        assert {p.id for p in store.get_all_products()} == {3, 4}
        assert store.delete_category(1) is False


class TestBulkOperations:
    """Tests for replace_all and append."""

    def test_replace_all(self, store: CatalogStore) -> None:
        """Replace swaps the whole catalog."""
        store.replace_all([Category(id=9, name="Màn hình")], [new_product(category_id=9)])
        assert [c.id for c in store.get_all_categories()] == [9]
        assert [p.id for p in store.get_all_products()] == [1]

    def test_replace_all_fixes_ids(self, empty_store: CatalogStore) -> None:
        """Missing and repeated ids are reassigned."""
        empty_store.replace_all(
            [],
            [new_product("a", id=3), new_product("b", id=3), new_product("c")],
        )
        ids = sorted(p.id for p in empty_store.get_all_products())
        assert ids == [3, 4, 5]

    def test_replace_all_empty(self, store: CatalogStore) -> None:
        """Replacing with nothing empties the catalog."""
        store.replace_all([], [])
        assert store.product_count == 0
        assert store.category_count == 0

    def test_append(self, store: CatalogStore) -> None:
        """Append keeps category ids and numbers products upward."""
        _, added = store.append(
            [Category(id=7, name="SSD")],
            [new_product("a", category_id=7), new_product("b", category_id=7)],
        )
        assert [p.id for p in added] == [5, 6]
        assert store.get_category_by_id(7).name == "SSD"
        assert store.product_count == 6

    def test_append_is_atomic(self, store: CatalogStore) -> None:
        """A colliding id leaves the catalog untouched."""
        with pytest.raises(DuplicateIdError):
            store.append([Category(id=8, name="HDD"), Category(id=1, name="CPU")], [])
        assert store.get_category_by_id(8) is None

    def test_append_saves_once(self, store: CatalogStore, backend: InMemoryBackend) -> None:
        """An append is persisted in one write."""
        saves = backend.save_count
        store.append([], [new_product("a"), new_product("b")])
        assert backend.save_count == saves + 1


class TestPersistenceFailure:
    """Tests for behavior when the backend cannot be written."""

    def test_change_kept_in_memory(self) -> None:
        """A failed save keeps the change and raises."""
        backend = FailingBackend()
        store = CatalogStore(backend).open()
        backend.fail = True

        with pytest.raises(PersistenceError):
            store.add_product(new_product())
        assert store.product_count == 1

        backend.fail = False
        store.save_data()
        assert len(backend.load().products) == 1

    def test_close_reports_failure(self) -> None:
        """Closing propagates a failed final flush."""
        backend = FailingBackend()
        store = CatalogStore(backend).open()
        backend.fail = True
        with pytest.raises(PersistenceError):
            store.close()


class TestConcurrency:
    """Tests for concurrent access."""

    def test_readers_see_consistent_snapshots(self, empty_store: CatalogStore) -> None:
        """Readers never observe duplicate ids while writers add products."""
        errors: list[str] = []
        stop = threading.Event()

        def writer(prefix: str) -> None:
            for i in range(50):
                empty_store.add_product(new_product(f"{prefix}-{i}"))

        def reader() -> None:
            while not stop.is_set():
                ids = [p.id for p in empty_store.get_all_products()]
                if len(ids) != len(set(ids)):
                    errors.append("duplicate ids")

        readers = [threading.Thread(target=reader) for _ in range(3)]
        writers = [threading.Thread(target=writer, args=(name,)) for name in ("a", "b")]
        for thread in readers + writers:
            thread.start()
        for thread in writers:
            thread.join()
        stop.set()
        for thread in readers:
            thread.join()

        assert errors == []
        ids = sorted(p.id for p in empty_store.get_all_products())
        assert ids == list(range(1, 101))
