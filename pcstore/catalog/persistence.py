"""Persistence backends for the catalog.

A backend only knows how to load and save a whole catalog snapshot.
It carries no business rules, so the storage medium can change without
touching the catalog store.
"""

import os
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

import structlog
from pydantic import ValidationError

from pcstore.catalog.models import Category, Product
from pcstore.catalog.records import CatalogDocument, CategoryRecord, ProductRecord
from pcstore.domain.exceptions import PersistenceError

logger = structlog.get_logger()


@dataclass
class CatalogSnapshot:
    """Point-in-time copy of the whole catalog."""

    categories: list[Category] = field(default_factory=list)
    products: list[Product] = field(default_factory=list)

    def clone(self) -> "CatalogSnapshot":
        """Return a deep copy."""
        return CatalogSnapshot(
            categories=[c.clone() for c in self.categories],
            products=[p.clone() for p in self.products],
        )


class CatalogBackend(ABC):
    """Load-all / save-all storage interface."""

    @property
    @abstractmethod
    def location(self) -> str:
        """Human-readable location used in logs and errors."""

    @abstractmethod
    def load(self) -> CatalogSnapshot:
        """Load the full catalog.

        Returns:
            Stored snapshot, or an empty one when nothing was saved yet.

        Raises:
            PersistenceError: If stored data exists but cannot be read.
        """

    @abstractmethod
    def save(self, snapshot: CatalogSnapshot) -> None:
        """Replace the stored catalog with ``snapshot``.

        Raises:
            PersistenceError: If the data cannot be written.
        """

    def last_modified(self) -> float | None:
        """Return the modification time of the stored data, if known."""
        return None

    def quarantine(self) -> str | None:
        """Move unreadable stored data aside so a save cannot overwrite it.

        Returns:
            New location of the data, or None if there was nothing to move.
        """
        return None


class JsonFileBackend(CatalogBackend):
    """Stores the catalog as one indented JSON document.

    Writes go to a temporary file in the same directory which is then
    renamed over the target, so a concurrent reader sees either the old
    or the new file, never a truncated one.

    Example usage:
        backend = JsonFileBackend(Path("Data/datastore.json"))
        snapshot = backend.load()
        backend.save(snapshot)
    """

    def __init__(self, path: str | Path) -> None:
        """Initialize backend.

        Args:
            path: Location of the JSON data file.
        """
        self.path = Path(path)

    @property
    def location(self) -> str:
        return str(self.path)

    def load(self) -> CatalogSnapshot:
        if not self.path.exists():
            logger.info("No catalog data file yet, starting empty", path=str(self.path))
            return CatalogSnapshot()

        try:
            raw = self.path.read_text(encoding="utf-8")
            document = CatalogDocument.model_validate_json(raw)
        except (OSError, ValidationError) as e:
            raise PersistenceError("load", str(self.path), str(e)) from e

        return CatalogSnapshot(
            categories=[record.to_category() for record in document.categories],
            products=[record.to_product() for record in document.products],
        )

    def save(self, snapshot: CatalogSnapshot) -> None:
        document = CatalogDocument(
            products=[ProductRecord.from_product(p) for p in snapshot.products],
            categories=[CategoryRecord.from_category(c) for c in snapshot.categories],
            last_updated=datetime.now(timezone.utc),
        )
        payload = document.model_dump_json(indent=2, by_alias=True)

        tmp_name: str | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self.path.parent,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                delete=False,
            ) as handle:
                tmp_name = handle.name
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self.path)
        except OSError as e:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise PersistenceError("save", str(self.path), str(e)) from e

    def last_modified(self) -> float | None:
        try:
            return self.path.stat().st_mtime
        except FileNotFoundError:
            return None

    def quarantine(self) -> str | None:
        """Rename the data file to ``<name>.corrupt-<timestamp>``.

        Raises:
            PersistenceError: If the file exists but cannot be renamed.
        """
        if not self.path.exists():
            return None

        stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%f")
        target = self.path.with_name(f"{self.path.name}.corrupt-{stamp}")
        try:
            os.replace(self.path, target)
        except OSError as e:
            raise PersistenceError("quarantine", str(self.path), str(e)) from e

        logger.warning("Unreadable catalog data moved aside", path=str(self.path), moved_to=str(target))
        return str(target)


class InMemoryBackend(CatalogBackend):
    """Keeps the saved snapshot in memory (tests, ephemeral stores)."""

    def __init__(self, snapshot: CatalogSnapshot | None = None) -> None:
        self._snapshot = snapshot.clone() if snapshot else CatalogSnapshot()
        self.save_count = 0

    @property
    def location(self) -> str:
        return "memory"

    def load(self) -> CatalogSnapshot:
        return self._snapshot.clone()

    def save(self, snapshot: CatalogSnapshot) -> None:
        self._snapshot = snapshot.clone()
        self.save_count += 1
