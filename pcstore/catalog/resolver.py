"""Category resolution by label.

Maps a human-supplied category label ("RAM", "vga", "Tản nhiệt nước")
to a category id when no direct id is available. Used by the import
engine for feed rows that only name their category, and by the query
layer for category routes addressed by name.
"""

import unicodedata
from collections.abc import Callable, Sequence

import structlog

from pcstore.catalog.models import Category

logger = structlog.get_logger()


# Standard storefront taxonomy: label -> category id.
DEFAULT_CATEGORY_ALIASES: dict[str, int] = {
    "cpu": 1,
    "mainboard": 2,
    "main": 2,
    "ram": 3,
    "gpu": 4,
    "vga": 4,
    "psu": 5,
    "case": 6,
    "vỏ máy": 6,
    "ssd": 7,
    "hdd": 8,
    "monitor": 9,
    "màn hình": 9,
    "fan": 10,
    "watercooling": 11,
    "tản nhiệt nước": 11,
    "aircooling": 12,
    "tản nhiệt khí": 12,
    "keyboard": 13,
    "bàn phím": 13,
    "mouse": 14,
    "chuột": 14,
    "speaker": 15,
    "loa": 15,
    "headphone": 16,
    "tai nghe": 16,
}

# Labels whose category is often named by a synonym instead of the label.
CATEGORY_KEYWORDS: dict[str, tuple[str, ...]] = {
    "ram": ("ram", "bộ nhớ"),
    "gpu": ("gpu", "card"),
    "vga": ("gpu", "card"),
    "psu": ("psu", "nguồn"),
    "nguồn": ("psu", "nguồn"),
}


def normalize_label(value: str | None) -> str:
    """Normalize a label for case-insensitive comparison."""
    return unicodedata.normalize("NFC", value or "").strip().casefold()


class CategoryResolver:
    """Resolves category labels to category ids.

    Resolution order:
    1. Exact name match (case-insensitive).
    2. Substring match in either direction.
    3. Keyword synonyms (e.g. "vga" finds "GPU - Card màn hình").
    4. Alias table for the standard taxonomy.
    5. The configured default id.

    Example usage:
        resolver = CategoryResolver(store.get_all_categories)
        category_id = resolver.resolve("ram")
    """

    def __init__(
        self,
        categories: Callable[[], Sequence[Category]] | None = None,
        aliases: dict[str, int] | None = None,
        default_category_id: int = 1,
    ) -> None:
        """Initialize resolver.

        Args:
            categories: Callable returning the known categories, usually
                ``CatalogStore.get_all_categories``.
            aliases: Label to id table; defaults to the standard taxonomy.
            default_category_id: Id returned when nothing matches.
        """
        self._categories = categories or (lambda: [])
        source = DEFAULT_CATEGORY_ALIASES if aliases is None else aliases
        self.aliases = {normalize_label(k): v for k, v in source.items()}
        self.default_category_id = default_category_id

    def match(
        self,
        label: str,
        categories: Sequence[Category] | None = None,
    ) -> Category | None:
        """Find the category a label refers to by name.

        Args:
            label: Category label.
            categories: Categories to search; defaults to the known ones.

        Returns:
            Matching category, or None.
        """
        key = normalize_label(label)
        if not key:
            return None
        candidates = list(self._categories() if categories is None else categories)
        names = [(c, normalize_label(c.name)) for c in candidates]

        for category, name in names:
            if name == key:
                return category

        for category, name in names:
            if name and (key in name or name in key):
                return category

        keywords = CATEGORY_KEYWORDS.get(key, ())
        for category, name in names:
            if any(word in name for word in keywords):
                return category

        return None

    def resolve(
        self,
        label: str,
        categories: Sequence[Category] | None = None,
    ) -> int:
        """Resolve a label to a category id.

        Args:
            label: Category label.
            categories: Categories to search; defaults to the known ones.

        Returns:
            The matched, aliased, or default category id.
        """
        category = self.match(label, categories)
        if category is not None:
            return category.id

        key = normalize_label(label)
        if key in self.aliases:
            return self.aliases[key]

        logger.debug(
            "Category label not recognised, using default",
            label=label,
            default_category_id=self.default_category_id,
        )
        return self.default_category_id
