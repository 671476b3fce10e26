#!/usr/bin/env python3
"""Import catalog feed script.

Merges or replaces the catalog data file with the contents of a JSON
feed exported from the product spreadsheet.

Usage:
    python scripts/import_catalog.py Data/products.json
    python scripts/import_catalog.py Data/products.json --replace
    python scripts/import_catalog.py Data/products.json --if-newer
"""

import argparse
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from pcstore.infrastructure.config import Settings
from pcstore.main import catalog_lifespan


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Import a JSON catalog feed into the data file",
    )
    parser.add_argument("feed", type=Path, help="Path to the JSON feed")
    parser.add_argument(
        "--data-path",
        type=Path,
        default=None,
        help="Catalog data file (default: PCSTORE_DATA_PATH or Data/datastore.json)",
    )
    parser.add_argument(
        "--replace",
        action="store_true",
        help="Replace the whole catalog instead of merging new records",
    )
    parser.add_argument(
        "--if-newer",
        action="store_true",
        help="Only import when the feed is newer than the data file",
    )

    args = parser.parse_args()

    settings = Settings()
    if args.data_path is not None:
        settings = Settings(data_path=args.data_path)

    with catalog_lifespan(settings) as catalog:
        if args.if_newer and not catalog.importer.feed_is_newer(args.feed):
            print("Catalog is up to date, nothing to import.")
            return 0

        if args.replace:
            report = catalog.importer.replace_feed(args.feed)
        else:
            report = catalog.importer.merge_feed(args.feed)

        print("=" * 60)
        print(f"Catalog import ({report.mode})")
        print("=" * 60)
        print(f"  Categories: {report.categories_accepted} added, "
              f"{report.categories_skipped} already present, "
              f"{report.categories_rejected} rejected")
        print(f"  Products:   {report.products_accepted} added, "
              f"{report.products_skipped} duplicates, "
              f"{report.products_rejected} rejected")
        for reason, count in sorted(report.rejection_reasons.items()):
            print(f"    - {reason}: {count}")

        counts = catalog.queries.count_by_category()
        for category in catalog.store.get_all_categories():
            print(f"  {category.name}: {counts.get(category.id, 0)} products")

        if not report.persisted:
            print(f"  ✗ Not saved: {report.error}")
            return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
