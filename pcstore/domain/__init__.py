"""Domain layer for the catalog.

Exports the error taxonomy shared by every catalog component.
"""

from pcstore.domain.exceptions import (
    CatalogError,
    CatalogValidationError,
    CategoryNotFoundError,
    DomainError,
    DuplicateIdError,
    ImportIntegrityError,
    NotFoundError,
    PersistenceError,
    ProductNotFoundError,
)

__all__ = [
    "CatalogError",
    "CatalogValidationError",
    "CategoryNotFoundError",
    "DomainError",
    "DuplicateIdError",
    "ImportIntegrityError",
    "NotFoundError",
    "PersistenceError",
    "ProductNotFoundError",
]
