"""Domain exceptions.

All domain-level errors raised by the catalog. Validation and not-found
errors are reported to the immediate caller; persistence and import
integrity errors are logged and degrade gracefully.
"""

from typing import Any


class DomainError(Exception):
    """Base class for all domain exceptions.

    All domain errors should inherit from this class to allow
    catching domain-specific errors at the application layer.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize domain error.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


# ============================================================================
# Catalog Errors
# ============================================================================


class CatalogError(DomainError):
    """Base class for catalog-related errors."""

    pass


class CatalogValidationError(CatalogError):
    """Raised when a required field is missing or out of range."""

    def __init__(self, entity_type: str, field: str, reason: str) -> None:
        """Initialize validation error.

        Args:
            entity_type: Type of record (e.g., "Product", "Category").
            field: Name of the offending field.
            reason: Explanation of why the value is invalid.
        """
        super().__init__(
            f"Invalid {entity_type}.{field}: {reason}",
            details={"entity_type": entity_type, "field": field, "reason": reason},
        )


class NotFoundError(CatalogError):
    """Raised when a record id is absent from the store."""

    def __init__(self, entity_type: str, entity_id: int) -> None:
        """Initialize not found error.

        Args:
            entity_type: Type of record.
            entity_id: The id that was looked up.
        """
        super().__init__(
            f"{entity_type} {entity_id} not found",
            details={"entity_type": entity_type, "entity_id": entity_id},
        )


class ProductNotFoundError(NotFoundError):
    """Raised when a product is not found."""

    def __init__(self, product_id: int) -> None:
        super().__init__("Product", product_id)


class CategoryNotFoundError(NotFoundError):
    """Raised when a category is not found."""

    def __init__(self, category_id: int) -> None:
        super().__init__("Category", category_id)


class DuplicateIdError(CatalogError):
    """Raised when a caller-supplied id is already taken."""

    def __init__(self, entity_type: str, entity_id: int) -> None:
        """Initialize duplicate id error.

        Args:
            entity_type: Type of record.
            entity_id: The colliding id.
        """
        super().__init__(
            f"{entity_type} id {entity_id} already exists",
            details={"entity_type": entity_type, "entity_id": entity_id},
        )


# ============================================================================
# Storage Errors
# ============================================================================


class PersistenceError(CatalogError):
    """Raised when the backing file cannot be read or written.

    On save, the in-memory mutation has already been applied and stays
    in effect; the change may not survive a restart.
    """

    def __init__(self, operation: str, path: str, reason: str) -> None:
        """Initialize persistence error.

        Args:
            operation: "load", "save", "quarantine" or "read feed".
            path: Location of the backing store.
            reason: Underlying error text.
        """
        super().__init__(
            f"Catalog {operation} failed for {path}: {reason}",
            details={"operation": operation, "path": path, "reason": reason},
        )


class ImportIntegrityError(CatalogError):
    """Non-fatal aggregate error for records dropped during an import.

    Never raised by the importer itself; attached to the import report
    so callers can surface it.
    """

    def __init__(
        self,
        rejected_categories: int,
        rejected_products: int,
        reasons: dict[str, int] | None = None,
    ) -> None:
        """Initialize import integrity error.

        Args:
            rejected_categories: Number of categories dropped.
            rejected_products: Number of products dropped.
            reasons: Count of dropped records per reason.
        """
        super().__init__(
            f"Import dropped {rejected_categories} categories "
            f"and {rejected_products} products",
            details={
                "rejected_categories": rejected_categories,
                "rejected_products": rejected_products,
                "reasons": dict(reasons or {}),
            },
        )
        self.rejected_categories = rejected_categories
        self.rejected_products = rejected_products
