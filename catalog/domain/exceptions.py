"""Domain exceptions for the catalog data-access core.

Defines the error kinds surfaced to callers: validation failures, business
rule violations, and missing resources. These exceptions are independent of
infrastructure concerns; controller-facing code maps them to responses using
message, error_code and details.
"""

from typing import Any


class CatalogException(Exception):
    """Base exception for all catalog errors.

    All custom exceptions inherit from this class so callers can handle
    them uniformly.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code.
        details: Additional error context (e.g. field, resource_id, reasons).
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Optional machine-readable code; defaults to class name.
            details: Optional dict of extra context.
        """
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)


class ValidationException(CatalogException):
    """Raised when input is malformed or out of range."""

    def __init__(self, message: str, field: str | None = None) -> None:
        """Initialize with message and optional field name.

        Args:
            message: Description of the validation failure.
            field: Optional field or attribute that failed validation.
        """
        details = {"field": field} if field else {}
        super().__init__(message, "VALIDATION_ERROR", details)


class DomainRuleException(CatalogException):
    """Raised when an operation would violate a business rule.

    reasons is a machine-readable list (e.g. "cannot deactivate: 3 active
    children") and is always present in details, possibly empty.
    """

    def __init__(
        self,
        message: str,
        reasons: list[str] | None = None,
        error_code: str = "DOMAIN_RULE_VIOLATION",
        details: dict[str, Any] | None = None,
    ) -> None:
        self.reasons = list(reasons or [])
        merged = {"reasons": self.reasons}
        if details:
            merged.update(details)
        super().__init__(message, error_code, merged)


class DuplicateAssociationException(DomainRuleException):
    """Raised when an association pair already exists (no silent upsert)."""

    def __init__(self, association_type: str, owner_id: int, related_id: int) -> None:
        super().__init__(
            f"{association_type} association {owner_id}_{related_id} already exists",
            reasons=[f"duplicate association: {owner_id}_{related_id}"],
            error_code="DUPLICATE_ASSOCIATION",
            details={
                "association_type": association_type,
                "owner_id": owner_id,
                "related_id": related_id,
            },
        )


class ResourceNotFoundException(CatalogException):
    """Raised when a referenced identity does not exist."""

    def __init__(self, resource_type: str, resource_id: str | int) -> None:
        """Initialize with resource type and ID.

        Args:
            resource_type: Kind of resource (e.g. 'category', 'link').
            resource_id: Identifier that was not found.
        """
        super().__init__(
            f"{resource_type} with id {resource_id} not found",
            "RESOURCE_NOT_FOUND",
            {"resource_type": resource_type, "resource_id": str(resource_id)},
        )
