"""Domain exceptions.

All domain-level errors that represent business rule violations.
These exceptions are raised by the catalog service and value objects
when invariants are violated or invalid operations are attempted.
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


class ValidationError(CatalogError):
    """Raised when a field value is rejected."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize validation error.

        Args:
            message: Human-readable error message.
            field: Name of the offending field, if any.
            details: Additional error context.
        """
        context = dict(details or {})
        if field is not None:
            context["field"] = field
        super().__init__(message, details=context)
        self.field = field


class InvalidReferenceError(CatalogError):
    """Raised when a reference does not resolve to an existing record."""

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        reason: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize invalid reference error.

        Args:
            entity_type: Type of the referenced entity (e.g., "TaxCategory").
            entity_id: The dangling identifier.
            reason: Optional explanation when the record exists but may not be used.
            details: Additional error context.
        """
        message = reason or f"{entity_type} {entity_id} does not exist"
        super().__init__(
            message,
            details={
                "entity_type": entity_type,
                "entity_id": entity_id,
                **(details or {}),
            },
        )
        self.entity_type = entity_type
        self.entity_id = entity_id


class DuplicateSKUError(CatalogError):
    """Raised when a SKU is already taken."""

    def __init__(self, sku: str, index: int | None = None) -> None:
        """Initialize duplicate SKU error.

        Args:
            sku: The SKU that already exists.
            index: Position of the entry in a bulk request, if any.
        """
        details: dict[str, Any] = {"sku": sku}
        if index is not None:
            details["index"] = index
        super().__init__(f"SKU '{sku}' already exists", details=details)
        self.sku = sku
        self.index = index


class IncompleteOptionsError(CatalogError):
    """Raised when a variant does not select exactly one value per option type."""

    def __init__(
        self,
        sku: str,
        missing: list[str] | None = None,
        repeated: list[str] | None = None,
        index: int | None = None,
    ) -> None:
        """Initialize incomplete options error.

        Args:
            sku: SKU of the rejected variant.
            missing: Option type names with no selected value.
            repeated: Option type names with more than one selected value.
            index: Position of the entry in a bulk request, if any.
        """
        missing = sorted(missing or [])
        repeated = sorted(repeated or [])
        parts = []
        if missing:
            parts.append(f"missing {missing}")
        if repeated:
            parts.append(f"repeated {repeated}")
        details: dict[str, Any] = {"sku": sku, "missing": missing, "repeated": repeated}
        if index is not None:
            details["index"] = index
        super().__init__(
            f"Variant {sku} must select exactly one value per option type: "
            + ", ".join(parts),
            details=details,
        )
        self.sku = sku
        self.missing = missing
        self.repeated = repeated


class InvalidStateError(CatalogError):
    """Raised when an operation is not allowed in the record's current state."""

    pass


class StorageError(CatalogError):
    """Raised when the asset store or the database cannot be reached."""

    def __init__(self, message: str, backend: str, details: dict[str, Any] | None = None) -> None:
        """Initialize storage error.

        Args:
            message: Human-readable error message.
            backend: Which backend failed ("assets" or "database").
            details: Additional error context.
        """
        super().__init__(message, details={"backend": backend, **(details or {})})
        self.backend = backend


# ============================================================================
# Order Errors
# ============================================================================


class OrderError(DomainError):
    """Base class for order-related errors."""

    pass


class OrderNotCancellableError(OrderError):
    """Raised when trying to cancel an order that cannot be cancelled."""

    def __init__(self, order_id: str, current_status: str, reason: str | None = None) -> None:
        """Initialize order not cancellable error.

        Args:
            order_id: ID of the order.
            current_status: Current status of the order.
            reason: Which rule refused the cancellation.
        """
        message = f"Order {order_id} cannot be cancelled in status '{current_status}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(
            message,
            details={"order_id": order_id, "current_status": current_status, "reason": reason},
        )


# ============================================================================
# Money Errors
# ============================================================================


class MoneyError(ValidationError):
    """Base class for money-related errors."""

    pass


class InvalidAmountError(MoneyError):
    """Raised when a money amount is not a whole number of minor units."""

    def __init__(self, amount: object) -> None:
        """Initialize invalid amount error.

        Args:
            amount: The rejected amount.
        """
        super().__init__(
            f"Money amount must be an integer number of minor units: {amount!r}",
            field="amount_cents",
            details={"amount": repr(amount), "type": type(amount).__name__},
        )


class InvalidCurrencyError(MoneyError):
    """Raised when a currency is not a three-letter ISO 4217 code."""

    def __init__(self, currency: object) -> None:
        super().__init__(
            f"Currency must be a three-letter ISO 4217 code: {currency!r}",
            field="currency",
            details={"currency": repr(currency)},
        )


class NegativeMoneyError(MoneyError):
    """Raised when attempting to create money with negative amount."""

    def __init__(self, amount: int) -> None:
        """Initialize negative money error.

        Args:
            amount: The negative amount in cents.
        """
        super().__init__(
            f"Money amount cannot be negative: {amount}",
            field="amount_cents",
            details={"amount": amount},
        )
