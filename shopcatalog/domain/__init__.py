"""Domain layer.

Error taxonomy, value objects, the order state machine and the
cancellation policies that business rules override.
"""

from shopcatalog.domain.exceptions import (
    CatalogError,
    InvalidAmountError,
    InvalidCurrencyError,
    DomainError,
    DuplicateSKUError,
    IncompleteOptionsError,
    InvalidReferenceError,
    InvalidStateError,
    MoneyError,
    NegativeMoneyError,
    OrderError,
    OrderNotCancellableError,
    StorageError,
    ValidationError,
)
from shopcatalog.domain.policies import (
    CancellationPolicy,
    DefaultCancellationPolicy,
    OrderSnapshot,
    PolicyOverrides,
    TimeWindowCancellationPolicy,
    ensure_cancellable,
    get_cancellation_policy,
    install_overrides,
)
from shopcatalog.domain.state_machines import OrderStatus
from shopcatalog.domain.value_objects import Money

__all__ = [
    # Exceptions
    "DomainError",
    "CatalogError",
    "ValidationError",
    "InvalidReferenceError",
    "DuplicateSKUError",
    "IncompleteOptionsError",
    "InvalidStateError",
    "StorageError",
    "OrderError",
    "OrderNotCancellableError",
    "MoneyError",
    "InvalidAmountError",
    "InvalidCurrencyError",
    "NegativeMoneyError",
    # Value objects
    "Money",
    # State machines
    "OrderStatus",
    # Policies
    "CancellationPolicy",
    "DefaultCancellationPolicy",
    "OrderSnapshot",
    "PolicyOverrides",
    "TimeWindowCancellationPolicy",
    "ensure_cancellable",
    "get_cancellation_policy",
    "install_overrides",
]
