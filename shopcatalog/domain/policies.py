"""Order cancellation policies.

Business-specific rules supersede the default cancellation behavior by
wrapping it. Each override receives the policy it decorates and decides
whether to refuse outright or delegate.

Example usage:
    overrides = PolicyOverrides()
    overrides.register(lambda inner: TimeWindowCancellationPolicy(inner, timedelta(hours=2)))
    policy = overrides.build()
    ensure_cancellable(policy, order)
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Protocol

import structlog

from shopcatalog.domain.exceptions import OrderNotCancellableError
from shopcatalog.domain.state_machines import OrderStatus

logger = structlog.get_logger()


@dataclass(frozen=True)
class OrderSnapshot:
    """Read-only view of an order as seen by cancellation policies.

    Attributes:
        order_id: Order identifier.
        status: Current order status.
        placed_at: When the order was completed by the customer.
    """

    order_id: str
    status: OrderStatus
    placed_at: datetime


class CancellationPolicy(Protocol):
    """Decides whether an order may be cancelled."""

    def can_cancel(self, order: OrderSnapshot, now: datetime) -> bool: ...

    def describe(self) -> str: ...


class DefaultCancellationPolicy:
    """Allow cancellation whenever the order state machine does."""

    def can_cancel(self, order: OrderSnapshot, now: datetime) -> bool:
        return order.status.is_cancellable()

    def describe(self) -> str:
        return "status allows cancellation"


class TimeWindowCancellationPolicy:
    """Restrict cancellation to a window after the order was placed.

    Outside the window cancellation is refused; inside it the decision is
    delegated to the wrapped policy.
    """

    def __init__(self, inner: CancellationPolicy, window: timedelta) -> None:
        """Initialize the policy.

        Args:
            inner: Policy to delegate to inside the window.
            window: How long after placement cancellation stays possible.
        """
        self.inner = inner
        self.window = window

    def can_cancel(self, order: OrderSnapshot, now: datetime) -> bool:
        if now - _as_utc(order.placed_at) > self.window:
            return False
        return self.inner.can_cancel(order, now)

    def describe(self) -> str:
        return f"within {self.window} of placement and {self.inner.describe()}"


PolicyDecorator = Callable[[CancellationPolicy], CancellationPolicy]


class PolicyOverrides:
    """Registry of cancellation policy overrides.

    Decorators are applied in registration order, so the last registered
    override is the outermost one.
    """

    def __init__(self, default: CancellationPolicy | None = None) -> None:
        self._default = default or DefaultCancellationPolicy()
        self._decorators: list[tuple[str, PolicyDecorator]] = []

    def register(self, decorator: PolicyDecorator, name: str | None = None) -> None:
        """Register an override.

        Args:
            decorator: Callable wrapping the current policy.
            name: Label used in logs.
        """
        label = name or getattr(decorator, "__name__", "override")
        self._decorators.append((label, decorator))
        logger.info("Cancellation override registered", override=label)

    @property
    def registered(self) -> list[str]:
        return [name for name, _ in self._decorators]

    def build(self) -> CancellationPolicy:
        """Compose the registered overrides around the default policy."""
        policy = self._default
        for _, decorator in self._decorators:
            policy = decorator(policy)
        return policy


_installed: PolicyOverrides | None = None


def install_overrides(settings: Any, *, force: bool = False) -> PolicyOverrides:
    """Register the configured overrides once per process.

    Args:
        settings: Application settings; reads order_cancellation_window_hours.
        force: Rebuild the registry even if already installed.

    Returns:
        The process-wide override registry.
    """
    global _installed
    if _installed is not None and not force:
        return _installed

    overrides = PolicyOverrides()
    window_hours = getattr(settings, "order_cancellation_window_hours", None)
    if window_hours is not None:
        window = timedelta(hours=window_hours)
        overrides.register(
            lambda inner: TimeWindowCancellationPolicy(inner, window),
            name="cancellation_time_window",
        )
    _installed = overrides
    return overrides


def get_cancellation_policy() -> CancellationPolicy:
    """Get the active cancellation policy.

    Falls back to the default policy when no overrides were installed.
    """
    if _installed is None:
        return DefaultCancellationPolicy()
    return _installed.build()


def ensure_cancellable(
    policy: CancellationPolicy,
    order: OrderSnapshot,
    now: datetime | None = None,
) -> None:
    """Raise if the policy refuses to cancel the order.

    Raises:
        OrderNotCancellableError: If cancellation is refused.
    """
    now = now or datetime.now(timezone.utc)
    if not policy.can_cancel(order, now):
        logger.warning(
            "Order cancellation refused",
            order_id=order.order_id,
            status=order.status.value,
            policy=policy.describe(),
        )
        raise OrderNotCancellableError(
            order.order_id,
            order.status.value,
            reason=f"cancellation requires {policy.describe()}",
        )


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
