"""Order state machine.

Deterministic state machine that defines valid order state transitions.
Cancellation policies consult it to decide whether an order may still
be cancelled.
"""

from enum import Enum

from shopcatalog.domain.exceptions import InvalidStateError


class OrderStatus(str, Enum):
    """Order lifecycle states.

    State diagram:
        PENDING ─────────────────────────────────────► CANCELLED
          │                                              ▲
          │ confirm                                      │
          ▼                                              │
        CONFIRMED ────────────────────────────────────►──┤
          │                                              │
          │ ship                                         │
          ▼                                              │
        SHIPPED ──────────────────────────────────────►──┘
          │
          │ deliver
          ▼
        DELIVERED ──► RETURNED ──► REFUNDED
    """

    PENDING = "pending"
    CONFIRMED = "confirmed"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    RETURNED = "returned"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"

    def can_transition_to(self, target: "OrderStatus") -> bool:
        """Check if transition to target state is valid.

        Args:
            target: Target state to transition to.

        Returns:
            True if transition is valid.
        """
        return target in _ORDER_TRANSITIONS.get(self, set())

    def allowed_transitions(self) -> list["OrderStatus"]:
        """Get list of valid target states."""
        return list(_ORDER_TRANSITIONS.get(self, set()))

    def transition_to(self, target: "OrderStatus") -> "OrderStatus":
        """Validate and return the target state.

        Raises:
            InvalidStateError: If the transition is not allowed.
        """
        if not self.can_transition_to(target):
            raise InvalidStateError(
                f"Cannot transition order from '{self.value}' to '{target.value}'",
                details={
                    "current_state": self.value,
                    "target_state": target.value,
                    "allowed_transitions": [s.value for s in self.allowed_transitions()],
                },
            )
        return target

    def is_cancellable(self) -> bool:
        """Check if order can be cancelled."""
        return self.can_transition_to(OrderStatus.CANCELLED)

    def is_terminal(self) -> bool:
        return len(_ORDER_TRANSITIONS.get(self, set())) == 0


# Order state transitions (defined outside enum to avoid Enum restrictions)
_ORDER_TRANSITIONS: dict[OrderStatus, set[OrderStatus]] = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.DELIVERED: {OrderStatus.RETURNED, OrderStatus.REFUNDED},
    OrderStatus.RETURNED: {OrderStatus.REFUNDED},
    OrderStatus.CANCELLED: set(),  # Terminal state
    OrderStatus.REFUNDED: set(),  # Terminal state
}
