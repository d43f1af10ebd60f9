"""Tests for the order state machine."""

import pytest

from shopcatalog.domain import OrderStatus
from shopcatalog.domain.exceptions import InvalidStateError


class TestOrderStatus:
    """Tests for OrderStatus transitions."""

    @pytest.mark.parametrize(
        "status",
        [OrderStatus.PENDING, OrderStatus.CONFIRMED, OrderStatus.SHIPPED],
    )
    def test_cancellable_states(self, status: OrderStatus) -> None:
        """Orders not yet delivered can be cancelled."""
        assert status.is_cancellable()

    @pytest.mark.parametrize(
        "status",
        [OrderStatus.DELIVERED, OrderStatus.RETURNED, OrderStatus.CANCELLED, OrderStatus.REFUNDED],
    )
    def test_non_cancellable_states(self, status: OrderStatus) -> None:
        """Delivered and terminal orders cannot be cancelled."""
        assert not status.is_cancellable()

    def test_terminal_states(self) -> None:
        assert OrderStatus.CANCELLED.is_terminal()
        assert OrderStatus.REFUNDED.is_terminal()
        assert not OrderStatus.PENDING.is_terminal()

    def test_transition_to(self) -> None:
        """Valid transitions return the target state."""
        assert OrderStatus.PENDING.transition_to(OrderStatus.CONFIRMED) == OrderStatus.CONFIRMED

    def test_invalid_transition(self) -> None:
        """Invalid transitions raise InvalidStateError with allowed targets."""
        with pytest.raises(InvalidStateError) as exc_info:
            OrderStatus.DELIVERED.transition_to(OrderStatus.PENDING)
        assert set(exc_info.value.details["allowed_transitions"]) == {"returned", "refunded"}
