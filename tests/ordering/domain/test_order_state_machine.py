"""Tests for the order and line transition tables."""

import pytest
from ordering.errors import InvalidTransition
from ordering.order.lifecycle import (
    CANCELLABLE_STATES,
    FulfillmentStatus,
    OrderStatus,
    allowed_targets,
    assert_can_transition,
    assert_line_can_transition,
    can_line_transition,
)

LEGAL = [
    (OrderStatus.CART, OrderStatus.PENDING_PAYMENT),
    (OrderStatus.PENDING_PAYMENT, OrderStatus.PAID),
    (OrderStatus.PAID, OrderStatus.PROCESSING),
    (OrderStatus.PROCESSING, OrderStatus.SHIPPED),
    (OrderStatus.SHIPPED, OrderStatus.DELIVERED),
    (OrderStatus.DELIVERED, OrderStatus.COMPLETED),
    (OrderStatus.PAID, OrderStatus.REFUNDED),
    (OrderStatus.COMPLETED, OrderStatus.REFUNDED),
    (OrderStatus.CANCELLED, OrderStatus.REFUNDED),
]

ILLEGAL = [
    (OrderStatus.CART, OrderStatus.PAID),
    (OrderStatus.PENDING_PAYMENT, OrderStatus.SHIPPED),
    (OrderStatus.PAID, OrderStatus.DELIVERED),
    (OrderStatus.SHIPPED, OrderStatus.CANCELLED),
    (OrderStatus.DELIVERED, OrderStatus.CANCELLED),
    (OrderStatus.COMPLETED, OrderStatus.CANCELLED),
    (OrderStatus.PENDING_PAYMENT, OrderStatus.REFUNDED),
    (OrderStatus.REFUNDED, OrderStatus.CANCELLED),
    (OrderStatus.REFUNDED, OrderStatus.PAID),
]


class TestOrderTransitions:
    @pytest.mark.parametrize("current,target", LEGAL)
    def test_legal_transitions(self, current, target):
        assert_can_transition(current, target)

    @pytest.mark.parametrize("current,target", ILLEGAL)
    def test_illegal_transitions(self, current, target):
        with pytest.raises(InvalidTransition) as exc:
            assert_can_transition(current, target)
        assert exc.value.from_status == current.value
        assert exc.value.to_status == target.value

    def test_refunded_is_terminal(self):
        assert allowed_targets(OrderStatus.REFUNDED) == set()

    def test_unpaid_cancellation_cannot_be_refunded(self):
        assert OrderStatus.REFUNDED not in allowed_targets(OrderStatus.CANCELLED, was_paid=False)
        with pytest.raises(InvalidTransition):
            assert_can_transition(OrderStatus.CANCELLED, OrderStatus.REFUNDED, was_paid=False)

    def test_cancellable_states(self):
        assert CANCELLABLE_STATES == {
            OrderStatus.CART,
            OrderStatus.PENDING_PAYMENT,
            OrderStatus.PAID,
            OrderStatus.PROCESSING,
        }


class TestLineTransitions:
    @pytest.mark.parametrize(
        "current,target",
        [
            (FulfillmentStatus.PENDING_PAYMENT, FulfillmentStatus.PAID),
            (FulfillmentStatus.PAID, FulfillmentStatus.PROCESSING),
            (FulfillmentStatus.PAID, FulfillmentStatus.SHIPPED),
            (FulfillmentStatus.PROCESSING, FulfillmentStatus.SHIPPED),
            (FulfillmentStatus.SHIPPED, FulfillmentStatus.DELIVERED),
            (FulfillmentStatus.DELIVERED, FulfillmentStatus.COMPLETED),
        ],
    )
    def test_forward_moves(self, current, target):
        assert can_line_transition(current, target)

    @pytest.mark.parametrize(
        "current,target",
        [
            (FulfillmentStatus.SHIPPED, FulfillmentStatus.PROCESSING),
            (FulfillmentStatus.PAID, FulfillmentStatus.DELIVERED),
            (FulfillmentStatus.SHIPPED, FulfillmentStatus.CANCELLED),
            (FulfillmentStatus.COMPLETED, FulfillmentStatus.DELIVERED),
            (FulfillmentStatus.CANCELLED, FulfillmentStatus.PAID),
        ],
    )
    def test_backward_or_skipping_moves_are_rejected(self, current, target):
        with pytest.raises(InvalidTransition):
            assert_line_can_transition(current, target)
