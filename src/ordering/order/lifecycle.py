"""Order and order-line state machines.

The order-level machine decides which lifecycle transitions are legal and
which timestamp each one stamps. The line-level machine tracks fulfillment
per seller independently of the order status.

    CART → PENDING_PAYMENT → PAID → PROCESSING → SHIPPED → DELIVERED → COMPLETED
    CART, PENDING_PAYMENT, PAID, PROCESSING → CANCELLED
    PAID .. COMPLETED → REFUNDED, CANCELLED → REFUNDED (only once paid)
"""

from enum import Enum

from ordering.errors import InvalidTransition


class OrderStatus(Enum):
    CART = "CART"
    PENDING_PAYMENT = "PENDING_PAYMENT"
    PAID = "PAID"
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"


class FulfillmentStatus(Enum):
    PENDING_PAYMENT = "PENDING_PAYMENT"
    PAID = "PAID"
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


_VALID_TRANSITIONS = {
    OrderStatus.CART: {OrderStatus.PENDING_PAYMENT, OrderStatus.CANCELLED},
    OrderStatus.PENDING_PAYMENT: {OrderStatus.PAID, OrderStatus.CANCELLED},
    OrderStatus.PAID: {OrderStatus.PROCESSING, OrderStatus.CANCELLED, OrderStatus.REFUNDED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED, OrderStatus.REFUNDED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED, OrderStatus.REFUNDED},
    OrderStatus.DELIVERED: {OrderStatus.COMPLETED, OrderStatus.REFUNDED},
    OrderStatus.COMPLETED: {OrderStatus.REFUNDED},
    OrderStatus.CANCELLED: {OrderStatus.REFUNDED},
    OrderStatus.REFUNDED: set(),  # Terminal
}

# Timestamp field stamped when the order enters each status
TRANSITION_TIMESTAMPS = {
    OrderStatus.PENDING_PAYMENT: "ordered_at",
    OrderStatus.PAID: "paid_at",
    OrderStatus.PROCESSING: "processing_at",
    OrderStatus.SHIPPED: "shipped_at",
    OrderStatus.DELIVERED: "delivered_at",
    OrderStatus.COMPLETED: "completed_at",
    OrderStatus.CANCELLED: "cancelled_at",
    OrderStatus.REFUNDED: "refunded_at",
}

CANCELLABLE_STATES = {
    OrderStatus.CART,
    OrderStatus.PENDING_PAYMENT,
    OrderStatus.PAID,
    OrderStatus.PROCESSING,
}

# Order states in which sellers may advance their lines
FULFILLMENT_OPEN_STATES = {
    OrderStatus.PAID,
    OrderStatus.PROCESSING,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
}

_LINE_TRANSITIONS = {
    FulfillmentStatus.PENDING_PAYMENT: {FulfillmentStatus.PAID},
    FulfillmentStatus.PAID: {
        FulfillmentStatus.PROCESSING,
        FulfillmentStatus.SHIPPED,
        FulfillmentStatus.CANCELLED,
    },
    FulfillmentStatus.PROCESSING: {FulfillmentStatus.SHIPPED, FulfillmentStatus.CANCELLED},
    FulfillmentStatus.SHIPPED: {FulfillmentStatus.DELIVERED},
    FulfillmentStatus.DELIVERED: {FulfillmentStatus.COMPLETED},
    FulfillmentStatus.COMPLETED: set(),
    FulfillmentStatus.CANCELLED: set(),
}

# Lines past these states count as handed over to the buyer
LINE_RECEIVED_STATES = {FulfillmentStatus.DELIVERED, FulfillmentStatus.COMPLETED}

# Lines in these states are with the carrier or the buyer; the order can no
# longer be cancelled
LINE_HANDED_OVER_STATES = {FulfillmentStatus.SHIPPED} | LINE_RECEIVED_STATES


def allowed_targets(current: OrderStatus, was_paid: bool = True) -> set[OrderStatus]:
    targets = set(_VALID_TRANSITIONS[current])
    if current == OrderStatus.CANCELLED and not was_paid:
        targets.discard(OrderStatus.REFUNDED)
    return targets


def assert_can_transition(current: OrderStatus, target: OrderStatus, was_paid: bool = True) -> None:
    """Raise ``InvalidTransition`` unless ``current → target`` is legal.

    ``was_paid`` matters only for CANCELLED → REFUNDED: an order cancelled
    before settlement has nothing to refund.
    """
    if target not in allowed_targets(current, was_paid):
        raise InvalidTransition(current.value, target.value)


def can_line_transition(current: FulfillmentStatus, target: FulfillmentStatus) -> bool:
    return target in _LINE_TRANSITIONS[current]


def assert_line_can_transition(current: FulfillmentStatus, target: FulfillmentStatus) -> None:
    if not can_line_transition(current, target):
        raise InvalidTransition(
            current.value,
            target.value,
            f"Cannot move order item from {current.value} to {target.value}",
        )
