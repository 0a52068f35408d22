"""Tests for per-line fulfillment advanced by each line's seller."""

import pytest
from ordering.catalogue.port import ProductSnapshot
from ordering.errors import InvalidTransition, Unauthorized
from ordering.order.events import ItemFulfillmentAdvanced
from ordering.order.lifecycle import FulfillmentStatus, OrderStatus
from ordering.order.order import Order
from protean.exceptions import ObjectNotFoundError

TEXTBOOK = ProductSnapshot(product_id="prod-textbook", seller_id="seller-001", title="Calculus Textbook", price=20.00)
LAMP = ProductSnapshot(product_id="prod-lamp", seller_id="seller-002", title="Desk Lamp", price=30.00)


@pytest.fixture
def order():
    order = Order.open_cart(buyer_id="buyer-001")
    order.add_item(TEXTBOOK, 1)
    order.add_item(LAMP, 1)
    order.place("DORM_DELIVERY")
    order.mark_paid()
    return order


def _line(order, product_id):
    return next(i for i in order.items if i.product_id == product_id)


class TestAdvanceItem:
    def test_seller_advances_own_line(self, order):
        textbook = _line(order, "prod-textbook")
        order.mark_item_processing(textbook.id, "seller-001")

        assert textbook.fulfillment_status == FulfillmentStatus.PROCESSING.value
        assert _line(order, "prod-lamp").fulfillment_status == FulfillmentStatus.PAID.value

    def test_advancing_a_line_leaves_order_status_alone(self, order):
        order.mark_item_shipped(_line(order, "prod-textbook").id, "seller-001")
        assert order.status == OrderStatus.PAID.value

    def test_line_timestamps(self, order):
        textbook = _line(order, "prod-textbook")
        order.mark_item_shipped(textbook.id, "seller-001")
        order.mark_item_delivered(textbook.id, "seller-001")
        order.mark_item_completed(textbook.id, "seller-001")

        assert textbook.shipped_at is not None
        assert textbook.delivered_at is not None
        assert textbook.completed_at is not None
        assert textbook.fulfillment_status == FulfillmentStatus.COMPLETED.value

    def test_raises_event(self, order):
        lamp = _line(order, "prod-lamp")
        order.mark_item_processing(lamp.id, "seller-002")

        event = next(e for e in order._events if isinstance(e, ItemFulfillmentAdvanced))
        assert event.item_id == str(lamp.id)
        assert event.seller_id == "seller-002"
        assert event.previous_status == "PAID"
        assert event.new_status == "PROCESSING"

    def test_other_seller_is_rejected(self, order):
        lamp = _line(order, "prod-lamp")
        with pytest.raises(Unauthorized):
            order.mark_item_processing(lamp.id, "seller-001")
        assert lamp.fulfillment_status == FulfillmentStatus.PAID.value

    def test_buyer_is_rejected(self, order):
        with pytest.raises(Unauthorized):
            order.mark_item_processing(_line(order, "prod-lamp").id, "buyer-001")

    def test_backward_move_is_rejected(self, order):
        textbook = _line(order, "prod-textbook")
        order.mark_item_shipped(textbook.id, "seller-001")
        with pytest.raises(InvalidTransition):
            order.mark_item_processing(textbook.id, "seller-001")

    def test_lines_cannot_be_cancelled_one_by_one(self, order):
        with pytest.raises(InvalidTransition):
            order.advance_item(_line(order, "prod-textbook").id, "seller-001", "CANCELLED")

    def test_unknown_line(self, order):
        with pytest.raises(ObjectNotFoundError):
            order.mark_item_processing("nonexistent", "seller-001")


class TestOrderGate:
    def test_unpaid_order_lines_cannot_move(self):
        order = Order.open_cart(buyer_id="buyer-001")
        order.add_item(TEXTBOOK, 1)
        order.place("CAMPUS_PICKUP")

        with pytest.raises(InvalidTransition):
            order.mark_item_processing(order.items[0].id, "seller-001")

    def test_cancelled_order_lines_cannot_move(self, order):
        order.cancel()
        with pytest.raises(InvalidTransition):
            order.mark_item_processing(_line(order, "prod-textbook").id, "seller-001")


class TestReconciliation:
    def test_independently_delivered_lines_allow_completion(self, order):
        for product_id, seller_id in (("prod-textbook", "seller-001"), ("prod-lamp", "seller-002")):
            line = _line(order, product_id)
            order.mark_item_shipped(line.id, seller_id)
            order.mark_item_delivered(line.id, seller_id)

        order.mark_processing()
        order.mark_shipped("TRK-9")
        order.mark_delivered()
        order.complete()

        assert order.status == OrderStatus.COMPLETED.value
        assert all(i.fulfillment_status == FulfillmentStatus.COMPLETED.value for i in order.items)

    def test_cancel_keeps_shipped_lines(self, order):
        textbook = _line(order, "prod-textbook")
        order.mark_item_shipped(textbook.id, "seller-001")

        order.cancel(reason="Lamp no longer needed")

        assert textbook.fulfillment_status == FulfillmentStatus.SHIPPED.value
        assert _line(order, "prod-lamp").fulfillment_status == FulfillmentStatus.CANCELLED.value
