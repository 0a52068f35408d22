"""Order aggregate: a buyer's cart and, after checkout, the order it becomes.

An Order in CART status is the buyer's mutable shopping basket. Checkout
freezes it (CART → PENDING_PAYMENT); from then on only lifecycle
transitions and per-line fulfillment advancement may change it.

Money fields always satisfy::

    total_amount == subtotal + tax_amount + delivery_fee + platform_fee

and are recomputed inside a single atomic change on every cart mutation.
"""

import secrets
from datetime import UTC, datetime

from protean import atomic_change, invariant
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, Text

from ordering.domain import ordering
from ordering.errors import EmptyCart, InvalidTransition, ProductUnavailable, Unauthorized
from ordering.order.events import (
    CartCleared,
    CartItemAdded,
    CartItemRemoved,
    CartQuantityUpdated,
    ItemFulfillmentAdvanced,
    OrderCancelled,
    OrderCompleted,
    OrderDelivered,
    OrderPaid,
    OrderPlaced,
    OrderProcessing,
    OrderRefunded,
    OrderShipped,
)
from ordering.order.lifecycle import (
    CANCELLABLE_STATES,
    FULFILLMENT_OPEN_STATES,
    LINE_HANDED_OVER_STATES,
    LINE_RECEIVED_STATES,
    TRANSITION_TIMESTAMPS,
    FulfillmentStatus,
    OrderStatus,
    assert_can_transition,
    assert_line_can_transition,
)
from ordering.pricing import (
    DeliveryMethod,
    compute_totals,
    delivery_fee as fee_for_method,
    line_total,
    money,
    platform_fee_for,
    tax_for,
)

# Line timestamp stamped when a line enters each fulfillment status
_LINE_TIMESTAMPS = {
    FulfillmentStatus.SHIPPED: "shipped_at",
    FulfillmentStatus.DELIVERED: "delivered_at",
    FulfillmentStatus.COMPLETED: "completed_at",
}


def generate_order_number(now: datetime) -> str:
    """Human-readable order number in the form ``ORD-YYYYMMDD-NNNNNN``."""
    return f"ORD-{now:%Y%m%d}-{secrets.randbelow(1_000_000):06d}"


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@ordering.entity(part_of="Order")
class OrderItem:
    """One product line of an order, sold by a single seller.

    Title, condition and unit price are snapshotted when the product is added
    and never follow later catalogue edits. Each line carries its own
    fulfillment status, advanced by its seller.
    """

    product_id = Identifier(required=True)
    seller_id = Identifier(required=True)
    product_title = String(required=True, max_length=255)
    product_condition = String(max_length=50)
    unit_price = Float(required=True, min_value=0.0)
    quantity = Integer(required=True, min_value=1)
    total_price = Float(default=0.0)
    fulfillment_status = String(
        choices=FulfillmentStatus,
        default=FulfillmentStatus.PENDING_PAYMENT.value,
    )
    shipped_at = DateTime()
    delivered_at = DateTime()
    completed_at = DateTime()


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@ordering.aggregate
class Order:
    buyer_id = Identifier(required=True)
    university_id = Identifier()
    # Set to the buyer while the order is their open cart, cleared on checkout
    open_cart_of = Identifier(unique=True)
    order_number = String(max_length=30)
    status = String(choices=OrderStatus, default=OrderStatus.CART.value)
    items = HasMany(OrderItem)

    subtotal = Float(default=0.0)
    tax_amount = Float(default=0.0)
    delivery_fee = Float(default=0.0)
    platform_fee = Float(default=0.0)
    total_amount = Float(default=0.0)

    delivery_method = String(choices=DeliveryMethod)
    delivery_address_id = Identifier()
    buyer_notes = Text()
    tracking_number = String(max_length=100)
    cancellation_reason = String(max_length=500)
    cancelled_by = Identifier()

    cart_created_at = DateTime()
    ordered_at = DateTime()
    paid_at = DateTime()
    processing_at = DateTime()
    shipped_at = DateTime()
    delivered_at = DateTime()
    completed_at = DateTime()
    cancelled_at = DateTime()
    refunded_at = DateTime()

    @invariant.post
    def total_must_equal_sum_of_components(self):
        components = (
            money(self.subtotal) + money(self.tax_amount) + money(self.delivery_fee) + money(self.platform_fee)
        )
        if money(self.total_amount) != components:
            raise ValidationError({"total_amount": ["Total must equal subtotal plus tax, delivery and platform fees"]})

    @invariant.post
    def tax_and_platform_fee_must_follow_subtotal(self):
        if money(self.tax_amount) != tax_for(self.subtotal):
            raise ValidationError({"tax_amount": ["Tax must be 9% of the subtotal"]})
        if money(self.platform_fee) != platform_fee_for(self.subtotal):
            raise ValidationError({"platform_fee": ["Platform fee must be 2.5% of the subtotal"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def open_cart(cls, buyer_id, university_id=None):
        return cls(
            buyer_id=buyer_id,
            university_id=university_id,
            open_cart_of=buyer_id,
            status=OrderStatus.CART.value,
            cart_created_at=datetime.now(UTC),
        )

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def current_status(self) -> OrderStatus:
        return OrderStatus(self.status)

    def is_cart(self) -> bool:
        return self.current_status == OrderStatus.CART

    def was_paid(self) -> bool:
        return self.paid_at is not None

    def seller_ids(self) -> set[str]:
        return {str(item.seller_id) for item in self.items}

    def is_seller(self, user_id) -> bool:
        return str(user_id) in self.seller_ids()

    def find_item(self, item_id) -> OrderItem:
        item = next((i for i in self.items if str(i.id) == str(item_id)), None)
        if item is None:
            raise ObjectNotFoundError({"_entity": f"Item {item_id} not found in order {self.id}"})
        return item

    # -------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------
    def _assert_cart(self):
        if not self.is_cart():
            raise InvalidTransition(
                self.status,
                self.status,
                f"Items can only be changed while the order is a cart, not {self.status}",
            )

    def _recompute_totals(self, fee=None):
        """Recompute every money field from the lines. Call inside atomic_change."""
        for item in self.items:
            item.total_price = float(line_total(item.unit_price, item.quantity))
        breakdown = compute_totals(
            [item.total_price for item in self.items],
            self.delivery_fee if fee is None else fee,
        )
        for field_name, value in breakdown.as_floats().items():
            setattr(self, field_name, value)

    def _enter(self, target: OrderStatus, now: datetime):
        """Move to ``target`` and stamp its timestamp. Call inside atomic_change."""
        self.status = target.value
        self.open_cart_of = None
        setattr(self, TRANSITION_TIMESTAMPS[target], now)

    @staticmethod
    def _advance_line(item, target: FulfillmentStatus, now: datetime):
        item.fulfillment_status = target.value
        stamp = _LINE_TIMESTAMPS.get(target)
        if stamp:
            setattr(item, stamp, now)

    def _cascade_lines(self, sources, target: FulfillmentStatus, now: datetime, seller_id=None):
        for item in self.items:
            if seller_id is not None and str(item.seller_id) != str(seller_id):
                continue
            if FulfillmentStatus(item.fulfillment_status) in sources:
                self._advance_line(item, target, now)

    # -------------------------------------------------------------------
    # Cart operations (only in CART state)
    # -------------------------------------------------------------------
    def add_item(self, product, quantity):
        """Add a catalogue product to the cart, merging with an existing line.

        Args:
            product: A ``ProductSnapshot`` from the catalogue port.
            quantity: Number of units to add (at least 1).
        """
        self._assert_cart()
        if quantity is None or quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})
        if not product.is_active:
            raise ProductUnavailable(product.title)
        if str(product.seller_id) == str(self.buyer_id):
            raise ValidationError({"product": ["You cannot purchase your own product"]})

        existing = next((i for i in self.items if str(i.product_id) == str(product.product_id)), None)

        with atomic_change(self):
            if existing:
                existing.quantity += quantity
                item = existing
            else:
                item = OrderItem(
                    product_id=product.product_id,
                    seller_id=product.seller_id,
                    product_title=product.title,
                    product_condition=product.condition,
                    unit_price=float(money(product.price)),
                    quantity=quantity,
                )
                self.add_items(item)
            self._recompute_totals()

        self.raise_(
            CartItemAdded(
                order_id=str(self.id),
                item_id=str(item.id),
                product_id=str(product.product_id),
                quantity=quantity,
                subtotal=self.subtotal,
            )
        )
        return item

    def update_item_quantity(self, item_id, new_quantity):
        """Set a line's quantity. Zero or less removes the line."""
        self._assert_cart()
        item = self.find_item(item_id)
        if new_quantity <= 0:
            self.remove_item(item_id)
            return

        previous_quantity = item.quantity
        with atomic_change(self):
            item.quantity = new_quantity
            self._recompute_totals()

        self.raise_(
            CartQuantityUpdated(
                order_id=str(self.id),
                item_id=str(item_id),
                previous_quantity=previous_quantity,
                new_quantity=new_quantity,
                subtotal=self.subtotal,
            )
        )

    def remove_item(self, item_id):
        self._assert_cart()
        item = self.find_item(item_id)

        with atomic_change(self):
            self.remove_items(item)
            self._recompute_totals()

        self.raise_(
            CartItemRemoved(
                order_id=str(self.id),
                item_id=str(item_id),
                product_id=str(item.product_id),
                subtotal=self.subtotal,
            )
        )

    def clear(self):
        self._assert_cart()
        removed = list(self.items)

        with atomic_change(self):
            for item in removed:
                self.remove_items(item)
            self._recompute_totals()

        self.raise_(CartCleared(order_id=str(self.id), items_removed=len(removed)))

    # -------------------------------------------------------------------
    # Lifecycle transitions
    # -------------------------------------------------------------------
    def place(self, delivery_method, delivery_address_id=None, buyer_notes=None):
        """Freeze the cart into an order awaiting payment (CART → PENDING_PAYMENT)."""
        assert_can_transition(self.current_status, OrderStatus.PENDING_PAYMENT)
        if not self.items:
            raise EmptyCart()

        method = DeliveryMethod(delivery_method)
        now = datetime.now(UTC)
        with atomic_change(self):
            self.delivery_method = method.value
            self.delivery_address_id = delivery_address_id
            self.buyer_notes = buyer_notes
            self._recompute_totals(fee=fee_for_method(method))
            self._enter(OrderStatus.PENDING_PAYMENT, now)

        self.raise_(
            OrderPlaced(
                order_id=str(self.id),
                buyer_id=str(self.buyer_id),
                delivery_method=method.value,
                item_count=len(self.items),
                total_amount=self.total_amount,
                ordered_at=now,
            )
        )

    def mark_paid(self):
        """Record settlement: assign the order number and release lines to sellers."""
        assert_can_transition(self.current_status, OrderStatus.PAID)

        now = datetime.now(UTC)
        with atomic_change(self):
            if not self.order_number:
                self.order_number = generate_order_number(now)
            self._cascade_lines({FulfillmentStatus.PENDING_PAYMENT}, FulfillmentStatus.PAID, now)
            self._enter(OrderStatus.PAID, now)

        self.raise_(
            OrderPaid(
                order_id=str(self.id),
                order_number=self.order_number,
                total_amount=self.total_amount,
                paid_at=now,
            )
        )

    def mark_processing(self, seller_id=None):
        """Seller started preparing the order. Their paid lines follow."""
        assert_can_transition(self.current_status, OrderStatus.PROCESSING)

        now = datetime.now(UTC)
        with atomic_change(self):
            if seller_id is not None:
                self._cascade_lines(
                    {FulfillmentStatus.PAID},
                    FulfillmentStatus.PROCESSING,
                    now,
                    seller_id=seller_id,
                )
            self._enter(OrderStatus.PROCESSING, now)

        self.raise_(OrderProcessing(order_id=str(self.id), processing_at=now))

    def mark_shipped(self, tracking_number, seller_id=None):
        """Seller handed the order to a carrier. Their open lines ship with it."""
        assert_can_transition(self.current_status, OrderStatus.SHIPPED)
        if not tracking_number or not str(tracking_number).strip():
            raise ValidationError({"tracking_number": ["Tracking number is required to ship an order"]})

        now = datetime.now(UTC)
        with atomic_change(self):
            self.tracking_number = tracking_number
            if seller_id is not None:
                self._cascade_lines(
                    {FulfillmentStatus.PAID, FulfillmentStatus.PROCESSING},
                    FulfillmentStatus.SHIPPED,
                    now,
                    seller_id=seller_id,
                )
            self._enter(OrderStatus.SHIPPED, now)

        self.raise_(
            OrderShipped(
                order_id=str(self.id),
                tracking_number=tracking_number,
                shipped_at=now,
            )
        )

    def mark_delivered(self):
        """Delivery confirmed. Every shipped line counts as delivered."""
        assert_can_transition(self.current_status, OrderStatus.DELIVERED)

        now = datetime.now(UTC)
        with atomic_change(self):
            self._cascade_lines({FulfillmentStatus.SHIPPED}, FulfillmentStatus.DELIVERED, now)
            self._enter(OrderStatus.DELIVERED, now)

        self.raise_(OrderDelivered(order_id=str(self.id), delivered_at=now))

    def complete(self):
        """Buyer confirms the order. Requires every live line to be delivered."""
        assert_can_transition(self.current_status, OrderStatus.COMPLETED)
        pending = [
            item
            for item in self.items
            if FulfillmentStatus(item.fulfillment_status) != FulfillmentStatus.CANCELLED
            and FulfillmentStatus(item.fulfillment_status) not in LINE_RECEIVED_STATES
        ]
        if pending:
            raise InvalidTransition(
                self.status,
                OrderStatus.COMPLETED.value,
                f"{len(pending)} item(s) have not been delivered yet",
            )

        now = datetime.now(UTC)
        with atomic_change(self):
            self._cascade_lines({FulfillmentStatus.DELIVERED}, FulfillmentStatus.COMPLETED, now)
            self._enter(OrderStatus.COMPLETED, now)

        self.raise_(OrderCompleted(order_id=str(self.id), completed_at=now))

    def cancel(self, reason=None, cancelled_by=None):
        """Cancel the order. Lines not yet shipped are cancelled with it."""
        current = self.current_status
        if current not in CANCELLABLE_STATES:
            raise InvalidTransition(
                current.value,
                OrderStatus.CANCELLED.value,
                f"Cannot cancel order in {current.value} state",
            )
        handed_over = [
            item for item in self.items if FulfillmentStatus(item.fulfillment_status) in LINE_HANDED_OVER_STATES
        ]
        if handed_over:
            raise InvalidTransition(
                current.value,
                OrderStatus.CANCELLED.value,
                f"Cannot cancel order: {len(handed_over)} item(s) already shipped",
            )

        now = datetime.now(UTC)
        with atomic_change(self):
            self.cancellation_reason = reason
            self.cancelled_by = cancelled_by
            self._cascade_lines(
                {
                    FulfillmentStatus.PENDING_PAYMENT,
                    FulfillmentStatus.PAID,
                    FulfillmentStatus.PROCESSING,
                },
                FulfillmentStatus.CANCELLED,
                now,
            )
            self._enter(OrderStatus.CANCELLED, now)

        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                previous_status=current.value,
                reason=reason,
                cancelled_by=cancelled_by,
                cancelled_at=now,
            )
        )

    def refund(self, refund_amount):
        """Mark the order refunded, whatever its fulfillment progress."""
        current = self.current_status
        assert_can_transition(current, OrderStatus.REFUNDED, was_paid=self.was_paid())

        now = datetime.now(UTC)
        with atomic_change(self):
            self._enter(OrderStatus.REFUNDED, now)

        self.raise_(
            OrderRefunded(
                order_id=str(self.id),
                previous_status=current.value,
                refund_amount=float(money(refund_amount)),
                refunded_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Per-line fulfillment (seller of the line only)
    # -------------------------------------------------------------------
    def advance_item(self, item_id, seller_id, target):
        """Move one line to ``target`` on behalf of its seller."""
        target = FulfillmentStatus(target)
        item = self.find_item(item_id)
        if str(item.seller_id) != str(seller_id):
            raise Unauthorized("Only the seller of this item can update its fulfillment")
        if self.current_status not in FULFILLMENT_OPEN_STATES:
            raise InvalidTransition(
                self.status,
                self.status,
                f"Items cannot be fulfilled while the order is {self.status}",
            )
        previous = FulfillmentStatus(item.fulfillment_status)
        if target == FulfillmentStatus.CANCELLED:
            raise InvalidTransition(
                previous.value,
                target.value,
                "Items are cancelled by cancelling the order",
            )
        assert_line_can_transition(previous, target)

        now = datetime.now(UTC)
        with atomic_change(self):
            self._advance_line(item, target, now)

        self.raise_(
            ItemFulfillmentAdvanced(
                order_id=str(self.id),
                item_id=str(item.id),
                seller_id=str(seller_id),
                previous_status=previous.value,
                new_status=target.value,
                changed_at=now,
            )
        )

    def mark_item_processing(self, item_id, seller_id):
        self.advance_item(item_id, seller_id, FulfillmentStatus.PROCESSING)

    def mark_item_shipped(self, item_id, seller_id):
        self.advance_item(item_id, seller_id, FulfillmentStatus.SHIPPED)

    def mark_item_delivered(self, item_id, seller_id):
        self.advance_item(item_id, seller_id, FulfillmentStatus.DELIVERED)

    def mark_item_completed(self, item_id, seller_id):
        self.advance_item(item_id, seller_id, FulfillmentStatus.COMPLETED)

