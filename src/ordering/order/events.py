"""Domain events for the Order aggregate (cart and placed order alike)."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from ordering.domain import ordering


# ---------------------------------------------------------------------------
# Cart mutations
# ---------------------------------------------------------------------------
@ordering.event(part_of="Order")
class CartItemAdded:
    """A product was put in the cart, or its existing line was topped up."""

    __version__ = 1

    order_id = Identifier(required=True)
    item_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    subtotal = Float(required=True)


@ordering.event(part_of="Order")
class CartQuantityUpdated:
    __version__ = 1

    order_id = Identifier(required=True)
    item_id = Identifier(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)
    subtotal = Float(required=True)


@ordering.event(part_of="Order")
class CartItemRemoved:
    __version__ = 1

    order_id = Identifier(required=True)
    item_id = Identifier(required=True)
    product_id = Identifier(required=True)
    subtotal = Float(required=True)


@ordering.event(part_of="Order")
class CartCleared:
    __version__ = 1

    order_id = Identifier(required=True)
    items_removed = Integer(required=True)


# ---------------------------------------------------------------------------
# Order lifecycle
# ---------------------------------------------------------------------------
@ordering.event(part_of="Order")
class OrderPlaced:
    """The cart was checked out and is now awaiting payment."""

    __version__ = 1

    order_id = Identifier(required=True)
    buyer_id = Identifier(required=True)
    delivery_method = String(required=True)
    item_count = Integer(required=True)
    total_amount = Float(required=True)
    ordered_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderPaid:
    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    total_amount = Float(required=True)
    paid_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderProcessing:
    __version__ = 1

    order_id = Identifier(required=True)
    processing_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderShipped:
    __version__ = 1

    order_id = Identifier(required=True)
    tracking_number = String(required=True)
    shipped_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderDelivered:
    __version__ = 1

    order_id = Identifier(required=True)
    delivered_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderCompleted:
    __version__ = 1

    order_id = Identifier(required=True)
    completed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderCancelled:
    """The order was cancelled by its buyer or an administrator."""

    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    reason = String()
    cancelled_by = Identifier()
    cancelled_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderRefunded:
    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    refund_amount = Float(required=True)
    refunded_at = DateTime(required=True)


# ---------------------------------------------------------------------------
# Per-line fulfillment
# ---------------------------------------------------------------------------
@ordering.event(part_of="Order")
class ItemFulfillmentAdvanced:
    """A seller moved one of their order lines to a new fulfillment status."""

    __version__ = 1

    order_id = Identifier(required=True)
    item_id = Identifier(required=True)
    seller_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    changed_at = DateTime(required=True)
