"""Query methods for the Order aggregate."""

from datetime import UTC, datetime

from ordering.domain import ordering
from ordering.order.lifecycle import OrderStatus
from ordering.order.order import Order

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def _newest_first(orders, field_name):
    return sorted(
        orders,
        key=lambda o: getattr(o, field_name) or o.cart_created_at or _EPOCH,
        reverse=True,
    )


def _placed(orders):
    return [o for o in orders if o.status != OrderStatus.CART.value]


@ordering.repository(part_of=Order)
class OrderRepository:
    def cart_for(self, buyer_id) -> Order | None:
        """The buyer's open cart, if they have one."""
        carts = self._dao.query.filter(open_cart_of=str(buyer_id)).all().items
        return carts[0] if carts else None

    def history_for(self, buyer_id) -> list[Order]:
        """Every order the buyer has placed, newest first. Carts are excluded."""
        orders = self._dao.query.filter(buyer_id=str(buyer_id)).limit(None).all().items
        return _newest_first(_placed(orders), "ordered_at")

    def for_seller(self, seller_id) -> list[Order]:
        """Placed orders with at least one line sold by ``seller_id``, newest first."""
        orders = self._dao.query.limit(None).all().items
        return _newest_first([o for o in _placed(orders) if o.is_seller(seller_id)], "ordered_at")

    def with_status(self, status: OrderStatus) -> list[Order]:
        orders = self._dao.query.filter(status=status.value).limit(None).all().items
        return _newest_first(orders, "ordered_at")
