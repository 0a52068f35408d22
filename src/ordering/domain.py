"""Ordering bounded context: campus marketplace orders, checkout and payments.

A buyer's cart and the order it becomes are the same aggregate: an Order in
CART status is the cart. Checkout freezes it, the payment processor settles
it against a per-user payment vault, and sellers drive fulfillment line by
line. Payment and refund attempts are recorded as append-only Transactions.
"""

import structlog
from protean.domain import Domain

ordering = Domain(name="ordering")

logger = structlog.get_logger(__name__)
