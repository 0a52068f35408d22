"""Shared BDD fixtures and step definitions for ordering scenarios.

Scenarios drive the domain through its commands, as the API does, and read
results back from the repositories.
"""

from decimal import Decimal

import pytest
from ordering.cart.items import AddToCart
from ordering.catalogue.port import ProductSnapshot
from ordering.checkout.checkout import Checkout
from ordering.errors import InvalidTransition, NoSettlementFound, Unauthorized
from ordering.order.order import Order
from ordering.payment.methods import AddPaymentMethod
from ordering.payment.processing import ProcessPayment
from ordering.payment.refund import ProcessRefund
from ordering.payment.transaction import Transaction
from ordering.pricing import money
from protean import current_domain
from protean.exceptions import ProteanException, ValidationError
from pytest_bdd import given, parsers, then, when

BUYER_ID = "buyer-001"
ADMIN_ID = "admin-001"

MINI_FRIDGE = ProductSnapshot(
    product_id="prod-fridge",
    seller_id="seller-002",
    title="Mini Fridge",
    price=75.00,
    condition="FAIR",
)

_REJECTIONS = {
    "an invalid transition": InvalidTransition,
    "a validation error": ValidationError,
    "an authorization error": Unauthorized,
    "a missing settlement": NoSettlementFound,
}

_MONEY_FIELDS = {
    "subtotal": "subtotal",
    "tax": "tax_amount",
    "platform fee": "platform_fee",
    "delivery fee": "delivery_fee",
    "total": "total_amount",
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def process(command):
    return current_domain.process(command, asynchronous=False)


def load_order(order_id) -> Order:
    return current_domain.repository_for(Order).get(order_id)


def ledger(order_id) -> list[Transaction]:
    return current_domain.repository_for(Transaction).for_order(order_id)


def original_payment(order_id) -> Transaction:
    return next(t for t in ledger(order_id) if t.amount > 0 and t.status != "FAILED")


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def error():
    """Container for the exception of a rejected action."""
    return {"exc": None}


@pytest.fixture()
def attempt(error):
    """Process a command, keeping a domain rejection in ``error`` instead of raising it."""

    def _attempt(command):
        try:
            return process(command)
        except ProteanException as exc:
            error["exc"] = exc
            return None

    return _attempt


@pytest.fixture()
def campus_catalogue(catalogue):
    """Textbook and lamp from ``seller-001``, mini fridge from ``seller-002``."""
    catalogue.register(MINI_FRIDGE)
    return catalogue


@pytest.fixture()
def payment_method_id():
    return process(
        AddPaymentMethod(owner_id=BUYER_ID, method_type="DEBIT_CARD", token="tok_debit", last_four="0005"),
    )


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('the buyer has {quantity:d} of "{product_id}" in the cart'), target_fixture="order_id")
def _(campus_catalogue, quantity, product_id):
    return process(AddToCart(buyer_id=BUYER_ID, product_id=product_id, quantity=quantity))


@given(parsers.cfparse('the buyer checked out with "{method}" delivery'), target_fixture="order_id")
def _(method):
    return process(Checkout(buyer_id=BUYER_ID, delivery_method=method))


@given("the buyer paid for the order")
def _(order_id, payment_method_id):
    process(ProcessPayment(order_id=order_id, payment_method_id=payment_method_id, buyer_id=BUYER_ID))


@given(parsers.cfparse('the gateway declines with "{reason}"'))
def _(gateway, reason):
    gateway.configure(should_succeed=False, failure_reason=reason)


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse("an administrator refunds {amount:f}"))
def _(order_id, attempt, amount):
    attempt(
        ProcessRefund(order_id=order_id, refund_amount=amount, actor_id=ADMIN_ID, actor_role="ADMIN"),
    )


@when("an administrator refunds the full payment")
def _(order_id, attempt):
    settlement = current_domain.repository_for(Transaction).settlement_for(order_id)
    amount = settlement.amount if settlement else load_order(order_id).total_amount
    attempt(
        ProcessRefund(order_id=order_id, refund_amount=amount, actor_id=ADMIN_ID, actor_role="ADMIN"),
    )


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order status is "{status}"'))
def _(order_id, status):
    assert load_order(order_id).status == status


@then(parsers.cfparse("the {label} comes to {amount}"))
def _(order_id, label, amount):
    order = load_order(order_id)
    assert money(getattr(order, _MONEY_FIELDS[label])) == Decimal(amount)


@then(parsers.cfparse("the action is rejected with {kind}"))
def _(error, kind):
    assert error["exc"] is not None, "Expected the action to be rejected"
    assert isinstance(error["exc"], _REJECTIONS[kind]), f"Got {type(error['exc']).__name__}"


@then(parsers.cfparse('a "{status}" transaction of {amount} is recorded'))
def _(order_id, status, amount):
    entries = [(t.status, money(t.amount)) for t in ledger(order_id)]
    assert (status, Decimal(amount)) in entries, f"Ledger holds {entries}"


@then(parsers.re(r"the order ledger holds (?P<count>\d+) entr(?:y|ies)"))
def _(order_id, count):
    assert len(ledger(order_id)) == int(count)


@then(parsers.cfparse('the original payment is "{status}"'))
def _(order_id, status):
    assert original_payment(order_id).status == status


@then(parsers.cfparse('the original payment is "{status}" with refund amount {amount}'))
def _(order_id, status, amount):
    payment = original_payment(order_id)
    assert payment.status == status
    assert money(payment.refund_amount) == Decimal(amount)
