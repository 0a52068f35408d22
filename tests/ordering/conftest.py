import pytest
from protean.integrations.pytest import DomainFixture

from ordering.catalogue import get_catalogue
from ordering.catalogue.port import ProductSnapshot
from ordering.gateway import get_gateway


@pytest.fixture(scope="session")
def ordering_bed():
    from ordering.domain import ordering

    bed = DomainFixture(ordering)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(ordering_bed):
    with ordering_bed.domain_context():
        yield

        from protean import current_domain

        for _, provider in current_domain.providers.items():
            provider._data_reset()
        current_domain.event_store.store._data_reset()


@pytest.fixture()
def catalogue():
    """The in-memory catalogue, stocked with two listings from one seller."""
    fake = get_catalogue()
    fake.register(
        ProductSnapshot(
            product_id="prod-textbook",
            seller_id="seller-001",
            title="Calculus Textbook",
            price=20.00,
            condition="GOOD",
        )
    )
    fake.register(
        ProductSnapshot(
            product_id="prod-lamp",
            seller_id="seller-001",
            title="Desk Lamp",
            price=30.00,
            condition="LIKE_NEW",
        )
    )
    return fake


@pytest.fixture()
def gateway():
    return get_gateway()


SECOND_SELLER_PRODUCT = ProductSnapshot(
    product_id="prod-fridge",
    seller_id="seller-002",
    title="Mini Fridge",
    price=75.00,
    condition="FAIR",
)


@pytest.fixture()
def place_order(catalogue):
    """Build and persist an order for ``buyer-001`` that has been checked out.

    Lines default to one textbook from ``seller-001`` and one mini fridge
    from ``seller-002``. Pass ``paid=True`` to settle it as well.
    """
    from protean import current_domain

    from ordering.order.order import Order

    catalogue.register(SECOND_SELLER_PRODUCT)

    def _place(products=("prod-textbook", "prod-fridge"), paid=False, delivery_method="CAMPUS_PICKUP"):
        order = Order.open_cart(buyer_id="buyer-001", university_id="uni-001")
        for product_id in products:
            order.add_item(catalogue.get_product(product_id), 1)
        order.place(delivery_method)
        if paid:
            order.mark_paid()
        current_domain.repository_for(Order).add(order)
        return str(order.id)

    return _place
