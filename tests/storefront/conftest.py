from datetime import UTC, datetime, timedelta

import pytest
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def storefront_bed():
    from storefront.domain import storefront

    bed = DomainFixture(storefront)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(scope="session", autouse=True)
def setup_db(storefront_bed):
    from storefront.domain import storefront
    from storefront.utils.db import drop_db, setup_db

    setup_db(storefront)

    yield

    drop_db(storefront)


@pytest.fixture(autouse=True)
def _ctx(storefront_bed):
    with storefront_bed.domain_context():
        yield

        from protean import current_domain

        for _, provider in current_domain.providers.items():
            provider._data_reset()

        current_domain.event_store.store._data_reset()


@pytest.fixture(autouse=True)
def notifier():
    """The fake email adapter, fresh for every test."""
    from storefront.notifications.channel import get_channel, reset_channels

    reset_channels()
    yield get_channel()
    reset_channels()


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------
@pytest.fixture()
def make_product():
    from protean import current_domain
    from storefront.catalogue.product import Product

    def _make(name="Test Product", price=100.0, discount=0.0, stock=10, image=None):
        product = Product.create(name=name, price=price, discount=discount, stock=stock, image=image)
        current_domain.repository_for(Product).add(product)
        return str(product.id)

    return _make


@pytest.fixture()
def make_coupon():
    from protean import current_domain
    from storefront.coupon.coupon import Coupon

    def _make(code="SAVE10", discount_type="percentage", discount_value=10.0, **overrides):
        now = datetime.now(UTC)
        terms = {
            "valid_from": now - timedelta(days=1),
            "valid_until": now + timedelta(days=30),
        }
        terms.update(overrides)
        coupon = Coupon.create(code=code, discount_type=discount_type, discount_value=discount_value, **terms)
        current_domain.repository_for(Coupon).add(coupon)
        return str(coupon.id)

    return _make


@pytest.fixture()
def fill_cart():
    """Put ``(product_id, quantity)`` lines into a user's cart through the AddToCart command."""
    from protean import current_domain
    from storefront.cart.items import AddToCart

    def _fill(user_id, *lines):
        cart_id = None
        for product_id, quantity in lines:
            cart_id = current_domain.process(
                AddToCart(user_id=user_id, product_id=product_id, quantity=quantity),
                asynchronous=False,
            )
        return cart_id

    return _fill


@pytest.fixture()
def address():
    return {
        "full_name": "Asha Rao",
        "phone": "9876543210",
        "address_line1": "12 MG Road",
        "city": "Bengaluru",
        "state": "Karnataka",
        "zip_code": "560001",
    }
