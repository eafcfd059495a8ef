"""Shared BDD fixtures and step definitions for the storefront."""

import pytest
from protean import current_domain
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, then
from storefront.catalogue.product import Product
from storefront.checkout.placement import PlaceOrder
from storefront.order.order import Order


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def error():
    """Container for captured domain errors."""
    return {"exc": None}


@pytest.fixture()
def catalogue():
    """Product ids by name."""
    return {}


@pytest.fixture()
def placed():
    """The order produced by the scenario, if any."""
    return {"order_id": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a product "{name}" priced {price:f} with {stock:d} in stock'))
def product_in_stock(make_product, catalogue, name, price, stock):
    catalogue[name] = make_product(name=name, price=price, stock=stock)


@given(parsers.cfparse('"{user}" has {quantity:d} x "{name}" in the cart'))
def user_cart(fill_cart, catalogue, user, quantity, name):
    fill_cart(user, (catalogue[name], quantity))


@given(parsers.cfparse('"{user}" has placed an order'))
def user_placed_order(placed, address, user):
    placed["order_id"] = current_domain.process(
        PlaceOrder(user_id=user, shipping_address=address),
        asynchronous=False,
    )


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the stock of "{name}" is {stock:d}'))
def stock_is(catalogue, name, stock):
    assert current_domain.repository_for(Product).get(catalogue[name]).stock == stock


@then(parsers.cfparse('the order status is "{status}"'))
def order_status_is(placed, status):
    assert current_domain.repository_for(Order).get(placed["order_id"]).order_status == status


@then(parsers.cfparse('the request fails with "{code}"'))
def request_fails_with(error, code):
    assert isinstance(error["exc"], ValidationError)
    assert type(error["exc"]).__name__ == code
