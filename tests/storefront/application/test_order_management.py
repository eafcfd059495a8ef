"""Application tests for cancellation, back-office status updates and payment recording."""

import pytest
from protean import current_domain
from protean.exceptions import ValidationError
from storefront.catalogue.product import Product
from storefront.checkout.placement import PlaceOrder
from storefront.errors import InvalidStatusTransition, OrderNotCancellable, OrderNotFound
from storefront.order.cancellation import CancelOrder
from storefront.order.order import Order
from storefront.order.payment import RecordPayment
from storefront.order.status import UpdateOrderStatus


@pytest.fixture()
def placed(make_product, fill_cart, address):
    """A pending order for user-1: 2 x kettle, 1 x mug, from stock 10 each."""
    kettle, mug = make_product(name="Kettle", stock=10), make_product(name="Mug", price=50.0, stock=10)
    fill_cart("user-1", (kettle, 2), (mug, 1))
    order_id = current_domain.process(
        PlaceOrder(user_id="user-1", shipping_address=address),
        asynchronous=False,
    )
    return {"order_id": order_id, "kettle": kettle, "mug": mug}


def _order(order_id):
    return current_domain.repository_for(Order).get(order_id)


def _stock(product_id):
    return current_domain.repository_for(Product).get(product_id).stock


def _set_status(order_id, status, **kwargs):
    current_domain.process(UpdateOrderStatus(order_id=order_id, status=status, **kwargs), asynchronous=False)


class TestCancelOrder:
    def test_cancel_pending_order_restores_stock(self, placed):
        assert _stock(placed["kettle"]) == 8

        current_domain.process(
            CancelOrder(order_id=placed["order_id"], user_id="user-1", reason="Ordered by mistake"),
            asynchronous=False,
        )

        order = _order(placed["order_id"])
        assert order.order_status == "cancelled"
        assert order.cancellation_reason == "Ordered by mistake"
        assert [entry.status for entry in order.timeline()].count("cancelled") == 1
        assert _stock(placed["kettle"]) == 10
        assert _stock(placed["mug"]) == 10
        assert current_domain.repository_for(Product).get(placed["kettle"]).sold_count == 0

    def test_cancel_shipped_order_fails(self, placed):
        for status in ("confirmed", "processing", "shipped"):
            _set_status(placed["order_id"], status)

        with pytest.raises(OrderNotCancellable):
            current_domain.process(CancelOrder(order_id=placed["order_id"], user_id="user-1"), asynchronous=False)

        assert _order(placed["order_id"]).order_status == "shipped"
        assert _stock(placed["kettle"]) == 8

    def test_other_users_cannot_cancel(self, placed):
        with pytest.raises(OrderNotFound):
            current_domain.process(CancelOrder(order_id=placed["order_id"], user_id="user-2"), asynchronous=False)
        assert _order(placed["order_id"]).order_status == "pending"

    def test_back_office_cancel_without_user(self, placed):
        current_domain.process(CancelOrder(order_id=placed["order_id"]), asynchronous=False)
        assert _order(placed["order_id"]).cancellation_reason == "Cancelled by user"

    def test_cancel_paid_order_marks_refunded(self, placed):
        current_domain.process(
            RecordPayment(order_id=placed["order_id"], status="paid", transaction_id="txn-9"),
            asynchronous=False,
        )
        current_domain.process(CancelOrder(order_id=placed["order_id"], user_id="user-1"), asynchronous=False)

        order = _order(placed["order_id"])
        assert order.order_status == "cancelled"
        assert order.payment_status == "refunded"

    def test_unknown_order(self):
        with pytest.raises(OrderNotFound):
            current_domain.process(CancelOrder(order_id="missing", user_id="user-1"), asynchronous=False)


class TestUpdateOrderStatus:
    def test_appends_history_with_comment(self, placed):
        _set_status(placed["order_id"], "confirmed", comment="Payment verified")

        order = _order(placed["order_id"])
        assert order.order_status == "confirmed"
        timeline = order.timeline()
        assert [entry.status for entry in timeline] == ["pending", "confirmed"]
        assert timeline[-1].comment == "Payment verified"

    def test_records_tracking(self, placed):
        _set_status(placed["order_id"], "confirmed")
        _set_status(placed["order_id"], "processing")
        _set_status(
            placed["order_id"],
            "shipped",
            tracking_number="AWB123",
            tracking_url="https://courier.example/AWB123",
        )

        tracking = _order(placed["order_id"]).tracking()
        assert tracking["order_status"] == "shipped"
        assert tracking["tracking_number"] == "AWB123"
        assert len(tracking["status_history"]) == 4

    def test_delivery_sets_delivered_at(self, placed):
        for status in ("confirmed", "processing", "shipped", "out_for_delivery", "delivered"):
            _set_status(placed["order_id"], status)
        assert _order(placed["order_id"]).delivered_at is not None

    def test_invalid_transition(self, placed):
        with pytest.raises(InvalidStatusTransition):
            _set_status(placed["order_id"], "delivered")
        assert len(_order(placed["order_id"]).status_history) == 1

    def test_cancelled_is_not_settable(self, placed):
        with pytest.raises(ValidationError):
            _set_status(placed["order_id"], "cancelled")

    def test_unknown_status(self, placed):
        with pytest.raises(ValidationError):
            _set_status(placed["order_id"], "teleported")


class TestRecordPayment:
    def test_paid(self, placed):
        current_domain.process(
            RecordPayment(
                order_id=placed["order_id"],
                status="paid",
                transaction_id="txn-1",
                gateway_response={"provider": "razorpay", "captured": True},
            ),
            asynchronous=False,
        )
        order = _order(placed["order_id"])
        assert order.payment_status == "paid"
        assert order.payment_details.transaction_id == "txn-1"
        assert order.payment_details.gateway_response["provider"] == "razorpay"
        assert order.payment_details.paid_at is not None
