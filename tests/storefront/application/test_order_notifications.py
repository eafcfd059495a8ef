"""Application tests for the order confirmation notification."""

from protean import current_domain
from storefront.checkout.placement import PlaceOrder
from storefront.order.order import Order


def _checkout(make_product, fill_cart, address):
    fill_cart("user-7", (make_product(name="Kettle", price=600.0), 1))
    order_id = current_domain.process(PlaceOrder(user_id="user-7", shipping_address=address), asynchronous=False)
    return current_domain.repository_for(Order).get(order_id)


class TestOrderConfirmation:
    def test_confirmation_sent_to_buyer(self, make_product, fill_cart, address, notifier):
        order = _checkout(make_product, fill_cart, address)

        assert len(notifier.sent_messages) == 1
        message = notifier.sent_messages[0]
        assert message["recipient"] == "user-7"
        assert message["subject"] == f"Order Confirmation - {order.order_number}"
        assert "Kettle x 1" in message["body"]
        assert "Order Total: 600" in message["body"]

    def test_adapter_exception_does_not_fail_checkout(self, make_product, fill_cart, address, notifier):
        notifier.configure(should_raise=True, failure_reason="SMTP down")

        order = _checkout(make_product, fill_cart, address)

        assert order.order_status == "pending"
        assert notifier.sent_messages == []

    def test_rejected_delivery_does_not_fail_checkout(self, make_product, fill_cart, address, notifier):
        notifier.configure(should_succeed=False)

        order = _checkout(make_product, fill_cart, address)

        assert order.order_status == "pending"
        assert notifier.sent_messages == []
