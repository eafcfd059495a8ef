"""Order notification handler — confirmation message when an order is placed.

Fire-and-forget: a notification failure is logged and never reaches the
checkout that triggered it.
"""

import json

import structlog
from protean import handle

from storefront.domain import storefront
from storefront.notifications.channel import EMAIL, get_channel
from storefront.notifications.templates.order_confirmation import OrderConfirmationTemplate
from storefront.order.events import OrderPlaced
from storefront.order.order import Order

logger = structlog.get_logger(__name__)


@storefront.event_handler(part_of=Order)
class OrderNotificationHandler:
    """Dispatches order confirmations through the configured channel."""

    @handle(OrderPlaced)
    def on_order_placed(self, event: OrderPlaced) -> None:
        try:
            message = OrderConfirmationTemplate.render(
                {
                    "order_number": event.order_number,
                    "total": event.total,
                    "items": json.loads(event.items),
                    "payment_method": event.payment_method,
                }
            )
            result = get_channel(EMAIL).send(
                recipient=str(event.user_id),
                subject=message["subject"],
                body=message["body"],
            )
        except Exception as exc:
            logger.warning(
                "Order confirmation dispatch failed",
                order_id=str(event.order_id),
                error=str(exc),
            )
            return

        if result.get("status") != "sent":
            logger.warning(
                "Order confirmation not delivered",
                order_id=str(event.order_id),
                error=result.get("error"),
            )
            return

        logger.info(
            "Order confirmation sent",
            order_id=str(event.order_id),
            message_id=result.get("message_id"),
        )
