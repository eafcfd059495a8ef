"""Order cancellation — command and handler.

Cancelling returns every item's quantity to stock within the same unit of
work, so an order is never cancelled without its stock coming back.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.inventory.adjustment import release_stock
from storefront.order.order import Order

logger = structlog.get_logger(__name__)


@storefront.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    user_id = Identifier()  # Omitted for back-office cancellations
    reason = String(max_length=500)


@storefront.command_handler(part_of=Order)
class CancelOrderHandler:
    @handle(CancelOrder)
    def cancel_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get_owned(command.order_id, command.user_id)
        order.cancel(reason=command.reason)

        for item in order.items:
            release_stock(item.product_id, item.quantity)

        repo.add(order)
        logger.info(
            "Order cancelled",
            order_id=str(order.id),
            order_number=order.order_number,
            payment_status=order.payment_status,
        )
