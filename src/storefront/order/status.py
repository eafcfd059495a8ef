"""Back-office order status updates — command and handler.

Statuses follow the order state machine. Cancellation is not available
here: it goes through ``CancelOrder`` so stock is returned.
"""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.order.order import Order, OrderStatus

# Statuses an administrator can move an order into
ADMIN_SETTABLE_STATUSES = (
    OrderStatus.CONFIRMED,
    OrderStatus.PROCESSING,
    OrderStatus.SHIPPED,
    OrderStatus.OUT_FOR_DELIVERY,
    OrderStatus.DELIVERED,
)


@storefront.command(part_of="Order")
class UpdateOrderStatus:
    order_id = Identifier(required=True)
    status = String(required=True, choices=OrderStatus)
    comment = String(max_length=500)
    tracking_number = String(max_length=255)
    tracking_url = String(max_length=500)


@storefront.command_handler(part_of=Order)
class UpdateOrderStatusHandler:
    @handle(UpdateOrderStatus)
    def update_status(self, command):
        target = OrderStatus(command.status)
        if target not in ADMIN_SETTABLE_STATUSES:
            raise ValidationError({"status": [f"Status cannot be set to {target.value} directly"]})

        repo = current_domain.repository_for(Order)
        order = repo.get_owned(command.order_id)
        order.update_tracking(command.tracking_number, command.tracking_url)
        order.transition_to(target, comment=command.comment)
        repo.add(order)
