"""Payment status updates — command and handler.

Gateway integration lives elsewhere; this records what it reports.
"""

from protean import handle
from protean.fields import Dict, Identifier, String
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.order.order import Order, PaymentStatus


@storefront.command(part_of="Order")
class RecordPayment:
    order_id = Identifier(required=True)
    status = String(required=True, choices=PaymentStatus)
    transaction_id = String(max_length=255)
    gateway_response = Dict()


@storefront.command_handler(part_of=Order)
class RecordPaymentHandler:
    @handle(RecordPayment)
    def record_payment(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get_owned(command.order_id)
        order.record_payment(
            command.status,
            transaction_id=command.transaction_id,
            gateway_response=command.gateway_response,
        )
        repo.add(order)
