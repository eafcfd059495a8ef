"""Order aggregate (CQRS) — a placed order and its fulfilment lifecycle.

Items, address and pricing are frozen when the order is placed; later
catalogue changes never reach them. Every status change appends one entry
to ``status_history``, which is never rewritten.

State Machine:
    pending → confirmed → processing → shipped → out_for_delivery → delivered
    pending | confirmed | processing → cancelled
    any non-terminal state → returned
    delivered, cancelled and returned are terminal.
"""

import json
from datetime import UTC, datetime, timedelta
from enum import Enum
from uuid import uuid4

from protean.exceptions import ObjectNotFoundError
from protean.fields import (
    DateTime,
    Dict,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from storefront.domain import storefront
from storefront.errors import InvalidPaymentTransition, InvalidStatusTransition, OrderNotCancellable, OrderNotFound
from storefront.order.events import OrderCancelled, OrderPlaced, OrderStatusChanged, PaymentStatusChanged

EXPECTED_DELIVERY_DAYS = 5
ORDER_NUMBER_PREFIX = "ORD"

_BASE36_DIGITS = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    RETURNED = "returned"


class PaymentStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentMethod(Enum):
    COD = "cod"
    CARD = "card"
    UPI = "upi"
    NETBANKING = "netbanking"
    WALLET = "wallet"
    ONLINE = "online"


# State machine transition map
_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED, OrderStatus.RETURNED},
    OrderStatus.CONFIRMED: {OrderStatus.PROCESSING, OrderStatus.CANCELLED, OrderStatus.RETURNED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED, OrderStatus.RETURNED},
    OrderStatus.SHIPPED: {OrderStatus.OUT_FOR_DELIVERY, OrderStatus.RETURNED},
    OrderStatus.OUT_FOR_DELIVERY: {OrderStatus.DELIVERED, OrderStatus.RETURNED},
    OrderStatus.DELIVERED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
    OrderStatus.RETURNED: set(),  # Terminal
}

# States from which cancellation is allowed
_CANCELLABLE_STATES = {
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PROCESSING,
}

_PAYMENT_TRANSITIONS = {
    PaymentStatus.PENDING: {PaymentStatus.PAID, PaymentStatus.FAILED},
    PaymentStatus.FAILED: {PaymentStatus.PAID, PaymentStatus.PENDING},
    PaymentStatus.PAID: {PaymentStatus.REFUNDED},
    PaymentStatus.REFUNDED: set(),
}


def _base36(number):
    digits = []
    while True:
        number, remainder = divmod(number, 36)
        digits.append(_BASE36_DIGITS[remainder])
        if number == 0:
            return "".join(reversed(digits))


def generate_order_number(now=None):
    """Human-readable order number: prefix, base-36 millisecond timestamp, random suffix.

    The 48-bit random suffix keeps numbers unique even when many orders share a
    millisecond.
    """
    now = now or datetime.now(UTC)
    millis = int(now.timestamp() * 1000)
    return f"{ORDER_NUMBER_PREFIX}-{_base36(millis)}-{uuid4().hex[:12].upper()}"


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@storefront.value_object(part_of="Order")
class ShippingAddress:
    """Where the order goes, captured at checkout and never updated."""

    full_name = String(required=True, max_length=255)
    phone = String(required=True, max_length=30)
    address_line1 = String(required=True, max_length=255)
    address_line2 = String(max_length=255)
    city = String(required=True, max_length=100)
    state = String(required=True, max_length=100)
    zip_code = String(required=True, max_length=20)
    country = String(max_length=100, default="India")


@storefront.value_object(part_of="Order")
class OrderPricing:
    """Money breakdown settled at checkout. Tax is stored, never computed."""

    subtotal = Float(default=0.0)
    discount = Float(default=0.0)
    delivery_charge = Float(default=0.0)
    tax = Float(default=0.0)
    coupon_code = String(max_length=50)
    coupon_discount = Float(default=0.0)
    total = Float(default=0.0)


@storefront.value_object(part_of="Order")
class PaymentDetails:
    transaction_id = String(max_length=255)
    paid_at = DateTime()
    gateway_response = Dict()  # Opaque payload from the payment provider


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@storefront.entity(part_of="Order")
class OrderItem:
    """A product line frozen at the price charged when the order was placed."""

    product_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    image = String(max_length=500)
    price = Float(required=True, min_value=0.0)
    quantity = Integer(required=True, min_value=1)


@storefront.entity(part_of="Order")
class StatusEntry:
    status = String(required=True, choices=OrderStatus)
    comment = String(max_length=500)
    sequence = Integer(required=True)
    recorded_at = DateTime(required=True)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@storefront.aggregate
class Order:
    order_number = String(required=True, max_length=50, unique=True)
    user_id = Identifier(required=True)
    items = HasMany(OrderItem)
    shipping_address = ValueObject(ShippingAddress)
    payment_method = String(choices=PaymentMethod, default=PaymentMethod.COD.value)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    payment_details = ValueObject(PaymentDetails)
    order_status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    status_history = HasMany(StatusEntry)
    pricing = ValueObject(OrderPricing)
    notes = Text()
    expected_delivery = DateTime()
    delivered_at = DateTime()
    tracking_number = String(max_length=255)
    tracking_url = String(max_length=500)
    cancellation_reason = String(max_length=500)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        user_id,
        items_data,
        shipping_address,
        pricing,
        payment_method=PaymentMethod.COD.value,
        notes=None,
        order_id=None,
        now=None,
    ):
        """Create a pending order from checkout data.

        Args:
            user_id: The buyer.
            items_data: List of dicts with product_id, name, image, price, quantity.
            shipping_address: Dict matching ShippingAddress.
            pricing: Dict matching OrderPricing.
            order_id: Optional pre-assigned identity, so related records can
                reference the order before it is persisted.
        """
        now = now or datetime.now(UTC)
        identity = {"id": order_id} if order_id else {}

        order = cls(
            **identity,
            order_number=generate_order_number(now),
            user_id=user_id,
            shipping_address=ShippingAddress(**shipping_address),
            payment_method=payment_method or PaymentMethod.COD.value,
            payment_status=PaymentStatus.PENDING.value,
            order_status=OrderStatus.PENDING.value,
            pricing=OrderPricing(**pricing),
            notes=notes,
            expected_delivery=now + timedelta(days=EXPECTED_DELIVERY_DAYS),
            created_at=now,
            updated_at=now,
        )
        for item in items_data:
            order.add_items(OrderItem(**item))
        order._record(OrderStatus.PENDING, "Order placed", now)

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                order_number=order.order_number,
                user_id=str(user_id),
                items=json.dumps(
                    [
                        {
                            "product_id": str(item["product_id"]),
                            "name": item["name"],
                            "price": item["price"],
                            "quantity": item["quantity"],
                        }
                        for item in items_data
                    ]
                ),
                total=order.pricing.total,
                payment_method=order.payment_method,
                coupon_code=order.pricing.coupon_code,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Status history
    # -------------------------------------------------------------------
    def _record(self, status, comment, now):
        self.add_status_history(
            StatusEntry(
                status=status.value,
                comment=comment,
                sequence=len(self.status_history or []) + 1,
                recorded_at=now,
            )
        )

    def timeline(self):
        """Status history, oldest first."""
        return sorted(self.status_history or [], key=lambda entry: entry.sequence)

    # -------------------------------------------------------------------
    # Lifecycle transitions
    # -------------------------------------------------------------------
    def can_transition_to(self, target_status):
        return target_status in _VALID_TRANSITIONS.get(OrderStatus(self.order_status), set())

    def transition_to(self, target_status, comment=None, now=None):
        """Move to ``target_status`` if the state machine allows it."""
        current = OrderStatus(self.order_status)
        if not self.can_transition_to(target_status):
            raise InvalidStatusTransition(
                f"Cannot transition from {current.value} to {target_status.value}",
                order_status=current.value,
                requested=target_status.value,
            )

        now = now or datetime.now(UTC)
        self.order_status = target_status.value
        if target_status == OrderStatus.DELIVERED:
            self.delivered_at = now
        self.updated_at = now
        self._record(target_status, comment, now)

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                order_number=self.order_number,
                from_status=current.value,
                to_status=target_status.value,
                comment=comment,
                changed_at=now,
            )
        )

    def update_tracking(self, tracking_number=None, tracking_url=None):
        if tracking_number:
            self.tracking_number = tracking_number
        if tracking_url:
            self.tracking_url = tracking_url

    def cancel(self, reason=None, now=None):
        """Cancel the order. A paid order is marked refunded.

        The caller is responsible for returning the items' stock.
        """
        current = OrderStatus(self.order_status)
        if current not in _CANCELLABLE_STATES:
            raise OrderNotCancellable(
                f"Order cannot be cancelled when {current.value}. Cancellation is allowed only in: "
                + ", ".join(s.value for s in OrderStatus if s in _CANCELLABLE_STATES),
                order_status=current.value,
            )

        now = now or datetime.now(UTC)
        comment = reason or "Cancelled by user"
        self.order_status = OrderStatus.CANCELLED.value
        self.cancellation_reason = comment
        self.updated_at = now
        self._record(OrderStatus.CANCELLED, comment, now)

        refunded = PaymentStatus(self.payment_status) == PaymentStatus.PAID
        if refunded:
            self.payment_status = PaymentStatus.REFUNDED.value

        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                order_number=self.order_number,
                user_id=str(self.user_id),
                reason=comment,
                items=json.dumps(
                    [{"product_id": str(item.product_id), "quantity": item.quantity} for item in self.items]
                ),
                refunded=refunded,
                cancelled_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Payment
    # -------------------------------------------------------------------
    def record_payment(self, status, transaction_id=None, gateway_response=None, now=None):
        """Record a payment status reported by the payment collaborator."""
        current = PaymentStatus(self.payment_status)
        target = PaymentStatus(status)
        if target not in _PAYMENT_TRANSITIONS[current]:
            raise InvalidPaymentTransition(
                f"Cannot change payment status from {current.value} to {target.value}",
                payment_status=current.value,
                requested=target.value,
            )

        now = now or datetime.now(UTC)
        previous = self.payment_details
        self.payment_details = PaymentDetails(
            transaction_id=transaction_id or (previous.transaction_id if previous else None),
            paid_at=now if target == PaymentStatus.PAID else (previous.paid_at if previous else None),
            gateway_response=gateway_response
            if gateway_response is not None
            else ((previous.gateway_response if previous else None) or {}),
        )
        self.payment_status = target.value
        self.updated_at = now

        self.raise_(
            PaymentStatusChanged(
                order_id=str(self.id),
                from_status=current.value,
                to_status=target.value,
                transaction_id=self.payment_details.transaction_id,
                changed_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------
    def tracking(self):
        return {
            "order_number": self.order_number,
            "order_status": self.order_status,
            "status_history": [
                {"status": entry.status, "comment": entry.comment, "timestamp": entry.recorded_at}
                for entry in self.timeline()
            ],
            "expected_delivery": self.expected_delivery,
            "delivered_at": self.delivered_at,
            "tracking_number": self.tracking_number,
            "tracking_url": self.tracking_url,
        }


@storefront.repository(part_of=Order)
class OrderRepository:
    def find_by_order_number(self, order_number) -> Order | None:
        results = self._dao.query.filter(order_number=order_number).all()
        return results.first if results and results.items else None

    def for_user(self, user_id, status=None, page=1, limit=10):
        """The user's orders, newest first."""
        criteria = {"user_id": str(user_id)}
        if status:
            criteria["order_status"] = status
        return self._page(criteria, page, limit)

    def search(self, status=None, order_number=None, page=1, limit=20):
        criteria = {}
        if status:
            criteria["order_status"] = status
        if order_number:
            criteria["order_number__contains"] = order_number.strip().upper()
        return self._page(criteria, page, limit)

    def _page(self, criteria, page, limit):
        page = max(page or 1, 1)
        return (
            self._dao.query.filter(**criteria).order_by("-created_at").offset((page - 1) * limit).limit(limit).all()
        )

    def get_owned(self, order_id, user_id=None) -> Order:
        """Load an order, hiding orders that belong to somebody else."""
        try:
            order = self.get(order_id)
        except ObjectNotFoundError:
            raise OrderNotFound("Order not found", order_id=str(order_id)) from None
        if user_id is not None and str(order.user_id) != str(user_id):
            raise OrderNotFound("Order not found", order_id=str(order_id))
        return order
