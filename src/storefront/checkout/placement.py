"""Checkout orchestrator — turns a user's cart into a placed order.

Flow (one command, one unit of work):
    1. Shipping address must carry every required field
    2. Cart must hold at least one item
    3. Each product is re-checked: still active, enough stock
    4. Items are frozen at the product's current price
    5. The coupon (argument, or the one applied to the cart) is re-validated
       against the fresh subtotal; a rejected coupon only costs the discount
    6. Stock is reserved item by item
    7. The coupon redemption is committed; losing that race also only costs
       the discount
    8. The order is priced and persisted as pending / payment pending
    9. The cart is emptied
    10. ``OrderPlaced`` triggers the confirmation notification

Stock and coupon are secured before the order row is written. If anything
fails after the first reservation, every reservation made so far is released
and a committed redemption is revoked before the error propagates, on top of
the unit of work rolling back on transactional providers.
"""

from datetime import UTC, datetime
from uuid import uuid4

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Dict, Identifier, String, Text
from protean.utils.globals import current_domain

from storefront.cart.cart import Cart
from storefront.catalogue.product import Product
from storefront.coupon.coupon import Coupon
from storefront.coupon.validation import validate_coupon
from storefront.domain import storefront
from storefront.errors import (
    CouponConflict,
    CouponExpired,
    CouponNotFound,
    CouponNotYetActive,
    EmptyCart,
    IncompleteAddress,
    InsufficientStock,
    MinimumOrderNotMet,
    ProductUnavailable,
    UsageLimitReached,
    UserUsageLimitReached,
)
from storefront.inventory.adjustment import release_stock, reserve_stock
from storefront.order.order import Order, PaymentMethod, ShippingAddress
from storefront.shared.pricing import calculate

logger = structlog.get_logger(__name__)

REQUIRED_ADDRESS_FIELDS = ("full_name", "phone", "address_line1", "city", "state", "zip_code")
ADDRESS_FIELDS = (*REQUIRED_ADDRESS_FIELDS, "address_line2", "country")
DEFAULT_COUNTRY = "India"

# Coupon problems that downgrade checkout to "no coupon" instead of failing it
COUPON_REJECTIONS = (
    CouponNotFound,
    CouponNotYetActive,
    CouponExpired,
    UsageLimitReached,
    UserUsageLimitReached,
    MinimumOrderNotMet,
    CouponConflict,
)


@storefront.command(part_of="Order")
class PlaceOrder:
    user_id = Identifier(required=True)
    shipping_address = Dict()
    payment_method = String(choices=PaymentMethod, default=PaymentMethod.COD.value)
    coupon_code = String(max_length=50)
    notes = Text()


@storefront.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        return place_order(
            user_id=command.user_id,
            shipping_address=command.shipping_address,
            payment_method=command.payment_method,
            coupon_code=command.coupon_code,
            notes=command.notes,
        )


def place_order(user_id, shipping_address, payment_method=None, coupon_code=None, notes=None, now=None) -> str:
    """Check out ``user_id``'s cart and return the new order's id."""
    now = now or datetime.now(UTC)
    address = _complete_address(shipping_address)

    carts = current_domain.repository_for(Cart)
    cart = carts.for_user(user_id)
    if cart is None or not cart.items:
        raise EmptyCart("Cart is empty")

    lines = _freeze_items(cart)
    subtotal = sum(line["price"] * line["quantity"] for line in lines)

    code = coupon_code or cart.coupon_code
    quote = _quote_coupon(code, subtotal, user_id, now) if code else None

    order_id = str(uuid4())
    reserved = []
    redemption = None
    try:
        for line in lines:
            reserve_stock(line["product_id"], line["quantity"])
            reserved.append(line)

        if quote is not None:
            redemption = _redeem(quote.coupon.code, user_id, subtotal, order_id, now)
            if redemption is None:
                quote = None

        breakdown = calculate(
            ((line["price"], line["quantity"]) for line in lines),
            coupon_discount=quote.discount if quote else 0,
        )
        order = Order.place(
            user_id=user_id,
            items_data=lines,
            shipping_address=address,
            payment_method=payment_method,
            notes=notes,
            pricing={
                "subtotal": breakdown.subtotal,
                "discount": breakdown.discount,
                "delivery_charge": breakdown.delivery_charge,
                "tax": 0.0,
                "coupon_code": quote.coupon.code if quote else None,
                "coupon_discount": breakdown.coupon_discount,
                "total": breakdown.total,
            },
            order_id=order_id,
            now=now,
        )
        current_domain.repository_for(Order).add(order)

        cart.clear()
        carts.add(cart)
    except Exception:
        logger.warning(
            "Checkout failed, undoing reservations",
            user_id=str(user_id),
            reserved_items=len(reserved),
            coupon_redeemed=redemption is not None,
        )
        _compensate(reserved, redemption)
        raise

    logger.info(
        "Order placed",
        order_id=order_id,
        order_number=order.order_number,
        user_id=str(user_id),
        total=breakdown.total,
        coupon_code=order.pricing.coupon_code,
    )
    return order_id


def _complete_address(shipping_address) -> dict:
    # Unknown keys are dropped
    address = {
        key: value
        for key, value in (shipping_address or {}).items()
        if key in ADDRESS_FIELDS and value not in (None, "")
    }
    missing = [name for name in REQUIRED_ADDRESS_FIELDS if not str(address.get(name, "")).strip()]
    if missing:
        raise IncompleteAddress("Please provide complete shipping address", missing=missing)
    address.setdefault("country", DEFAULT_COUNTRY)

    # Field limits are checked here too, before any stock is touched
    ShippingAddress(**address)
    return address


def _freeze_items(cart) -> list[dict]:
    """Re-check every cart line against the live product and price it now."""
    products = current_domain.repository_for(Product)
    lines = []
    for item in cart.items:
        try:
            product = products.get(item.product_id)
        except ObjectNotFoundError:
            raise ProductUnavailable(
                "A product in your cart is no longer available",
                product_id=str(item.product_id),
            ) from None

        if not product.is_active:
            raise ProductUnavailable(
                f"{product.name} is no longer available",
                product_id=str(product.id),
                product_name=product.name,
            )
        if product.stock < item.quantity:
            raise InsufficientStock(
                f"Insufficient stock for {product.name}",
                product_id=str(product.id),
                product_name=product.name,
                available=product.stock,
                requested=item.quantity,
            )

        lines.append(
            {
                "product_id": str(product.id),
                "name": product.name,
                "image": product.image,
                "price": product.final_price,
                "quantity": item.quantity,
            }
        )
    return lines


def _quote_coupon(code, subtotal, user_id, now):
    try:
        return validate_coupon(code, subtotal, user_id, now)
    except COUPON_REJECTIONS as exc:
        logger.info("Coupon not applied at checkout", coupon_code=code, user_id=str(user_id), reason=exc.code)
        return None


def _redeem(code, user_id, subtotal, order_id, now):
    try:
        return current_domain.repository_for(Coupon).redeem(code, user_id, subtotal, order_id=order_id, now=now)
    except COUPON_REJECTIONS as exc:
        logger.info("Coupon redemption lost, placing order without it", coupon_code=code, reason=exc.code)
        return None


def _compensate(reserved, redemption):
    """Best-effort undo; every step is attempted even if an earlier one fails."""
    for line in reversed(reserved):
        try:
            release_stock(line["product_id"], line["quantity"])
        except Exception:
            logger.exception("Could not release reserved stock", product_id=line["product_id"])

    if redemption is not None:
        try:
            current_domain.repository_for(Coupon).revoke(redemption)
        except Exception:
            logger.exception("Could not revoke coupon redemption", coupon_code=redemption.code)
