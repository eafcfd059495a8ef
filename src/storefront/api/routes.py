"""FastAPI routes for the Storefront — cart, orders and the admin back office."""

import math

from fastapi import APIRouter, Depends, Query
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from storefront.api.dependencies import current_user_id, require_admin
from storefront.api.schemas import (
    AddToCartRequest,
    ApplyCouponRequest,
    CancelOrderRequest,
    CartItemResponse,
    CartResponse,
    CouponIdResponse,
    CouponQuoteResponse,
    CouponResponse,
    CreateCouponRequest,
    CreateProductRequest,
    OrderItemResponse,
    OrderListResponse,
    OrderResponse,
    PaymentDetailsResponse,
    PlaceOrderRequest,
    PricingResponse,
    ProductIdResponse,
    ProductSummarySchema,
    RecordPaymentRequest,
    RestockRequest,
    ShippingAddressSchema,
    StatusEntryResponse,
    StatusResponse,
    StockResponse,
    TrackingResponse,
    UpdateCartItemRequest,
    UpdateCouponRequest,
    UpdateOrderStatusRequest,
    UpdateProductPricingRequest,
    ValidateCouponRequest,
)
from storefront.cart.cart import Cart
from storefront.cart.coupons import ApplyCouponToCart, RemoveCouponFromCart
from storefront.cart.items import AddToCart, ClearCart, RemoveFromCart, UpdateCartItem
from storefront.catalogue.management import AddProduct, DeactivateProduct, UpdateProductPricing
from storefront.catalogue.product import Product
from storefront.checkout.placement import PlaceOrder
from storefront.coupon.coupon import Coupon
from storefront.coupon.management import CreateCoupon, DeactivateCoupon, UpdateCoupon
from storefront.coupon.validation import validate_coupon
from storefront.errors import OrderNotFound
from storefront.inventory.adjustment import RestockProduct
from storefront.order.cancellation import CancelOrder
from storefront.order.order import Order
from storefront.order.payment import RecordPayment
from storefront.order.status import UpdateOrderStatus


# ---------------------------------------------------------------------------
# Serializers
# ---------------------------------------------------------------------------
def _product_summary(product_id) -> ProductSummarySchema | None:
    try:
        product = current_domain.repository_for(Product).get(str(product_id))
    except ObjectNotFoundError:
        return None
    return ProductSummarySchema(**product.summary())


def _cart_response(cart) -> CartResponse:
    return CartResponse(
        id=str(cart.id),
        user_id=str(cart.user_id),
        items=[
            CartItemResponse(
                product_id=str(item.product_id),
                quantity=item.quantity,
                price=item.price,
                product=_product_summary(item.product_id),
            )
            for item in cart.items
        ],
        coupon_code=cart.coupon_code,
        coupon_discount=cart.coupon_discount,
        total_items=cart.total_items,
        subtotal=cart.subtotal,
        discount=cart.discount,
        delivery_charge=cart.delivery_charge,
        total=cart.total,
    )


def _user_cart(user_id) -> CartResponse:
    return _cart_response(current_domain.repository_for(Cart).get_or_create(user_id))


def _timeline(order) -> list[StatusEntryResponse]:
    return [StatusEntryResponse(**entry) for entry in order.tracking()["status_history"]]


def _order_response(order) -> OrderResponse:
    details = order.payment_details
    return OrderResponse(
        id=str(order.id),
        order_number=order.order_number,
        user_id=str(order.user_id),
        items=[
            OrderItemResponse(
                product_id=str(item.product_id),
                name=item.name,
                image=item.image,
                price=item.price,
                quantity=item.quantity,
            )
            for item in order.items
        ],
        shipping_address=ShippingAddressSchema(**order.shipping_address.to_dict()),
        payment_method=order.payment_method,
        payment_status=order.payment_status,
        payment_details=PaymentDetailsResponse(
            transaction_id=details.transaction_id,
            paid_at=details.paid_at,
            gateway_response=details.gateway_response,
        )
        if details
        else None,
        order_status=order.order_status,
        status_history=_timeline(order),
        pricing=PricingResponse(**order.pricing.to_dict()),
        notes=order.notes,
        expected_delivery=order.expected_delivery,
        delivered_at=order.delivered_at,
        tracking_number=order.tracking_number,
        tracking_url=order.tracking_url,
        cancellation_reason=order.cancellation_reason,
        created_at=order.created_at,
    )


def _order_list(results, page, limit) -> OrderListResponse:
    return OrderListResponse(
        orders=[_order_response(order) for order in results.items],
        total=results.total,
        page=page,
        pages=math.ceil(results.total / limit) if results.total else 0,
    )


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/cart", tags=["cart"])


@cart_router.get("", response_model=CartResponse)
async def get_cart(user_id: str = Depends(current_user_id)) -> CartResponse:
    return _user_cart(user_id)


@cart_router.post("/add", response_model=CartResponse)
async def add_to_cart(body: AddToCartRequest, user_id: str = Depends(current_user_id)) -> CartResponse:
    command = AddToCart(
        user_id=user_id,
        product_id=body.product_id,
        quantity=body.quantity,
    )
    current_domain.process(command, asynchronous=False)
    return _user_cart(user_id)


@cart_router.put("/update", response_model=CartResponse)
async def update_cart_item(body: UpdateCartItemRequest, user_id: str = Depends(current_user_id)) -> CartResponse:
    command = UpdateCartItem(
        user_id=user_id,
        product_id=body.product_id,
        quantity=body.quantity,
    )
    current_domain.process(command, asynchronous=False)
    return _user_cart(user_id)


@cart_router.delete("/remove/{product_id}", response_model=CartResponse)
async def remove_from_cart(product_id: str, user_id: str = Depends(current_user_id)) -> CartResponse:
    command = RemoveFromCart(user_id=user_id, product_id=product_id)
    current_domain.process(command, asynchronous=False)
    return _user_cart(user_id)


@cart_router.delete("/clear", response_model=CartResponse)
async def clear_cart(user_id: str = Depends(current_user_id)) -> CartResponse:
    current_domain.process(ClearCart(user_id=user_id), asynchronous=False)
    return _user_cart(user_id)


@cart_router.post("/apply-coupon", response_model=CartResponse)
async def apply_cart_coupon(body: ApplyCouponRequest, user_id: str = Depends(current_user_id)) -> CartResponse:
    command = ApplyCouponToCart(user_id=user_id, code=body.code)
    current_domain.process(command, asynchronous=False)
    return _user_cart(user_id)


@cart_router.delete("/remove-coupon", response_model=CartResponse)
async def remove_cart_coupon(user_id: str = Depends(current_user_id)) -> CartResponse:
    current_domain.process(RemoveCouponFromCart(user_id=user_id), asynchronous=False)
    return _user_cart(user_id)


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderResponse)
async def place_order(body: PlaceOrderRequest, user_id: str = Depends(current_user_id)) -> OrderResponse:
    command = PlaceOrder(
        user_id=user_id,
        shipping_address=body.shipping_address.model_dump(exclude_none=True),
        payment_method=body.payment_method,
        coupon_code=body.coupon_code,
        notes=body.notes,
    )
    order_id = current_domain.process(command, asynchronous=False)
    return _order_response(current_domain.repository_for(Order).get(order_id))


@order_router.get("", response_model=OrderListResponse)
async def list_my_orders(
    status: str | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    user_id: str = Depends(current_user_id),
) -> OrderListResponse:
    results = current_domain.repository_for(Order).for_user(user_id, status=status, page=page, limit=limit)
    return _order_list(results, page, limit)


@order_router.post("/validate-coupon", response_model=CouponQuoteResponse)
async def check_coupon(body: ValidateCouponRequest, user_id: str = Depends(current_user_id)) -> CouponQuoteResponse:
    quote = validate_coupon(body.code, body.total, user_id)
    return CouponQuoteResponse(
        code=quote.coupon.code,
        description=quote.coupon.description,
        discount_type=quote.coupon.discount_type,
        discount_value=quote.coupon.discount_value,
        discount=quote.discount,
    )


@order_router.get("/track/{order_number}", response_model=TrackingResponse)
async def track_order(order_number: str, user_id: str = Depends(current_user_id)) -> TrackingResponse:
    order = current_domain.repository_for(Order).find_by_order_number(order_number)
    if order is None or str(order.user_id) != user_id:
        raise OrderNotFound("Order not found", order_number=order_number)
    return TrackingResponse(**order.tracking())


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_my_order(order_id: str, user_id: str = Depends(current_user_id)) -> OrderResponse:
    return _order_response(current_domain.repository_for(Order).get_owned(order_id, user_id))


@order_router.put("/{order_id}/cancel", response_model=OrderResponse)
async def cancel_my_order(
    order_id: str,
    body: CancelOrderRequest | None = None,
    user_id: str = Depends(current_user_id),
) -> OrderResponse:
    command = CancelOrder(
        order_id=order_id,
        user_id=user_id,
        reason=body.reason if body else None,
    )
    current_domain.process(command, asynchronous=False)
    return _order_response(current_domain.repository_for(Order).get(order_id))


# ---------------------------------------------------------------------------
# Admin Router
# ---------------------------------------------------------------------------
admin_router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


@admin_router.get("/orders", response_model=OrderListResponse)
async def search_orders(
    status: str | None = None,
    search: str | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
) -> OrderListResponse:
    results = current_domain.repository_for(Order).search(status=status, order_number=search, page=page, limit=limit)
    return _order_list(results, page, limit)


@admin_router.get("/orders/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str) -> OrderResponse:
    return _order_response(current_domain.repository_for(Order).get_owned(order_id))


@admin_router.put("/orders/{order_id}/status", response_model=OrderResponse)
async def update_order_status(order_id: str, body: UpdateOrderStatusRequest) -> OrderResponse:
    command = UpdateOrderStatus(
        order_id=order_id,
        status=body.status,
        comment=body.comment,
        tracking_number=body.tracking_number,
        tracking_url=body.tracking_url,
    )
    current_domain.process(command, asynchronous=False)
    return _order_response(current_domain.repository_for(Order).get(order_id))


@admin_router.put("/orders/{order_id}/payment", response_model=OrderResponse)
async def record_payment(order_id: str, body: RecordPaymentRequest) -> OrderResponse:
    command = RecordPayment(
        order_id=order_id,
        status=body.status,
        transaction_id=body.transaction_id,
        gateway_response=body.gateway_response,
    )
    current_domain.process(command, asynchronous=False)
    return _order_response(current_domain.repository_for(Order).get(order_id))


@admin_router.put("/orders/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order(order_id: str, body: CancelOrderRequest | None = None) -> OrderResponse:
    command = CancelOrder(order_id=order_id, reason=body.reason if body else None)
    current_domain.process(command, asynchronous=False)
    return _order_response(current_domain.repository_for(Order).get(order_id))


@admin_router.get("/coupons", response_model=list[CouponResponse])
async def list_coupons(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=200),
) -> list[CouponResponse]:
    results = current_domain.repository_for(Coupon).list_all(offset=(page - 1) * limit, limit=limit)
    return [CouponResponse(**coupon.summary()) for coupon in results.items]


@admin_router.post("/coupons", status_code=201, response_model=CouponIdResponse)
async def create_coupon(body: CreateCouponRequest) -> CouponIdResponse:
    command = CreateCoupon(**body.model_dump(exclude_none=True))
    coupon_id = current_domain.process(command, asynchronous=False)
    return CouponIdResponse(coupon_id=coupon_id)


@admin_router.put("/coupons/{coupon_id}", response_model=CouponResponse)
async def update_coupon(coupon_id: str, body: UpdateCouponRequest) -> CouponResponse:
    command = UpdateCoupon(coupon_id=coupon_id, **body.model_dump(exclude_none=True))
    current_domain.process(command, asynchronous=False)
    return CouponResponse(**current_domain.repository_for(Coupon).get(coupon_id).summary())


@admin_router.delete("/coupons/{coupon_id}", response_model=StatusResponse)
async def deactivate_coupon(coupon_id: str) -> StatusResponse:
    current_domain.process(DeactivateCoupon(coupon_id=coupon_id), asynchronous=False)
    return StatusResponse()


@admin_router.post("/products", status_code=201, response_model=ProductIdResponse)
async def add_product(body: CreateProductRequest) -> ProductIdResponse:
    command = AddProduct(
        name=body.name,
        price=body.price,
        discount=body.discount,
        stock=body.stock,
        image=body.image,
    )
    product_id = current_domain.process(command, asynchronous=False)
    return ProductIdResponse(product_id=product_id)


@admin_router.put("/products/{product_id}/pricing", response_model=StatusResponse)
async def update_product_pricing(product_id: str, body: UpdateProductPricingRequest) -> StatusResponse:
    command = UpdateProductPricing(product_id=product_id, price=body.price, discount=body.discount)
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@admin_router.put("/products/{product_id}/restock", response_model=StockResponse)
async def restock_product(product_id: str, body: RestockRequest) -> StockResponse:
    command = RestockProduct(product_id=product_id, quantity=body.quantity)
    stock = current_domain.process(command, asynchronous=False)
    return StockResponse(product_id=product_id, stock=stock)


@admin_router.put("/products/{product_id}/deactivate", response_model=StatusResponse)
async def deactivate_product(product_id: str) -> StatusResponse:
    current_domain.process(DeactivateProduct(product_id=product_id), asynchronous=False)
    return StatusResponse()
