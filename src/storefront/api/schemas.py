"""Pydantic request/response schemas for the Storefront API.

These are external contracts (anti-corruption layer) — separate from
internal Protean commands.
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class ShippingAddressSchema(BaseModel):
    # Completeness is checked by checkout so the client gets the list of
    # missing fields in one IncompleteAddress error.
    full_name: str | None = None
    phone: str | None = None
    address_line1: str | None = None
    address_line2: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    country: str = "India"


class ProductSummarySchema(BaseModel):
    id: str
    name: str
    image: str | None = None
    price: float
    discount: float = 0.0
    final_price: float
    stock: int


# ---------------------------------------------------------------------------
# Cart Request Schemas
# ---------------------------------------------------------------------------
class AddToCartRequest(BaseModel):
    product_id: str
    quantity: int = 1

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "product_id": "0b6d2e4c-0c1f-4d8b-9a51-3f7c2a9e1d10",
                    "quantity": 2,
                }
            ]
        }
    }


class UpdateCartItemRequest(BaseModel):
    product_id: str
    quantity: int


class ApplyCouponRequest(BaseModel):
    code: str


# ---------------------------------------------------------------------------
# Order Request Schemas
# ---------------------------------------------------------------------------
class PlaceOrderRequest(BaseModel):
    shipping_address: ShippingAddressSchema
    payment_method: str = "cod"
    coupon_code: str | None = None
    notes: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "shipping_address": {
                        "full_name": "Asha Rao",
                        "phone": "9876543210",
                        "address_line1": "12 MG Road",
                        "city": "Bengaluru",
                        "state": "Karnataka",
                        "zip_code": "560001",
                    },
                    "payment_method": "upi",
                    "coupon_code": "WELCOME10",
                }
            ]
        }
    }


class ValidateCouponRequest(BaseModel):
    code: str
    total: float = Field(ge=0)


class CancelOrderRequest(BaseModel):
    reason: str | None = None


# ---------------------------------------------------------------------------
# Admin Request Schemas
# ---------------------------------------------------------------------------
class UpdateOrderStatusRequest(BaseModel):
    status: str
    comment: str | None = None
    tracking_number: str | None = None
    tracking_url: str | None = None


class RecordPaymentRequest(BaseModel):
    status: str
    transaction_id: str | None = None
    gateway_response: dict | None = None


class CreateCouponRequest(BaseModel):
    code: str
    description: str | None = None
    discount_type: str
    discount_value: float = Field(ge=0)
    max_discount: float | None = None
    min_order_amount: float = 0.0
    usage_limit: int | None = None
    user_usage_limit: int = 1
    valid_from: datetime | None = None
    valid_until: datetime

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "code": "WELCOME10",
                    "description": "10% off your first order",
                    "discount_type": "percentage",
                    "discount_value": 10,
                    "max_discount": 200,
                    "min_order_amount": 500,
                    "usage_limit": 1000,
                    "user_usage_limit": 1,
                    "valid_until": "2030-12-31T23:59:59Z",
                }
            ]
        }
    }


class UpdateCouponRequest(BaseModel):
    description: str | None = None
    discount_type: str | None = None
    discount_value: float | None = None
    max_discount: float | None = None
    min_order_amount: float | None = None
    usage_limit: int | None = None
    user_usage_limit: int | None = None
    valid_from: datetime | None = None
    valid_until: datetime | None = None


class CreateProductRequest(BaseModel):
    name: str
    price: float = Field(ge=0)
    discount: float = Field(ge=0, le=100, default=0.0)
    stock: int = Field(ge=0, default=0)
    image: str | None = None


class UpdateProductPricingRequest(BaseModel):
    price: float = Field(ge=0)
    discount: float = Field(ge=0, le=100, default=0.0)


class RestockRequest(BaseModel):
    quantity: int = Field(ge=1)


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class CartItemResponse(BaseModel):
    product_id: str
    quantity: int
    price: float
    product: ProductSummarySchema | None = None


class CartResponse(BaseModel):
    id: str
    user_id: str
    items: list[CartItemResponse]
    coupon_code: str | None = None
    coupon_discount: float = 0.0
    total_items: int = 0
    subtotal: float = 0.0
    discount: float = 0.0
    delivery_charge: float = 0.0
    total: float = 0.0


class OrderItemResponse(BaseModel):
    product_id: str
    name: str
    image: str | None = None
    price: float
    quantity: int


class StatusEntryResponse(BaseModel):
    status: str
    comment: str | None = None
    timestamp: datetime


class PricingResponse(BaseModel):
    subtotal: float
    discount: float = 0.0
    delivery_charge: float = 0.0
    tax: float = 0.0
    coupon_code: str | None = None
    coupon_discount: float = 0.0
    total: float


class PaymentDetailsResponse(BaseModel):
    transaction_id: str | None = None
    paid_at: datetime | None = None
    gateway_response: dict | None = None


class OrderResponse(BaseModel):
    id: str
    order_number: str
    user_id: str
    items: list[OrderItemResponse]
    shipping_address: ShippingAddressSchema
    payment_method: str
    payment_status: str
    payment_details: PaymentDetailsResponse | None = None
    order_status: str
    status_history: list[StatusEntryResponse]
    pricing: PricingResponse
    notes: str | None = None
    expected_delivery: datetime | None = None
    delivered_at: datetime | None = None
    tracking_number: str | None = None
    tracking_url: str | None = None
    cancellation_reason: str | None = None
    created_at: datetime | None = None


class OrderListResponse(BaseModel):
    orders: list[OrderResponse]
    total: int
    page: int
    pages: int


class TrackingResponse(BaseModel):
    order_number: str
    order_status: str
    status_history: list[StatusEntryResponse]
    expected_delivery: datetime | None = None
    delivered_at: datetime | None = None
    tracking_number: str | None = None
    tracking_url: str | None = None


class CouponResponse(BaseModel):
    id: str
    code: str
    description: str | None = None
    discount_type: str
    discount_value: float
    max_discount: float | None = None
    min_order_amount: float = 0.0
    usage_limit: int | None = None
    used_count: int = 0
    user_usage_limit: int = 1
    valid_from: datetime
    valid_until: datetime
    is_active: bool = True


class CouponQuoteResponse(BaseModel):
    code: str
    description: str | None = None
    discount_type: str
    discount_value: float
    discount: float


class CouponIdResponse(BaseModel):
    coupon_id: str


class ProductIdResponse(BaseModel):
    product_id: str


class StockResponse(BaseModel):
    product_id: str
    stock: int


class StatusResponse(BaseModel):
    status: str = "ok"
