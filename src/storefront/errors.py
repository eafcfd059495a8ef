"""Named errors raised by the storefront domain.

Every error is a protean ``ValidationError`` so command handlers and the
FastAPI integration treat them like any other domain rejection. Each class
name doubles as the machine-readable error code returned to API clients.
"""

from protean.exceptions import ValidationError


class StorefrontError(ValidationError):
    """Base class: a message keyed by ``field`` plus structured context."""

    field = "_entity"
    status_code = 400

    def __init__(self, message, **context):
        self.message = message
        self.context = context
        super().__init__({self.field: [message]})

    @property
    def code(self):
        return type(self).__name__

    def to_dict(self):
        error = {"code": self.code, "message": self.message}
        if self.context:
            error["details"] = dict(self.context)
        return error


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------
class IncompleteAddress(StorefrontError):
    field = "shipping_address"


class InvalidQuantity(StorefrontError):
    field = "quantity"


# ---------------------------------------------------------------------------
# Cart and inventory
# ---------------------------------------------------------------------------
class ProductUnavailable(StorefrontError):
    field = "product_id"


class InsufficientStock(StorefrontError):
    field = "quantity"


class ItemNotFound(StorefrontError):
    field = "product_id"


class EmptyCart(StorefrontError):
    field = "cart"


# ---------------------------------------------------------------------------
# Coupons
# ---------------------------------------------------------------------------
class CouponNotFound(StorefrontError):
    field = "code"
    status_code = 404


class CouponNotYetActive(StorefrontError):
    field = "code"


class CouponExpired(StorefrontError):
    field = "code"


class UsageLimitReached(StorefrontError):
    field = "code"


class UserUsageLimitReached(StorefrontError):
    field = "code"


class MinimumOrderNotMet(StorefrontError):
    field = "code"


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
class OrderNotFound(StorefrontError):
    field = "order_id"
    status_code = 404


class OrderNotCancellable(StorefrontError):
    field = "order_status"


class InvalidStatusTransition(StorefrontError):
    field = "order_status"


class InvalidPaymentTransition(StorefrontError):
    field = "payment_status"


# ---------------------------------------------------------------------------
# Consistency
# ---------------------------------------------------------------------------
class ConcurrencyConflict(StorefrontError):
    """A conditional update kept losing to concurrent writers."""

    status_code = 409


class StockConflict(ConcurrencyConflict):
    field = "product_id"


class CouponConflict(ConcurrencyConflict):
    field = "code"
