"""Domain events for the Cart aggregate."""

from protean.fields import Float, Identifier, Integer, String

from storefront.domain import storefront


@storefront.event(part_of="Cart")
class CartItemAdded:
    """A product was added to the cart, or its quantity topped up."""

    __version__ = 1

    cart_id = Identifier(required=True)
    user_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True)  # Units added by this action
    cart_quantity = Integer(required=True)  # Units of the product now in the cart
    unit_price = Float(required=True)


@storefront.event(part_of="Cart")
class CartItemUpdated:
    """The quantity of a cart line was set to a new absolute value."""

    __version__ = 1

    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)


@storefront.event(part_of="Cart")
class CartItemRemoved:
    """A product was removed from the cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)


@storefront.event(part_of="Cart")
class CartCleared:
    """All items and any applied coupon were dropped from the cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    user_id = Identifier(required=True)


@storefront.event(part_of="Cart")
class CartCouponApplied:
    """A coupon discount snapshot was attached to the cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    coupon_code = String(required=True)
    coupon_discount = Float(required=True)


@storefront.event(part_of="Cart")
class CartCouponRemoved:
    """The coupon attached to the cart was detached."""

    __version__ = 1

    cart_id = Identifier(required=True)
    coupon_code = String(required=True)
