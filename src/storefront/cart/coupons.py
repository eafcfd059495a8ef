"""Cart coupon management — commands and handler."""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from storefront.cart.cart import Cart
from storefront.coupon.validation import validate_coupon
from storefront.domain import storefront
from storefront.errors import EmptyCart


@storefront.command(part_of="Cart")
class ApplyCouponToCart:
    user_id = Identifier(required=True)
    code = String(required=True, max_length=50)


@storefront.command(part_of="Cart")
class RemoveCouponFromCart:
    user_id = Identifier(required=True)


@storefront.command_handler(part_of=Cart)
class CartCouponHandler:
    @handle(ApplyCouponToCart)
    def apply_coupon(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.for_user(command.user_id)
        if cart is None or not cart.items:
            raise EmptyCart("Cart is empty")

        quote = validate_coupon(command.code, cart.subtotal, command.user_id)
        cart.apply_coupon(quote.coupon.code, quote.discount)
        repo.add(cart)
        return str(cart.id)

    @handle(RemoveCouponFromCart)
    def remove_coupon(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.get_or_create(command.user_id)
        cart.remove_coupon()
        repo.add(cart)
        return str(cart.id)
