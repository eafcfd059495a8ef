"""Cart aggregate (CQRS) — one per user, priced on every change.

Each line keeps the unit price the product had when it was added (after the
product's own discount). That snapshot is what the cart displays. Checkout
re-prices everything from current product data, so the two can differ.

Derived totals (item count, subtotal, delivery charge, total) are recomputed
by every mutation through the shared pricing calculator. A coupon applied to
the cart is stored only as a discount snapshot; the redemption itself is
committed at checkout.
"""

from datetime import UTC, datetime

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String

from storefront.cart.events import (
    CartCleared,
    CartCouponApplied,
    CartCouponRemoved,
    CartItemAdded,
    CartItemRemoved,
    CartItemUpdated,
)
from storefront.domain import storefront
from storefront.errors import EmptyCart, InsufficientStock, InvalidQuantity, ItemNotFound, ProductUnavailable
from storefront.shared.pricing import calculate


@storefront.entity(part_of="Cart")
class CartItem:
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    price = Float(required=True, min_value=0.0)  # Unit price when added
    added_at = DateTime()


@storefront.aggregate
class Cart:
    user_id = Identifier(required=True, unique=True)
    items = HasMany(CartItem)
    coupon_code = String(max_length=50)
    coupon_discount = Float(default=0.0)
    total_items = Integer(default=0)
    subtotal = Float(default=0.0)
    discount = Float(default=0.0)
    delivery_charge = Float(default=0.0)
    total = Float(default=0.0)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def totals_must_balance(self):
        expected = (
            (self.subtotal or 0)
            - (self.discount or 0)
            - (self.coupon_discount or 0)
            + (self.delivery_charge or 0)
        )
        if (self.total or 0) != expected:
            raise ValidationError({"total": ["Cart total does not match its components"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, user_id):
        now = datetime.now(UTC)
        cart = cls(user_id=user_id, created_at=now, updated_at=now)
        cart._recalculate(now)
        return cart

    # -------------------------------------------------------------------
    # Item management
    # -------------------------------------------------------------------
    def item_for(self, product_id):
        return next((i for i in self.items if str(i.product_id) == str(product_id)), None)

    def add_item(self, product, quantity=1):
        """Add ``quantity`` units of ``product``, combining with an existing line.

        Topping up an existing line refreshes its price snapshot.
        """
        if quantity is None or quantity < 1:
            raise InvalidQuantity("Quantity must be at least 1", quantity=quantity)
        if not product.is_active:
            raise ProductUnavailable("Product is not available", product_id=str(product.id))

        existing = self.item_for(product.id)
        requested = quantity + (existing.quantity if existing else 0)
        if requested > product.stock:
            raise InsufficientStock(
                f"Only {product.stock} units available",
                product_id=str(product.id),
                available=product.stock,
                requested=requested,
            )

        now = datetime.now(UTC)
        unit_price = product.final_price
        with atomic_change(self):
            if existing:
                existing.quantity = requested
                existing.price = unit_price
            else:
                self.add_items(
                    CartItem(
                        product_id=str(product.id),
                        quantity=quantity,
                        price=unit_price,
                        added_at=now,
                    )
                )
            self._recalculate(now)

        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                user_id=str(self.user_id),
                product_id=str(product.id),
                quantity=quantity,
                cart_quantity=requested,
                unit_price=unit_price,
            )
        )

    def update_item(self, product, quantity):
        """Set the absolute quantity of a line. The price snapshot is kept."""
        if quantity is None or quantity < 1:
            raise InvalidQuantity("Quantity must be at least 1", quantity=quantity)
        if quantity > product.stock:
            raise InsufficientStock(
                f"Only {product.stock} units available",
                product_id=str(product.id),
                available=product.stock,
                requested=quantity,
            )

        item = self.item_for(product.id)
        if item is None:
            raise ItemNotFound("Item not found in cart", product_id=str(product.id))

        previous_quantity = item.quantity
        with atomic_change(self):
            item.quantity = quantity
            self._recalculate(datetime.now(UTC))

        self.raise_(
            CartItemUpdated(
                cart_id=str(self.id),
                product_id=str(product.id),
                previous_quantity=previous_quantity,
                new_quantity=quantity,
            )
        )

    def remove_item(self, product_id):
        """Drop a product's line. Removing an absent product is a no-op."""
        item = self.item_for(product_id)
        with atomic_change(self):
            if item is not None:
                self.remove_items(item)
            self._recalculate(datetime.now(UTC))

        if item is not None:
            self.raise_(CartItemRemoved(cart_id=str(self.id), product_id=str(product_id)))

    def clear(self):
        """Empty the cart and forget any applied coupon."""
        with atomic_change(self):
            for item in list(self.items):
                self.remove_items(item)
            self.coupon_code = None
            self.coupon_discount = 0.0
            self._recalculate(datetime.now(UTC))

        self.raise_(CartCleared(cart_id=str(self.id), user_id=str(self.user_id)))

    # -------------------------------------------------------------------
    # Coupon snapshot
    # -------------------------------------------------------------------
    def apply_coupon(self, coupon_code, coupon_discount):
        """Attach a validated coupon's discount. No redemption is recorded."""
        if not self.items:
            raise EmptyCart("Cart is empty")

        with atomic_change(self):
            self.coupon_code = coupon_code
            self.coupon_discount = coupon_discount
            self._recalculate(datetime.now(UTC))

        self.raise_(
            CartCouponApplied(
                cart_id=str(self.id),
                coupon_code=coupon_code,
                coupon_discount=self.coupon_discount,
            )
        )

    def remove_coupon(self):
        previous_code = self.coupon_code

        with atomic_change(self):
            self.coupon_code = None
            self.coupon_discount = 0.0
            self._recalculate(datetime.now(UTC))

        if previous_code:
            self.raise_(CartCouponRemoved(cart_id=str(self.id), coupon_code=previous_code))

    # -------------------------------------------------------------------
    # Totals
    # -------------------------------------------------------------------
    def _recalculate(self, now):
        breakdown = calculate(
            ((item.price, item.quantity) for item in self.items),
            discount=self.discount,
            coupon_discount=self.coupon_discount,
        )
        with atomic_change(self):
            self.total_items = sum(item.quantity for item in self.items)
            self.subtotal = breakdown.subtotal
            self.discount = breakdown.discount
            self.coupon_discount = breakdown.coupon_discount
            self.delivery_charge = breakdown.delivery_charge
            self.total = breakdown.total
            self.updated_at = now


@storefront.repository(part_of=Cart)
class CartRepository:
    def for_user(self, user_id) -> Cart | None:
        results = self._dao.query.filter(user_id=str(user_id)).all()
        return results.first if results and results.items else None

    def get_or_create(self, user_id) -> Cart:
        """The user's cart, or a fresh unsaved one."""
        return self.for_user(user_id) or Cart.create(user_id)
