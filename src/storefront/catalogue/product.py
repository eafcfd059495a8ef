"""Product aggregate (CQRS) — the sellable item as seen by carts and checkout.

The catalogue owns product content. This context reads price, discount and
availability, and mutates two counters: ``stock`` and ``sold_count``.

Counter changes never go through a read-modify-write of the whole aggregate.
``ProductRepository`` applies them as conditional updates against the values
it just read (compare-and-swap), retrying a bounded number of times when
another writer got there first. Stock therefore never goes negative and no
reservation is lost, whichever provider backs the repository.
"""

from datetime import UTC, datetime

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.fields import Boolean, DateTime, Float, Integer, String
from protean.utils.query import Q

from storefront.domain import storefront
from storefront.errors import InsufficientStock, ProductUnavailable, StockConflict
from storefront.shared.pricing import final_unit_price

logger = structlog.get_logger(__name__)

MAX_COUNTER_ATTEMPTS = 5


@storefront.aggregate
class Product:
    name = String(required=True, max_length=255)
    image = String(max_length=500)
    price = Float(required=True, min_value=0.0)
    discount = Float(default=0.0, min_value=0.0, max_value=100.0)  # percent
    stock = Integer(default=0, min_value=0)
    sold_count = Integer(default=0, min_value=0)
    is_active = Boolean(default=True)
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def create(cls, name, price, discount=0.0, stock=0, image=None):
        now = datetime.now(UTC)
        return cls(
            name=name,
            image=image,
            price=price,
            discount=discount or 0.0,
            stock=stock,
            sold_count=0,
            is_active=True,
            created_at=now,
            updated_at=now,
        )

    @property
    def final_price(self):
        """Unit price after the product's own discount."""
        return final_unit_price(self.price, self.discount)

    def summary(self):
        """Snapshot used when rendering cart lines."""
        return {
            "id": str(self.id),
            "name": self.name,
            "image": self.image,
            "price": self.price,
            "discount": self.discount,
            "final_price": self.final_price,
            "stock": self.stock,
        }


@storefront.repository(part_of=Product)
class ProductRepository:
    """Product persistence plus atomic stock counter updates."""

    def reserve(self, product_id, quantity) -> int:
        """Decrement stock and increment sold_count, or raise InsufficientStock.

        Returns the remaining stock.
        """
        for attempt in range(1, MAX_COUNTER_ATTEMPTS + 1):
            product = self._load(product_id)
            if product.stock < quantity:
                raise InsufficientStock(
                    f"Insufficient stock for {product.name}: {product.stock} available, {quantity} requested",
                    product_id=str(product.id),
                    product_name=product.name,
                    available=product.stock,
                    requested=quantity,
                )

            remaining = product.stock - quantity
            if self._compare_and_swap(product, stock=remaining, sold_count=product.sold_count + quantity):
                return remaining

            logger.debug(
                "Stock changed concurrently, retrying reservation",
                product_id=str(product_id),
                attempt=attempt,
            )

        raise StockConflict(
            "Stock for this product is changing too quickly, please retry",
            product_id=str(product_id),
        )

    def release(self, product_id, quantity) -> int:
        """Return ``quantity`` units to stock (inverse of ``reserve``)."""
        for attempt in range(1, MAX_COUNTER_ATTEMPTS + 1):
            product = self._load(product_id)
            restored = product.stock + quantity
            sold_count = max((product.sold_count or 0) - quantity, 0)
            if self._compare_and_swap(product, stock=restored, sold_count=sold_count):
                return restored

            logger.debug(
                "Stock changed concurrently, retrying release",
                product_id=str(product_id),
                attempt=attempt,
            )

        raise StockConflict(
            "Stock for this product is changing too quickly, please retry",
            product_id=str(product_id),
        )

    def restock(self, product_id, quantity) -> int:
        """Add freshly received units without touching sold_count."""
        for _ in range(MAX_COUNTER_ATTEMPTS):
            product = self._load(product_id)
            replenished = product.stock + quantity
            if self._compare_and_swap(product, stock=replenished):
                return replenished

        raise StockConflict(
            "Stock for this product is changing too quickly, please retry",
            product_id=str(product_id),
        )

    def update_pricing(self, product_id, price, discount):
        """Change price fields only; counters are left alone."""
        self._load(product_id)
        self._update_where(Q(id=str(product_id)), price=price, discount=discount)

    def set_active(self, product_id, is_active):
        self._load(product_id)
        self._update_where(Q(id=str(product_id)), is_active=is_active)

    def _load(self, product_id) -> Product:
        """Read the persisted product, bypassing any copy cached in the unit of work."""
        try:
            return self._dao.get(str(product_id))
        except ObjectNotFoundError:
            raise ProductUnavailable("Product not found", product_id=str(product_id)) from None

    def _compare_and_swap(self, product, **changes) -> bool:
        """Apply ``changes`` only if the counters still hold the values we read."""
        return self._update_where(
            Q(id=str(product.id), stock=product.stock, sold_count=product.sold_count),
            **changes,
        )

    def _update_where(self, criteria, **changes) -> bool:
        # A guarded single-row claim: the criteria are re-checked inside the
        # update, under the provider's lock or row lock
        claimed = self._dao._claim(criteria, {"updated_at": datetime.now(UTC), **changes}, limit=1)
        return bool(claimed)
