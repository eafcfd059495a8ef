"""Inventory adjuster — atomic reserve / release / restock of product stock.

``reserve_stock`` and ``release_stock`` are called directly by checkout and
cancellation so they join the caller's unit of work. The commands exist for
callers outside those flows (back-office corrections, restocking).
"""

import structlog
from protean import handle
from protean.fields import Identifier, Integer
from protean.utils.globals import current_domain

from storefront.catalogue.product import Product
from storefront.domain import storefront
from storefront.errors import InvalidQuantity

logger = structlog.get_logger(__name__)


def _assert_positive(quantity):
    if quantity is None or quantity < 1:
        raise InvalidQuantity("Quantity must be at least 1", quantity=quantity)


def reserve_stock(product_id, quantity) -> int:
    """Take ``quantity`` units of a product; raises InsufficientStock, leaving stock untouched."""
    _assert_positive(quantity)
    remaining = current_domain.repository_for(Product).reserve(product_id, quantity)
    logger.info("Stock reserved", product_id=str(product_id), quantity=quantity, remaining=remaining)
    return remaining


def release_stock(product_id, quantity) -> int:
    """Give back ``quantity`` previously reserved units."""
    _assert_positive(quantity)
    restored = current_domain.repository_for(Product).release(product_id, quantity)
    logger.info("Stock released", product_id=str(product_id), quantity=quantity, stock=restored)
    return restored


@storefront.command(part_of="Product")
class ReserveStock:
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)


@storefront.command(part_of="Product")
class ReleaseStock:
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)


@storefront.command(part_of="Product")
class RestockProduct:
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)


@storefront.command_handler(part_of=Product)
class InventoryAdjustmentHandler:
    @handle(ReserveStock)
    def reserve(self, command):
        return reserve_stock(command.product_id, command.quantity)

    @handle(ReleaseStock)
    def release(self, command):
        return release_stock(command.product_id, command.quantity)

    @handle(RestockProduct)
    def restock(self, command):
        stock = current_domain.repository_for(Product).restock(command.product_id, command.quantity)
        logger.info("Product restocked", product_id=str(command.product_id), quantity=command.quantity, stock=stock)
        return stock
