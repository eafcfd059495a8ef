"""Product administration — commands and handler.

Enough of the catalogue to seed sellable products and change their pricing.
Stock levels are handled by the inventory adjuster.
"""

import structlog
from protean import handle
from protean.fields import Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from storefront.catalogue.product import Product
from storefront.domain import storefront

logger = structlog.get_logger(__name__)


@storefront.command(part_of="Product")
class AddProduct:
    name = String(required=True, max_length=255)
    price = Float(required=True, min_value=0.0)
    discount = Float(default=0.0, min_value=0.0, max_value=100.0)
    stock = Integer(default=0, min_value=0)
    image = String(max_length=500)


@storefront.command(part_of="Product")
class UpdateProductPricing:
    product_id = Identifier(required=True)
    price = Float(required=True, min_value=0.0)
    discount = Float(default=0.0, min_value=0.0, max_value=100.0)


@storefront.command(part_of="Product")
class DeactivateProduct:
    product_id = Identifier(required=True)


@storefront.command_handler(part_of=Product)
class ManageProductHandler:
    @handle(AddProduct)
    def add_product(self, command):
        product = Product.create(
            name=command.name,
            price=command.price,
            discount=command.discount,
            stock=command.stock,
            image=command.image,
        )
        current_domain.repository_for(Product).add(product)
        logger.info("Product added", product_id=str(product.id), stock=product.stock)
        return str(product.id)

    @handle(UpdateProductPricing)
    def update_pricing(self, command):
        current_domain.repository_for(Product).update_pricing(
            command.product_id,
            price=command.price,
            discount=command.discount or 0.0,
        )

    @handle(DeactivateProduct)
    def deactivate(self, command):
        current_domain.repository_for(Product).set_active(command.product_id, False)
