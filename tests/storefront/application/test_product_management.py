"""Application tests for product administration commands."""

from protean import current_domain
from storefront.catalogue.management import AddProduct, DeactivateProduct, UpdateProductPricing
from storefront.catalogue.product import Product
from storefront.inventory.adjustment import reserve_stock


class TestProductManagement:
    def test_add_product(self):
        product_id = current_domain.process(
            AddProduct(name="Tea Kettle", price=1299.0, discount=10.0, stock=25, image="kettle.png"),
            asynchronous=False,
        )
        product = current_domain.repository_for(Product).get(product_id)

        assert product.name == "Tea Kettle"
        assert product.final_price == 1169.0
        assert product.stock == 25
        assert product.sold_count == 0
        assert product.is_active is True

    def test_pricing_update_leaves_counters_alone(self, make_product):
        product_id = make_product(price=100.0, stock=10)
        reserve_stock(product_id, 2)

        current_domain.process(
            UpdateProductPricing(product_id=product_id, price=80.0, discount=5.0),
            asynchronous=False,
        )

        product = current_domain.repository_for(Product).get(product_id)
        assert product.price == 80.0
        assert product.final_price == 76.0
        assert product.stock == 8
        assert product.sold_count == 2

    def test_deactivate(self, make_product):
        product_id = make_product()
        current_domain.process(DeactivateProduct(product_id=product_id), asynchronous=False)
        assert current_domain.repository_for(Product).get(product_id).is_active is False
