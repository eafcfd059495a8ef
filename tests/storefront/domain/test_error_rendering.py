"""Tests for the machine-readable shape of named storefront errors."""

from storefront.errors import CouponNotFound, EmptyCart, InsufficientStock, StockConflict


class TestErrorDict:
    def test_kind_survives_a_context_key_named_code(self):
        error = CouponNotFound("Invalid coupon code", code="NOPE")

        assert error.to_dict() == {
            "code": "CouponNotFound",
            "message": "Invalid coupon code",
            "details": {"code": "NOPE"},
        }

    def test_context_is_nested_under_details(self):
        error = InsufficientStock("Insufficient stock for Kettle", product_id="p-1", available=1, requested=2)

        assert error.to_dict()["code"] == "InsufficientStock"
        assert error.to_dict()["details"] == {"product_id": "p-1", "available": 1, "requested": 2}

    def test_no_details_without_context(self):
        assert EmptyCart("Cart is empty").to_dict() == {"code": "EmptyCart", "message": "Cart is empty"}

    def test_status_codes(self):
        assert CouponNotFound("x").status_code == 404
        assert StockConflict("x").status_code == 409
        assert EmptyCart("x").status_code == 400
