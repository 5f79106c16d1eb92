"""
Reporting query tests.

Verifies:
- Low stock means on-hand quantity strictly below the threshold
- Stock value is the FIFO value of the remaining lots
"""

from decimal import Decimal

from app.services import reporting_service


class TestLowStock:

    def test_stock_at_threshold_is_not_low(self, db_session, make_ingredient, purchase):
        flour = make_ingredient("Flour", low_stock_level=Decimal("5"))
        purchase(flour, "5", 500)

        assert reporting_service.low_stock() == []
        row = reporting_service.current_stock()[0]
        assert row["quantity"] == "5"
        assert row["is_low"] is False

    def test_stock_below_threshold_is_low(self, db_session, make_ingredient, purchase):
        flour = make_ingredient("Flour", low_stock_level=Decimal("5"))
        purchase(flour, "4.9999", 500)

        rows = reporting_service.low_stock()
        assert [r["name"] for r in rows] == ["Flour"]

    def test_no_threshold_is_never_low(self, db_session, make_ingredient):
        make_ingredient("Salt")

        row = reporting_service.current_stock()[0]
        assert row["quantity"] == "0"
        assert row["is_low"] is False


class TestStockValue:

    def test_value_uses_remaining_lots(self, db_session, make_ingredient, purchase):
        flour = make_ingredient("Flour")
        purchase(flour, "10", 2000)
        purchase(flour, "10", 3000)

        row = reporting_service.current_stock()[0]
        assert row["quantity"] == "20"
        assert row["value_cents"] == 5000
        assert row["open_lots"] == 2
