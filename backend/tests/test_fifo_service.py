"""
FIFO consumption engine tests.

Verifies:
- Oldest lot is consumed first; ties on purchased_at fall back to lot id
- Cost is the exact sum of consumed * unit cost
- Shortfall raises before any lot is touched
- One ledger entry per lot touched
"""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from app.extensions import db
from app.errors import InsufficientStockError, InvariantViolation, NotFoundError, ValidationError
from app.models import InventoryLot, StockMovement
from app.models.inventory import MOVEMENT_SALE_CONSUME, MOVEMENT_PURCHASE, MOVEMENT_WASTAGE, REFERENCE_SALE
from app.services import fifo_service, lot_service
from app.services.stock_ledger_service import append_movement


T1 = datetime(2026, 1, 1, 9, 0, 0)
T2 = T1 + timedelta(hours=1)


def _seed_lot(ingredient, quantity, unit_cost, purchased_at):
    lot = lot_service.create_lot(
        ingredient.id,
        Decimal(quantity),
        Decimal(unit_cost),
        purchased_at=purchased_at,
    )
    append_movement(
        kind=MOVEMENT_PURCHASE,
        ingredient_id=ingredient.id,
        quantity=Decimal(quantity),
        lot_id=lot.id,
        cost_cents=Decimal(quantity) * Decimal(unit_cost),
    )
    db.session.commit()
    return lot


class TestFifoOrdering:

    def test_consumes_oldest_lot_first(self, db_session, make_ingredient):
        flour = make_ingredient("Flour")
        lot_a = _seed_lot(flour, "5", "1", T1)
        lot_b = _seed_lot(flour, "5", "2", T2)

        result = fifo_service.consume(flour.id, Decimal("7"))
        db.session.commit()

        assert result.total_cost_cents == Decimal("9")
        assert [(c.lot_id, c.consumed) for c in result.consumptions] == [
            (lot_a.id, Decimal("5")),
            (lot_b.id, Decimal("2")),
        ]
        assert db.session.get(InventoryLot, lot_a.id).quantity == Decimal("0")
        assert db.session.get(InventoryLot, lot_b.id).quantity == Decimal("3")

    def test_purchased_at_wins_over_insert_order(self, db_session, make_ingredient):
        cheese = make_ingredient("Cheese")
        newer = _seed_lot(cheese, "4", "10", T2)
        older = _seed_lot(cheese, "4", "20", T1)

        result = fifo_service.consume(cheese.id, Decimal("1"))

        assert result.consumptions[0].lot_id == older.id
        assert result.total_cost_cents == Decimal("20")
        assert newer.id != older.id

    def test_ties_broken_by_lot_id(self, db_session, make_ingredient):
        basil = make_ingredient("Basil", unit="g")
        first = _seed_lot(basil, "2", "3", T1)
        second = _seed_lot(basil, "2", "5", T1)

        result = fifo_service.consume(basil.id, Decimal("3"))

        assert [c.lot_id for c in result.consumptions] == [first.id, second.id]
        assert result.total_cost_cents == Decimal("2") * 3 + Decimal("1") * 5

    def test_exhausted_lots_are_skipped(self, db_session, make_ingredient):
        flour = make_ingredient("Flour")
        lot_a = _seed_lot(flour, "1", "1", T1)
        lot_b = _seed_lot(flour, "5", "2", T2)

        fifo_service.consume(flour.id, Decimal("1"))
        db.session.commit()
        result = fifo_service.consume(flour.id, Decimal("1"))

        assert [c.lot_id for c in result.consumptions] == [lot_b.id]
        assert db.session.get(InventoryLot, lot_a.id).quantity == Decimal("0")

    def test_fractional_quantities(self, db_session, make_ingredient):
        flour = make_ingredient("Flour")
        _seed_lot(flour, "10", "200", T1)

        result = fifo_service.consume(flour.id, Decimal("0.25"))

        assert result.total_cost_cents == Decimal("50")
        assert lot_service.get_remaining_quantity(flour.id) == Decimal("9.75")


class TestFifoLedger:

    def test_one_movement_per_lot(self, db_session, make_ingredient):
        flour = make_ingredient("Flour")
        lot_a = _seed_lot(flour, "5", "1", T1)
        lot_b = _seed_lot(flour, "5", "2", T2)

        fifo_service.consume(
            flour.id,
            Decimal("7"),
            kind=MOVEMENT_SALE_CONSUME,
            reference_type=REFERENCE_SALE,
            reference_id=42,
        )
        db.session.commit()

        movements = (
            db.session.query(StockMovement)
            .filter_by(kind=MOVEMENT_SALE_CONSUME)
            .order_by(StockMovement.id)
            .all()
        )
        assert [(m.lot_id, m.quantity) for m in movements] == [
            (lot_a.id, Decimal("-5")),
            (lot_b.id, Decimal("-2")),
        ]
        assert all(m.reference_type == REFERENCE_SALE and m.reference_id == 42 for m in movements)
        assert [m.cost_cents for m in movements] == [Decimal("5"), Decimal("4")]


class TestFifoErrors:

    def test_insufficient_stock_touches_nothing(self, db_session, make_ingredient):
        flour = make_ingredient("Flour")
        lot = _seed_lot(flour, "50", "1", T1)

        with pytest.raises(InsufficientStockError) as exc_info:
            fifo_service.consume(flour.id, Decimal("100"))
        db.session.rollback()

        err = exc_info.value
        assert err.required == Decimal("100")
        assert err.available == Decimal("50")
        assert err.details["shortfall"] == "50"
        assert err.ingredient_name == "Flour"
        assert db.session.get(InventoryLot, lot.id).quantity == Decimal("50")
        assert db.session.query(StockMovement).filter(StockMovement.quantity < 0).count() == 0

    def test_no_lots_at_all(self, db_session, make_ingredient):
        salt = make_ingredient("Salt")
        with pytest.raises(InsufficientStockError) as exc_info:
            fifo_service.consume(salt.id, Decimal("1"))
        assert exc_info.value.available == Decimal("0")

    @pytest.mark.parametrize("required", ["0", "-1"])
    def test_non_positive_requirement_rejected(self, db_session, make_ingredient, required):
        flour = make_ingredient("Flour")
        with pytest.raises(ValidationError):
            fifo_service.consume(flour.id, Decimal(required))

    def test_non_consumption_kind_rejected(self, db_session, make_ingredient):
        flour = make_ingredient("Flour")
        _seed_lot(flour, "5", "1", T1)
        with pytest.raises(ValidationError):
            fifo_service.consume(flour.id, Decimal("1"), kind=MOVEMENT_PURCHASE)

    def test_unknown_ingredient(self, db_session):
        with pytest.raises(NotFoundError):
            fifo_service.consume(9999, Decimal("1"), kind=MOVEMENT_WASTAGE)


class TestLotStore:

    def test_reduce_lot_never_clamps(self, db_session, make_ingredient):
        flour = make_ingredient("Flour")
        lot = _seed_lot(flour, "2", "1", T1)

        with pytest.raises(InvariantViolation):
            lot_service.reduce_lot(lot.id, Decimal("3"))
        with pytest.raises(InvariantViolation):
            lot_service.reduce_lot(lot.id, Decimal("0"))

    def test_reduce_unknown_lot(self, db_session):
        with pytest.raises(NotFoundError):
            lot_service.reduce_lot(12345, Decimal("1"))

    def test_create_lot_validates(self, db_session, make_ingredient):
        flour = make_ingredient("Flour")
        with pytest.raises(ValidationError):
            lot_service.create_lot(flour.id, Decimal("0"), Decimal("1"))
        with pytest.raises(ValidationError):
            lot_service.create_lot(flour.id, Decimal("1"), Decimal("-1"))

    def test_list_lots_orders_oldest_first(self, db_session, make_ingredient):
        flour = make_ingredient("Flour")
        newer = _seed_lot(flour, "1", "1", T2)
        older = _seed_lot(flour, "1", "1", T1)

        assert [lot.id for lot in lot_service.list_lots(flour.id)] == [older.id, newer.id]
