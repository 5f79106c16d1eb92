"""
Cash session workflow tests.

Verifies:
- At most one open session
- Declared opening stock leaves inventory through FIFO (SESSION_OUT)
- Declared closing stock returns as zero-cost lots (SESSION_IN)
- Cash variance = closing float - (opening float + CASH sales)
"""

from decimal import Decimal

import pytest

from app.extensions import db
from app.errors import ConflictError, InsufficientStockError, NotFoundError
from app.models import CashSession, InventoryLot, SessionInventorySnapshot, StockMovement
from app.models.cash_sessions import SNAPSHOT_OPENING, SNAPSHOT_CLOSING
from app.models.inventory import MOVEMENT_SESSION_IN, MOVEMENT_SESSION_OUT, LOT_SOURCE_SESSION_IN, REFERENCE_SESSION
from app.services import cash_session_service, lot_service, sales_service
from app.services.concurrency import run_in_transaction
from app.services.stock_ledger_service import check_consistency
from app.validation import (
    CloseSessionRequest,
    InventoryCountLine,
    OpenSessionRequest,
    SaleLineRequest,
    SaleRequest,
)


def _open(user, float_cents=10000, inventory=(), notes=None):
    return cash_session_service.open_session(
        OpenSessionRequest(opening_float_cents=float_cents, inventory=tuple(inventory), notes=notes),
        user.id,
    )


def _close(session, user, float_cents=10000, inventory=(), notes=None):
    return cash_session_service.close_session(
        session.id,
        CloseSessionRequest(closing_float_cents=float_cents, inventory=tuple(inventory), notes=notes),
        user.id,
    )


class TestSessionExclusivity:

    def test_second_open_conflicts(self, db_session, cashier_user):
        first = _open(cashier_user)

        with pytest.raises(ConflictError) as exc_info:
            _open(cashier_user)
        assert exc_info.value.details["session_id"] == first.id
        assert db.session.query(CashSession).count() == 1

    def test_open_after_close_succeeds(self, db_session, cashier_user):
        first = _open(cashier_user)
        _close(first, cashier_user)

        second = _open(cashier_user)

        assert second.id != first.id
        assert cash_session_service.get_active_session().id == second.id

    def test_open_slot_unique_constraint_backs_the_check(self, db_session, cashier_user):
        _open(cashier_user)

        def _sneak_second_open():
            db.session.add(CashSession(opened_by=cashier_user.id, opening_float_cents=0, open_slot=1))
            db.session.flush()

        with pytest.raises(ConflictError):
            run_in_transaction(_sneak_second_open)
        assert db.session.query(CashSession).count() == 1

    def test_close_twice_conflicts(self, db_session, cashier_user):
        session = _open(cashier_user)
        _close(session, cashier_user)

        with pytest.raises(ConflictError):
            _close(session, cashier_user)

    def test_close_unknown_session(self, db_session, cashier_user):
        with pytest.raises(NotFoundError):
            cash_session_service.close_session(
                404, CloseSessionRequest(closing_float_cents=0), cashier_user.id
            )


class TestSessionInventory:

    def test_opening_stock_is_consumed_fifo(self, db_session, make_ingredient, purchase, cashier_user):
        dough = make_ingredient("Dough", unit="unit")
        purchase(dough, "10", 1000)

        session = _open(cashier_user, inventory=[InventoryCountLine(ingredient_id=dough.id, quantity=Decimal("4"))])

        assert lot_service.get_remaining_quantity(dough.id) == Decimal("6")
        out = db.session.query(StockMovement).filter_by(kind=MOVEMENT_SESSION_OUT).one()
        assert out.quantity == Decimal("-4")
        assert out.cost_cents == Decimal("400")
        assert (out.reference_type, out.reference_id) == (REFERENCE_SESSION, session.id)

        snapshot = db.session.query(SessionInventorySnapshot).one()
        assert snapshot.type == SNAPSHOT_OPENING
        assert snapshot.quantity == Decimal("4")

    def test_zero_lines_only_snapshot(self, db_session, make_ingredient, cashier_user):
        dough = make_ingredient("Dough", unit="unit")

        session = _open(cashier_user, inventory=[InventoryCountLine(ingredient_id=dough.id, quantity=Decimal("0"))])
        _close(session, cashier_user, inventory=[InventoryCountLine(ingredient_id=dough.id, quantity=Decimal("0"))])

        assert db.session.query(StockMovement).count() == 0
        types = sorted(s.type for s in db.session.query(SessionInventorySnapshot).all())
        assert types == [SNAPSHOT_CLOSING, SNAPSHOT_OPENING]

    def test_closing_stock_returns_as_zero_cost_lot(self, db_session, make_ingredient, purchase, cashier_user):
        dough = make_ingredient("Dough", unit="unit")
        purchase(dough, "10", 1000)
        session = _open(cashier_user, inventory=[InventoryCountLine(ingredient_id=dough.id, quantity=Decimal("4"))])

        _close(session, cashier_user, inventory=[InventoryCountLine(ingredient_id=dough.id, quantity=Decimal("1.5"))])

        assert lot_service.get_remaining_quantity(dough.id) == Decimal("7.5")
        movement = db.session.query(StockMovement).filter_by(kind=MOVEMENT_SESSION_IN).one()
        lot = db.session.get(InventoryLot, movement.lot_id)
        assert lot.source == LOT_SOURCE_SESSION_IN
        assert lot.unit_cost_cents == Decimal("0")
        assert all(r["consistent"] for r in check_consistency())

    def test_opening_shortfall_rolls_back_session(self, db_session, make_ingredient, purchase, cashier_user):
        dough = make_ingredient("Dough", unit="unit")
        purchase(dough, "1", 100)

        with pytest.raises(InsufficientStockError):
            _open(cashier_user, inventory=[InventoryCountLine(ingredient_id=dough.id, quantity=Decimal("2"))])

        assert db.session.query(CashSession).count() == 0
        assert db.session.query(SessionInventorySnapshot).count() == 0
        assert cash_session_service.get_active_session() is None

    def test_unknown_ingredient_in_declaration(self, db_session, cashier_user):
        with pytest.raises(NotFoundError):
            _open(cashier_user, inventory=[InventoryCountLine(ingredient_id=321, quantity=Decimal("0"))])
        assert db.session.query(CashSession).count() == 0


class TestSessionClose:

    def test_close_records_float_user_and_appends_notes(self, db_session, cashier_user, admin_user):
        session = _open(cashier_user, notes="morning")

        closed = _close(session, admin_user, float_cents=12345, notes="till ok")

        assert closed.closed_at is not None
        assert closed.closed_by == admin_user.id
        assert closed.closing_float_cents == 12345
        assert closed.open_slot is None
        assert closed.notes == "morning\ntill ok"

    def test_variance(self, db_session, make_product, cashier_user):
        soda = make_product("Soda", 900)
        session = _open(cashier_user, float_cents=10000)
        sales_service.create_sale(
            SaleRequest(payment_type="CASH", items=(SaleLineRequest(product_id=soda.id, qty=2),), session_id=session.id),
            cashier_user.id,
        )
        sales_service.create_sale(
            SaleRequest(payment_type="CARD", items=(SaleLineRequest(product_id=soda.id, qty=1),), session_id=session.id),
            cashier_user.id,
        )

        closed = _close(session, cashier_user, float_cents=11700)
        variance = cash_session_service.compute_variance(closed)

        assert variance["cash_sales_cents"] == 1800
        assert variance["sales_total_cents"] == 2700
        assert variance["sale_count"] == 2
        assert variance["expected_cash_cents"] == 11800
        assert variance["variance_cents"] == -100

    def test_variance_is_none_while_open(self, db_session, cashier_user):
        session = _open(cashier_user, float_cents=500)
        report = cash_session_service.session_report(session.id)

        assert report["status"] == "OPEN"
        assert report["variance"]["expected_cash_cents"] == 500
        assert report["variance"]["variance_cents"] is None
