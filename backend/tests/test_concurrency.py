"""
Transaction helper tests.

Verifies:
- Business errors roll back every write of the operation
- Lock failures are retried, then surface as a retryable ConflictError
- Unique-constraint races surface as ConflictError
- Concurrent sales cannot oversell the last unit of an ingredient
"""

import threading
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from app import create_app
from app.extensions import db
from app.errors import ConflictError, InsufficientStockError, ValidationError
from app.models import Ingredient, Product, RecipeItem, Sale, Supplier
from app.models.auth import ROLE_CASHIER
from app.services import lot_service, purchase_service, sales_service
from app.services.auth_service import create_user
from app.services.concurrency import run_in_transaction, run_with_retry
from app.services.stock_ledger_service import check_consistency
from app.validation import PurchaseLine, PurchaseRequest, SaleLineRequest, SaleRequest


class TestRunInTransaction:

    def test_commits_result(self, db_session):
        def _op():
            supplier = Supplier(name="Mill Co")
            db.session.add(supplier)
            db.session.flush()
            return supplier

        supplier = run_in_transaction(_op)

        db.session.rollback()
        assert db.session.get(Supplier, supplier.id) is not None

    def test_business_error_rolls_back_all_writes(self, db_session):
        def _op():
            db.session.add(Supplier(name="Half Written"))
            db.session.flush()
            raise ValidationError("second step failed")

        with pytest.raises(ValidationError, match="second step failed"):
            run_in_transaction(_op)

        assert db.session.query(Supplier).count() == 0

    def test_integrity_error_becomes_conflict(self, db_session, make_ingredient):
        make_ingredient("Flour")

        def _op():
            db.session.add(Ingredient(name="Flour", unit="kg"))
            db.session.flush()

        with pytest.raises(ConflictError) as exc_info:
            run_in_transaction(_op)
        assert exc_info.value.retryable is False
        assert db.session.query(Ingredient).count() == 1


class TestRunWithRetry:

    def test_retries_then_succeeds(self, db_session):
        calls = []

        def _flaky():
            calls.append(1)
            if len(calls) < 3:
                raise OperationalError("BEGIN IMMEDIATE", {}, Exception("database is locked"))
            return "ok"

        assert run_with_retry(_flaky, attempts=3, backoff_base=0) == "ok"
        assert len(calls) == 3

    def test_exhausted_attempts_raise_retryable_conflict(self, db_session):
        calls = []

        def _locked():
            calls.append(1)
            raise OperationalError("BEGIN IMMEDIATE", {}, Exception("database is locked"))

        with pytest.raises(ConflictError) as exc_info:
            run_with_retry(_locked, attempts=2, backoff_base=0)

        assert len(calls) == 2
        assert exc_info.value.retryable is True
        assert exc_info.value.to_dict()["retryable"] is True

    def test_business_errors_are_not_retried(self, db_session):
        calls = []

        def _invalid():
            calls.append(1)
            raise ValidationError("bad input")

        with pytest.raises(ValidationError):
            run_with_retry(_invalid, attempts=3, backoff_base=0)
        assert len(calls) == 1


class TestConcurrentSales:
    """Two or more sales racing for the last unit: exactly one may win."""

    @pytest.fixture
    def race(self, tmp_path):
        """File-backed app seeded with one unit of Dough and a Pizza that uses it."""
        file_app = create_app({
            'TESTING': True,
            'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'concurrency.db'}",
            'BCRYPT_ROUNDS': 4,
            'TX_RETRY_BACKOFF_SECONDS': 0.01,
        })
        with file_app.app_context():
            db.create_all()
            user = create_user(email="racer@pos.test", password="Password123!", name="Racer", role=ROLE_CASHIER)
            dough = Ingredient(name="Dough", unit="unit")
            product = Product(name="Pizza", sku="PIZZA", price_cents=900, is_active=True)
            db.session.add_all([dough, product])
            db.session.flush()
            db.session.add(RecipeItem(product_id=product.id, ingredient_id=dough.id, quantity=Decimal("1")))
            db.session.commit()
            purchase_service.create_purchase(
                PurchaseRequest(items=(PurchaseLine(ingredient_id=dough.id, quantity=Decimal("1"), total_cost_cents=300),)),
                user.id,
            )
            ids = (user.id, dough.id, product.id)
            db.session.remove()

        yield file_app, ids

        with file_app.app_context():
            db.session.remove()
            db.drop_all()
            db.session.remove()
            db.engine.dispose()

    def test_last_unit_sold_once(self, race):
        file_app, (user_id, dough_id, product_id) = race
        workers = 4
        barrier = threading.Barrier(workers)
        results = []
        lock = threading.Lock()

        def worker():
            with file_app.app_context():
                try:
                    barrier.wait()
                    sales_service.create_sale(
                        SaleRequest(payment_type="CASH", items=(SaleLineRequest(product_id=product_id, qty=1),)),
                        user_id,
                    )
                    with lock:
                        results.append("sold")
                except Exception as exc:
                    with lock:
                        results.append(exc)
                finally:
                    db.session.remove()

        threads = [threading.Thread(target=worker) for _ in range(workers)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count("sold") == 1
        for failure in (r for r in results if r != "sold"):
            assert isinstance(failure, InsufficientStockError) or (
                isinstance(failure, ConflictError) and failure.retryable
            ), repr(failure)

        with file_app.app_context():
            assert lot_service.get_remaining_quantity(dough_id) == Decimal("0")
            assert db.session.query(Sale).count() == 1
            assert all(row["consistent"] for row in check_consistency())
            db.session.remove()
