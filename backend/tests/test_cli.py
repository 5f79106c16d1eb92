"""CLI command tests (flask system/users/stock)."""

from decimal import Decimal

from app.extensions import db
from app.models import InventoryLot, User
from app.models.auth import ROLE_ADMIN


def test_system_init_is_idempotent(app, db_session):
    runner = app.test_cli_runner()

    first = runner.invoke(args=['system', 'init', '--email', 'boss@pos.test'])
    assert first.exit_code == 0, first.output
    assert 'Created admin' in first.output

    second = runner.invoke(args=['system', 'init', '--email', 'other@pos.test'])
    assert second.exit_code == 0, second.output
    assert 'already exists' in second.output

    assert db.session.query(User).filter_by(role=ROLE_ADMIN).count() == 1


def test_stock_verify_passes_for_consistent_ledger(app, make_ingredient, purchase):
    flour = make_ingredient('Flour')
    purchase(flour, '3', 300)

    result = app.test_cli_runner().invoke(args=['stock', 'verify'])

    assert result.exit_code == 0, result.output
    assert 'PASS Flour: ledger=3 lots=3' in result.output


def test_stock_verify_fails_on_unrecorded_lot(app, make_ingredient, purchase):
    flour = make_ingredient('Flour')
    purchase(flour, '3', 300)
    db.session.add(InventoryLot(
        ingredient_id=flour.id,
        initial_quantity=Decimal('1'),
        quantity=Decimal('1'),
        unit_cost_cents=Decimal('0'),
    ))
    db.session.commit()

    result = app.test_cli_runner().invoke(args=['stock', 'verify'])

    assert result.exit_code == 1
    assert 'FAIL Flour: ledger=3 lots=4' in result.output


def test_stock_show_lists_value(app, make_ingredient, purchase):
    flour = make_ingredient('Flour', low_stock_level=Decimal('5'))
    purchase(flour, '3', 300)

    result = app.test_cli_runner().invoke(args=['stock', 'show'])

    assert result.exit_code == 0, result.output
    assert 'Flour' in result.output
    assert '3.00' in result.output
    assert 'LOW' in result.output
