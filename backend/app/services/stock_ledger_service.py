# Overview: Append-only stock movement ledger; every inventory change is recorded here.

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import func

from ..extensions import db
from ..models import StockMovement, InventoryLot, Ingredient
from ..models.inventory import MOVEMENT_KINDS, REFERENCE_TYPES
from ..errors import ValidationError
from ..quantity_utils import as_decimal, quantize_qty, quantize_unit_cost

"""
Stock Ledger Invariants (authoritative)

- Append-only: rows are inserted, never updated or deleted.
- quantity is signed: positive = stock increase, negative = decrease.
- For every ingredient: SUM(movement.quantity) == SUM(lot.quantity).
- Entries are written inside the same DB transaction as the lot change they record.
- Reports reconstruct history from this table.
"""


def append_movement(
    *,
    kind: str,
    ingredient_id: int,
    quantity,
    lot_id: int | None = None,
    cost_cents=None,
    reference_type: str | None = None,
    reference_id: int | None = None,
    note: str | None = None,
    actor_user_id: int | None = None,
) -> StockMovement:
    """
    Append one stock movement.

    - No domain logic here beyond shape checks.
    - No deletes/updates of existing movements.
    """
    if kind not in MOVEMENT_KINDS:
        raise ValidationError(f"Unknown movement kind: {kind}")
    if reference_type is not None and reference_type not in REFERENCE_TYPES:
        raise ValidationError(f"Unknown movement reference type: {reference_type}")

    quantity = quantize_qty(quantity)
    if quantity == 0:
        raise ValidationError("Stock movement quantity must be non-zero")

    movement = StockMovement(
        kind=kind,
        ingredient_id=ingredient_id,
        quantity=quantity,
        lot_id=lot_id,
        cost_cents=quantize_unit_cost(cost_cents) if cost_cents is not None else None,
        reference_type=reference_type,
        reference_id=reference_id,
        note=note,
        actor_user_id=actor_user_id,
    )
    db.session.add(movement)
    db.session.flush()  # ensures movement.id is assigned without committing
    return movement


def list_movements(
    *,
    ingredient_id: int | None = None,
    kind: str | None = None,
    reference_type: str | None = None,
    reference_id: int | None = None,
    limit: int = 200,
) -> list[StockMovement]:
    """Newest first."""
    q = db.session.query(StockMovement)
    if ingredient_id is not None:
        q = q.filter(StockMovement.ingredient_id == ingredient_id)
    if kind is not None:
        if kind not in MOVEMENT_KINDS:
            raise ValidationError(f"Unknown movement kind: {kind}")
        q = q.filter(StockMovement.kind == kind)
    if reference_type is not None:
        q = q.filter(StockMovement.reference_type == reference_type)
    if reference_id is not None:
        q = q.filter(StockMovement.reference_id == reference_id)

    return (
        q.order_by(StockMovement.created_at.desc(), StockMovement.id.desc())
        .limit(limit)
        .all()
    )


def get_ledger_quantity(ingredient_id: int) -> Decimal:
    total = db.session.query(
        func.coalesce(func.sum(StockMovement.quantity), 0)
    ).filter(StockMovement.ingredient_id == ingredient_id).scalar()
    return quantize_qty(as_decimal(total))


def check_consistency() -> list[dict]:
    """
    Compare ledger totals with remaining lot totals for every ingredient.

    Returns one row per ingredient; `consistent` is False when the
    ledger/lot invariant is broken.
    """
    ledger_totals = dict(
        db.session.query(StockMovement.ingredient_id, func.sum(StockMovement.quantity))
        .group_by(StockMovement.ingredient_id)
        .all()
    )
    lot_totals = dict(
        db.session.query(InventoryLot.ingredient_id, func.sum(InventoryLot.quantity))
        .group_by(InventoryLot.ingredient_id)
        .all()
    )

    rows = []
    for ingredient in db.session.query(Ingredient).order_by(Ingredient.name.asc()).all():
        ledger_qty = quantize_qty(as_decimal(ledger_totals.get(ingredient.id)))
        lot_qty = quantize_qty(as_decimal(lot_totals.get(ingredient.id)))
        rows.append({
            "ingredient_id": ingredient.id,
            "ingredient_name": ingredient.name,
            "ledger_quantity": ledger_qty,
            "lot_quantity": lot_qty,
            "consistent": ledger_qty == lot_qty,
        })
    return rows
