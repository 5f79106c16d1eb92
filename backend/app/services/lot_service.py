# Overview: Lot store; owns inventory lots per ingredient and their remaining quantities.

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import func

from ..extensions import db
from ..models import Ingredient, InventoryLot
from ..models.inventory import LOT_SOURCES, LOT_SOURCE_PURCHASE
from ..errors import InvariantViolation, NotFoundError, ValidationError
from ..quantity_utils import ZERO, as_decimal, quantize_qty, quantize_unit_cost
from ..time_utils import utcnow
from .concurrency import lock_for_update

"""
Lot Store Invariants (authoritative)

- Lots are listed oldest-first: purchased_at ASC, then id ASC (deterministic ties).
- A lot's quantity only ever decreases after creation; it is never replenished.
- unit_cost_cents is fixed at creation.
- Exhausted lots remain as zero rows.
- Nothing here commits; callers own the transaction.
"""


def get_ingredient(ingredient_id: int, *, lock: bool = False) -> Ingredient:
    """
    Load an ingredient or raise NotFoundError.

    lock=True takes a row lock on the ingredient, which serializes every
    lot read/write for that ingredient across concurrent transactions.
    """
    query = db.session.query(Ingredient).filter_by(id=ingredient_id)
    if lock:
        query = lock_for_update(query)
    ingredient = query.first()
    if ingredient is None:
        raise NotFoundError(
            f"Ingredient {ingredient_id} not found",
            details={"ingredient_id": ingredient_id},
        )
    return ingredient


def list_lots(ingredient_id: int, *, only_available: bool = False, lock: bool = False) -> list[InventoryLot]:
    query = db.session.query(InventoryLot).filter(InventoryLot.ingredient_id == ingredient_id)
    if only_available:
        query = query.filter(InventoryLot.quantity > 0)
    query = query.order_by(InventoryLot.purchased_at.asc(), InventoryLot.id.asc())
    if lock:
        query = lock_for_update(query)
    return query.all()


def get_lot(lot_id: int, *, lock: bool = False) -> InventoryLot:
    query = db.session.query(InventoryLot).filter_by(id=lot_id)
    if lock:
        query = lock_for_update(query)
    lot = query.first()
    if lot is None:
        raise NotFoundError(f"Lot {lot_id} not found", details={"lot_id": lot_id})
    return lot


def create_lot(
    ingredient_id: int,
    quantity,
    unit_cost_cents,
    *,
    source: str = LOT_SOURCE_PURCHASE,
    purchased_at=None,
) -> InventoryLot:
    """Append a new lot. quantity must be > 0, unit_cost_cents >= 0."""
    quantity = quantize_qty(quantity)
    unit_cost_cents = quantize_unit_cost(unit_cost_cents)

    if quantity <= 0:
        raise ValidationError("Lot quantity must be > 0", details={"quantity": str(quantity)})
    if unit_cost_cents < 0:
        raise ValidationError("Lot unit cost must be >= 0", details={"unit_cost_cents": str(unit_cost_cents)})
    if source not in LOT_SOURCES:
        raise ValidationError(f"Unknown lot source: {source}")

    get_ingredient(ingredient_id, lock=True)

    lot = InventoryLot(
        ingredient_id=ingredient_id,
        initial_quantity=quantity,
        quantity=quantity,
        unit_cost_cents=unit_cost_cents,
        source=source,
        purchased_at=purchased_at or utcnow(),
    )
    db.session.add(lot)
    db.session.flush()
    return lot


def reduce_lot(lot_id: int, consumed_amount) -> InventoryLot:
    """
    Decrement a lot's remaining quantity.

    Over-reduction is an engine bug, not a user error: it raises
    InvariantViolation rather than clamping to zero.
    """
    consumed_amount = quantize_qty(consumed_amount)
    lot = get_lot(lot_id)

    if consumed_amount <= 0:
        raise InvariantViolation(
            "Lot reduction must be positive",
            details={"lot_id": lot_id, "consumed": str(consumed_amount)},
        )

    remaining = quantize_qty(lot.quantity)
    if consumed_amount > remaining:
        raise InvariantViolation(
            f"Cannot reduce lot {lot_id} by {consumed_amount}; only {remaining} remaining",
            details={"lot_id": lot_id, "consumed": str(consumed_amount), "remaining": str(remaining)},
        )

    lot.quantity = remaining - consumed_amount
    db.session.flush()
    return lot


def get_remaining_quantity(ingredient_id: int) -> Decimal:
    """Current stock = SUM of remaining lot quantities."""
    total = db.session.query(
        func.coalesce(func.sum(InventoryLot.quantity), 0)
    ).filter(InventoryLot.ingredient_id == ingredient_id).scalar()
    return quantize_qty(as_decimal(total) if total is not None else ZERO)
