# Overview: Manual stock adjustments (found stock in, wastage out).

# backend/app/services/inventory_service.py

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from flask import current_app

from ..models.inventory import (
    MOVEMENT_ADJUSTMENT,
    MOVEMENT_WASTAGE,
    REFERENCE_MANUAL,
    LOT_SOURCE_ADJUSTMENT,
)
from ..errors import ValidationError
from ..quantity_utils import ZERO, quantize_qty, qty_to_str, cost_to_str
from ..validation import AdjustmentRequest
from .concurrency import run_in_transaction
from .fifo_service import consume
from .lot_service import create_lot, get_ingredient
from .stock_ledger_service import append_movement

"""
Stock Adjustment Invariants (authoritative)

- Positive quantity: a new zero-cost lot (source ADJUSTMENT) and one
  ADJUSTMENT movement. Found stock carries no cost.
- Negative quantity: abs(quantity) is consumed through FIFO as WASTAGE,
  so wastage is costed at the lots it actually removes.
- Zero quantity is rejected before anything is written.
- Adjustments are tagged ("manual", None) on the ledger.
"""


@dataclass(frozen=True)
class AdjustmentResult:
    ingredient_id: int
    kind: str
    quantity: Decimal
    cost_cents: Decimal
    lot_ids: tuple[int, ...]

    def to_dict(self) -> dict:
        return {
            "ingredient_id": self.ingredient_id,
            "kind": self.kind,
            "quantity": qty_to_str(self.quantity),
            "cost_cents": cost_to_str(self.cost_cents),
            "lot_ids": list(self.lot_ids),
        }


def adjust_stock(request: AdjustmentRequest, actor_user_id: int | None) -> AdjustmentResult:
    quantity = quantize_qty(request.quantity)
    if quantity == 0:
        raise ValidationError(
            "Adjustment quantity must be non-zero",
            details={"ingredient_id": request.ingredient_id},
        )

    def _op():
        get_ingredient(request.ingredient_id, lock=True)

        if quantity > 0:
            lot = create_lot(
                request.ingredient_id,
                quantity,
                ZERO,
                source=LOT_SOURCE_ADJUSTMENT,
            )
            append_movement(
                kind=MOVEMENT_ADJUSTMENT,
                ingredient_id=request.ingredient_id,
                quantity=quantity,
                lot_id=lot.id,
                cost_cents=ZERO,
                reference_type=REFERENCE_MANUAL,
                note=request.note,
                actor_user_id=actor_user_id,
            )
            return AdjustmentResult(
                ingredient_id=request.ingredient_id,
                kind=MOVEMENT_ADJUSTMENT,
                quantity=quantity,
                cost_cents=ZERO,
                lot_ids=(lot.id,),
            )

        fifo = consume(
            request.ingredient_id,
            -quantity,
            kind=MOVEMENT_WASTAGE,
            reference_type=REFERENCE_MANUAL,
            note=request.note,
            actor_user_id=actor_user_id,
        )
        return AdjustmentResult(
            ingredient_id=request.ingredient_id,
            kind=MOVEMENT_WASTAGE,
            quantity=quantity,
            cost_cents=fifo.total_cost_cents,
            lot_ids=tuple(c.lot_id for c in fifo.consumptions),
        )

    result = run_in_transaction(_op)
    current_app.logger.info(
        "Stock adjusted: ingredient %s %s %s (cost %s cents), user %s",
        result.ingredient_id,
        result.kind,
        qty_to_str(result.quantity),
        cost_to_str(result.cost_cents),
        actor_user_id,
    )
    return result
