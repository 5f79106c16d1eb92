# Overview: FIFO consumption engine; walks lots oldest-first and prices what it consumes.

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from ..models.inventory import MOVEMENT_SALE_CONSUME, MOVEMENT_WASTAGE, MOVEMENT_SESSION_OUT
from ..errors import InsufficientStockError, ValidationError
from ..quantity_utils import ZERO, quantize_qty, quantize_unit_cost, as_decimal
from .lot_service import get_ingredient, list_lots, reduce_lot
from .stock_ledger_service import append_movement

"""
FIFO Consumption Invariants (authoritative)

- Every quantity-reducing operation (sale, negative adjustment, session-out)
  goes through consume().
- Lots are consumed oldest purchased_at first; ties broken by lot id.
- All-or-nothing: availability is checked before the first lot is touched.
  A shortfall raises InsufficientStockError and no lot is modified.
- Cost = SUM(consumed * lot.unit_cost_cents), exact (no rounding here).
- One negative ledger entry per lot touched, carrying lot_id and cost.
- Caller owns the transaction; the ingredient row is locked for its duration.
"""

CONSUMPTION_KINDS = {MOVEMENT_SALE_CONSUME, MOVEMENT_WASTAGE, MOVEMENT_SESSION_OUT}


@dataclass(frozen=True)
class LotConsumption:
    lot_id: int
    consumed: Decimal
    unit_cost_cents: Decimal

    @property
    def cost_cents(self) -> Decimal:
        return self.consumed * self.unit_cost_cents

    def to_dict(self) -> dict:
        return {
            "lot_id": self.lot_id,
            "consumed": str(self.consumed),
            "unit_cost_cents": str(self.unit_cost_cents),
        }


@dataclass
class FifoResult:
    ingredient_id: int
    required: Decimal
    total_cost_cents: Decimal = ZERO
    consumptions: list[LotConsumption] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "ingredient_id": self.ingredient_id,
            "required": str(self.required),
            "total_cost_cents": str(self.total_cost_cents),
            "consumptions": [c.to_dict() for c in self.consumptions],
        }


def consume(
    ingredient_id: int,
    required_quantity,
    *,
    kind: str = MOVEMENT_SALE_CONSUME,
    reference_type: str | None = None,
    reference_id: int | None = None,
    note: str | None = None,
    actor_user_id: int | None = None,
) -> FifoResult:
    """
    Consume `required_quantity` of an ingredient oldest-lot-first.

    Raises:
        ValidationError: required_quantity <= 0 or kind is not a consumption kind
        NotFoundError: unknown ingredient
        InsufficientStockError: lots cannot cover the requirement (nothing consumed)
    """
    required = quantize_qty(required_quantity)
    if required <= 0:
        raise ValidationError(
            "Required quantity must be > 0",
            details={"ingredient_id": ingredient_id, "required": str(required)},
        )
    if kind not in CONSUMPTION_KINDS:
        raise ValidationError(f"{kind} is not a consumption movement kind")

    ingredient = get_ingredient(ingredient_id, lock=True)
    lots = list_lots(ingredient_id, only_available=True, lock=True)

    available = sum((quantize_qty(lot.quantity) for lot in lots), ZERO)
    if available < required:
        raise InsufficientStockError(
            ingredient_id,
            required,
            available,
            ingredient_name=ingredient.name,
        )

    result = FifoResult(ingredient_id=ingredient_id, required=required)
    remaining = required

    for lot in lots:
        if remaining <= 0:
            break

        lot_quantity = quantize_qty(lot.quantity)
        consumed = min(remaining, lot_quantity)
        unit_cost = quantize_unit_cost(as_decimal(lot.unit_cost_cents))

        reduce_lot(lot.id, consumed)

        consumption = LotConsumption(lot_id=lot.id, consumed=consumed, unit_cost_cents=unit_cost)
        result.consumptions.append(consumption)
        result.total_cost_cents += consumption.cost_cents
        remaining -= consumed

        append_movement(
            kind=kind,
            ingredient_id=ingredient_id,
            quantity=-consumed,
            lot_id=lot.id,
            cost_cents=consumption.cost_cents,
            reference_type=reference_type,
            reference_id=reference_id,
            note=note,
            actor_user_id=actor_user_id,
        )

    return result
