# Overview: Purchase workflow; records supplier deliveries as new inventory lots.

from __future__ import annotations

from flask import current_app
from sqlalchemy.orm import selectinload

from ..extensions import db
from ..models import Purchase, PurchaseItem, Supplier
from ..models.inventory import MOVEMENT_PURCHASE, REFERENCE_PURCHASE, LOT_SOURCE_PURCHASE
from ..errors import NotFoundError, ValidationError
from ..quantity_utils import as_decimal, quantize_qty
from ..validation import PurchaseRequest
from .concurrency import run_in_transaction
from .lot_service import create_lot, get_ingredient
from .stock_ledger_service import append_movement

"""
Purchase Invariants (authoritative)

- One purchase item produces exactly one lot and one PURCHASE movement.
- Lot unit cost = item total_cost_cents / item quantity (exact, 6 places).
- The movement references the purchase: ("purchase", purchase.id).
- The header, its items, lots and movements commit together or not at all.
"""


def create_purchase(request: PurchaseRequest, actor_user_id: int | None) -> Purchase:
    if not request.items:
        raise ValidationError("Purchase must contain at least one item")

    def _op():
        if request.supplier_id is not None and db.session.get(Supplier, request.supplier_id) is None:
            raise NotFoundError(
                f"Supplier {request.supplier_id} not found",
                details={"supplier_id": request.supplier_id},
            )

        purchase = Purchase(
            supplier_id=request.supplier_id,
            notes=request.notes,
            created_by_user_id=actor_user_id,
        )
        db.session.add(purchase)
        db.session.flush()

        for line in request.items:
            quantity = quantize_qty(line.quantity)
            if quantity <= 0:
                raise ValidationError(
                    "Purchase quantity must be > 0",
                    details={"ingredient_id": line.ingredient_id},
                )
            if line.total_cost_cents < 0:
                raise ValidationError(
                    "total_cost_cents must be >= 0",
                    details={"ingredient_id": line.ingredient_id},
                )

            get_ingredient(line.ingredient_id)
            unit_cost = as_decimal(line.total_cost_cents) / quantity

            lot = create_lot(
                line.ingredient_id,
                quantity,
                unit_cost,
                source=LOT_SOURCE_PURCHASE,
                purchased_at=purchase.created_at,
            )

            db.session.add(PurchaseItem(
                purchase_id=purchase.id,
                ingredient_id=line.ingredient_id,
                quantity=quantity,
                total_cost_cents=line.total_cost_cents,
                lot_id=lot.id,
            ))

            append_movement(
                kind=MOVEMENT_PURCHASE,
                ingredient_id=line.ingredient_id,
                quantity=quantity,
                lot_id=lot.id,
                cost_cents=line.total_cost_cents,
                reference_type=REFERENCE_PURCHASE,
                reference_id=purchase.id,
                actor_user_id=actor_user_id,
            )

        db.session.flush()
        return purchase

    purchase = run_in_transaction(_op)
    current_app.logger.info(
        "Purchase %s recorded: %d item(s), total %d cents, user %s",
        purchase.id,
        len(purchase.items),
        purchase.total_cost_cents,
        actor_user_id,
    )
    return purchase


def get_purchase(purchase_id: int) -> Purchase:
    purchase = db.session.get(Purchase, purchase_id)
    if purchase is None:
        raise NotFoundError(f"Purchase {purchase_id} not found", details={"purchase_id": purchase_id})
    return purchase


def list_purchases(limit: int = 100) -> list[Purchase]:
    return (
        db.session.query(Purchase)
        .options(selectinload(Purchase.items))
        .order_by(Purchase.created_at.desc(), Purchase.id.desc())
        .limit(limit)
        .all()
    )
