# Overview: Sale workflow; prices the basket and consumes recipe ingredients through FIFO.

# backend/app/services/sales_service.py

from __future__ import annotations

from decimal import Decimal

from flask import current_app
from sqlalchemy.orm import selectinload

from ..extensions import db
from ..models import Sale, SaleItem, CashSession
from ..models.inventory import MOVEMENT_SALE_CONSUME, REFERENCE_SALE
from ..errors import ConflictError, InsufficientStockError, NotFoundError, ValidationError
from ..quantity_utils import ZERO, quantize_qty, round_cents
from ..validation import SaleRequest
from .catalog_service import get_product
from .concurrency import lock_for_update, run_in_transaction
from .fifo_service import consume

"""
Sale Invariants (authoritative)

- total_cents = SUM(qty * product.price_cents) over lines, prices snapshotted.
- For every line and every recipe item, recipe.quantity * qty is consumed
  through the FIFO engine (kind SALE_CONSUME, reference ("sale", sale.id)).
- cogs_cents = SUM of exact FIFO cost, rounded half-up to whole cents once.
- Inactive or unknown products cannot be sold.
- Any shortfall aborts the whole sale: no header, no lines, no lot changes.
- A sale attached to a session requires that session to be open.
"""


def _require_open_session(session_id: int) -> CashSession:
    session = lock_for_update(
        db.session.query(CashSession).filter_by(id=session_id)
    ).first()
    if session is None:
        raise NotFoundError(f"Session {session_id} not found", details={"session_id": session_id})
    if not session.is_open:
        raise ConflictError(
            f"Session {session_id} is closed",
            details={"session_id": session_id},
        )
    return session


def create_sale(request: SaleRequest, actor_user_id: int) -> Sale:
    """
    Record a sale atomically.

    Raises:
        ValidationError: empty basket or non-positive qty
        NotFoundError: unknown/inactive product, unknown session
        ConflictError: session is closed
        InsufficientStockError: decorated with product_id and ingredient name
    """
    if not request.items:
        raise ValidationError("Sale must contain at least one item")
    for line in request.items:
        if line.qty <= 0:
            raise ValidationError("Sale qty must be > 0", details={"product_id": line.product_id})

    def _op():
        if request.session_id is not None:
            _require_open_session(request.session_id)

        sale = Sale(
            session_id=request.session_id,
            user_id=actor_user_id,
            payment_type=request.payment_type,
            total_cents=0,
            cogs_cents=0,
        )
        db.session.add(sale)
        db.session.flush()

        total_cents = 0
        cogs_exact = ZERO

        for line in request.items:
            product = get_product(line.product_id, require_active=True)
            line_total = product.price_cents * line.qty
            total_cents += line_total

            db.session.add(SaleItem(
                sale_id=sale.id,
                product_id=product.id,
                qty=line.qty,
                unit_price_cents=product.price_cents,
                line_total_cents=line_total,
            ))

            for recipe_item in product.recipe_items:
                required = quantize_qty(recipe_item.quantity * Decimal(line.qty))
                try:
                    result = consume(
                        recipe_item.ingredient_id,
                        required,
                        kind=MOVEMENT_SALE_CONSUME,
                        reference_type=REFERENCE_SALE,
                        reference_id=sale.id,
                        actor_user_id=actor_user_id,
                    )
                except InsufficientStockError as exc:
                    ingredient_name = recipe_item.ingredient.name if recipe_item.ingredient else None
                    raise exc.for_product(product.id, ingredient_name) from exc
                cogs_exact += result.total_cost_cents

        sale.total_cents = total_cents
        sale.cogs_cents = round_cents(cogs_exact)
        db.session.flush()
        return sale

    sale = run_in_transaction(_op)
    current_app.logger.info(
        "Sale %s recorded: total %d cents, COGS %d cents, %s, session %s, user %s",
        sale.id,
        sale.total_cents,
        sale.cogs_cents,
        sale.payment_type,
        sale.session_id,
        actor_user_id,
    )
    return sale


def get_sale(sale_id: int) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if sale is None:
        raise NotFoundError(f"Sale {sale_id} not found", details={"sale_id": sale_id})
    return sale


def list_sales(*, session_id: int | None = None, limit: int = 100) -> list[Sale]:
    q = db.session.query(Sale).options(selectinload(Sale.items))
    if session_id is not None:
        q = q.filter(Sale.session_id == session_id)
    return q.order_by(Sale.created_at.desc(), Sale.id.desc()).limit(limit).all()
