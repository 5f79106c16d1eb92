# Overview: Read-only reporting queries over stock, sales and expenses.

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func

from ..extensions import db
from ..models import Expense, Ingredient, InventoryLot, Product, Sale, SaleItem
from ..errors import ValidationError
from ..quantity_utils import ZERO, as_decimal, quantize_qty, qty_to_str, round_cents
from .lot_service import get_ingredient, list_lots
from .stock_ledger_service import check_consistency, list_movements
from ..time_utils import parse_iso_datetime, utc_day_bounds, to_utc_z

MAX_LIMIT = 1000


def _parse_range(start: str | None, end: str | None) -> tuple[datetime | None, datetime | None]:
    try:
        start_dt = parse_iso_datetime(start) if start else None
        end_dt = parse_iso_datetime(end) if end else None
    except ValueError:
        raise ValidationError("start/end must be ISO-8601 datetimes")
    if start_dt and end_dt and start_dt > end_dt:
        raise ValidationError("start must be before end")
    return start_dt, end_dt


def _clamp_limit(limit: int | None, default: int) -> int:
    if limit is None:
        return default
    if limit <= 0:
        raise ValidationError("limit must be > 0")
    return min(limit, MAX_LIMIT)


def current_stock() -> list[dict]:
    """
    On-hand quantity and FIFO value per ingredient.

    quantity = SUM(remaining lot quantity)
    value_cents = SUM(remaining * unit_cost), rounded to whole cents
    """
    lots_by_ingredient: dict[int, list[InventoryLot]] = {}
    for lot in db.session.query(InventoryLot).filter(InventoryLot.quantity > 0).all():
        lots_by_ingredient.setdefault(lot.ingredient_id, []).append(lot)

    rows = []
    for ingredient in db.session.query(Ingredient).order_by(Ingredient.name.asc()).all():
        lots = lots_by_ingredient.get(ingredient.id, [])
        quantity = sum((quantize_qty(lot.quantity) for lot in lots), ZERO)
        value = sum((quantize_qty(lot.quantity) * as_decimal(lot.unit_cost_cents) for lot in lots), ZERO)
        level = ingredient.low_stock_level
        rows.append({
            "ingredient_id": ingredient.id,
            "name": ingredient.name,
            "unit": ingredient.unit,
            "quantity": qty_to_str(quantity),
            "value_cents": round_cents(value),
            "open_lots": len(lots),
            "low_stock_level": qty_to_str(level),
            "is_low": level is not None and quantity < quantize_qty(level),
        })
    return rows


def low_stock() -> list[dict]:
    return [row for row in current_stock() if row["is_low"]]


def movement_history(*, ingredient_id: int | None = None, kind: str | None = None, limit: int | None = None) -> list[dict]:
    if ingredient_id is not None:
        get_ingredient(ingredient_id)
    movements = list_movements(
        ingredient_id=ingredient_id,
        kind=kind,
        limit=_clamp_limit(limit, 200),
    )
    return [m.to_dict() for m in movements]


def ingredient_lots(ingredient_id: int, *, only_available: bool = False) -> dict:
    ingredient = get_ingredient(ingredient_id)
    return {
        "ingredient": ingredient.to_dict(),
        "lots": [lot.to_dict() for lot in list_lots(ingredient_id, only_available=only_available)],
    }


def top_products(*, start: str | None = None, end: str | None = None, limit: int | None = None) -> list[dict]:
    start_dt, end_dt = _parse_range(start, end)

    query = db.session.query(
        Product.id,
        Product.name,
        func.coalesce(func.sum(SaleItem.qty), 0).label("qty_sold"),
        func.coalesce(func.sum(SaleItem.line_total_cents), 0).label("revenue_cents"),
    ).join(SaleItem, SaleItem.product_id == Product.id).join(Sale, Sale.id == SaleItem.sale_id)

    if start_dt:
        query = query.filter(Sale.created_at >= start_dt)
    if end_dt:
        query = query.filter(Sale.created_at <= end_dt)

    rows = (
        query.group_by(Product.id, Product.name)
        .order_by(func.sum(SaleItem.qty).desc(), Product.id.asc())
        .limit(_clamp_limit(limit, 10))
        .all()
    )
    return [
        {
            "product_id": r.id,
            "name": r.name,
            "qty_sold": int(r.qty_sold),
            "revenue_cents": int(r.revenue_cents),
        }
        for r in rows
    ]


def overview(moment: datetime | None = None) -> dict:
    """Today's (UTC) revenue, COGS, gross margin, order count and expenses."""
    start, end = utc_day_bounds(moment)

    revenue, cogs, orders = db.session.query(
        func.coalesce(func.sum(Sale.total_cents), 0),
        func.coalesce(func.sum(Sale.cogs_cents), 0),
        func.count(Sale.id),
    ).filter(Sale.created_at >= start, Sale.created_at <= end).one()

    expenses = db.session.query(
        func.coalesce(func.sum(Expense.amount_cents), 0)
    ).filter(Expense.created_at >= start, Expense.created_at <= end).scalar()

    revenue = int(revenue or 0)
    cogs = int(cogs or 0)
    return {
        "day_start": to_utc_z(start),
        "day_end": to_utc_z(end),
        "revenue_cents": revenue,
        "cogs_cents": cogs,
        "gross_margin_cents": revenue - cogs,
        "order_count": int(orders or 0),
        "expenses_cents": int(expenses or 0),
        "low_stock_count": len(low_stock()),
    }


def recent_activity(limit: int | None = None) -> list[dict]:
    """Latest sales and expenses, merged newest first."""
    limit = _clamp_limit(limit, 20)

    sales = db.session.query(Sale).order_by(Sale.created_at.desc(), Sale.id.desc()).limit(limit).all()
    expenses = db.session.query(Expense).order_by(Expense.created_at.desc(), Expense.id.desc()).limit(limit).all()

    events = [
        {
            "type": "sale",
            "id": s.id,
            "amount_cents": s.total_cents,
            "payment_type": s.payment_type,
            "at": s.created_at,
        }
        for s in sales
    ] + [
        {
            "type": "expense",
            "id": e.id,
            "amount_cents": e.amount_cents,
            "label": e.label,
            "payment_type": e.paid_via,
            "at": e.created_at,
        }
        for e in expenses
    ]
    events.sort(key=lambda ev: ev["at"], reverse=True)

    out = []
    for ev in events[:limit]:
        ev["at"] = to_utc_z(ev["at"])
        out.append(ev)
    return out


def consistency_report() -> dict:
    rows = check_consistency()
    return {
        "consistent": all(r["consistent"] for r in rows),
        "ingredients": [
            {
                **r,
                "ledger_quantity": qty_to_str(r["ledger_quantity"]),
                "lot_quantity": qty_to_str(r["lot_quantity"]),
            }
            for r in rows
        ],
    }
