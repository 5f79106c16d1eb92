# Overview: Cash session workflow; opens/closes shifts and reconciles staged stock and cash.

from __future__ import annotations

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import CashSession, Sale, SessionInventorySnapshot
from ..models.cash_sessions import OPEN_SLOT, SNAPSHOT_OPENING, SNAPSHOT_CLOSING
from ..models.inventory import (
    MOVEMENT_SESSION_OUT,
    MOVEMENT_SESSION_IN,
    REFERENCE_SESSION,
    LOT_SOURCE_SESSION_IN,
)
from ..models.sales import PAYMENT_CASH
from ..errors import ConflictError, NotFoundError
from ..quantity_utils import ZERO, quantize_qty
from ..time_utils import utcnow
from ..validation import OpenSessionRequest, CloseSessionRequest
from .concurrency import lock_for_update, run_in_transaction
from .fifo_service import consume
from .lot_service import create_lot, get_ingredient
from .stock_ledger_service import append_movement

"""
Cash Session Invariants (authoritative)

State machine: NONE -> OPEN -> CLOSED. Closed sessions never reopen.

- At most one session is open at any time. Enforced twice:
    * existence check under the write lock in open_session()
    * UNIQUE(open_slot): 1 while open, NULL once closed
- Opening moves declared stock out of general inventory (SESSION_OUT,
  FIFO-costed). Closing returns declared leftovers as new zero-cost lots
  (SESSION_IN). Lines with quantity 0 only record a snapshot.
- Snapshots are display records; the paired movements change stock.
- Cash variance = closing_float - (opening_float + SUM(CASH sales in session)).
"""


def get_active_session(*, lock: bool = False) -> CashSession | None:
    q = db.session.query(CashSession).filter(CashSession.closed_at.is_(None))
    if lock:
        q = lock_for_update(q)
    return q.order_by(CashSession.id.desc()).first()


def get_session(session_id: int, *, lock: bool = False) -> CashSession:
    q = db.session.query(CashSession).filter_by(id=session_id)
    if lock:
        q = lock_for_update(q)
    session = q.first()
    if session is None:
        raise NotFoundError(f"Session {session_id} not found", details={"session_id": session_id})
    return session


def list_sessions(limit: int = 50) -> list[CashSession]:
    return (
        db.session.query(CashSession)
        .order_by(CashSession.opened_at.desc(), CashSession.id.desc())
        .limit(limit)
        .all()
    )


def open_session(request: OpenSessionRequest, actor_user_id: int) -> CashSession:
    """
    Open a new cash session and stage declared stock out of inventory.

    Raises:
        ConflictError: a session is already open
        NotFoundError: unknown ingredient in the declared inventory
        InsufficientStockError: declared quantity exceeds stock on hand
    """
    def _op():
        existing = get_active_session(lock=True)
        if existing is not None:
            raise ConflictError(
                "A session is already open",
                details={"session_id": existing.id},
            )

        session = CashSession(
            opened_by=actor_user_id,
            opening_float_cents=request.opening_float_cents,
            notes=request.notes,
            open_slot=OPEN_SLOT,
        )
        db.session.add(session)
        db.session.flush()

        for line in request.inventory:
            quantity = quantize_qty(line.quantity)
            get_ingredient(line.ingredient_id)

            if quantity > 0:
                consume(
                    line.ingredient_id,
                    quantity,
                    kind=MOVEMENT_SESSION_OUT,
                    reference_type=REFERENCE_SESSION,
                    reference_id=session.id,
                    actor_user_id=actor_user_id,
                )

            db.session.add(SessionInventorySnapshot(
                session_id=session.id,
                ingredient_id=line.ingredient_id,
                quantity=quantity,
                type=SNAPSHOT_OPENING,
            ))

        db.session.flush()
        return session

    session = run_in_transaction(_op)
    current_app.logger.info(
        "Session %s opened by user %s with float %d cents, %d inventory line(s)",
        session.id,
        actor_user_id,
        session.opening_float_cents,
        len(request.inventory),
    )
    return session


def close_session(session_id: int, request: CloseSessionRequest, actor_user_id: int) -> CashSession:
    """
    Close the open session, returning declared leftovers to inventory.

    Raises:
        NotFoundError: unknown session id
        ConflictError: session is not the currently open one
        NotFoundError: unknown ingredient in the declared inventory
    """
    def _op():
        session = get_session(session_id, lock=True)
        if not session.is_open:
            raise ConflictError(
                f"Session {session_id} is not open",
                details={"session_id": session_id},
            )

        for line in request.inventory:
            quantity = quantize_qty(line.quantity)
            get_ingredient(line.ingredient_id)

            if quantity > 0:
                lot = create_lot(
                    line.ingredient_id,
                    quantity,
                    ZERO,
                    source=LOT_SOURCE_SESSION_IN,
                )
                append_movement(
                    kind=MOVEMENT_SESSION_IN,
                    ingredient_id=line.ingredient_id,
                    quantity=quantity,
                    lot_id=lot.id,
                    cost_cents=ZERO,
                    reference_type=REFERENCE_SESSION,
                    reference_id=session.id,
                    actor_user_id=actor_user_id,
                )

            db.session.add(SessionInventorySnapshot(
                session_id=session.id,
                ingredient_id=line.ingredient_id,
                quantity=quantity,
                type=SNAPSHOT_CLOSING,
            ))

        session.closed_at = utcnow()
        session.closed_by = actor_user_id
        session.closing_float_cents = request.closing_float_cents
        session.open_slot = None
        if request.notes:
            session.notes = f"{session.notes}\n{request.notes}" if session.notes else request.notes

        db.session.flush()
        return session

    session = run_in_transaction(_op)
    variance = compute_variance(session)
    current_app.logger.info(
        "Session %s closed by user %s: closing float %d cents, variance %s cents",
        session.id,
        actor_user_id,
        session.closing_float_cents,
        variance["variance_cents"],
    )
    return session


def compute_variance(session: CashSession) -> dict:
    """
    Expected vs counted cash for one session.

    variance_cents is None while the session is still open.
    """
    cash_sales = db.session.query(
        func.coalesce(func.sum(Sale.total_cents), 0)
    ).filter(
        Sale.session_id == session.id,
        Sale.payment_type == PAYMENT_CASH,
    ).scalar()
    cash_sales = int(cash_sales or 0)

    sale_count, sales_total = db.session.query(
        func.count(Sale.id),
        func.coalesce(func.sum(Sale.total_cents), 0),
    ).filter(Sale.session_id == session.id).one()

    expected_cash = session.opening_float_cents + cash_sales
    variance = None
    if session.closing_float_cents is not None:
        variance = session.closing_float_cents - expected_cash

    return {
        "session_id": session.id,
        "opening_float_cents": session.opening_float_cents,
        "cash_sales_cents": cash_sales,
        "sales_total_cents": int(sales_total or 0),
        "sale_count": int(sale_count or 0),
        "expected_cash_cents": expected_cash,
        "closing_float_cents": session.closing_float_cents,
        "variance_cents": variance,
    }


def session_report(session_id: int) -> dict:
    session = get_session(session_id)
    data = session.to_dict()
    data["opening_inventory"] = [
        s.to_dict() for s in session.snapshots if s.type == SNAPSHOT_OPENING
    ]
    data["closing_inventory"] = [
        s.to_dict() for s in session.snapshots if s.type == SNAPSHOT_CLOSING
    ]
    data["variance"] = compute_variance(session)
    return data
