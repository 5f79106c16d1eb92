# Overview: Operating expenses; independent of the stock ledger.

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Expense
from .concurrency import run_in_transaction


def create_expense(*, patch: dict, actor_user_id: int | None) -> Expense:
    def _op():
        expense = Expense(
            label=patch["label"],
            amount_cents=patch["amount_cents"],
            paid_via=patch["paid_via"],
            created_by_user_id=actor_user_id,
        )
        db.session.add(expense)
        db.session.flush()
        return expense

    expense = run_in_transaction(_op)
    current_app.logger.info(
        "Expense %s recorded: %s %d cents via %s",
        expense.id, expense.label, expense.amount_cents, expense.paid_via,
    )
    return expense


def list_expenses(limit: int = 100) -> list[Expense]:
    return (
        db.session.query(Expense)
        .order_by(Expense.created_at.desc(), Expense.id.desc())
        .limit(limit)
        .all()
    )
