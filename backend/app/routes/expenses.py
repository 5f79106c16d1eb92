# Overview: Flask API routes for operating expenses.

from flask import Blueprint, request, jsonify, g

from ..services import expense_service
from ..models import Expense
from ..models.auth import ROLE_ADMIN, ROLE_CASHIER
from ..validation import ModelValidationPolicy, validate_payload, enforce_rules_expense
from ..errors import PosError
from ..decorators import require_auth, require_role

EXPENSE_POLICY = ModelValidationPolicy(
    writable_fields={"label", "amount_cents", "paid_via"},
    required_on_create={"label", "amount_cents", "paid_via"},
)

expenses_bp = Blueprint("expenses", __name__, url_prefix="/api/expenses")


@expenses_bp.get("")
@require_auth
def list_expenses_route():
    limit = request.args.get("limit", default=100, type=int)
    expenses = expense_service.list_expenses(limit=max(1, min(limit, 1000)))
    return jsonify({"items": [e.to_dict() for e in expenses], "count": len(expenses)}), 200


@expenses_bp.post("")
@require_auth
@require_role(ROLE_ADMIN, ROLE_CASHIER)
def create_expense_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Expense, payload=payload, policy=EXPENSE_POLICY, partial=False)
        enforce_rules_expense(patch)
        expense = expense_service.create_expense(patch=patch, actor_user_id=g.current_user.id)
    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    return jsonify({"expense": expense.to_dict()}), 201
