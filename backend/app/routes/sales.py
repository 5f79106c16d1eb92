# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/app/routes/sales.py
"""Sales API routes with role enforcement"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import sales_service
from ..validation import parse_sale_request
from ..errors import PosError
from ..models.auth import ROLE_ADMIN, ROLE_CASHIER
from ..decorators import require_auth, require_role


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("")
@require_auth
@require_role(ROLE_ADMIN, ROLE_CASHIER)
def create_sale_route():
    """
    Record a completed sale.

    Body:
    {
      "session_id": 3,               (optional)
      "payment_type": "CASH",
      "items": [{"product_id": 1, "qty": 2}]
    }

    Prices and COGS are computed server-side. A stock shortfall on any
    ingredient rejects the whole sale with 409.
    """
    try:
        sale_request = parse_sale_request(request.get_json(silent=True))
        sale = sales_service.create_sale(sale_request, g.current_user.id)
        return jsonify({"sale": sale.to_dict(include_items=True)}), 201

    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("")
@require_auth
def list_sales_route():
    limit = request.args.get("limit", default=100, type=int)
    sales = sales_service.list_sales(
        session_id=request.args.get("session_id", type=int),
        limit=max(1, min(limit, 1000)),
    )
    return jsonify({"items": [s.to_dict(include_items=True) for s in sales], "count": len(sales)}), 200


@sales_bp.get("/<int:sale_id>")
@require_auth
def get_sale_route(sale_id: int):
    try:
        sale = sales_service.get_sale(sale_id)
    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    return jsonify({"sale": sale.to_dict(include_items=True)}), 200
