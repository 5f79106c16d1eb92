# Overview: Flask API routes for purchases (stock receiving); parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..services import purchase_service
from ..validation import parse_purchase_request
from ..errors import PosError
from ..models.auth import ROLE_ADMIN
from ..decorators import require_auth, require_role


purchases_bp = Blueprint("purchases", __name__, url_prefix="/api/purchases")


@purchases_bp.get("")
@require_auth
def list_purchases_route():
    limit = request.args.get("limit", default=100, type=int)
    purchases = purchase_service.list_purchases(limit=max(1, min(limit, 1000)))
    return jsonify({
        "items": [p.to_dict(include_items=True) for p in purchases],
        "count": len(purchases),
    }), 200


@purchases_bp.post("")
@require_auth
@require_role(ROLE_ADMIN)
def create_purchase_route():
    """
    Record a purchase. Each item creates one inventory lot.

    Body:
    {
      "supplier_id": 1,                        (optional)
      "notes": "weekly order",                 (optional)
      "items": [{"ingredient_id": 1, "quantity": "10", "total_cost_cents": 2000}]
    }
    """
    try:
        purchase_request = parse_purchase_request(request.get_json(silent=True))
        purchase = purchase_service.create_purchase(purchase_request, g.current_user.id)
        return jsonify({"purchase": purchase.to_dict(include_items=True)}), 201

    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create purchase")
        return jsonify({"error": "Internal server error"}), 500


@purchases_bp.get("/<int:purchase_id>")
@require_auth
def get_purchase_route(purchase_id: int):
    try:
        purchase = purchase_service.get_purchase(purchase_id)
    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    return jsonify({"purchase": purchase.to_dict(include_items=True)}), 200
