# Overview: Flask API routes for stock levels, the movement ledger and manual adjustments.

# backend/app/routes/stock.py

from flask import Blueprint, request, jsonify, g, current_app

from ..services import inventory_service, reporting_service
from ..validation import parse_adjustment_request
from ..errors import PosError
from ..models.auth import ROLE_ADMIN, ROLE_KITCHEN
from ..decorators import require_auth, require_role


stock_bp = Blueprint("stock", __name__, url_prefix="/api/stock")


@stock_bp.get("/current")
@require_auth
def current_stock_route():
    rows = reporting_service.current_stock()
    return jsonify({"items": rows, "count": len(rows)}), 200


@stock_bp.get("/low")
@require_auth
def low_stock_route():
    rows = reporting_service.low_stock()
    return jsonify({"items": rows, "count": len(rows)}), 200


@stock_bp.get("/movements")
@require_auth
def movements_route():
    """
    Stock movement history, newest first.

    Query params:
    - ingredient_id: int (optional)
    - kind: PURCHASE | SALE_CONSUME | ADJUSTMENT | WASTAGE | SESSION_OUT | SESSION_IN (optional)
    - limit: int (default 200, max 1000)
    """
    try:
        rows = reporting_service.movement_history(
            ingredient_id=request.args.get("ingredient_id", type=int),
            kind=request.args.get("kind") or None,
            limit=request.args.get("limit", type=int),
        )
    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    return jsonify({"items": rows, "count": len(rows)}), 200


@stock_bp.get("/lots/<int:ingredient_id>")
@require_auth
def lots_route(ingredient_id: int):
    only_available = request.args.get("available", "").lower() in {"1", "true", "yes"}
    try:
        data = reporting_service.ingredient_lots(ingredient_id, only_available=only_available)
    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    return jsonify(data), 200


@stock_bp.post("/adjust")
@require_auth
@require_role(ROLE_ADMIN, ROLE_KITCHEN)
def adjust_route():
    """
    Manual stock adjustment.

    Body: {"ingredient_id": 1, "quantity": "-3", "note": "dropped tray"}
    Positive quantity adds a zero-cost lot; negative is FIFO-costed wastage.
    """
    try:
        adjustment = parse_adjustment_request(request.get_json(silent=True))
        result = inventory_service.adjust_stock(adjustment, g.current_user.id)
        return jsonify({"adjustment": result.to_dict()}), 201

    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to adjust stock")
        return jsonify({"error": "Internal server error"}), 500


@stock_bp.get("/consistency")
@require_auth
@require_role(ROLE_ADMIN)
def consistency_route():
    return jsonify(reporting_service.consistency_report()), 200
