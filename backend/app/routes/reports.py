# Overview: Flask API routes for dashboards and reports; read-only.

from flask import Blueprint, request, jsonify

from ..services import reporting_service
from ..errors import PosError
from ..decorators import require_auth


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/overview")
@require_auth
def overview_route():
    """Today's (UTC) revenue, COGS, gross margin and order count."""
    return jsonify(reporting_service.overview()), 200


@reports_bp.get("/top-products")
@require_auth
def top_products_route():
    """
    Query params:
    - start, end: ISO-8601 (optional, inclusive)
    - limit: int (default 10)
    """
    try:
        rows = reporting_service.top_products(
            start=request.args.get("start"),
            end=request.args.get("end"),
            limit=request.args.get("limit", type=int),
        )
    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    return jsonify({"items": rows, "count": len(rows)}), 200


@reports_bp.get("/activity")
@require_auth
def activity_route():
    try:
        rows = reporting_service.recent_activity(limit=request.args.get("limit", type=int))
    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    return jsonify({"items": rows, "count": len(rows)}), 200
