# Overview: Flask API routes for cash sessions (shift open/close and reconciliation).

from flask import Blueprint, request, jsonify, g, current_app

from ..services import cash_session_service
from ..validation import parse_open_session_request, parse_close_session_request
from ..errors import PosError
from ..models.auth import ROLE_ADMIN, ROLE_CASHIER
from ..decorators import require_auth, require_role


sessions_bp = Blueprint("sessions", __name__, url_prefix="/api/sessions")


@sessions_bp.get("")
@require_auth
def list_sessions_route():
    limit = request.args.get("limit", default=50, type=int)
    sessions = cash_session_service.list_sessions(limit=max(1, min(limit, 500)))
    return jsonify({"items": [s.to_dict() for s in sessions], "count": len(sessions)}), 200


@sessions_bp.get("/active")
@require_auth
def active_session_route():
    session = cash_session_service.get_active_session()
    if session is None:
        return jsonify({"session": None}), 200
    return jsonify({"session": cash_session_service.session_report(session.id)}), 200


@sessions_bp.post("/open")
@require_auth
@require_role(ROLE_ADMIN, ROLE_CASHIER)
def open_session_route():
    """
    Open a cash session.

    Body:
    {
      "opening_float_cents": 10000,
      "notes": "morning shift",                            (optional)
      "inventory": [{"ingredient_id": 1, "quantity": "2"}] (optional)
    }
    Declared inventory leaves general stock (FIFO-costed) for the shift.
    """
    try:
        open_request = parse_open_session_request(request.get_json(silent=True))
        session = cash_session_service.open_session(open_request, g.current_user.id)
        return jsonify({"session": cash_session_service.session_report(session.id)}), 201

    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to open session")
        return jsonify({"error": "Internal server error"}), 500


@sessions_bp.post("/<int:session_id>/close")
@require_auth
@require_role(ROLE_ADMIN, ROLE_CASHIER)
def close_session_route(session_id: int):
    """
    Close a cash session.

    Body:
    {
      "closing_float_cents": 14350,
      "notes": "till short 2 coins",                         (optional)
      "inventory": [{"ingredient_id": 1, "quantity": "0.5"}] (optional)
    }
    Declared leftovers return to stock as zero-cost lots.
    """
    try:
        close_request = parse_close_session_request(request.get_json(silent=True))
        session = cash_session_service.close_session(session_id, close_request, g.current_user.id)
        return jsonify({"session": cash_session_service.session_report(session.id)}), 200

    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to close session")
        return jsonify({"error": "Internal server error"}), 500


@sessions_bp.get("/<int:session_id>")
@require_auth
def get_session_route(session_id: int):
    try:
        report = cash_session_service.session_report(session_id)
    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    return jsonify({"session": report}), 200
