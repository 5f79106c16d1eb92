# Overview: Flask API routes for user administration.

from flask import Blueprint, request, jsonify, current_app

from ..services import auth_service
from ..decorators import require_auth, require_role
from ..errors import PosError
from ..models.auth import ROLE_ADMIN, ROLE_CASHIER


users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_auth
@require_role(ROLE_ADMIN)
def list_users_route():
    users = auth_service.list_users()
    return jsonify({"items": [u.to_dict() for u in users], "count": len(users)}), 200


@users_bp.post("")
@require_auth
@require_role(ROLE_ADMIN)
def create_user_route():
    """
    Create a user account.

    Body: {email, password, name, role?}
    """
    try:
        data = request.get_json(silent=True) or {}
        user = auth_service.create_user(
            email=data.get("email"),
            password=data.get("password") or "",
            name=data.get("name"),
            role=data.get("role") or ROLE_CASHIER,
        )
        return jsonify({"user": user.to_dict()}), 201

    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create user")
        return jsonify({"error": "Internal server error"}), 500
