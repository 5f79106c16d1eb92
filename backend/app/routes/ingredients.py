# Overview: Flask API routes for ingredients; parses input and returns JSON responses.

from flask import Blueprint, request
from ..services import catalog_service
from ..models import Ingredient
from ..models.auth import ROLE_ADMIN
from ..validation import ModelValidationPolicy, validate_payload, enforce_rules_ingredient
from ..errors import PosError
from ..decorators import require_auth, require_role

INGREDIENT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "unit", "low_stock_level"},
    required_on_create={"name", "unit"},
)

ingredients_bp = Blueprint("ingredients", __name__, url_prefix="/api/ingredients")


@ingredients_bp.get("")
@require_auth
def list_ingredients_route():
    ingredients = catalog_service.list_ingredients()
    return {"items": [i.to_dict() for i in ingredients], "count": len(ingredients)}


@ingredients_bp.post("")
@require_auth
@require_role(ROLE_ADMIN)
def create_ingredient_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Ingredient, payload=payload, policy=INGREDIENT_POLICY, partial=False)
        enforce_rules_ingredient(patch)
        ingredient = catalog_service.create_ingredient(patch=patch)
    except PosError as e:
        return e.to_dict(), e.status_code
    return ingredient.to_dict(), 201


@ingredients_bp.patch("/<int:ingredient_id>")
@require_auth
@require_role(ROLE_ADMIN)
def update_ingredient_route(ingredient_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Ingredient, payload=payload, policy=INGREDIENT_POLICY, partial=True)
        enforce_rules_ingredient(patch)
        ingredient = catalog_service.update_ingredient(ingredient_id, patch=patch)
    except PosError as e:
        return e.to_dict(), e.status_code
    return ingredient.to_dict()
