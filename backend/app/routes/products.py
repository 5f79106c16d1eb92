# Overview: Flask API routes for products and recipes; parses input and returns JSON responses.

# backend/app/routes/products.py
"""
Product management routes.

SECURITY: All routes require authentication.
- Read operations: any role
- Write operations (product fields, recipes): ADMIN
"""
from flask import Blueprint, request, current_app
from ..services import catalog_service
from ..models import Product
from ..models.auth import ROLE_ADMIN
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    parse_recipe_request,
)
from ..errors import PosError
from ..decorators import require_auth, require_role

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"sku", "name", "price_cents", "is_active"},
    required_on_create={"sku", "name", "price_cents"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
def list_products():
    """
    List products with their recipes.

    Query params:
    - active_only: "1"/"true" hides inactive products
    """
    active_only = request.args.get("active_only", "").lower() in {"1", "true", "yes"}
    products = catalog_service.list_products(include_inactive=not active_only)
    return {
        "items": [p.to_dict(include_recipe=True) for p in products],
        "count": len(products),
    }


@products_bp.post("")
@require_auth
@require_role(ROLE_ADMIN)
def create_product_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
        created = catalog_service.create_product(patch=patch)
    except PosError as e:
        return e.to_dict(), e.status_code

    return created.to_dict(include_recipe=True), 201


@products_bp.get("/<int:product_id>")
@require_auth
def get_product_route(product_id: int):
    try:
        product = catalog_service.get_product(product_id)
    except PosError as e:
        return e.to_dict(), e.status_code
    return product.to_dict(include_recipe=True)


@products_bp.patch("/<int:product_id>")
@require_auth
@require_role(ROLE_ADMIN)
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
        product = catalog_service.update_product(product_id, patch=patch)
    except PosError as e:
        return e.to_dict(), e.status_code

    return product.to_dict(include_recipe=True)


@products_bp.get("/<int:product_id>/recipe")
@require_auth
def get_recipe_route(product_id: int):
    try:
        items = catalog_service.get_recipe(product_id)
    except PosError as e:
        return e.to_dict(), e.status_code
    return {"product_id": product_id, "items": [i.to_dict() for i in items]}


@products_bp.put("/<int:product_id>/recipe")
@require_auth
@require_role(ROLE_ADMIN)
def replace_recipe_route(product_id: int):
    """
    Replace the product's recipe.

    Body: {"items": [{"ingredient_id": 1, "quantity": "0.25"}, ...]}
    """
    try:
        lines = parse_recipe_request(request.get_json(silent=True))
        items = catalog_service.replace_recipe(product_id, lines)
    except PosError as e:
        return e.to_dict(), e.status_code
    except Exception:
        current_app.logger.exception("Failed to replace recipe")
        return {"error": "Internal server error"}, 500

    return {"product_id": product_id, "items": [i.to_dict() for i in items]}
