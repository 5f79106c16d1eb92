# Overview: Flask API routes for suppliers.

from flask import Blueprint, request
from ..services import catalog_service
from ..models import Supplier
from ..models.auth import ROLE_ADMIN
from ..validation import ModelValidationPolicy, validate_payload
from ..errors import PosError
from ..decorators import require_auth, require_role

SUPPLIER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "phone", "email"},
    required_on_create={"name"},
)

suppliers_bp = Blueprint("suppliers", __name__, url_prefix="/api/suppliers")


@suppliers_bp.get("")
@require_auth
def list_suppliers_route():
    suppliers = catalog_service.list_suppliers()
    return {"items": [s.to_dict() for s in suppliers], "count": len(suppliers)}


@suppliers_bp.post("")
@require_auth
@require_role(ROLE_ADMIN)
def create_supplier_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Supplier, payload=payload, policy=SUPPLIER_POLICY, partial=False)
        supplier = catalog_service.create_supplier(patch=patch)
    except PosError as e:
        return e.to_dict(), e.status_code
    return supplier.to_dict(), 201
