from __future__ import annotations
from datetime import datetime
from decimal import Decimal, InvalidOperation
from app.time_utils import parse_iso_datetime

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Integer, Numeric, String, Text, DateTime
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationError
from .models.sales import PAYMENT_TYPES
from .quantity_utils import QTY_PLACES


# Maximum price: $9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_PRICE_CENTS = 999_999_999

# Largest quantity representable in Numeric(14, 4)
MAX_QUANTITY = Decimal("9999999999.9999")


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _parse_int(key: str, value: Any) -> int:
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{key} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if 'e' in stripped.lower():
            raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if '.' in stripped:
            raise ValidationError(f"{key} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{key} must be an integer")
    # Reject floats explicitly
    if isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal")
    raise ValidationError(f"{key} must be an integer")


def _parse_decimal(key: str, value: Any) -> Decimal:
    """Quantities arrive as JSON numbers or numeric strings ("0.25")."""
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{key} must be a number")
    if isinstance(value, Decimal):
        d = value
    elif isinstance(value, (int, float, str)):
        text = str(value).strip() if not isinstance(value, float) else repr(value)
        if not text:
            raise ValidationError(f"{key} must be a number")
        try:
            d = Decimal(text)
        except InvalidOperation:
            raise ValidationError(f"{key} must be a number")
    else:
        raise ValidationError(f"{key} must be a number")

    if not d.is_finite():
        raise ValidationError(f"{key} must be a finite number")
    if abs(d) > MAX_QUANTITY:
        raise ValidationError(f"{key} is out of range")
    if d != d.quantize(QTY_PLACES):
        raise ValidationError(f"{key} supports at most 4 decimal places")
    return d


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return _parse_int(col.key, value)

    if isinstance(coltype, Numeric):
        return _parse_decimal(col.key, value)

    # Booleans
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise ValidationError(f"{col.key} must be a boolean")

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except Exception:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{col.key} must be a datetime")

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    # Default: leave as-is
    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        # NULL handling
        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    if "price_cents" in patch and patch["price_cents"] is not None:
        price = patch["price_cents"]
        if price < 0:
            raise ValidationError("price_cents must be >= 0")
        if price > MAX_PRICE_CENTS:
            raise ValidationError(f"price_cents cannot exceed {MAX_PRICE_CENTS} (${MAX_PRICE_CENTS / 100:,.2f})")


def enforce_rules_ingredient(patch: dict) -> None:
    level = patch.get("low_stock_level")
    if level is not None and level < 0:
        raise ValidationError("low_stock_level must be >= 0")


def enforce_rules_expense(patch: dict) -> None:
    if "amount_cents" in patch and patch["amount_cents"] < 0:
        raise ValidationError("amount_cents must be >= 0")
    if "paid_via" in patch and patch["paid_via"] not in PAYMENT_TYPES:
        raise ValidationError(f"paid_via must be one of {', '.join(PAYMENT_TYPES)}")


# =============================================================================
# WORKFLOW REQUEST STRUCTS
# =============================================================================
# Each inventory workflow takes one frozen request struct. Parsers reject
# unknown keys and malformed shapes before the workflow starts.


@dataclass(frozen=True)
class PurchaseLine:
    ingredient_id: int
    quantity: Decimal
    total_cost_cents: int


@dataclass(frozen=True)
class PurchaseRequest:
    items: tuple[PurchaseLine, ...]
    supplier_id: int | None = None
    notes: str | None = None


@dataclass(frozen=True)
class SaleLineRequest:
    product_id: int
    qty: int


@dataclass(frozen=True)
class SaleRequest:
    payment_type: str
    items: tuple[SaleLineRequest, ...]
    session_id: int | None = None


@dataclass(frozen=True)
class AdjustmentRequest:
    ingredient_id: int
    quantity: Decimal
    note: str | None = None


@dataclass(frozen=True)
class InventoryCountLine:
    ingredient_id: int
    quantity: Decimal


@dataclass(frozen=True)
class OpenSessionRequest:
    opening_float_cents: int
    inventory: tuple[InventoryCountLine, ...] = ()
    notes: str | None = None


@dataclass(frozen=True)
class CloseSessionRequest:
    closing_float_cents: int
    inventory: tuple[InventoryCountLine, ...] = ()
    notes: str | None = None


def _require_dict(payload: Any, label: str = "payload") -> dict:
    if not isinstance(payload, dict):
        raise ValidationError(f"Invalid JSON {label}")
    return payload


def _reject_unknown(payload: dict, allowed: set[str], label: str = "payload") -> None:
    unknown = sorted(set(payload) - allowed)
    if unknown:
        raise ValidationError(f"Field not allowed in {label}: {', '.join(unknown)}")


def _require(payload: dict, key: str, label: str = "payload") -> Any:
    if key not in payload or payload[key] is None:
        raise ValidationError(f"{key} is required in {label}")
    return payload[key]


def _optional_text(payload: dict, key: str, max_length: int | None = None) -> str | None:
    value = payload.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a string")
    value = value.strip()
    if max_length is not None and len(value) > max_length:
        raise ValidationError(f"{key} exceeds max length {max_length}")
    return value or None


def _require_list(payload: dict, key: str, *, allow_empty: bool) -> list:
    value = payload.get(key, [] if allow_empty else None)
    if value is None:
        raise ValidationError(f"{key} is required")
    if not isinstance(value, list):
        raise ValidationError(f"{key} must be a list")
    if not value and not allow_empty:
        raise ValidationError(f"{key} must contain at least one item")
    return value


def _positive_id(key: str, value: Any) -> int:
    parsed = _parse_int(key, value)
    if parsed <= 0:
        raise ValidationError(f"{key} must be a positive id")
    return parsed


def _non_negative_cents(key: str, value: Any) -> int:
    parsed = _parse_int(key, value)
    if parsed < 0:
        raise ValidationError(f"{key} must be >= 0")
    if parsed > MAX_PRICE_CENTS:
        raise ValidationError(f"{key} cannot exceed {MAX_PRICE_CENTS}")
    return parsed


def parse_purchase_request(payload: Any) -> PurchaseRequest:
    payload = _require_dict(payload)
    _reject_unknown(payload, {"supplier_id", "notes", "items"})

    lines = []
    for index, raw in enumerate(_require_list(payload, "items", allow_empty=False)):
        label = f"items[{index}]"
        raw = _require_dict(raw, label)
        _reject_unknown(raw, {"ingredient_id", "quantity", "total_cost_cents"}, label)
        quantity = _parse_decimal("quantity", _require(raw, "quantity", label))
        if quantity <= 0:
            raise ValidationError(f"{label}.quantity must be > 0")
        lines.append(PurchaseLine(
            ingredient_id=_positive_id("ingredient_id", _require(raw, "ingredient_id", label)),
            quantity=quantity,
            total_cost_cents=_non_negative_cents("total_cost_cents", _require(raw, "total_cost_cents", label)),
        ))

    supplier_id = payload.get("supplier_id")
    return PurchaseRequest(
        items=tuple(lines),
        supplier_id=_positive_id("supplier_id", supplier_id) if supplier_id is not None else None,
        notes=_optional_text(payload, "notes"),
    )


def parse_sale_request(payload: Any) -> SaleRequest:
    payload = _require_dict(payload)
    _reject_unknown(payload, {"session_id", "payment_type", "items"})

    payment_type = _require(payload, "payment_type")
    if payment_type not in PAYMENT_TYPES:
        raise ValidationError(f"payment_type must be one of {', '.join(PAYMENT_TYPES)}")

    lines = []
    for index, raw in enumerate(_require_list(payload, "items", allow_empty=False)):
        label = f"items[{index}]"
        raw = _require_dict(raw, label)
        _reject_unknown(raw, {"product_id", "qty"}, label)
        qty = _parse_int("qty", _require(raw, "qty", label))
        if qty <= 0:
            raise ValidationError(f"{label}.qty must be > 0")
        lines.append(SaleLineRequest(
            product_id=_positive_id("product_id", _require(raw, "product_id", label)),
            qty=qty,
        ))

    session_id = payload.get("session_id")
    return SaleRequest(
        payment_type=payment_type,
        items=tuple(lines),
        session_id=_positive_id("session_id", session_id) if session_id is not None else None,
    )


def parse_adjustment_request(payload: Any) -> AdjustmentRequest:
    payload = _require_dict(payload)
    _reject_unknown(payload, {"ingredient_id", "quantity", "note"})

    quantity = _parse_decimal("quantity", _require(payload, "quantity"))
    if quantity == 0:
        raise ValidationError("quantity must be non-zero for an adjustment")

    return AdjustmentRequest(
        ingredient_id=_positive_id("ingredient_id", _require(payload, "ingredient_id")),
        quantity=quantity,
        note=_optional_text(payload, "note", max_length=255),
    )


def _parse_inventory_lines(payload: dict) -> tuple[InventoryCountLine, ...]:
    lines = []
    seen = set()
    for index, raw in enumerate(_require_list(payload, "inventory", allow_empty=True)):
        label = f"inventory[{index}]"
        raw = _require_dict(raw, label)
        _reject_unknown(raw, {"ingredient_id", "quantity"}, label)
        ingredient_id = _positive_id("ingredient_id", _require(raw, "ingredient_id", label))
        if ingredient_id in seen:
            raise ValidationError(f"{label}: ingredient {ingredient_id} declared twice")
        seen.add(ingredient_id)
        quantity = _parse_decimal("quantity", _require(raw, "quantity", label))
        if quantity < 0:
            raise ValidationError(f"{label}.quantity must be >= 0")
        lines.append(InventoryCountLine(ingredient_id=ingredient_id, quantity=quantity))
    return tuple(lines)


def parse_open_session_request(payload: Any) -> OpenSessionRequest:
    payload = _require_dict(payload)
    _reject_unknown(payload, {"opening_float_cents", "notes", "inventory"})
    return OpenSessionRequest(
        opening_float_cents=_non_negative_cents("opening_float_cents", _require(payload, "opening_float_cents")),
        inventory=_parse_inventory_lines(payload),
        notes=_optional_text(payload, "notes"),
    )


def parse_close_session_request(payload: Any) -> CloseSessionRequest:
    payload = _require_dict(payload)
    _reject_unknown(payload, {"closing_float_cents", "notes", "inventory"})
    return CloseSessionRequest(
        closing_float_cents=_non_negative_cents("closing_float_cents", _require(payload, "closing_float_cents")),
        inventory=_parse_inventory_lines(payload),
        notes=_optional_text(payload, "notes"),
    )


@dataclass(frozen=True)
class RecipeLine:
    ingredient_id: int
    quantity: Decimal


def parse_recipe_request(payload: Any) -> tuple[RecipeLine, ...]:
    """Body of PUT /products/<id>/recipe: {"items": [{ingredient_id, quantity}, ...]}."""
    payload = _require_dict(payload)
    _reject_unknown(payload, {"items"})

    lines = []
    seen = set()
    for index, raw in enumerate(_require_list(payload, "items", allow_empty=True)):
        label = f"items[{index}]"
        raw = _require_dict(raw, label)
        _reject_unknown(raw, {"ingredient_id", "quantity"}, label)
        ingredient_id = _positive_id("ingredient_id", _require(raw, "ingredient_id", label))
        if ingredient_id in seen:
            raise ValidationError(f"{label}: ingredient {ingredient_id} listed twice")
        seen.add(ingredient_id)
        quantity = _parse_decimal("quantity", _require(raw, "quantity", label))
        if quantity <= 0:
            raise ValidationError(f"{label}.quantity must be > 0")
        lines.append(RecipeLine(ingredient_id=ingredient_id, quantity=quantity))
    return tuple(lines)
