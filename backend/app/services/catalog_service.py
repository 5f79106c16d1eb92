# backend/app/services/catalog_service.py
"""
Catalog Service: ingredients, suppliers, products and recipes.

Plain CRUD over the catalog tables. Names and SKUs are unique; a clash
raises ConflictError. Ingredients are never deleted (lots, recipes and
ledger rows reference them); products are deactivated instead of deleted.

Recipe replacement swaps the whole bill of materials in one transaction.
Sales freeze COGS at sale time, so editing a recipe never changes history.
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy.orm import selectinload

from ..extensions import db
from ..models import Ingredient, Supplier, Product, RecipeItem
from ..errors import ConflictError, NotFoundError
from ..validation import RecipeLine
from .concurrency import run_in_transaction
from .lot_service import get_ingredient

INGREDIENT_MUTABLE_FIELDS = {"name", "unit", "low_stock_level"}
SUPPLIER_MUTABLE_FIELDS = {"name", "phone", "email"}
PRODUCT_MUTABLE_FIELDS = {"sku", "name", "price_cents", "is_active"}


def _apply_patch(obj, patch: dict, allowed: set[str]) -> None:
    for k, v in patch.items():
        if k not in allowed:
            continue
        setattr(obj, k, v)


# -----------------------------------------------------------------------------
# Ingredients
# -----------------------------------------------------------------------------

def list_ingredients() -> list[Ingredient]:
    return db.session.query(Ingredient).order_by(Ingredient.name.asc(), Ingredient.id.asc()).all()


def create_ingredient(*, patch: dict) -> Ingredient:
    def _op():
        name = patch.get("name")
        if db.session.query(Ingredient).filter(Ingredient.name == name).first():
            raise ConflictError("Ingredient name already exists.", details={"name": name})
        ingredient = Ingredient()
        _apply_patch(ingredient, patch, INGREDIENT_MUTABLE_FIELDS)
        db.session.add(ingredient)
        db.session.flush()
        return ingredient

    ingredient = run_in_transaction(_op)
    current_app.logger.info("Ingredient %s created: %s (%s)", ingredient.id, ingredient.name, ingredient.unit)
    return ingredient


def update_ingredient(ingredient_id: int, *, patch: dict) -> Ingredient:
    def _op():
        ingredient = get_ingredient(ingredient_id)
        name = patch.get("name")
        if name is not None and name != ingredient.name:
            if db.session.query(Ingredient).filter(Ingredient.name == name).first():
                raise ConflictError("Ingredient name already exists.", details={"name": name})
        _apply_patch(ingredient, patch, INGREDIENT_MUTABLE_FIELDS)
        db.session.flush()
        return ingredient

    return run_in_transaction(_op)


# -----------------------------------------------------------------------------
# Suppliers
# -----------------------------------------------------------------------------

def list_suppliers() -> list[Supplier]:
    return db.session.query(Supplier).order_by(Supplier.name.asc(), Supplier.id.asc()).all()


def create_supplier(*, patch: dict) -> Supplier:
    def _op():
        name = patch.get("name")
        if db.session.query(Supplier).filter(Supplier.name == name).first():
            raise ConflictError("Supplier name already exists.", details={"name": name})
        supplier = Supplier()
        _apply_patch(supplier, patch, SUPPLIER_MUTABLE_FIELDS)
        db.session.add(supplier)
        db.session.flush()
        return supplier

    return run_in_transaction(_op)


# -----------------------------------------------------------------------------
# Products & recipes
# -----------------------------------------------------------------------------

def get_product(product_id: int, *, require_active: bool = False) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError(f"Product {product_id} not found", details={"product_id": product_id})
    if require_active and not product.is_active:
        raise NotFoundError(
            f"Product {product_id} is inactive",
            details={"product_id": product_id, "is_active": False},
        )
    return product


def list_products(*, include_inactive: bool = True) -> list[Product]:
    q = db.session.query(Product).options(selectinload(Product.recipe_items))
    if not include_inactive:
        q = q.filter(Product.is_active.is_(True))
    return q.order_by(Product.name.asc(), Product.id.asc()).all()


def _check_product_unique(patch: dict, product: Product | None = None) -> None:
    sku = patch.get("sku")
    if sku is not None and (product is None or sku != product.sku):
        if db.session.query(Product).filter(Product.sku == sku).first():
            raise ConflictError("SKU already exists.", details={"sku": sku})
    name = patch.get("name")
    if name is not None and (product is None or name != product.name):
        if db.session.query(Product).filter(Product.name == name).first():
            raise ConflictError("Product name already exists.", details={"name": name})


def create_product(*, patch: dict) -> Product:
    def _op():
        _check_product_unique(patch)
        product = Product()
        _apply_patch(product, patch, PRODUCT_MUTABLE_FIELDS)
        db.session.add(product)
        db.session.flush()
        return product

    product = run_in_transaction(_op)
    current_app.logger.info("Product %s created: sku=%s price=%d", product.id, product.sku, product.price_cents)
    return product


def update_product(product_id: int, *, patch: dict) -> Product:
    def _op():
        product = get_product(product_id)
        _check_product_unique(patch, product)
        _apply_patch(product, patch, PRODUCT_MUTABLE_FIELDS)
        db.session.flush()
        return product

    return run_in_transaction(_op)


def get_recipe(product_id: int) -> list[RecipeItem]:
    return list(get_product(product_id).recipe_items)


def replace_recipe(product_id: int, lines: tuple[RecipeLine, ...]) -> list[RecipeItem]:
    """Replace the product's whole recipe. An empty list clears it."""
    def _op():
        product = get_product(product_id)
        for line in lines:
            get_ingredient(line.ingredient_id)

        db.session.query(RecipeItem).filter(RecipeItem.product_id == product.id).delete(
            synchronize_session=False
        )
        db.session.flush()

        for line in lines:
            db.session.add(RecipeItem(
                product_id=product.id,
                ingredient_id=line.ingredient_id,
                quantity=line.quantity,
            ))
        db.session.flush()
        db.session.expire(product, ["recipe_items"])
        return list(product.recipe_items)

    items = run_in_transaction(_op)
    current_app.logger.info("Recipe for product %s replaced: %d item(s)", product_id, len(items))
    return items
