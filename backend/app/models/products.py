from __future__ import annotations

from ..extensions import db
from app.time_utils import to_utc_z
from app.quantity_utils import qty_to_str


class Product(db.Model):
    """
    Sellable menu item.

    price_cents is authoritative (frontend may only format for display).
    Inactive products stay in the table for sale history but cannot be sold.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("price_cents >= 0", name="ck_products_price_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False, unique=True)
    sku = db.Column(db.String(64), nullable=False, unique=True)

    # Authoritative storage in cents
    price_cents = db.Column(db.Integer, nullable=False)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    recipe_items = db.relationship(
        "RecipeItem",
        backref="product",
        lazy=True,
        order_by="RecipeItem.id",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} name={self.name!r}>"

    def to_dict(self, include_recipe: bool = False) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "sku": self.sku,
            "price_cents": self.price_cents,
            "is_active": self.is_active,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_recipe:
            data["recipe"] = [item.to_dict() for item in self.recipe_items]
        return data


class RecipeItem(db.Model):
    """
    Bill of materials row: quantity of one ingredient used per unit of product sold.

    Recipes may be replaced at any time; past sales keep the COGS frozen
    at sale time.
    """
    __tablename__ = "recipe_items"
    __table_args__ = (
        db.UniqueConstraint("product_id", "ingredient_id", name="uq_recipe_items_product_ingredient"),
        db.CheckConstraint("quantity > 0", name="ck_recipe_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    ingredient_id = db.Column(db.Integer, db.ForeignKey("ingredients.id"), nullable=False, index=True)
    quantity = db.Column(db.Numeric(14, 4), nullable=False)

    ingredient = db.relationship("Ingredient")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "ingredient_id": self.ingredient_id,
            "ingredient_name": self.ingredient.name if self.ingredient else None,
            "quantity": qty_to_str(self.quantity),
        }
