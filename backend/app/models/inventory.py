from __future__ import annotations

from ..extensions import db
from app.time_utils import to_utc_z, utcnow
from app.quantity_utils import qty_to_str, cost_to_str

# Movement kinds (reason codes on the stock ledger)
MOVEMENT_PURCHASE = "PURCHASE"
MOVEMENT_SALE_CONSUME = "SALE_CONSUME"
MOVEMENT_ADJUSTMENT = "ADJUSTMENT"
MOVEMENT_WASTAGE = "WASTAGE"
MOVEMENT_SESSION_OUT = "SESSION_OUT"
MOVEMENT_SESSION_IN = "SESSION_IN"

MOVEMENT_KINDS = (
    MOVEMENT_PURCHASE,
    MOVEMENT_SALE_CONSUME,
    MOVEMENT_ADJUSTMENT,
    MOVEMENT_WASTAGE,
    MOVEMENT_SESSION_OUT,
    MOVEMENT_SESSION_IN,
)

# Movement reference tags: what reference_id points at
REFERENCE_PURCHASE = "purchase"
REFERENCE_SALE = "sale"
REFERENCE_SESSION = "session"
REFERENCE_MANUAL = "manual"

REFERENCE_TYPES = (REFERENCE_PURCHASE, REFERENCE_SALE, REFERENCE_SESSION, REFERENCE_MANUAL)

# Where a lot came from
LOT_SOURCE_PURCHASE = "PURCHASE"
LOT_SOURCE_ADJUSTMENT = "ADJUSTMENT"
LOT_SOURCE_SESSION_IN = "SESSION_IN"

LOT_SOURCES = (LOT_SOURCE_PURCHASE, LOT_SOURCE_ADJUSTMENT, LOT_SOURCE_SESSION_IN)

QUANTITY = db.Numeric(14, 4)
UNIT_COST = db.Numeric(18, 6)


class Ingredient(db.Model):
    """
    Stock-keeping ingredient (flour, cheese, boxes...).

    Never deleted: lots, recipe items and stock movements reference it.
    The ingredient row is also the lock target that serializes lot
    reads/writes for one ingredient across concurrent requests.
    """
    __tablename__ = "ingredients"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False, unique=True)

    # Free-form unit of measure ("g", "kg", "ml", "unit")
    unit = db.Column(db.String(16), nullable=False)

    # Low-stock threshold in the same unit (optional)
    low_stock_level = db.Column(QUANTITY, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Ingredient id={self.id} name={self.name!r} unit={self.unit!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "unit": self.unit,
            "low_stock_level": qty_to_str(self.low_stock_level),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Supplier(db.Model):
    __tablename__ = "suppliers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False, unique=True)
    phone = db.Column(db.String(32), nullable=True)
    email = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "email": self.email,
            "created_at": to_utc_z(self.created_at),
        }


class InventoryLot(db.Model):
    """
    A discrete quantity of one ingredient acquired at one unit cost.

    INVARIANTS:
    - quantity (remaining) only decreases after creation; never replenished
    - unit_cost_cents is fixed at creation
    - exhausted lots stay as zero rows for audit

    FIFO ORDER: purchased_at ascending, then id ascending.
    """
    __tablename__ = "inventory_lots"
    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="ck_inventory_lots_quantity_non_negative"),
        db.CheckConstraint("unit_cost_cents >= 0", name="ck_inventory_lots_unit_cost_non_negative"),
        db.Index("ix_inventory_lots_fifo", "ingredient_id", "purchased_at", "id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    ingredient_id = db.Column(db.Integer, db.ForeignKey("ingredients.id"), nullable=False, index=True)

    initial_quantity = db.Column(QUANTITY, nullable=False)
    quantity = db.Column(QUANTITY, nullable=False)

    # Cost per unit in cents, 6 decimal places (total_cost / quantity rarely divides evenly)
    unit_cost_cents = db.Column(UNIT_COST, nullable=False)

    source = db.Column(db.String(16), nullable=False, default=LOT_SOURCE_PURCHASE)

    purchased_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    ingredient = db.relationship("Ingredient", backref=db.backref("lots", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<InventoryLot id={self.id} ingredient_id={self.ingredient_id} quantity={self.quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "ingredient_id": self.ingredient_id,
            "initial_quantity": qty_to_str(self.initial_quantity),
            "quantity": qty_to_str(self.quantity),
            "unit_cost_cents": cost_to_str(self.unit_cost_cents),
            "source": self.source,
            "purchased_at": to_utc_z(self.purchased_at),
            "version_id": self.version_id,
        }


class StockMovement(db.Model):
    """
    Append-only stock ledger entry.

    quantity is signed: positive = stock in, negative = stock out.
    For every ingredient, SUM(stock_movements.quantity) equals
    SUM(inventory_lots.quantity) at all times.

    (reference_type, reference_id) tags the originating document:
    purchase -> purchases.id, sale -> sales.id, session -> cash_sessions.id,
    manual -> no id (stock adjustments).
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.Index("ix_stock_movements_ingredient_created", "ingredient_id", "created_at"),
        db.Index("ix_stock_movements_reference", "reference_type", "reference_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    kind = db.Column(db.String(16), nullable=False, index=True)
    ingredient_id = db.Column(db.Integer, db.ForeignKey("ingredients.id"), nullable=False, index=True)

    quantity = db.Column(QUANTITY, nullable=False)

    # Lot touched by this movement and the exact cost of the quantity moved
    lot_id = db.Column(db.Integer, db.ForeignKey("inventory_lots.id"), nullable=True, index=True)
    cost_cents = db.Column(UNIT_COST, nullable=True)

    reference_type = db.Column(db.String(16), nullable=True)
    reference_id = db.Column(db.Integer, nullable=True)

    note = db.Column(db.String(255), nullable=True)
    actor_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    ingredient = db.relationship("Ingredient", backref=db.backref("movements", lazy=True))
    lot = db.relationship("InventoryLot")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "kind": self.kind,
            "ingredient_id": self.ingredient_id,
            "quantity": qty_to_str(self.quantity),
            "lot_id": self.lot_id,
            "cost_cents": cost_to_str(self.cost_cents),
            "reference": (
                {"type": self.reference_type, "id": self.reference_id}
                if self.reference_type
                else None
            ),
            "note": self.note,
            "actor_user_id": self.actor_user_id,
            "created_at": to_utc_z(self.created_at),
        }


class Purchase(db.Model):
    """
    Purchase document header. Each PurchaseItem produced exactly one lot.
    Purchases are written once, inside the same transaction as their lots.
    """
    __tablename__ = "purchases"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=True, index=True)
    notes = db.Column(db.Text, nullable=True)
    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    supplier = db.relationship("Supplier", backref=db.backref("purchases", lazy=True))
    items = db.relationship(
        "PurchaseItem",
        backref="purchase",
        lazy=True,
        order_by="PurchaseItem.id",
    )

    @property
    def total_cost_cents(self) -> int:
        return sum(item.total_cost_cents for item in self.items)

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "supplier_id": self.supplier_id,
            "notes": self.notes,
            "created_by_user_id": self.created_by_user_id,
            "total_cost_cents": self.total_cost_cents,
            "created_at": to_utc_z(self.created_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class PurchaseItem(db.Model):
    __tablename__ = "purchase_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_purchase_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    purchase_id = db.Column(db.Integer, db.ForeignKey("purchases.id"), nullable=False, index=True)
    ingredient_id = db.Column(db.Integer, db.ForeignKey("ingredients.id"), nullable=False, index=True)

    quantity = db.Column(QUANTITY, nullable=False)
    total_cost_cents = db.Column(db.Integer, nullable=False)

    # Lot created for this line
    lot_id = db.Column(db.Integer, db.ForeignKey("inventory_lots.id"), nullable=True)

    ingredient = db.relationship("Ingredient")
    lot = db.relationship("InventoryLot")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchase_id": self.purchase_id,
            "ingredient_id": self.ingredient_id,
            "quantity": qty_to_str(self.quantity),
            "total_cost_cents": self.total_cost_cents,
            "lot_id": self.lot_id,
        }
