from __future__ import annotations

from ..extensions import db
from app.time_utils import to_utc_z, utcnow
from app.quantity_utils import qty_to_str

SNAPSHOT_OPENING = "OPENING"
SNAPSHOT_CLOSING = "CLOSING"

SNAPSHOT_TYPES = (SNAPSHOT_OPENING, SNAPSHOT_CLOSING)

# Value held in open_slot while a session is open
OPEN_SLOT = 1


class CashSession(db.Model):
    """
    Cash drawer shift.

    WHY: Cashier accountability. Each shift has opening/closing cash counts
    and declared stock staged for the shift.

    LIFECYCLE:
    - OPEN: closed_at IS NULL
    - CLOSED: closed_at set, closing float counted

    At most one session may be open. open_slot is 1 while open and NULL
    once closed; the unique constraint lets the database reject a second
    concurrent open even if two requests pass the existence check.
    """
    __tablename__ = "cash_sessions"
    __table_args__ = (
        db.UniqueConstraint("open_slot", name="uq_cash_sessions_open_slot"),
        db.CheckConstraint("opening_float_cents >= 0", name="ck_cash_sessions_opening_float"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    opened_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    opened_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    closed_at = db.Column(db.DateTime(timezone=True), nullable=True, index=True)
    closed_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    # Cash tracking (all amounts in cents)
    opening_float_cents = db.Column(db.Integer, nullable=False, default=0)
    closing_float_cents = db.Column(db.Integer, nullable=True)

    notes = db.Column(db.Text, nullable=True)

    open_slot = db.Column(db.Integer, nullable=True, default=OPEN_SLOT)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    opener = db.relationship("User", foreign_keys=[opened_by])
    closer = db.relationship("User", foreign_keys=[closed_by])
    snapshots = db.relationship(
        "SessionInventorySnapshot",
        backref="session",
        lazy=True,
        order_by="SessionInventorySnapshot.id",
    )
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_open(self) -> bool:
        return self.closed_at is None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "status": "OPEN" if self.is_open else "CLOSED",
            "opened_at": to_utc_z(self.opened_at),
            "opened_by": self.opened_by,
            "closed_at": to_utc_z(self.closed_at) if self.closed_at else None,
            "closed_by": self.closed_by,
            "opening_float_cents": self.opening_float_cents,
            "closing_float_cents": self.closing_float_cents,
            "notes": self.notes,
            "version_id": self.version_id,
        }


class SessionInventorySnapshot(db.Model):
    """
    Declared physical count for one ingredient at session open or close.

    Display/reconciliation only: the paired SESSION_OUT / SESSION_IN stock
    movement is what changes stock.
    """
    __tablename__ = "session_inventory_snapshots"
    __table_args__ = (
        db.Index("ix_session_snapshots_session_type", "session_id", "type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.Integer, db.ForeignKey("cash_sessions.id"), nullable=False, index=True)
    ingredient_id = db.Column(db.Integer, db.ForeignKey("ingredients.id"), nullable=False, index=True)
    quantity = db.Column(db.Numeric(14, 4), nullable=False)
    type = db.Column(db.String(16), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    ingredient = db.relationship("Ingredient")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "session_id": self.session_id,
            "ingredient_id": self.ingredient_id,
            "ingredient_name": self.ingredient.name if self.ingredient else None,
            "quantity": qty_to_str(self.quantity),
            "type": self.type,
            "created_at": to_utc_z(self.created_at),
        }
