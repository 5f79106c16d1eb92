from __future__ import annotations

from ..extensions import db
from app.time_utils import to_utc_z, utcnow

PAYMENT_CASH = "CASH"
PAYMENT_CARD = "CARD"
PAYMENT_OTHER = "OTHER"

PAYMENT_TYPES = (PAYMENT_CASH, PAYMENT_CARD, PAYMENT_OTHER)


class Sale(db.Model):
    """
    Completed sale.

    total_cents and cogs_cents are computed by the sale workflow, never
    supplied by the client:
    - total_cents = SUM(sale_items.line_total_cents)
    - cogs_cents = FIFO cost of every ingredient consumed by this sale
      (rounded half-up to whole cents), frozen at sale time
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_session_created", "session_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.Integer, db.ForeignKey("cash_sessions.id"), nullable=True, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    total_cents = db.Column(db.Integer, nullable=False)
    cogs_cents = db.Column(db.Integer, nullable=False)

    payment_type = db.Column(db.String(16), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    session = db.relationship("CashSession", backref=db.backref("sales", lazy=True))
    user = db.relationship("User")
    items = db.relationship("SaleItem", backref="sale", lazy=True, order_by="SaleItem.id")

    @property
    def gross_margin_cents(self) -> int:
        return self.total_cents - self.cogs_cents

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "session_id": self.session_id,
            "user_id": self.user_id,
            "total_cents": self.total_cents,
            "cogs_cents": self.cogs_cents,
            "gross_margin_cents": self.gross_margin_cents,
            "payment_type": self.payment_type,
            "created_at": to_utc_z(self.created_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class SaleItem(db.Model):
    __tablename__ = "sale_items"
    __table_args__ = (
        db.CheckConstraint("qty > 0", name="ck_sale_items_qty_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    qty = db.Column(db.Integer, nullable=False)

    # Price snapshot at sale time
    unit_price_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "qty": self.qty,
            "unit_price_cents": self.unit_price_cents,
            "line_total_cents": self.line_total_cents,
        }
