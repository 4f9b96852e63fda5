from __future__ import annotations

from ..extensions import db
from pantry.time_utils import to_utc_z, utcnow


class StockTransaction(db.Model):
    """
    One stock movement (in/out) for one product.

    IMMUTABLE: Append-only. Never update or delete.

    INVARIANT: new_stock = previous_stock + quantity for "in", and
    max(0, previous_stock - quantity) for "out". Replaying a product's rows in
    id order reproduces Product.stock_level.

    Product name, location and actor name are denormalized at write time so
    the ledger stays readable after renames.
    """
    __tablename__ = "stock_transactions"
    __table_args__ = (
        db.Index("ix_stock_transactions_product", "product_id", "id"),
        db.Index("ix_stock_transactions_org_occurred", "org_id", "occurred_at"),
        db.CheckConstraint("quantity > 0", name="ck_stock_transactions_quantity_positive"),
        db.CheckConstraint("new_stock >= 0", name="ck_stock_transactions_new_stock_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    product_name = db.Column(db.String(120), nullable=False)
    location = db.Column(db.String(120), nullable=True)

    movement_type = db.Column("type", db.String(8), nullable=False)  # in | out
    quantity = db.Column(db.Float, nullable=False)
    previous_stock = db.Column(db.Float, nullable=False)
    new_stock = db.Column(db.Float, nullable=False)

    reason = db.Column(db.String(255), nullable=False)
    notes = db.Column(db.Text, nullable=True)

    actor_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    actor_name = db.Column(db.String(120), nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    product = db.relationship("Product", backref=db.backref("stock_transactions", lazy="dynamic"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "org_id": self.org_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "location": self.location,
            "type": self.movement_type,
            "quantity": self.quantity,
            "previous_stock": self.previous_stock,
            "new_stock": self.new_stock,
            "reason": self.reason,
            "notes": self.notes,
            "actor_user_id": self.actor_user_id,
            "actor_name": self.actor_name,
            "occurred_at": to_utc_z(self.occurred_at),
        }
