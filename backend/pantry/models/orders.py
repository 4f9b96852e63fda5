from __future__ import annotations

from ..extensions import db
from pantry.time_utils import to_utc_z, utcnow


ORDER_STATUSES = ("pending", "processing", "completed", "delivered")
LINE_STATUSES = ("pending", "found", "not_found", "substituted")


class Order(db.Model):
    """
    A restaurant's submitted order.

    INVARIANTS:
    - total_items equals the sum of line quantities at submission time
    - status is advanced only by order_service.advance_order_status; it is
      never derived from line statuses
    - orders are never deleted
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_org_status", "org_id", "status"),
        db.Index("ix_orders_org_restaurant", "org_id", "restaurant_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)

    restaurant_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    restaurant_name = db.Column(db.String(120), nullable=False)

    is_urgent = db.Column(db.Boolean, nullable=False, default=False)
    status = db.Column(db.String(16), nullable=False, default="pending", index=True)
    week_of = db.Column(db.Date, nullable=False)
    total_items = db.Column(db.Integer, nullable=False, default=0)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    lines = db.relationship(
        "OrderLine",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderLine.id",
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Order id={self.id} status={self.status} urgent={self.is_urgent}>"

    def line_for(self, product_id: int):
        for line in self.lines:
            if line.product_id == product_id:
                return line
        return None

    def to_dict(self, include_lines: bool = True) -> dict:
        data = {
            "id": self.id,
            "org_id": self.org_id,
            "restaurant_id": self.restaurant_id,
            "restaurant_name": self.restaurant_name,
            "is_urgent": self.is_urgent,
            "status": self.status,
            "week_of": self.week_of.isoformat() if self.week_of else None,
            "total_items": self.total_items,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "updated_by_user_id": self.updated_by_user_id,
            "version_id": self.version_id,
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class OrderLine(db.Model):
    """
    One product/quantity/provider entry of an Order.

    Lines are only reached through their Order. Each line carries its own
    version counter so two suppliers working different lines of the same
    order never overwrite each other, while two suppliers working the same
    line get a conflict instead of a silent last-writer-wins.
    """
    __tablename__ = "order_lines"
    __table_args__ = (
        db.UniqueConstraint("order_id", "product_id", name="uq_order_lines_order_product"),
        db.CheckConstraint("quantity > 0", name="ck_order_lines_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)

    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    product_name = db.Column(db.String(120), nullable=False)
    unit = db.Column(db.String(32), nullable=True)
    category = db.Column(db.String(64), nullable=True)

    selected_provider_id = db.Column(
        db.Integer,
        db.ForeignKey("providers.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    selected_provider_name = db.Column(db.String(120), nullable=True)

    quantity = db.Column(db.Integer, nullable=False)
    status = db.Column(db.String(16), nullable=False, default="pending")
    substitution_note = db.Column(db.Text, nullable=True)

    updated_at = db.Column(db.DateTime(timezone=True), nullable=True)
    updated_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    order = db.relationship("Order", back_populates="lines")
    selected_provider = db.relationship("Provider")

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def provider_label(self) -> str | None:
        provider = self.selected_provider
        return provider.name if provider else self.selected_provider_name

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "unit": self.unit,
            "category": self.category,
            "selected_provider_id": self.selected_provider_id,
            "selected_provider_name": self.provider_label,
            "quantity": self.quantity,
            "status": self.status,
            "substitution_note": self.substitution_note,
            "updated_at": to_utc_z(self.updated_at),
            "updated_by_user_id": self.updated_by_user_id,
            "version_id": self.version_id,
        }
