from __future__ import annotations

from ..extensions import db
from pantry.time_utils import to_utc_z, utcnow


class Provider(db.Model):
    """
    Supply channel (supermarket, wholesaler, butcher, ...) that suppliers buy from.

    MULTI-TENANT: Providers are scoped to organizations via org_id.
    Provider names are unique within an organization (case-insensitive,
    enforced in catalog_service).

    Products and order lines reference providers by id; the provider name they
    also carry is a display cache only.
    """
    __tablename__ = "providers"
    __table_args__ = (
        db.Index("ix_providers_org_active", "org_id", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)

    name = db.Column(db.String(120), nullable=False)
    provider_type = db.Column("type", db.String(32), nullable=False, default="otros")
    description = db.Column(db.Text, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    updated_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    organization = db.relationship("Organization", backref=db.backref("providers", lazy=True))

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Provider id={self.id} name={self.name!r} org_id={self.org_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "org_id": self.org_id,
            "name": self.name,
            "type": self.provider_type,
            "description": self.description,
            "is_active": self.is_active,
            "created_by_user_id": self.created_by_user_id,
            "updated_by_user_id": self.updated_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }


class Product(db.Model):
    """
    Catalog item a restaurant can order.

    STOCK: `stock_level` is a cached projection of the StockTransaction
    ledger. It is only ever written by stock_service in the same database
    transaction as the ledger row that explains it, and it never goes
    negative.

    Status (empty/low/ok) is derived on every read, never stored.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_org_active", "org_id", "is_active"),
        db.Index("ix_products_org_category", "org_id", "category"),
        db.CheckConstraint("stock_level >= 0", name="ck_products_stock_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)

    name = db.Column(db.String(120), nullable=False)
    unit = db.Column(db.String(32), nullable=False, default="pieza")
    category = db.Column(db.String(64), nullable=False, default="Otros")
    description = db.Column(db.Text, nullable=True)

    default_provider_id = db.Column(
        db.Integer,
        db.ForeignKey("providers.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    default_provider_name = db.Column(db.String(120), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    stock_level = db.Column(db.Float, nullable=False, default=0)
    min_stock_alert = db.Column(db.Float, nullable=False, default=0)
    max_stock = db.Column(db.Float, nullable=True)
    last_restock_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    updated_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    organization = db.relationship("Organization", backref=db.backref("products", lazy=True))
    default_provider = db.relationship("Provider")

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} stock={self.stock_level}>"

    def to_dict(self) -> dict:
        # Local import: the ledger module imports models
        from ..services.stock_service import stock_status

        provider = self.default_provider
        return {
            "id": self.id,
            "org_id": self.org_id,
            "name": self.name,
            "unit": self.unit,
            "category": self.category,
            "description": self.description,
            "default_provider_id": self.default_provider_id,
            "default_provider_name": provider.name if provider else self.default_provider_name,
            "is_active": self.is_active,
            "stock_level": self.stock_level,
            "min_stock_alert": self.min_stock_alert,
            "max_stock": self.max_stock,
            "stock_status": stock_status(self.stock_level, self.min_stock_alert),
            "last_restock_at": to_utc_z(self.last_restock_at),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }
