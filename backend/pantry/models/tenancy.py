from __future__ import annotations

from ..extensions import db
from pantry.time_utils import to_utc_z, utcnow


class Organization(db.Model):
    """
    Multi-tenant root: every restaurant chain is an Organization.

    WHY: Enables shared-database multi-tenancy with strict isolation.
    Users, products, providers, orders and stock movements all belong to
    exactly one organization. No data may cross organization boundaries.

    DESIGN:
    - Created implicitly when an invite code is first redeemed
    - `code` is the invite code that created the organization
    - All queries must be scoped by org_id
    """
    __tablename__ = "organizations"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    code = db.Column(db.String(64), nullable=True, unique=True, index=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<Organization id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class InviteCode(db.Model):
    """
    Single-use onboarding token.

    Redeeming a code that has no org_id creates a new Organization named
    `organization_name`; branch codes carry the org_id of an existing
    organization and add the redeemer to it.

    IMMUTABLE AFTER USE: `used` only ever moves False -> True, and rows are
    never deleted (kept as the onboarding audit trail).
    """
    __tablename__ = "invite_codes"

    code = db.Column(db.String(64), primary_key=True)
    organization_name = db.Column(db.String(255), nullable=False)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=True, index=True)

    used = db.Column(db.Boolean, nullable=False, default=False, index=True)
    used_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    used_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    organization = db.relationship("Organization", backref=db.backref("invite_codes", lazy=True))

    def __repr__(self) -> str:
        return f"<InviteCode code={self.code!r} used={self.used}>"

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "organization_name": self.organization_name,
            "org_id": self.org_id,
            "used": self.used,
            "used_by_user_id": self.used_by_user_id,
            "used_at": to_utc_z(self.used_at),
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }
