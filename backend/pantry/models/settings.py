from __future__ import annotations

from ..extensions import db
from pantry.time_utils import utcnow


class OrganizationSetting(db.Model):
    """
    One stored override of an organization default (contact data, timezone,
    currency, ordering cadence, notification flags).

    An organization that never saved its settings has no rows at all; the
    defaults live in services.settings_service and stored rows are overlaid
    on them key by key.
    """
    __tablename__ = "organization_settings"
    __table_args__ = (
        db.UniqueConstraint("org_id", "key", name="uq_org_settings_key"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)

    key = db.Column(db.String(128), nullable=False)
    # Already validated by settings_service; str, bool or number
    value = db.Column(db.JSON, nullable=True)

    updated_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<OrganizationSetting org={self.org_id} {self.key}={self.value!r}>"
