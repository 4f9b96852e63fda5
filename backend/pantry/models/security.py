from __future__ import annotations

from ..extensions import db
from pantry.time_utils import utcnow


class SecurityEvent(db.Model):
    """
    Audit trail of authentication and authorization outcomes.

    Written by permission_service.log_security_event for denied permission
    checks, cross-tenant lookups, failed or successful logins, failed invite
    redemptions and refused self-deactivation.

    MULTI-TENANT: org_id is the caller's organization when one is known;
    pre-authentication events (bad login, unknown invite code) carry none.

    APPEND-ONLY: rows are never updated or deleted.
    """
    __tablename__ = "security_events"
    __table_args__ = (
        db.Index("ix_security_events_org_occurred", "org_id", "occurred_at"),
        db.Index("ix_security_events_type_occurred", "event_type", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=True, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    event_type = db.Column(db.String(64), nullable=False)  # PERMISSION_DENIED, LOGIN_FAILED, ...
    success = db.Column(db.Boolean, nullable=False)

    # Request path and HTTP method or permission code, when known
    resource = db.Column(db.String(128), nullable=True)
    action = db.Column(db.String(64), nullable=True)
    reason = db.Column(db.Text, nullable=True)

    ip_address = db.Column(db.String(45), nullable=True)
    user_agent = db.Column(db.String(512), nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def __repr__(self) -> str:
        return f"<SecurityEvent {self.event_type} user={self.user_id} org={self.org_id}>"
