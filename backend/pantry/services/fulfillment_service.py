# Overview: Service-layer operations for order fulfillment; line state machine, provider reassignment and triage queries.

"""
Fulfillment Workflow

LINE STATE MACHINE:
    pending -> found | not_found | substituted   (terminal, no reopening)
    substituted requires a non-blank substitution note
    reassign_provider is allowed in any line state

CONCURRENCY: Each transition writes only its own OrderLine row, guarded by
that line's version counter. Callers may pass expected_version (the
version_id they last saw) for an explicit compare-and-swap; either way a
concurrent change to the same line surfaces as ConflictError instead of
being silently overwritten. The order's updated_at/updated_by stamp is a
plain column update that does not contend on the order's version.

Lines of completed or delivered orders are frozen.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from sqlalchemy import update

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Order, OrderLine, Provider
from .concurrency import commit_or_conflict
from .order_service import InvalidTransitionError
from .permission_service import Actor, require_permission
from .tenant_service import get_in_org
from pantry.time_utils import to_utc_z, utcnow


UNASSIGNED = "unassigned"
FROZEN_ORDER_STATUSES = ("completed", "delivered")
CONFLICT_MESSAGE = "Line item was modified by someone else, reload and retry"


# =============================================================================
# Transitions
# =============================================================================

def _load_line(
    actor: Actor,
    order_id: int,
    product_id: int,
    expected_version: int | None,
) -> tuple[Order, OrderLine]:
    require_permission(actor, "FULFILL_ORDERS")
    order = get_in_org(Order, order_id, actor.org_id, label="Order")

    if order.status in FROZEN_ORDER_STATUSES:
        raise InvalidTransitionError(f"Order is {order.status}; its items can no longer change")

    line = order.line_for(product_id)
    if line is None:
        raise NotFoundError("Line item not found")

    if expected_version is not None and expected_version != line.version_id:
        raise ConflictError(CONFLICT_MESSAGE, current_version=line.version_id)

    return order, line


def _save(order: Order, line: OrderLine, actor: Actor) -> OrderLine:
    now = utcnow()
    line.updated_at = now
    line.updated_by_user_id = actor.user_id

    def _stamp_order():
        db.session.execute(
            update(Order)
            .where(Order.id == order.id)
            .values(updated_at=now, updated_by_user_id=actor.user_id)
            .execution_options(synchronize_session=False)
        )

    commit_or_conflict(CONFLICT_MESSAGE, after_flush=_stamp_order)
    return line


def _resolve(actor, order_id, product_id, new_status, *, note=None, expected_version=None) -> OrderLine:
    order, line = _load_line(actor, order_id, product_id, expected_version)

    if line.status != "pending":
        raise InvalidTransitionError(
            f"Line item '{line.product_name}' is already {line.status}",
            current_status=line.status,
        )

    line.status = new_status
    line.substitution_note = note
    return _save(order, line, actor)


def mark_found(actor: Actor, order_id: int, product_id: int, *, expected_version: int | None = None) -> OrderLine:
    """pending -> found"""
    return _resolve(actor, order_id, product_id, "found", expected_version=expected_version)


def mark_not_found(actor: Actor, order_id: int, product_id: int, *, expected_version: int | None = None) -> OrderLine:
    """pending -> not_found"""
    return _resolve(actor, order_id, product_id, "not_found", expected_version=expected_version)


def substitute(
    actor: Actor,
    order_id: int,
    product_id: int,
    note: str,
    *,
    expected_version: int | None = None,
) -> OrderLine:
    """
    pending -> substituted, recording what was bought instead.

    A blank note is a ValidationError and the line stays pending.
    """
    note = (note or "").strip() if isinstance(note, str) else ""
    if not note:
        raise ValidationError("A substitution note is required")
    return _resolve(actor, order_id, product_id, "substituted", note=note, expected_version=expected_version)


def reassign_provider(
    actor: Actor,
    order_id: int,
    product_id: int,
    provider_id: int | None,
    *,
    expected_version: int | None = None,
) -> OrderLine:
    """Point a line at another provider (or none), whatever its fulfillment state."""
    order, line = _load_line(actor, order_id, product_id, expected_version)

    provider = None
    if provider_id not in (None, ""):
        provider = get_in_org(Provider, provider_id, actor.org_id, label="Provider")

    line.selected_provider_id = provider.id if provider else None
    line.selected_provider_name = provider.name if provider else None
    return _save(order, line, actor)


# =============================================================================
# Triage queries
# =============================================================================

@dataclass
class ProviderBucket:
    key: str
    provider_id: int | None
    provider_name: str
    items: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "provider_id": self.provider_id,
            "provider_name": self.provider_name,
            "count": len(self.items),
            "items": self.items,
        }


def _pending_orders(org_id: int) -> list[Order]:
    return (
        db.session.query(Order)
        .filter(Order.org_id == org_id, Order.status == "pending")
        .order_by(Order.is_urgent.desc(), Order.created_at.asc(), Order.id.asc())
        .all()
    )


def _line_entry(order: Order, line: OrderLine) -> dict:
    return {
        "order_id": order.id,
        "line_id": line.id,
        "product_id": line.product_id,
        "product_name": line.product_name,
        "unit": line.unit,
        "category": line.category,
        "quantity": line.quantity,
        "selected_provider_id": line.selected_provider_id,
        "selected_provider_name": line.provider_label,
        "version_id": line.version_id,
        "restaurant_id": order.restaurant_id,
        "restaurant_name": order.restaurant_name,
        "is_urgent": order.is_urgent,
        "order_created_at": to_utc_z(order.created_at),
    }


def pending_grouped_by_provider(actor: Actor) -> list[ProviderBucket]:
    """
    Pending lines of pending orders, bucketed by selected provider id.

    Lines with no provider land in the UNASSIGNED bucket, which is always
    listed last; provider buckets are sorted by the provider's current name.
    Urgent orders come first inside each bucket.
    """
    require_permission(actor, "VIEW_ALL_ORDERS")

    buckets: dict[object, ProviderBucket] = {}
    for order in _pending_orders(actor.org_id):
        for line in order.lines:
            if line.status != "pending":
                continue
            provider = line.selected_provider
            if provider is None:
                key = UNASSIGNED
                bucket = buckets.get(key)
                if bucket is None:
                    bucket = buckets[key] = ProviderBucket(key=UNASSIGNED, provider_id=None, provider_name=UNASSIGNED)
            else:
                key = provider.id
                bucket = buckets.get(key)
                if bucket is None:
                    bucket = buckets[key] = ProviderBucket(
                        key=str(provider.id), provider_id=provider.id, provider_name=provider.name
                    )
            bucket.items.append(_line_entry(order, line))

    assigned = sorted(
        (b for k, b in buckets.items() if k != UNASSIGNED),
        key=lambda b: (b.provider_name.lower(), b.provider_id),
    )
    if UNASSIGNED in buckets:
        assigned.append(buckets[UNASSIGNED])
    return assigned


def urgent_orders(actor: Actor) -> list[Order]:
    """Pending urgent orders, whatever the state of their lines; newest first."""
    require_permission(actor, "VIEW_ALL_ORDERS")
    return (
        db.session.query(Order)
        .filter(
            Order.org_id == actor.org_id,
            Order.status == "pending",
            Order.is_urgent.is_(True),
        )
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )


def unassigned_line_items(actor: Actor) -> list[dict]:
    """The UNASSIGNED bucket of pending_grouped_by_provider, flattened."""
    for bucket in pending_grouped_by_provider(actor):
        if bucket.key == UNASSIGNED:
            return bucket.items
    return []
