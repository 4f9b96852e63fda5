# Overview: Service-layer operations for orders; draft assembly, submission, history and status advance.

"""
Order Aggregate

DRAFT: OrderDraft is an in-memory accumulation of catalog selections.
Nothing touches the database until submit_order, which writes the order and
all of its lines in a single commit. An empty draft is rejected before any
write.

STATUS: An order's overall status only moves through advance_order_status,
forward along pending -> processing -> completed -> delivered. It is never
derived from line statuses; an order whose lines are all resolved stays
pending until someone advances it. Completing requires every line resolved.

VISIBILITY: Restaurant users see their own orders; VIEW_ALL_ORDERS widens
that to the whole organization.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import ORDER_STATUSES, Order, OrderLine, Product, Provider
from ..validation import MAX_QUANTITY
from .concurrency import commit_or_conflict
from .permission_service import Actor, require_permission
from .settings_service import get_org_timezone
from .tenant_service import get_in_org
from pantry.time_utils import start_of_week, to_local, utcnow


class InvalidTransitionError(ConflictError):
    """Requested status change is not allowed from the current state."""
    pass


# =============================================================================
# Draft
# =============================================================================

def parse_order_quantity(value, field: str = "quantity") -> int:
    """Order quantities are whole units."""
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a whole number")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValidationError(f"{field} must be a whole number")
        value = int(value)
    if isinstance(value, str):
        try:
            value = int(value.strip())
        except ValueError:
            raise ValidationError(f"{field} must be a whole number")
    if not isinstance(value, int):
        raise ValidationError(f"{field} must be a whole number")
    if value > MAX_QUANTITY:
        raise ValidationError(f"{field} cannot exceed {MAX_QUANTITY}")
    return value


@dataclass
class DraftLine:
    product_id: int
    product_name: str
    unit: str | None
    category: str | None
    quantity: int
    provider_id: int | None = None
    provider_name: str | None = None

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "unit": self.unit,
            "category": self.category,
            "quantity": self.quantity,
            "selected_provider_id": self.provider_id,
            "selected_provider_name": self.provider_name,
        }


class OrderDraft:
    """In-memory order being assembled by a restaurant user."""

    def __init__(self):
        self._lines: dict[int, DraftLine] = {}

    @property
    def lines(self) -> list[DraftLine]:
        return list(self._lines.values())

    @property
    def total_items(self) -> int:
        return sum(line.quantity for line in self._lines.values())

    def is_empty(self) -> bool:
        return not self._lines

    def get(self, product_id: int) -> DraftLine | None:
        return self._lines.get(product_id)

    def add_item(self, product: Product, quantity: int = 1) -> DraftLine:
        """Add `quantity` of a product; repeats increment the existing line."""
        quantity = parse_order_quantity(quantity)
        if quantity <= 0:
            raise ValidationError("quantity must be greater than 0")

        line = self._lines.get(product.id)
        if line is not None:
            line.quantity += quantity
            return line

        provider = product.default_provider
        line = DraftLine(
            product_id=product.id,
            product_name=product.name,
            unit=product.unit,
            category=product.category,
            quantity=quantity,
            provider_id=product.default_provider_id,
            provider_name=provider.name if provider else product.default_provider_name,
        )
        self._lines[product.id] = line
        return line

    def set_quantity(self, product_id: int, quantity) -> None:
        """Set a line's quantity; zero or less removes the line."""
        quantity = parse_order_quantity(quantity)
        if quantity <= 0:
            self._lines.pop(product_id, None)
            return
        line = self._lines.get(product_id)
        if line is None:
            raise NotFoundError("Product is not in the draft")
        line.quantity = quantity

    def remove_item(self, product_id: int) -> None:
        self._lines.pop(product_id, None)

    def set_provider(self, product_id: int, provider: Provider | None) -> None:
        line = self._lines.get(product_id)
        if line is None:
            raise NotFoundError("Product is not in the draft")
        line.provider_id = provider.id if provider else None
        line.provider_name = provider.name if provider else None

    def to_dict(self) -> dict:
        return {
            "lines": [line.to_dict() for line in self.lines],
            "total_items": self.total_items,
        }


def build_draft(actor: Actor, items) -> OrderDraft:
    """
    Build a draft from client input: [{"product_id", "quantity", "provider_id"?}, ...].

    Products must be active and belong to the actor's organization. Lines
    with quantity <= 0 are dropped, matching OrderDraft.set_quantity.
    """
    if items is None:
        items = []
    if not isinstance(items, list):
        raise ValidationError("items must be a list")

    draft = OrderDraft()
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValidationError(f"items[{index}] must be an object")
        if "product_id" not in item:
            raise ValidationError(f"items[{index}].product_id is required")

        quantity = parse_order_quantity(item.get("quantity", 1), f"items[{index}].quantity")
        if quantity <= 0:
            continue

        product = get_in_org(Product, item["product_id"], actor.org_id, label="Product")
        if not product.is_active:
            raise ValidationError(f"Product '{product.name}' is not active")
        draft.add_item(product, quantity)

        if item.get("provider_id") is not None:
            provider = get_in_org(Provider, item["provider_id"], actor.org_id, label="Provider")
            draft.set_provider(product.id, provider)
    return draft


# =============================================================================
# Submission & queries
# =============================================================================

def _parse_week_of(value) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        raise ValidationError("week_of must be an ISO date (YYYY-MM-DD)")


def current_week_of(org_id: int) -> date:
    """Sunday opening the current week, in the organization's timezone."""
    today = to_local(utcnow(), get_org_timezone(org_id)).date()
    return start_of_week(today)


def submit_order(
    actor: Actor,
    draft: OrderDraft,
    *,
    is_urgent: bool = False,
    week_of=None,
    notes: str | None = None,
) -> Order:
    """
    Persist a draft as a pending order.

    Writes the order and every line in one commit, with total_items equal to
    the sum of line quantities. Lines start with status "pending".

    Raises:
        ValidationError: empty draft (nothing is written)
    """
    require_permission(actor, "SUBMIT_ORDER")

    if draft is None or draft.is_empty():
        raise ValidationError("Cannot submit an empty order")

    week = _parse_week_of(week_of)
    if week is None:
        week = current_week_of(actor.org_id)
    else:
        week = start_of_week(week)

    now = utcnow()
    order = Order(
        org_id=actor.org_id,
        restaurant_id=actor.user_id,
        restaurant_name=actor.restaurant or actor.name,
        is_urgent=bool(is_urgent),
        status="pending",
        week_of=week,
        total_items=draft.total_items,
        notes=(notes or "").strip() or None,
        created_at=now,
        updated_at=now,
        updated_by_user_id=actor.user_id,
    )
    for line in draft.lines:
        order.lines.append(OrderLine(
            product_id=line.product_id,
            product_name=line.product_name,
            unit=line.unit,
            category=line.category,
            selected_provider_id=line.provider_id,
            selected_provider_name=line.provider_name,
            quantity=line.quantity,
            status="pending",
        ))

    db.session.add(order)
    db.session.commit()
    return order


def get_order(actor: Actor, order_id: int) -> Order:
    order = get_in_org(Order, order_id, actor.org_id, label="Order")
    if order.restaurant_id != actor.user_id and not actor.has("VIEW_ALL_ORDERS"):
        raise NotFoundError("Order not found")
    return order


def order_history(actor: Actor, restaurant_id: int | None = None) -> list[Order]:
    """All orders of one restaurant user in the actor's organization, newest first."""
    restaurant_id = restaurant_id if restaurant_id is not None else actor.user_id
    if restaurant_id != actor.user_id:
        require_permission(actor, "VIEW_ALL_ORDERS")

    return (
        db.session.query(Order)
        .filter(Order.org_id == actor.org_id, Order.restaurant_id == restaurant_id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )


def list_orders(
    actor: Actor,
    *,
    status: str | None = None,
    is_urgent: bool | None = None,
    limit: int = 100,
    offset: int = 0,
) -> tuple[list[Order], int]:
    """Organization-wide order list, newest first."""
    require_permission(actor, "VIEW_ALL_ORDERS")

    query = db.session.query(Order).filter(Order.org_id == actor.org_id)
    if status:
        if status not in ORDER_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(ORDER_STATUSES)}")
        query = query.filter(Order.status == status)
    if is_urgent is not None:
        query = query.filter(Order.is_urgent.is_(bool(is_urgent)))

    total = query.count()
    items = (
        query.order_by(Order.created_at.desc(), Order.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return items, total


def advance_order_status(
    actor: Actor,
    order_id: int,
    new_status: str,
    *,
    expected_version: int | None = None,
) -> Order:
    """
    Move an order forward: pending -> processing -> completed -> delivered.

    Forward skips are allowed, going back or staying put is not.
    completed/delivered require every line to be resolved (not pending).
    """
    require_permission(actor, "MANAGE_ORDERS")
    order = get_in_org(Order, order_id, actor.org_id, label="Order")

    if new_status not in ORDER_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(ORDER_STATUSES)}")
    if expected_version is not None and expected_version != order.version_id:
        raise ConflictError(
            "Order was modified by someone else, reload and retry",
            current_version=order.version_id,
        )

    current_rank = ORDER_STATUSES.index(order.status)
    new_rank = ORDER_STATUSES.index(new_status)
    if new_rank <= current_rank:
        raise InvalidTransitionError(f"Cannot move order from {order.status} to {new_status}")

    if new_status in ("completed", "delivered"):
        unresolved = [line.product_name for line in order.lines if line.status == "pending"]
        if unresolved:
            raise InvalidTransitionError(
                f"Cannot mark order {new_status}: unresolved items: {', '.join(unresolved)}",
                unresolved=unresolved,
            )

    order.status = new_status
    order.updated_at = utcnow()
    order.updated_by_user_id = actor.user_id
    commit_or_conflict("Order was modified by someone else, reload and retry")
    return order
