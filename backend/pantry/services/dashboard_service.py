# Overview: Service-layer rollups for the admin dashboard; pure functions over one organization's data.

"""
Dashboard Aggregator

Read-only rollups recomputed on every request from the organization's
orders, products and users. Every computation below is a pure function of
the fetched collections so it can be tested without a database.

FAILURE POLICY: if fetching any source fails, the dashboard is returned
empty/zero-valued and the error is logged. The rollup is advisory, so this
is the one place where a storage error is not propagated.
"""

from __future__ import annotations

from collections import Counter
from datetime import date, timedelta
from zoneinfo import ZoneInfo

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import ORDER_STATUSES, Order, Product, User
from .permission_service import Actor, require_permission
from .settings_service import get_org_timezone
from pantry.time_utils import to_local, to_utc_z, utcnow


WEEKDAY_LABELS = ("lun", "mar", "mié", "jue", "vie", "sáb", "dom")
RECENT_LIMIT = 5
TOP_PRODUCTS_LIMIT = 5


def summary_counts(orders, products, users) -> dict:
    return {
        "total_orders": len(orders),
        "active_products": sum(1 for p in products if p.is_active),
        "total_users": len(users),
        "urgent_orders": sum(1 for o in orders if o.is_urgent),
        "pending_orders": sum(1 for o in orders if o.status == "pending"),
        "completed_orders": sum(1 for o in orders if o.status in ("completed", "delivered")),
    }


def seven_day_series(orders, today: date, tz) -> list[dict]:
    """Orders (and urgent orders) per local calendar day, oldest first, today included."""
    days = [today - timedelta(days=offset) for offset in range(6, -1, -1)]
    totals = Counter()
    urgent = Counter()
    for order in orders:
        day = to_local(order.created_at, tz).date()
        totals[day] += 1
        if order.is_urgent:
            urgent[day] += 1

    return [
        {
            "date": day.isoformat(),
            "label": WEEKDAY_LABELS[day.weekday()],
            "orders": totals[day],
            "urgent": urgent[day],
        }
        for day in days
    ]


def status_breakdown(orders) -> dict:
    """Order count per status, zero counts omitted."""
    counts = Counter(o.status for o in orders)
    ordered = [s for s in ORDER_STATUSES if counts.get(s)]
    ordered += sorted(s for s in counts if s not in ORDER_STATUSES)
    return {status: counts[status] for status in ordered}


def recent_activity(orders, tz, limit: int = RECENT_LIMIT) -> list[dict]:
    newest = sorted(orders, key=lambda o: (o.created_at, o.id), reverse=True)[:limit]
    return [
        {
            "order_id": order.id,
            "restaurant": order.restaurant_name,
            "type": "Urgente" if order.is_urgent else "Semanal",
            "items": order.total_items or len(order.lines),
            "date": to_local(order.created_at, tz).strftime("%d/%m/%Y"),
            "created_at": to_utc_z(order.created_at),
            "status": order.status,
        }
        for order in newest
    ]


def top_products(orders, limit: int = TOP_PRODUCTS_LIMIT) -> list[dict]:
    """Quantity ordered per product id across all lines, highest first."""
    quantities = Counter()
    names = {}
    for order in orders:
        for line in order.lines:
            quantities[line.product_id] += line.quantity
            names[line.product_id] = line.product_name

    ranked = sorted(quantities.items(), key=lambda item: (-item[1], names[item[0]].lower()))
    return [
        {"product_id": product_id, "product_name": names[product_id], "quantity": quantity}
        for product_id, quantity in ranked[:limit]
    ]


def empty_dashboard(today: date) -> dict:
    return {
        "counts": summary_counts([], [], []),
        "seven_day_series": seven_day_series([], today, ZoneInfo("UTC")),
        "status_breakdown": {},
        "recent_activity": [],
        "top_products": [],
        "generated_at": to_utc_z(utcnow()),
        "degraded": True,
    }


def _fetch_sources(org_id: int):
    orders = db.session.query(Order).filter(Order.org_id == org_id).all()
    products = db.session.query(Product).filter(Product.org_id == org_id).all()
    users = db.session.query(User).filter(User.org_id == org_id).all()
    return orders, products, users


def build_dashboard(actor: Actor, today: date | None = None) -> dict:
    """All rollups for the actor's organization."""
    require_permission(actor, "VIEW_DASHBOARD")

    try:
        tz = get_org_timezone(actor.org_id)
        if today is None:
            today = to_local(utcnow(), tz).date()
        orders, products, users = _fetch_sources(actor.org_id)
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.warning("Dashboard sources unavailable for org %s", actor.org_id, exc_info=True)
        return empty_dashboard(today or utcnow().date())

    return {
        "counts": summary_counts(orders, products, users),
        "seven_day_series": seven_day_series(orders, today, tz),
        "status_breakdown": status_breakdown(orders),
        "recent_activity": recent_activity(orders, tz),
        "top_products": top_products(orders),
        "generated_at": to_utc_z(utcnow()),
        "degraded": False,
    }
