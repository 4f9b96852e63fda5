# Overview: Service-layer operations for the stock ledger; movements, status classification and replay.

"""
Stock Ledger Invariants (authoritative)

Ledger model:
- Every stock movement appends one StockTransaction row (append-only).
- Product.stock_level is a cached projection of the ledger. It is written only
  here, in the same database transaction as the ledger row that explains it.
- Replaying a product's transactions in id order from zero reproduces the
  cached level (see replay_stock_level / verify_stock_levels).

Arithmetic:
- in:  new = previous + quantity
- out: new = max(0, previous - quantity), clamped per movement
- An "out" larger than the current stock is refused with
  InsufficientStockError unless the caller passes allow_partial=True, the
  non-interactive form of "yes, take what is left".

Concurrency:
- The product row is locked (SELECT ... FOR UPDATE where supported) and its
  version counter checked on update. Because ledger row + product update
  commit together, a concurrency failure can be retried safely.

Status:
- stock_status() is a pure function of (stock_level, min_stock_alert) and is
  recomputed on every read, never stored.
"""

from __future__ import annotations

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Product, StockTransaction
from ..validation import parse_positive_quantity
from .concurrency import lock_for_update, run_with_retry
from .permission_service import Actor, require_permission
from .tenant_service import get_in_org
from pantry.time_utils import utcnow


MOVEMENT_IN = "in"
MOVEMENT_OUT = "out"
MOVEMENT_TYPES = (MOVEMENT_IN, MOVEMENT_OUT)

DEFAULT_REASONS = {
    MOVEMENT_IN: "Entrada de inventario",
    MOVEMENT_OUT: "Salida de inventario",
}

# Shown as presets by clients; any free text is accepted
SUGGESTED_REASONS = {
    MOVEMENT_IN: ["Compra/Recepción", "Devolución", "Ajuste de inventario"],
    MOVEMENT_OUT: ["Uso/Venta", "Merma", "Caducidad", "Ajuste de inventario"],
}

STATUS_EMPTY = "empty"
STATUS_LOW = "low"
STATUS_OK = "ok"
STOCK_STATUSES = (STATUS_EMPTY, STATUS_LOW, STATUS_OK)


class InsufficientStockError(ConflictError):
    """An "out" movement asked for more than is on hand without allow_partial."""
    pass


def stock_status(stock_level, min_stock_alert) -> str:
    """empty if level is 0, low if 0 < level <= min, ok otherwise."""
    level = stock_level or 0
    minimum = min_stock_alert or 0
    if level <= 0:
        return STATUS_EMPTY
    if level <= minimum:
        return STATUS_LOW
    return STATUS_OK


def apply_movement(previous: float, movement_type: str, quantity: float) -> float:
    """Ledger arithmetic for one movement; out clamps at zero."""
    if movement_type == MOVEMENT_IN:
        result = previous + quantity
    else:
        result = max(0.0, previous - quantity)
    # Keeps fractional units (kg, litro) free of float noise like 0.30000000000000004
    return round(result, 6)


MOVEMENT_ALIASES = {"entrada": MOVEMENT_IN, "salida": MOVEMENT_OUT}


def normalize_movement_type(value) -> str:
    movement_type = value.strip().lower() if isinstance(value, str) else None
    movement_type = MOVEMENT_ALIASES.get(movement_type, movement_type)
    if movement_type not in MOVEMENT_TYPES:
        raise ValidationError("type must be 'in' or 'out'")
    return movement_type


def append_movement(
    product: Product,
    *,
    movement_type: str,
    quantity: float,
    actor: Actor | None,
    reason: str | None = None,
    notes: str | None = None,
    allow_partial: bool = False,
) -> StockTransaction:
    """
    Apply one movement to an already-loaded (and locked) product.

    Adds the ledger row and mutates the cached level; does NOT commit, so the
    caller controls the transaction boundary.
    """
    previous = float(product.stock_level or 0)

    if movement_type == MOVEMENT_OUT and quantity > previous and not allow_partial:
        raise InsufficientStockError(
            f"Only {previous:g} {product.unit} of '{product.name}' in stock; "
            f"{quantity:g} requested. Confirm with allow_partial to take what is left.",
            current_stock=previous,
            requested=quantity,
        )

    new_level = apply_movement(previous, movement_type, quantity)
    now = utcnow()

    reason = (reason or "").strip() or DEFAULT_REASONS[movement_type]
    notes = (notes or "").strip() or None

    tx = StockTransaction(
        org_id=product.org_id,
        product_id=product.id,
        product_name=product.name,
        location=actor.restaurant if actor else None,
        movement_type=movement_type,
        quantity=quantity,
        previous_stock=previous,
        new_stock=new_level,
        reason=reason,
        notes=notes,
        actor_user_id=actor.user_id if actor else None,
        actor_name=actor.name if actor else None,
        occurred_at=now,
    )
    db.session.add(tx)

    product.stock_level = new_level
    if movement_type == MOVEMENT_IN:
        product.last_restock_at = now
    if actor:
        product.updated_by_user_id = actor.user_id

    return tx


def record_movement(
    actor: Actor,
    product_id: int,
    movement_type: str,
    quantity,
    reason: str | None = None,
    notes: str | None = None,
    allow_partial: bool = False,
) -> tuple[Product, StockTransaction]:
    """
    Record a stock entry or exit for one product.

    Validation happens before any write. The ledger row and the product's
    cached level commit together or not at all.

    Returns:
        (product, transaction) after commit

    Raises:
        ValidationError: quantity <= 0 or unknown type
        NotFoundError: product missing or in another organization
        InsufficientStockError: out > on hand without allow_partial
        UnavailableError / ConflictError: retries exhausted
    """
    require_permission(actor, "RECORD_STOCK_MOVEMENT")
    movement_type = normalize_movement_type(movement_type)
    qty = parse_positive_quantity(quantity)

    # Tenant check up front so cross-org ids never reach the locked section
    get_in_org(Product, product_id, actor.org_id, label="Product")

    def _op():
        product = lock_for_update(
            db.session.query(Product).filter(
                Product.id == product_id,
                Product.org_id == actor.org_id,
            )
        ).first()
        if product is None:
            raise NotFoundError("Product not found")

        tx = append_movement(
            product,
            movement_type=movement_type,
            quantity=qty,
            actor=actor,
            reason=reason,
            notes=notes,
            allow_partial=allow_partial,
        )
        db.session.commit()
        return product, tx

    return run_with_retry(_op)


def list_stock_transactions(
    actor: Actor,
    *,
    product_id: int | None = None,
    movement_type: str | None = None,
    limit: int = 100,
    offset: int = 0,
) -> tuple[list[StockTransaction], int]:
    """Ledger rows for the actor's organization, newest first."""
    require_permission(actor, "VIEW_STOCK")

    query = db.session.query(StockTransaction).filter(StockTransaction.org_id == actor.org_id)
    if product_id is not None:
        get_in_org(Product, product_id, actor.org_id, label="Product")
        query = query.filter(StockTransaction.product_id == product_id)
    if movement_type:
        query = query.filter(StockTransaction.movement_type == normalize_movement_type(movement_type))

    total = query.count()
    items = (
        query.order_by(StockTransaction.occurred_at.desc(), StockTransaction.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return items, total


def replay_stock_level(product_id: int) -> float:
    """Recompute a product's level from its ledger alone."""
    level = 0.0
    rows = (
        db.session.query(StockTransaction.movement_type, StockTransaction.quantity)
        .filter(StockTransaction.product_id == product_id)
        .order_by(StockTransaction.id.asc())
    )
    for movement_type, quantity in rows:
        level = apply_movement(level, movement_type, quantity)
    return level


def verify_stock_levels(org_id: int | None = None) -> list[dict]:
    """
    Compare every product's cached level to its ledger replay.

    Returns one entry per mismatching product; an empty list means the cache
    and the ledger agree everywhere.
    """
    query = db.session.query(Product)
    if org_id is not None:
        query = query.filter(Product.org_id == org_id)

    mismatches = []
    for product in query.order_by(Product.id.asc()):
        replayed = replay_stock_level(product.id)
        if abs(replayed - float(product.stock_level or 0)) > 1e-6:
            mismatches.append({
                "product_id": product.id,
                "org_id": product.org_id,
                "name": product.name,
                "cached": product.stock_level,
                "replayed": replayed,
            })
    return mismatches


def stock_summary(actor: Actor) -> dict:
    """Counts of active products per stock status."""
    require_permission(actor, "VIEW_STOCK")

    summary = {"total": 0, STATUS_OK: 0, STATUS_LOW: 0, STATUS_EMPTY: 0}
    rows = db.session.query(Product.stock_level, Product.min_stock_alert).filter(
        Product.org_id == actor.org_id,
        Product.is_active.is_(True),
    )
    for level, minimum in rows:
        summary["total"] += 1
        summary[stock_status(level, minimum)] += 1
    return summary
