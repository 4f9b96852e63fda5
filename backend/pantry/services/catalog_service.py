# Overview: Service-layer operations for the catalog; products and providers scoped to one organization.

"""
Catalog Registry

MULTI-TENANT: Products and providers are scoped to organizations via org_id;
every id coming from a client is resolved with tenant_service.get_in_org.

POLICY (see permissions.roles.ROLE_PERMISSIONS):
- Products: created, edited, toggled and deleted by admins only
- Providers: created and deleted by admins only; edited and
  activated/deactivated by admins and suppliers
- Everyone in the organization may read the catalog

REFERENCES: products point at their default provider, and order lines at
their selected provider, by id. The provider name stored next to the id is a
display cache; renames refresh it, deletes detach the id and keep the name.

STOCK: stock_level is never edited here. A product created with an initial
level gets an opening "in" movement so the ledger explains the cached value.
"""

from __future__ import annotations

from ..errors import ConflictError, ValidationError
from ..extensions import db
from ..models import OrderLine, Product, Provider, StockTransaction
from ..validation import enforce_rules_product, search_term, text_matches
from . import stock_service
from .permission_service import Actor, require_permission
from .tenant_service import get_in_org


PRODUCT_CATEGORIES = [
    "Carnes",
    "Verduras",
    "Lácteos",
    "Abarrotes",
    "Bebidas",
    "Limpieza",
    "Panadería",
    "Congelados",
    "Condimentos",
    "Otros",
]

PRODUCT_UNITS = ["kg", "gr", "litro", "ml", "pieza", "paquete", "caja", "bolsa", "lata", "botella"]

# key -> display label
PROVIDER_TYPES = {
    "supermercado": "Supermercado",
    "mayorista": "Mayorista",
    "mercado_local": "Mercado Local",
    "distribuidor": "Distribuidor",
    "carniceria": "Carnicería",
    "verduleria": "Verdulería",
    "especializado": "Proveedor Especializado",
    "otros": "Otros",
}
_PROVIDER_TYPE_LOOKUP = {key: key for key in PROVIDER_TYPES}
_PROVIDER_TYPE_LOOKUP.update({label.lower(): key for key, label in PROVIDER_TYPES.items()})
_PROVIDER_TYPE_LOOKUP.update({
    "mercado local": "mercado_local",
    "carnicería": "carniceria",
    "verdulería": "verduleria",
})

PRODUCT_EDITABLE_FIELDS = {
    "name",
    "unit",
    "category",
    "description",
    "default_provider_id",
    "min_stock_alert",
    "max_stock",
    "is_active",
}

OPENING_STOCK_REASON = "Inventario inicial"


# =============================================================================
# Products
# =============================================================================

def _resolve_provider(actor: Actor, provider_id) -> Provider | None:
    if provider_id in (None, ""):
        return None
    return get_in_org(Provider, provider_id, actor.org_id, label="Provider")


def _clean_name(value, label: str) -> str:
    name = (value or "").strip() if isinstance(value, str) else ""
    if not name:
        raise ValidationError(f"{label} name is required")
    return name


def create_product(
    actor: Actor,
    *,
    name: str,
    unit: str | None = None,
    category: str | None = None,
    description: str | None = None,
    default_provider_id: int | None = None,
    stock_level=0,
    min_stock_alert=0,
    max_stock=None,
    is_active: bool = True,
) -> Product:
    """
    Create a product in the actor's organization.

    A non-zero initial stock_level is recorded as an opening "in" movement in
    the same transaction.
    """
    require_permission(actor, "MANAGE_PRODUCTS")

    patch = {
        "stock_level": stock_level if stock_level is not None else 0,
        "min_stock_alert": min_stock_alert if min_stock_alert is not None else 0,
        "max_stock": max_stock,
    }
    enforce_rules_product(patch)
    provider = _resolve_provider(actor, default_provider_id)

    product = Product(
        org_id=actor.org_id,
        name=_clean_name(name, "Product"),
        unit=(unit or "").strip() or "pieza",
        category=(category or "").strip() or "Otros",
        description=(description or "").strip() or None,
        default_provider_id=provider.id if provider else None,
        default_provider_name=provider.name if provider else None,
        is_active=bool(is_active),
        stock_level=0,
        min_stock_alert=patch["min_stock_alert"],
        max_stock=patch["max_stock"],
        created_by_user_id=actor.user_id,
        updated_by_user_id=actor.user_id,
    )
    db.session.add(product)
    db.session.flush()

    if patch["stock_level"] > 0:
        stock_service.append_movement(
            product,
            movement_type=stock_service.MOVEMENT_IN,
            quantity=patch["stock_level"],
            actor=actor,
            reason=OPENING_STOCK_REASON,
        )

    db.session.commit()
    return product


def get_product(actor: Actor, product_id: int) -> Product:
    require_permission(actor, "VIEW_CATALOG")
    return get_in_org(Product, product_id, actor.org_id, label="Product")


def update_product(actor: Actor, product_id: int, changes: dict) -> Product:
    """
    Partial update of descriptive fields and thresholds.

    stock_level is rejected: stock only moves through the ledger.
    """
    require_permission(actor, "MANAGE_PRODUCTS")
    product = get_in_org(Product, product_id, actor.org_id, label="Product")

    if "stock_level" in changes:
        raise ValidationError("stock_level cannot be edited directly; record a stock movement")
    unknown = sorted(set(changes) - PRODUCT_EDITABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(unknown)}")

    patch = dict(changes)
    if "min_stock_alert" in patch and patch["min_stock_alert"] is None:
        raise ValidationError("min_stock_alert cannot be null")
    enforce_rules_product(patch)

    min_alert = patch.get("min_stock_alert", product.min_stock_alert)
    max_stock = patch.get("max_stock", product.max_stock)
    if max_stock is not None and min_alert is not None and max_stock < min_alert:
        raise ValidationError("max_stock must be >= min_stock_alert")

    if "name" in patch:
        product.name = _clean_name(patch["name"], "Product")
    if "unit" in patch:
        product.unit = (patch["unit"] or "").strip() or product.unit
    if "category" in patch:
        product.category = (patch["category"] or "").strip() or "Otros"
    if "description" in patch:
        product.description = (patch["description"] or "").strip() or None
    if "default_provider_id" in patch:
        provider = _resolve_provider(actor, patch["default_provider_id"])
        product.default_provider_id = provider.id if provider else None
        product.default_provider_name = provider.name if provider else None
    if "min_stock_alert" in patch:
        product.min_stock_alert = patch["min_stock_alert"]
    if "max_stock" in patch:
        product.max_stock = patch["max_stock"]
    if "is_active" in patch and patch["is_active"] is not None:
        product.is_active = bool(patch["is_active"])

    product.updated_by_user_id = actor.user_id
    db.session.commit()
    return product


def set_product_active(actor: Actor, product_id: int, active: bool) -> Product:
    require_permission(actor, "MANAGE_PRODUCTS")
    product = get_in_org(Product, product_id, actor.org_id, label="Product")
    product.is_active = bool(active)
    product.updated_by_user_id = actor.user_id
    db.session.commit()
    return product


def delete_product(actor: Actor, product_id: int) -> None:
    """
    Hard-delete a product that has never been ordered or moved.

    Products with ledger or order history must be deactivated instead, so the
    append-only ledger and past orders keep a valid reference.
    """
    require_permission(actor, "MANAGE_PRODUCTS")
    product = get_in_org(Product, product_id, actor.org_id, label="Product")

    has_ledger = db.session.query(StockTransaction.id).filter_by(product_id=product.id).first()
    has_orders = db.session.query(OrderLine.id).filter_by(product_id=product.id).first()
    if has_ledger or has_orders:
        raise ConflictError(
            "Product has stock or order history; deactivate it instead of deleting"
        )

    db.session.delete(product)
    db.session.commit()


def list_products(
    actor: Actor,
    *,
    active: bool | None = None,
    category: str | None = None,
    search: str | None = None,
    stock_status: str | None = None,
) -> list[Product]:
    """
    Products of the actor's organization sorted by name.

    Filters compose with AND:
    - active: True/False, or None for both
    - category: exact match; None or "all" disables the filter
    - search: case-insensitive substring of name or category
    - stock_status: empty/low/ok, evaluated with stock_service.stock_status
    """
    require_permission(actor, "VIEW_CATALOG")

    query = db.session.query(Product).filter(Product.org_id == actor.org_id)

    if active is not None:
        query = query.filter(Product.is_active.is_(bool(active)))

    if category and category.strip().lower() != "all":
        query = query.filter(Product.category == category.strip())

    products = query.order_by(Product.name.asc(), Product.id.asc()).all()

    term = search_term(search)
    if term:
        products = [p for p in products if text_matches(term, p.name, p.category)]

    if stock_status and stock_status.strip().lower() != "all":
        wanted = stock_status.strip().lower()
        if wanted not in stock_service.STOCK_STATUSES:
            raise ValidationError(
                f"stock_status must be one of: {', '.join(stock_service.STOCK_STATUSES)}"
            )
        products = [
            p for p in products
            if stock_service.stock_status(p.stock_level, p.min_stock_alert) == wanted
        ]

    return products


def list_categories(actor: Actor) -> list[str]:
    """Distinct categories in use by the organization's products, sorted."""
    require_permission(actor, "VIEW_CATALOG")
    rows = (
        db.session.query(Product.category)
        .filter(Product.org_id == actor.org_id)
        .distinct()
        .all()
    )
    return sorted({row[0] for row in rows if row[0]})


# =============================================================================
# Providers
# =============================================================================

def normalize_provider_type(value) -> str:
    if value in (None, ""):
        return "otros"
    key = str(value).strip().lower()
    try:
        return _PROVIDER_TYPE_LOOKUP[key]
    except KeyError:
        raise ValidationError(
            f"type must be one of: {', '.join(PROVIDER_TYPES)}"
        )


def _ensure_unique_provider_name(org_id: int, name: str, exclude_id: int | None = None) -> None:
    query = db.session.query(Provider).filter(
        Provider.org_id == org_id,
        db.func.lower(Provider.name) == name.lower(),
    )
    if exclude_id is not None:
        query = query.filter(Provider.id != exclude_id)
    if query.first():
        raise ConflictError(f"Provider '{name}' already exists in this organization")


def create_provider(
    actor: Actor,
    *,
    name: str,
    provider_type: str | None = None,
    description: str | None = None,
) -> Provider:
    """Admin only."""
    require_permission(actor, "CREATE_PROVIDER")

    name = _clean_name(name, "Provider")
    _ensure_unique_provider_name(actor.org_id, name)

    provider = Provider(
        org_id=actor.org_id,
        name=name,
        provider_type=normalize_provider_type(provider_type),
        description=(description or "").strip() or None,
        is_active=True,
        created_by_user_id=actor.user_id,
        updated_by_user_id=actor.user_id,
    )
    db.session.add(provider)
    db.session.commit()
    return provider


def get_provider(actor: Actor, provider_id: int) -> Provider:
    require_permission(actor, "VIEW_CATALOG")
    return get_in_org(Provider, provider_id, actor.org_id, label="Provider")


def update_provider(
    actor: Actor,
    provider_id: int,
    *,
    name: str | None = None,
    provider_type: str | None = None,
    description: str | None = None,
) -> Provider:
    """Admins and suppliers. A rename refreshes the cached names that point here."""
    require_permission(actor, "EDIT_PROVIDER")
    provider = get_in_org(Provider, provider_id, actor.org_id, label="Provider")

    if name is not None:
        name = _clean_name(name, "Provider")
        if name != provider.name:
            _ensure_unique_provider_name(actor.org_id, name, exclude_id=provider.id)
            provider.name = name
            _refresh_cached_names(provider)
    if provider_type is not None:
        provider.provider_type = normalize_provider_type(provider_type)
    if description is not None:
        provider.description = description.strip() or None

    provider.updated_by_user_id = actor.user_id
    db.session.commit()
    return provider


def set_provider_active(actor: Actor, provider_id: int, active: bool) -> Provider:
    """Admins and suppliers."""
    require_permission(actor, "EDIT_PROVIDER")
    provider = get_in_org(Provider, provider_id, actor.org_id, label="Provider")
    provider.is_active = bool(active)
    provider.updated_by_user_id = actor.user_id
    db.session.commit()
    return provider


def delete_provider(actor: Actor, provider_id: int) -> None:
    """
    Admin only. Detaches products and order lines from the provider (their
    cached provider name stays for display) and removes it.
    """
    require_permission(actor, "DELETE_PROVIDER")
    provider = get_in_org(Provider, provider_id, actor.org_id, label="Provider")

    db.session.query(Product).filter(
        Product.org_id == actor.org_id,
        Product.default_provider_id == provider.id,
    ).update(
        {"default_provider_id": None, "default_provider_name": provider.name},
        synchronize_session=False,
    )
    db.session.query(OrderLine).filter(
        OrderLine.selected_provider_id == provider.id,
    ).update(
        {"selected_provider_id": None, "selected_provider_name": provider.name},
        synchronize_session=False,
    )

    db.session.delete(provider)
    db.session.commit()


def list_providers(
    actor: Actor,
    *,
    include_inactive: bool = True,
    search: str | None = None,
    provider_type: str | None = None,
) -> list[Provider]:
    """Active providers first, then by name."""
    require_permission(actor, "VIEW_CATALOG")

    query = db.session.query(Provider).filter(Provider.org_id == actor.org_id)
    if not include_inactive:
        query = query.filter(Provider.is_active.is_(True))
    if provider_type:
        query = query.filter(Provider.provider_type == normalize_provider_type(provider_type))
    providers = query.order_by(Provider.is_active.desc(), Provider.name.asc()).all()

    term = search_term(search)
    if term:
        providers = [p for p in providers if text_matches(term, p.name)]
    return providers


def _refresh_cached_names(provider: Provider) -> None:
    db.session.query(Product).filter(
        Product.default_provider_id == provider.id,
    ).update({"default_provider_name": provider.name}, synchronize_session=False)
    db.session.query(OrderLine).filter(
        OrderLine.selected_provider_id == provider.id,
    ).update({"selected_provider_name": provider.name}, synchronize_session=False)


def catalog_options() -> dict:
    """Suggested values clients offer in pickers; free-form input is still accepted."""
    return {
        "categories": list(PRODUCT_CATEGORIES),
        "units": list(PRODUCT_UNITS),
        "provider_types": [{"key": key, "label": label} for key, label in PROVIDER_TYPES.items()],
        "stock_statuses": list(stock_service.STOCK_STATUSES),
        "movement_reasons": stock_service.SUGGESTED_REASONS,
    }
