# Overview: Service-layer operations for store types, the product catalog and onboarding.

"""
Catalog & Onboarding Service

The catalog is reference data shared by all stores: store types and the
product templates recommended for each. It is never transactional.
Onboarding copies chosen templates into the store's own inventory with
zero stock.

If a store type has no database definition, onboarding falls back to the
built-in defaults in pores.catalog_defaults.
"""

from __future__ import annotations

import logging

from ..catalog_defaults import PRODUCTS_BY_STORE_TYPE, STORE_TYPES
from ..extensions import db
from ..models import CatalogItem, Product, Store, StoreTypeDef
from ..validation import (
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    coerce_int,
    enforce_rules_product,
    validate_payload,
)

logger = logging.getLogger(__name__)

ONBOARDING_ITEMS_LIMIT = 200
SEARCH_LIMIT = 10

CATALOG_FIELDS = {
    "store_type_id", "name", "brand", "category",
    "cost_price", "selling_price", "unit_name",
    "units_per_bulk", "bulk_selling_price", "bulk_unit_name",
    "image", "description", "keywords",
}

CATALOG_POLICY = ModelValidationPolicy(
    writable_fields=CATALOG_FIELDS,
    required_on_create={"store_type_id", "name", "brand", "category", "cost_price", "selling_price", "unit_name"},
    ignore_unknown=True,
)

# Fields copied from a catalog template into a new Product
_TEMPLATE_FIELDS = (
    "name", "brand", "category", "cost_price", "selling_price", "unit_name",
    "units_per_bulk", "bulk_selling_price", "bulk_unit_name", "image",
)


class CatalogError(Exception):
    """400-level catalog or onboarding problem."""


# ---------------------------------------------------------------------------
# Store types
# ---------------------------------------------------------------------------

def list_store_types() -> list[StoreTypeDef]:
    return db.session.query(StoreTypeDef).order_by(StoreTypeDef.key.asc()).all()


def create_store_type(key, label, icon=None) -> StoreTypeDef:
    key = str(key or "").strip()
    label = str(label or "").strip()
    if not key or not label:
        raise CatalogError("Label and key are required")
    if db.session.query(StoreTypeDef.id).filter_by(key=key).first():
        raise CatalogError("Store type with this key already exists")

    store_type = StoreTypeDef(key=key, label=label, icon=(str(icon).strip() or None) if icon else None)
    db.session.add(store_type)
    db.session.commit()
    return store_type


# ---------------------------------------------------------------------------
# Catalog items (admin)
# ---------------------------------------------------------------------------

def list_catalog_items(store_type_id: int | None = None) -> list[CatalogItem]:
    q = db.session.query(CatalogItem)
    if store_type_id is not None:
        q = q.filter(CatalogItem.store_type_id == store_type_id)
    return q.order_by(CatalogItem.created_at.desc(), CatalogItem.id.desc()).all()


def _get_catalog_item(item_id: int) -> CatalogItem:
    item = db.session.get(CatalogItem, item_id)
    if item is None:
        raise NotFoundError("Catalog item not found")
    return item


def _require_store_type(store_type_id: int) -> None:
    if db.session.get(StoreTypeDef, store_type_id) is None:
        raise CatalogError("Invalid store type")


def create_catalog_item(payload: dict) -> CatalogItem:
    patch = validate_payload(model=CatalogItem, payload=payload, policy=CATALOG_POLICY, partial=False)
    enforce_rules_product(patch)
    _require_store_type(patch["store_type_id"])
    patch.setdefault("keywords", [])

    item = CatalogItem(**patch)
    db.session.add(item)
    db.session.commit()
    return item


def update_catalog_item(item_id: int, payload: dict) -> CatalogItem:
    item = _get_catalog_item(item_id)
    patch = validate_payload(model=CatalogItem, payload=payload, policy=CATALOG_POLICY, partial=True)
    enforce_rules_product(patch)
    if "store_type_id" in patch:
        _require_store_type(patch["store_type_id"])

    for key, value in patch.items():
        setattr(item, key, value)
    db.session.commit()
    return item


def delete_catalog_item(item_id: int) -> None:
    item = _get_catalog_item(item_id)
    db.session.delete(item)
    db.session.commit()


# ---------------------------------------------------------------------------
# Merchant-facing catalog
# ---------------------------------------------------------------------------

def search_catalog(name: str | None, brand: str | None) -> list[CatalogItem]:
    """
    Product-form autofill.

    name + brand: first item matching both, if any
    otherwise:    up to 10 by name, else up to 10 by brand
    """
    name = (name or "").strip()
    brand = (brand or "").strip()

    if name and brand:
        exact = (
            db.session.query(CatalogItem)
            .filter(CatalogItem.name.ilike(f"%{name}%"), CatalogItem.brand.ilike(f"%{brand}%"))
            .order_by(CatalogItem.id.asc())
            .first()
        )
        if exact is not None:
            return [exact]

    if name:
        column, term = CatalogItem.name, name
    elif brand:
        column, term = CatalogItem.brand, brand
    else:
        return []

    return (
        db.session.query(CatalogItem)
        .filter(column.ilike(f"%{term}%"))
        .order_by(CatalogItem.id.asc())
        .limit(SEARCH_LIMIT)
        .all()
    )


def _matches_query(item: CatalogItem, q: str) -> bool:
    needle = q.lower()
    if any(needle in (value or "").lower() for value in (item.name, item.brand, item.category)):
        return True
    return any(needle == str(k).lower() for k in (item.keywords or []))


def onboarding_items(store_type_key: str | None, q: str | None = None) -> tuple[str, list[CatalogItem]]:
    store_type_key = (store_type_key or "").strip()
    if not store_type_key:
        raise CatalogError("Store type parameter is required")

    store_type = db.session.query(StoreTypeDef).filter_by(key=store_type_key).first()
    if store_type is None:
        raise CatalogError("Invalid store type")

    items = (
        db.session.query(CatalogItem)
        .filter(CatalogItem.store_type_id == store_type.id)
        .order_by(CatalogItem.created_at.asc(), CatalogItem.id.asc())
        .all()
    )
    q = (q or "").strip()
    if q:
        items = [item for item in items if _matches_query(item, q)]
    return store_type_key, items[:ONBOARDING_ITEMS_LIMIT]


def _recommended_templates(store_type_key: str) -> tuple[list[dict], list[int] | None]:
    """Templates for a store type plus their catalog ids (None for built-ins)."""
    store_type = db.session.query(StoreTypeDef).filter_by(key=store_type_key).first()
    if store_type is None:
        return [dict(p) for p in PRODUCTS_BY_STORE_TYPE.get(store_type_key, [])], None

    items = (
        db.session.query(CatalogItem)
        .filter(CatalogItem.store_type_id == store_type.id)
        .order_by(CatalogItem.created_at.asc(), CatalogItem.id.asc())
        .all()
    )
    return [{field: getattr(item, field) for field in _TEMPLATE_FIELDS} for item in items], [i.id for i in items]


def _selected_indices(selected_items: list, catalog_ids: list[int] | None) -> set[int]:
    """
    Resolve selections to template indices.

    Each entry may be a list index, a catalog item id, or "<type>-<index>".
    """
    indices: set[int] = set()
    for entry in selected_items:
        if isinstance(entry, bool):
            continue
        if isinstance(entry, int):
            indices.add(entry)
            continue
        if not isinstance(entry, str):
            continue

        text = entry.strip()
        if catalog_ids is not None and text.isdigit() and int(text) in catalog_ids:
            indices.add(catalog_ids.index(int(text)))
            continue

        tail = text.rsplit("-", 1)[-1]
        if tail.isdigit():
            indices.add(int(tail))
    return indices


def setup_store(store_id: int, store_type_key, selected_items=None) -> tuple[Store, int]:
    """
    Finish onboarding: record the store type and stock the starter products.

    Products are created with quantity 0. Returns (store, products_created).
    """
    store_type_key = str(store_type_key or "").strip()
    if not store_type_key:
        raise CatalogError("Invalid store type")

    store = db.session.get(Store, store_id)
    if store is None:
        raise NotFoundError("Store not found")

    if selected_items is None:
        selected_items = []
    if not isinstance(selected_items, list):
        raise ValidationError("selected_items must be a list")

    templates, catalog_ids = _recommended_templates(store_type_key)
    if selected_items:
        wanted = _selected_indices(selected_items, catalog_ids)
        templates = [t for idx, t in enumerate(templates) if idx in wanted]

    store.store_type = store_type_key
    store.setup_completed = True

    for template in templates:
        product = Product(store_id=store.id, quantity=0)
        for field in _TEMPLATE_FIELDS:
            value = template.get(field)
            if value is not None:
                setattr(product, field, value)
        product.unit_name = product.unit_name or "Piece"
        db.session.add(product)

    db.session.commit()
    logger.info("Onboarding complete: store_id=%s type=%s products=%s", store.id, store_type_key, len(templates))
    return store, len(templates)


def seed_defaults() -> tuple[int, int]:
    """
    Upsert the built-in store types and their catalog items.

    Items are matched on (store type, name, brand) so reseeding is a no-op.
    Returns (store_types_created, items_created).
    """
    types_created = 0
    items_created = 0
    for st in STORE_TYPES:
        store_type = db.session.query(StoreTypeDef).filter_by(key=st["key"]).first()
        if store_type is None:
            store_type = StoreTypeDef(key=st["key"], label=st["label"], icon=st.get("icon"))
            db.session.add(store_type)
            db.session.flush()
            types_created += 1
        else:
            store_type.label = st["label"]
            store_type.icon = st.get("icon")

        for template in PRODUCTS_BY_STORE_TYPE.get(st["key"], []):
            exists = (
                db.session.query(CatalogItem.id)
                .filter_by(store_type_id=store_type.id, name=template["name"], brand=template["brand"])
                .first()
            )
            if exists:
                continue
            db.session.add(CatalogItem(
                store_type_id=store_type.id,
                name=template["name"],
                brand=template["brand"],
                category=template["category"],
                cost_price=template["cost_price"],
                selling_price=template["selling_price"],
                unit_name=template.get("unit_name") or "Piece",
                units_per_bulk=template.get("units_per_bulk"),
                bulk_selling_price=template.get("bulk_selling_price"),
                bulk_unit_name=template.get("bulk_unit_name"),
                keywords=list(template.get("keywords", [])),
            ))
            items_created += 1

    db.session.commit()
    return types_created, items_created


def store_type_id_arg(raw) -> int | None:
    """Parse an optional ?store_type_id query value."""
    if raw in (None, ""):
        return None
    return coerce_int(raw, "store_type_id")
