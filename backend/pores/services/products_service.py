# backend/pores/services/products_service.py
"""
Products Service

MULTI-TENANT: Every merchant-facing operation takes store_id and filters
on it. A product owned by another store is reported as not found.

DUPLICATES: Posting a product that already exists (same name, brand,
category and unit, case-insensitive) adds stock to it instead of
creating a second row. Every stock addition leaves a Restock entry.
"""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, or_

from ..extensions import db
from ..models import Product, Restock, SaleItem, Store
from ..validation import (
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    coerce_int,
    enforce_rules_product,
    optional_text,
    validate_payload,
)

DEFAULT_LIST_LIMIT = 500
DEFAULT_UNIT_NAME = "Piece"

PRODUCT_FIELDS = {
    "name", "brand", "category",
    "cost_price", "selling_price", "quantity",
    "unit_name", "units_per_bulk", "bulk_selling_price", "bulk_unit_name",
    "image",
}

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields=PRODUCT_FIELDS,
    required_on_create={"name", "brand", "category", "cost_price", "selling_price", "quantity"},
    ignore_unknown=True,
)


def _get_store_product(store_id: int, product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None or product.store_id != store_id:
        raise NotFoundError("Product not found")
    return product


def list_products(
    store_id: int,
    *,
    search: str | None = None,
    category: str | None = None,
    include_zero_stock: bool = False,
    limit: int = DEFAULT_LIST_LIMIT,
) -> list[Product]:
    q = db.session.query(Product).filter(Product.store_id == store_id)

    if not include_zero_stock:
        q = q.filter(Product.quantity > 0)

    if search:
        like = f"%{search.strip()}%"
        q = q.filter(or_(
            Product.name.ilike(like),
            Product.brand.ilike(like),
            Product.category.ilike(like),
        ))

    if category:
        q = q.filter(Product.category == category)

    return q.order_by(Product.name.asc(), Product.id.asc()).limit(limit).all()


def get_product(store_id: int, product_id: int) -> Product:
    return _get_store_product(store_id, product_id)


def _find_duplicate(store_id: int, patch: dict) -> Product | None:
    return (
        db.session.query(Product)
        .filter(
            Product.store_id == store_id,
            func.lower(Product.name) == patch["name"].lower(),
            func.lower(Product.brand) == patch["brand"].lower(),
            func.lower(Product.category) == patch["category"].lower(),
            func.lower(Product.unit_name) == patch["unit_name"].lower(),
        )
        .order_by(Product.id.asc())
        .first()
    )


def _price_change_note(existing: Product, cost_price: int, selling_price: int) -> str:
    changes = []
    if existing.cost_price != cost_price:
        changes.append(f"Cost: {existing.cost_price:,} → {cost_price:,}")
    if existing.selling_price != selling_price:
        changes.append(f"Selling: {existing.selling_price:,} → {selling_price:,}")
    if not changes:
        return ""
    return f"Price updated. {', '.join(changes)}"


def create_or_merge_product(store_id: int, payload: dict) -> tuple[Product, dict]:
    """
    Create a product, or add stock to an identical existing one.

    Returns:
        (product, meta) where meta holds is_duplicate, price_changed and
        price_change_note. The route picks 200 vs 201 from is_duplicate.

    Raises:
        ValidationError: missing or malformed fields
    """
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
    patch["unit_name"] = patch.get("unit_name") or DEFAULT_UNIT_NAME
    enforce_rules_product(patch)

    quantity = patch["quantity"]
    cost_price = patch["cost_price"]
    selling_price = patch["selling_price"]

    existing = _find_duplicate(store_id, patch)
    if existing is not None:
        note = _price_change_note(existing, cost_price, selling_price)

        existing.quantity = Product.quantity + quantity
        existing.cost_price = cost_price
        existing.selling_price = selling_price
        if patch.get("image"):
            existing.image = patch["image"]

        notes = f"Inventory addition ({quantity} units)"
        if note:
            notes = f"{notes}. {note}"
        db.session.add(Restock(
            product_id=existing.id,
            store_id=store_id,
            quantity=quantity,
            cost_price=cost_price,
            total_cost=quantity * cost_price,
            notes=notes,
        ))
        db.session.commit()
        db.session.refresh(existing)
        return existing, {
            "is_duplicate": True,
            "price_changed": bool(note),
            "price_change_note": note,
        }

    product = Product(store_id=store_id, **patch)
    db.session.add(product)
    db.session.flush()

    db.session.add(Restock(
        product_id=product.id,
        store_id=store_id,
        quantity=quantity,
        cost_price=cost_price,
        total_cost=quantity * cost_price,
        notes="Initial stock",
    ))
    db.session.commit()
    return product, {"is_duplicate": False}


def update_product(store_id: int, product_id: int, payload: dict) -> Product:
    product = _get_store_product(store_id, product_id)

    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
    enforce_rules_product(patch)

    for key, value in patch.items():
        setattr(product, key, value)

    db.session.commit()
    return product


def delete_product(store_id: int, product_id: int) -> None:
    """
    Delete a product and its restock log.

    Sale items keep their price and name snapshots; only the link to the
    live product is cleared.
    """
    product = _get_store_product(store_id, product_id)

    db.session.query(SaleItem).filter(SaleItem.product_id == product.id).update(
        {SaleItem.product_id: None}, synchronize_session=False
    )
    db.session.delete(product)
    db.session.commit()


def create_restock(store_id: int, product_id, quantity, cost_price, notes=None) -> Restock:
    """
    Receive stock for an existing product.

    Quantity is incremented in SQL so concurrent restocks and sales do not
    overwrite each other. The product's cost price follows the latest restock.
    """
    if product_id is None:
        raise ValidationError("product_id is required")
    product = _get_store_product(store_id, coerce_int(product_id, "product_id"))
    quantity = coerce_int(quantity, "quantity", minimum=1)
    cost_price = coerce_int(cost_price, "cost_price", minimum=0)

    restock = Restock(
        product_id=product.id,
        store_id=store_id,
        quantity=quantity,
        cost_price=cost_price,
        total_cost=quantity * cost_price,
        notes=optional_text(notes),
    )
    db.session.add(restock)

    db.session.query(Product).filter(Product.id == product.id).update(
        {Product.quantity: Product.quantity + quantity, Product.cost_price: cost_price},
        synchronize_session=False,
    )
    db.session.commit()
    return restock


def list_restocks(
    store_id: int,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[Restock]:
    q = db.session.query(Restock).filter(Restock.store_id == store_id)
    if start is not None:
        q = q.filter(Restock.created_at >= start)
    if end is not None:
        q = q.filter(Restock.created_at <= end)
    return q.order_by(Restock.created_at.desc(), Restock.id.desc()).all()


def admin_list_products(
    page: int,
    limit: int,
    *,
    search: str | None = None,
    category: str | None = None,
    low_stock_only: bool = False,
    low_stock_threshold: int = 10,
) -> tuple[list[dict], int]:
    q = db.session.query(Product, Store.business_name).join(Store, Store.id == Product.store_id)

    if search:
        like = f"%{search.strip()}%"
        q = q.filter(or_(Product.name.ilike(like), Product.brand.ilike(like)))
    if category:
        q = q.filter(Product.category == category)
    if low_stock_only:
        q = q.filter(Product.quantity <= low_stock_threshold)

    total = q.count()
    rows = (
        q.order_by(Product.created_at.desc(), Product.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    items = []
    for product, store_name in rows:
        data = product.to_dict()
        data["store_name"] = store_name
        items.append(data)
    return items, total
