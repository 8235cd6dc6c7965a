# Overview: Service-layer operations for sales; settles a checkout into sale, stock and credit rows.

"""
Sale Settlement Service

WHY: A checkout touches three things at once: the sale record, product
stock, and (on a shortfall) the customer's credit. They are written in a
single transaction so a failure midway leaves nothing behind.

PRICING: unit_price and cost_price are taken from the request as
snapshots. Totals are never recomputed from live product prices.

STOCK: Quantities are decremented in SQL (quantity = quantity - n) with
no floor. Concurrent checkouts can drive stock negative; that is logged
and the sale still goes through.
"""

from __future__ import annotations

import logging
import secrets
import string
from datetime import datetime

from sqlalchemy.orm import selectinload

from ..extensions import db
from ..models import Credit, Product, Sale, SaleItem, Store
from ..models.credits import CREDIT_STATUS_PENDING
from ..validation import NotFoundError, ValidationError, coerce_bool, coerce_int, optional_text
from ..time_utils import epoch_ms
from .auth_service import resolve_worker

logger = logging.getLogger(__name__)

SALE_STATUS_COMPLETED = "completed"
SALE_STATUS_PARTIAL = "partial"
SALE_STATUS_PENDING = "pending"

_BASE36 = string.digits + string.ascii_lowercase


class SaleError(Exception):
    """400-level: the sale cannot be settled as submitted."""


def generate_transaction_id() -> str:
    """TXN-<epoch ms>-<9 random base36 chars>"""
    suffix = "".join(secrets.choice(_BASE36) for _ in range(9))
    return f"TXN-{epoch_ms()}-{suffix}"


def payment_status_for(total_price: int, amount_paid: int, is_partial: bool) -> str:
    if amount_paid >= total_price:
        return SALE_STATUS_COMPLETED
    return SALE_STATUS_PARTIAL if is_partial else SALE_STATUS_PENDING


def _parse_items(store_id: int, items) -> list[tuple[Product, dict]]:
    if not isinstance(items, list) or not items:
        raise SaleError("Sale must contain at least one item")

    parsed = []
    for index, raw in enumerate(items):
        if not isinstance(raw, dict):
            raise SaleError(f"Item {index} is invalid")
        try:
            parsed.append({
                "product_id": coerce_int(raw.get("product_id"), "product_id"),
                "quantity": coerce_int(raw.get("quantity"), "quantity", minimum=1),
                "unit_price": coerce_int(raw.get("unit_price"), "unit_price", minimum=0),
                "cost_price": coerce_int(raw.get("cost_price"), "cost_price", minimum=0),
                "sell_by_bulk": coerce_bool(raw.get("sell_by_bulk", False)),
            })
        except ValidationError as e:
            raise SaleError(f"Item {index}: {e}") from e

    product_ids = {p["product_id"] for p in parsed}
    products = {
        p.id: p
        for p in db.session.query(Product)
        .filter(Product.store_id == store_id, Product.id.in_(product_ids))
        .all()
    }
    missing = sorted(product_ids - set(products))
    if missing:
        raise SaleError(f"Product not found in this store: {missing[0]}")

    return [(products[p["product_id"]], p) for p in parsed]


def settle_sale(
    store_id: int,
    *,
    worker_id,
    items,
    amount_paid=None,
    is_partial=False,
    payment_method: str | None = None,
    customer_name: str | None = None,
    customer_phone: str | None = None,
) -> Sale:
    """
    Record a checkout.

    - amount_paid defaults to the total when omitted
    - a shortfall with a customer name opens a pending Credit for the balance
    - worker_id "keeper" is stored as a NULL worker

    Raises:
        SaleError: empty cart, bad item, unknown product, bad payment
        AuthError: worker is neither the keeper nor a worker of this store
    """
    if worker_id is None or worker_id == "":
        raise SaleError("Invalid sale data")
    worker = resolve_worker(store_id, worker_id)

    lines = _parse_items(store_id, items)

    total_price = sum(line["unit_price"] * line["quantity"] for _, line in lines)
    total_cost = sum(line["cost_price"] * line["quantity"] for _, line in lines)

    if amount_paid is None or amount_paid == "":
        paid = total_price
    else:
        try:
            paid = coerce_int(amount_paid, "amount_paid", minimum=0)
        except ValidationError as e:
            raise SaleError(str(e)) from e

    remaining = max(0, total_price - paid)
    status = payment_status_for(total_price, paid, coerce_bool(is_partial))

    sale = Sale(
        transaction_id=generate_transaction_id(),
        store_id=store_id,
        worker_id=worker.id if worker else None,
        total_price=total_price,
        total_cost=total_cost,
        amount_paid=paid,
        remaining_balance=remaining,
        payment_status=status,
        payment_method=optional_text(payment_method) or "cash",
    )
    for product, line in lines:
        sale.items.append(SaleItem(
            product_id=product.id,
            product_name=product.name,
            quantity=line["quantity"],
            sell_by_bulk=line["sell_by_bulk"],
            unit_price=line["unit_price"],
            total_price=line["unit_price"] * line["quantity"],
            cost_price=line["cost_price"],
        ))

    try:
        db.session.add(sale)
        db.session.flush()

        for product, line in lines:
            decrement = line["quantity"]
            if line["sell_by_bulk"] and product.units_per_bulk:
                decrement = line["quantity"] * product.units_per_bulk
            db.session.query(Product).filter(
                Product.id == product.id,
                Product.store_id == store_id,
            ).update({Product.quantity: Product.quantity - decrement}, synchronize_session=False)

        customer_name = optional_text(customer_name)
        if remaining > 0 and customer_name:
            db.session.add(Credit(
                store_id=store_id,
                sale_id=sale.id,
                customer_name=customer_name,
                phone_number=optional_text(customer_phone),
                total_owed=remaining,
                total_paid=0,
                remaining_balance=remaining,
                payment_status=CREDIT_STATUS_PENDING,
                is_store_credit=False,
            ))

        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    for product, _ in lines:
        db.session.refresh(product)
        if product.quantity < 0:
            logger.warning(
                "Stock below zero after sale: product_id=%s quantity=%s transaction=%s",
                product.id, product.quantity, sale.transaction_id,
            )

    logger.info(
        "Sale settled: store_id=%s transaction=%s total=%s paid=%s status=%s",
        store_id, sale.transaction_id, total_price, paid, status,
    )
    return sale


def sale_to_dict(sale: Sale) -> dict:
    data = sale.to_dict(include_items=True)
    credits = [c for c in sale.credits if not c.is_store_credit]
    data["credit"] = credits[0].to_dict() if credits else None
    return data


def get_sale(store_id: int, sale_id: int) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if sale is None or sale.store_id != store_id:
        raise NotFoundError("Sale not found")
    return sale


def list_sales(store_id: int, start: datetime | None = None, end: datetime | None = None) -> list[Sale]:
    q = (
        db.session.query(Sale)
        .options(selectinload(Sale.items), selectinload(Sale.worker))
        .filter(Sale.store_id == store_id)
    )
    if start is not None:
        q = q.filter(Sale.created_at >= start)
    if end is not None:
        q = q.filter(Sale.created_at <= end)
    return q.order_by(Sale.created_at.desc(), Sale.id.desc()).all()


def admin_list_sales(page: int, limit: int, payment_status: str | None = None) -> tuple[list[dict], int]:
    q = db.session.query(Sale, Store.business_name).join(Store, Store.id == Sale.store_id)
    if payment_status:
        q = q.filter(Sale.payment_status == payment_status)

    total = q.count()
    rows = (
        q.order_by(Sale.created_at.desc(), Sale.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    items = []
    for sale, store_name in rows:
        data = sale.to_dict(include_items=True)
        data["store_name"] = store_name
        items.append(data)
    return items, total
