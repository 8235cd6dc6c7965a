from __future__ import annotations

from sqlalchemy import func, or_

from ..extensions import db
from ..models import Credit, Product, Sale, Store, Worker
from ..validation import NotFoundError

DETAIL_LIMIT = 10


def _count_by_store(model) -> dict[int, int]:
    rows = db.session.query(model.store_id, func.count(model.id)).group_by(model.store_id).all()
    return {store_id: int(count) for store_id, count in rows}


def admin_list_stores(page: int, limit: int, search: str | None = None) -> tuple[list[dict], int]:
    q = db.session.query(Store)
    if search:
        like = f"%{search.strip()}%"
        q = q.filter(or_(Store.business_name.ilike(like), Store.email.ilike(like)))

    total = q.count()
    stores = (
        q.order_by(Store.created_at.desc(), Store.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    product_counts = _count_by_store(Product)
    worker_counts = _count_by_store(Worker)
    sale_counts = _count_by_store(Sale)

    items = []
    for store in stores:
        data = store.to_dict()
        data["counts"] = {
            "products": product_counts.get(store.id, 0),
            "workers": worker_counts.get(store.id, 0),
            "sales": sale_counts.get(store.id, 0),
        }
        items.append(data)
    return items, total


def admin_store_detail(store_id: int) -> dict:
    store = db.session.get(Store, store_id)
    if store is None:
        raise NotFoundError("Store not found")

    products = (
        db.session.query(Product)
        .filter(Product.store_id == store.id)
        .order_by(Product.name.asc(), Product.id.asc())
        .limit(DETAIL_LIMIT)
        .all()
    )
    workers = (
        db.session.query(Worker)
        .filter(Worker.store_id == store.id)
        .order_by(Worker.created_at.asc(), Worker.id.asc())
        .all()
    )
    sales = (
        db.session.query(Sale)
        .filter(Sale.store_id == store.id)
        .order_by(Sale.created_at.desc(), Sale.id.desc())
        .limit(DETAIL_LIMIT)
        .all()
    )
    credits = (
        db.session.query(Credit)
        .filter(Credit.store_id == store.id)
        .order_by(Credit.created_at.desc(), Credit.id.desc())
        .limit(DETAIL_LIMIT)
        .all()
    )

    data = store.to_dict()
    data["products"] = [p.to_dict() for p in products]
    data["workers"] = [w.to_dict() for w in workers]
    data["sales"] = [s.to_dict(include_items=False) for s in sales]
    data["credits"] = [c.to_dict() for c in credits]
    return data
