# Overview: Service-layer operations for store staff.

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Store, Worker, Sale
from ..validation import ValidationError, ConflictError
from . import token_service

MIN_PIN_LENGTH = 4


def list_workers(store_id: int) -> list[Worker]:
    return (
        db.session.query(Worker)
        .filter_by(store_id=store_id)
        .order_by(Worker.created_at.asc(), Worker.id.asc())
        .all()
    )


def create_worker(store_id: int, name, pin) -> Worker:
    """
    Add a worker to the store.

    Raises:
        ValidationError: missing name/pin, or pin shorter than 4
        ConflictError: pin already used by another worker of this store
    """
    name = str(name or "").strip()
    pin = str(pin or "").strip()
    if not name or not pin:
        raise ValidationError("Name and PIN are required")
    if len(pin) < MIN_PIN_LENGTH:
        raise ValidationError(f"PIN must be at least {MIN_PIN_LENGTH} characters")

    digest = token_service.pin_digest(store_id, pin)
    if db.session.query(Worker.id).filter_by(store_id=store_id, pin_digest=digest).first():
        raise ConflictError("PIN already in use")

    worker = Worker(store_id=store_id, name=name, pin_digest=digest)
    db.session.add(worker)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("PIN already in use")
    return worker


def admin_list_workers(page: int, limit: int) -> tuple[list[dict], int]:
    """All workers across stores with store name and sales stats."""
    total = db.session.query(func.count(Worker.id)).scalar() or 0

    sales_stats = (
        db.session.query(
            Sale.worker_id.label("worker_id"),
            func.count(Sale.id).label("sales_count"),
            func.coalesce(func.sum(Sale.total_price), 0).label("total_sales_amount"),
        )
        .filter(Sale.worker_id.isnot(None))
        .group_by(Sale.worker_id)
        .subquery()
    )

    rows = (
        db.session.query(Worker, Store.business_name, sales_stats.c.sales_count, sales_stats.c.total_sales_amount)
        .join(Store, Store.id == Worker.store_id)
        .outerjoin(sales_stats, sales_stats.c.worker_id == Worker.id)
        .order_by(Worker.created_at.desc(), Worker.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    items = []
    for worker, store_name, sales_count, total_amount in rows:
        data = worker.to_dict()
        data["store_id"] = worker.store_id
        data["store_name"] = store_name
        data["sales_count"] = int(sales_count or 0)
        data["total_sales_amount"] = int(total_amount or 0)
        items.append(data)
    return items, total
