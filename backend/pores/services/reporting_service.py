# Overview: Service-layer operations for reporting; encapsulates business logic and database work.

from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy import func
from sqlalchemy.orm import selectinload

from ..extensions import db
from ..models import Credit, Product, Sale, SaleItem, Store, Worker
from ..models.credits import CREDIT_STATUS_PENDING
from ..time_utils import REPORT_PERIODS, parse_iso_datetime, period_window, to_utc_z, utcnow

TOP_N = 5
RECENT_SALES_LIMIT = 10


class ReportError(Exception):
    """Raised when report parameters are invalid."""
    pass


def _resolve_window(period: str | None, date: str | None) -> tuple[str, datetime, datetime]:
    period = (period or "daily").strip().lower()
    if period not in REPORT_PERIODS:
        raise ReportError("Invalid period")
    try:
        anchor = parse_iso_datetime(date) or utcnow()
    except ValueError:
        raise ReportError("Invalid date")
    start, end = period_window(period, anchor)
    return period, start, end


def _sales_in_window(store_id: int, start: datetime, end: datetime) -> list[Sale]:
    return (
        db.session.query(Sale)
        .options(selectinload(Sale.items), selectinload(Sale.worker))
        .filter(Sale.store_id == store_id, Sale.created_at >= start, Sale.created_at <= end)
        .order_by(Sale.created_at.asc(), Sale.id.asc())
        .all()
    )


def _average(total: int, count: int) -> float:
    if count <= 0:
        return 0
    return round(total / count, 2)


def _percent(part: int, whole: int) -> float:
    if whole <= 0:
        return 0
    return round(part / whole * 100, 2)


def store_report(*, store_id: int, period: str | None, date: str | None, low_stock_threshold: int = 5) -> dict:
    """
    Sales summary for one store over a daily, weekly or monthly window.

    Worker performance is keyed by display name, so keeper sales appear
    under "Store Keeper" and two workers sharing a name share a row.
    """
    period, start, end = _resolve_window(period, date)
    sales = _sales_in_window(store_id, start, end)

    total_revenue = sum(s.total_price for s in sales)
    total_cost = sum(s.total_cost for s in sales)
    total_transactions = len(sales)

    low_stock = (
        db.session.query(Product)
        .filter(Product.store_id == store_id, Product.quantity <= low_stock_threshold)
        .order_by(Product.quantity.asc(), Product.name.asc())
        .all()
    )

    performance: dict[str, dict] = {}
    for sale in sales:
        row = performance.setdefault(sale.worker_name, {"worker": sale.worker_name, "sales": 0, "revenue": 0})
        row["sales"] += 1
        row["revenue"] += sale.total_price

    return {
        "period": period,
        "start_date": to_utc_z(start),
        "end_date": to_utc_z(end),
        "summary": {
            "total_revenue": total_revenue,
            "total_cost": total_cost,
            "total_profit": total_revenue - total_cost,
            "total_transactions": total_transactions,
            "average_transaction": _average(total_revenue, total_transactions),
        },
        "low_stock_products": [p.to_dict() for p in low_stock],
        "worker_performance": list(performance.values()),
        "sales_data": [s.to_dict(include_items=True) for s in sales],
    }


def _product_rows(store_id: int, start: datetime, end: datetime) -> list[dict]:
    items = (
        db.session.query(SaleItem)
        .join(Sale, Sale.id == SaleItem.sale_id)
        .filter(Sale.store_id == store_id, Sale.created_at >= start, Sale.created_at <= end)
        .all()
    )

    rows: dict = {}
    for item in items:
        # Deleted products keep their name snapshot but lose the id
        key = item.product_id if item.product_id is not None else f"deleted:{item.product_name}"
        row = rows.setdefault(key, {
            "id": item.product_id,
            "name": item.product_name,
            "quantity_sold": 0,
            "revenue": 0,
            "cost": 0,
            "profit": 0,
        })
        revenue = item.total_price
        cost = item.cost_price * item.quantity
        row["quantity_sold"] += item.quantity
        row["revenue"] += revenue
        row["cost"] += cost
        row["profit"] += revenue - cost
    return list(rows.values())


def accounting_report(*, store_id: int, period: str | None, date: str | None) -> dict:
    period, start, end = _resolve_window(period, date)

    totals = (
        db.session.query(
            func.count(Sale.id),
            func.coalesce(func.sum(Sale.total_price), 0),
            func.coalesce(func.sum(Sale.total_cost), 0),
        )
        .filter(Sale.store_id == store_id, Sale.created_at >= start, Sale.created_at <= end)
        .one()
    )
    total_transactions, total_revenue, total_cost = (int(v or 0) for v in totals)
    total_profit = total_revenue - total_cost

    products = _product_rows(store_id, start, end)

    def _sold(p):
        return {"id": p["id"], "name": p["name"], "quantity_sold": p["quantity_sold"], "revenue": p["revenue"]}

    def _profit(p):
        return {
            "id": p["id"],
            "name": p["name"],
            "profit": p["profit"],
            "margin_percent": _percent(p["profit"], p["revenue"]),
        }

    by_quantity = sorted(products, key=lambda p: p["quantity_sold"])
    by_profit = sorted(products, key=lambda p: p["profit"])

    inventory = (
        db.session.query(Product)
        .filter(Product.store_id == store_id)
        .order_by(Product.name.asc(), Product.id.asc())
        .all()
    )
    inventory_rows = [
        {
            "id": p.id,
            "name": p.name,
            "brand": p.brand,
            "category": p.category,
            "quantity": p.quantity,
            "cost_price": p.cost_price,
            "total_capital": p.quantity * p.cost_price,
        }
        for p in inventory
    ]

    return {
        "period": period,
        "start_date": to_utc_z(start),
        "end_date": to_utc_z(end),
        "summary": {
            "total_revenue": total_revenue,
            "total_cost": total_cost,
            "total_profit": total_profit,
            "profit_margin": _percent(total_profit, total_revenue),
            "total_transactions": total_transactions,
        },
        "product_analysis": {
            "most_sold": [_sold(p) for p in sorted(products, key=lambda p: p["quantity_sold"], reverse=True)[:TOP_N]],
            "highest_profit": [_profit(p) for p in sorted(products, key=lambda p: p["profit"], reverse=True)[:TOP_N]],
            "lowest_sold": [_sold(p) for p in by_quantity[:TOP_N]],
            "lowest_profit": [_profit(p) for p in by_profit[:TOP_N]],
        },
        "inventory": {
            "products": inventory_rows,
            "total_capital": sum(r["total_capital"] for r in inventory_rows),
            "total_products": len(inventory_rows),
        },
    }


def platform_analytics(*, days: int = 30) -> dict:
    """Cross-store totals for the admin dashboard."""
    if days < 0:
        raise ReportError("days must be >= 0")
    since = utcnow() - timedelta(days=days)

    total_stores = db.session.query(func.count(Store.id)).scalar() or 0
    total_sales = db.session.query(func.count(Sale.id)).scalar() or 0
    active_workers = db.session.query(func.count(Worker.id)).scalar() or 0

    recent_count, revenue, costs = (
        db.session.query(
            func.count(Sale.id),
            func.coalesce(func.sum(Sale.total_price), 0),
            func.coalesce(func.sum(Sale.total_cost), 0),
        )
        .filter(Sale.created_at >= since)
        .one()
    )
    revenue = int(revenue or 0)
    costs = int(costs or 0)

    pending_credits = (
        db.session.query(func.coalesce(func.sum(Credit.remaining_balance), 0))
        .filter(Credit.payment_status == CREDIT_STATUS_PENDING)
        .scalar()
    )

    sales_count = func.count(Sale.id).label("sales_count")
    top_workers = (
        db.session.query(
            Worker.id,
            Worker.name,
            sales_count,
            func.coalesce(func.sum(Sale.total_price), 0).label("total_amount"),
        )
        .join(Sale, Sale.worker_id == Worker.id)
        .filter(Sale.created_at >= since)
        .group_by(Worker.id, Worker.name)
        .order_by(sales_count.desc(), Worker.id.asc())
        .limit(TOP_N)
        .all()
    )

    recent = (
        db.session.query(Sale, Store.business_name)
        .join(Store, Store.id == Sale.store_id)
        .options(selectinload(Sale.worker))
        .order_by(Sale.created_at.desc(), Sale.id.desc())
        .limit(RECENT_SALES_LIMIT)
        .all()
    )

    return {
        "summary": {
            "total_stores": int(total_stores),
            "total_sales": int(total_sales),
            "recent_sales": int(recent_count or 0),
            "active_workers": int(active_workers),
            "total_revenue": revenue,
            "total_costs": costs,
            "profit": revenue - costs,
            "pending_credits": int(pending_credits or 0),
        },
        "top_workers": [
            {
                "id": row.id,
                "name": row.name,
                "sales_count": int(row.sales_count),
                "total_amount": int(row.total_amount or 0),
            }
            for row in top_workers
        ],
        "recent_sales": [
            {
                "id": sale.id,
                "transaction_id": sale.transaction_id,
                "store_name": store_name,
                "worker_name": sale.worker_name,
                "total_price": sale.total_price,
                "created_at": to_utc_z(sale.created_at),
            }
            for sale, store_name in recent
        ],
    }
