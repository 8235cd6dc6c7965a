# Overview: Local SQLite cache used by the merchant client while offline.

"""
Offline store.

Holds work recorded while the server is unreachable (sales, credits) plus
read caches (products, workers) and a single sync_state row. Runs on its
own SQLAlchemy engine; nothing here touches the Flask app or its models.

Timestamps are epoch milliseconds, the same clock the server uses in
tokens and transaction ids.
"""

from __future__ import annotations

from typing import Any, Optional

from sqlalchemy import JSON, Boolean, Integer, String, create_engine, delete, func, or_, select
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker

from pores.time_utils import epoch_ms


class Base(DeclarativeBase):
    pass


class OfflineSale(Base):
    __tablename__ = "offline_sales"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    server_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    worker_id: Mapped[str] = mapped_column(String(32))
    worker_name: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    items: Mapped[list] = mapped_column(JSON)
    total_price: Mapped[int] = mapped_column(Integer)
    total_cost: Mapped[int] = mapped_column(Integer)
    amount_paid: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    is_partial: Mapped[bool] = mapped_column(Boolean, default=False)
    payment_method: Mapped[str] = mapped_column(String(32), default="cash")
    customer_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    customer_phone: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    created_at: Mapped[int] = mapped_column(Integer, index=True)
    synced: Mapped[bool] = mapped_column(Boolean, default=False, index=True)

    def to_payload(self) -> dict:
        """Body for POST /api/sales."""
        return {
            "worker_id": self.worker_id,
            "items": list(self.items or []),
            "amount_paid": self.amount_paid,
            "is_partial": self.is_partial,
            "payment_method": self.payment_method,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
        }


class OfflineCredit(Base):
    __tablename__ = "offline_credits"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    server_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    customer_name: Mapped[str] = mapped_column(String(255), index=True)
    phone_number: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    total_owed: Mapped[int] = mapped_column(Integer)
    amount_paid: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[int] = mapped_column(Integer, index=True)
    synced: Mapped[bool] = mapped_column(Boolean, default=False, index=True)

    def to_payload(self) -> dict:
        """Body for POST /api/credits."""
        return {
            "customer_name": self.customer_name,
            "phone_number": self.phone_number,
            "total_owed": self.total_owed,
        }


class CachedProduct(Base):
    __tablename__ = "cached_products"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_id: Mapped[int] = mapped_column(Integer, index=True)
    name: Mapped[str] = mapped_column(String(255))
    brand: Mapped[str] = mapped_column(String(255))
    category: Mapped[str] = mapped_column(String(120))
    cost_price: Mapped[int] = mapped_column(Integer)
    selling_price: Mapped[int] = mapped_column(Integer)
    quantity: Mapped[int] = mapped_column(Integer)
    image: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    unit_name: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    units_per_bulk: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    bulk_selling_price: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    bulk_unit_name: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    last_updated: Mapped[int] = mapped_column(Integer, index=True)


class CachedWorker(Base):
    __tablename__ = "cached_workers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    worker_id: Mapped[int] = mapped_column(Integer, index=True)
    name: Mapped[str] = mapped_column(String(120))
    last_synced: Mapped[int] = mapped_column(Integer)


class SyncState(Base):
    __tablename__ = "sync_state"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    last_sync_time: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    pending_sales: Mapped[int] = mapped_column(Integer, default=0)
    pending_credits: Mapped[int] = mapped_column(Integer, default=0)
    last_error: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)


_PRODUCT_FIELDS = (
    "name", "brand", "category", "cost_price", "selling_price", "quantity",
    "image", "unit_name", "units_per_bulk", "bulk_selling_price", "bulk_unit_name",
)
_SYNC_STATE_FIELDS = ("last_sync_time", "pending_sales", "pending_credits", "last_error")
_STATE_ROW_ID = 1


def _row_dict(row) -> dict:
    return {c.key: getattr(row, c.key) for c in row.__table__.columns}


class OfflineStore:
    """
    SQLite-backed queue and cache.

    `path` is a filesystem path, ":memory:", or a full SQLAlchemy URL.
    Most methods return plain dicts. unsynced_sales() and unsynced_credits()
    return detached rows (expire_on_commit=False) so the sync loop can call
    to_payload() on them after the session has closed.
    """

    def __init__(self, path: str = "pores-offline.sqlite3"):
        if "://" in path:
            url = path
        elif path == ":memory:":
            url = "sqlite://"
        else:
            url = f"sqlite:///{path}"

        engine_kwargs: dict[str, Any] = {}
        if url == "sqlite://":
            # One shared connection, or each session would see an empty database
            from sqlalchemy.pool import StaticPool
            engine_kwargs = {"connect_args": {"check_same_thread": False}, "poolclass": StaticPool}

        self.engine = create_engine(url, **engine_kwargs)
        Base.metadata.create_all(self.engine)
        self._session = sessionmaker(bind=self.engine, expire_on_commit=False)

    def close(self) -> None:
        self.engine.dispose()

    # -- queued writes --------------------------------------------------------

    def queue_sale(
        self,
        *,
        worker_id,
        items: list[dict],
        worker_name: str | None = None,
        amount_paid: int | None = None,
        is_partial: bool = False,
        payment_method: str = "cash",
        customer_name: str | None = None,
        customer_phone: str | None = None,
    ) -> dict:
        total_price = sum(int(i["unit_price"]) * int(i["quantity"]) for i in items)
        total_cost = sum(int(i["cost_price"]) * int(i["quantity"]) for i in items)
        with self._session() as session:
            sale = OfflineSale(
                worker_id=str(worker_id),
                worker_name=worker_name,
                items=list(items),
                total_price=total_price,
                total_cost=total_cost,
                amount_paid=amount_paid,
                is_partial=is_partial,
                payment_method=payment_method,
                customer_name=customer_name,
                customer_phone=customer_phone,
                created_at=epoch_ms(),
                synced=False,
            )
            session.add(sale)
            session.commit()
            return _row_dict(sale)

    def queue_credit(
        self,
        *,
        customer_name: str,
        total_owed: int,
        phone_number: str | None = None,
        amount_paid: int = 0,
    ) -> dict:
        with self._session() as session:
            credit = OfflineCredit(
                customer_name=customer_name,
                phone_number=phone_number,
                total_owed=total_owed,
                amount_paid=amount_paid,
                created_at=epoch_ms(),
                synced=False,
            )
            session.add(credit)
            session.commit()
            return _row_dict(credit)

    def unsynced_sales(self) -> list[OfflineSale]:
        with self._session() as session:
            return list(session.scalars(
                select(OfflineSale).where(OfflineSale.synced.is_(False)).order_by(OfflineSale.id)
            ))

    def unsynced_credits(self) -> list[OfflineCredit]:
        with self._session() as session:
            return list(session.scalars(
                select(OfflineCredit).where(OfflineCredit.synced.is_(False)).order_by(OfflineCredit.id)
            ))

    def mark_sale_synced(self, local_id: int, server_id: int | None) -> None:
        with self._session() as session:
            sale = session.get(OfflineSale, local_id)
            if sale is None:
                return
            sale.synced = True
            sale.server_id = server_id
            session.commit()

    def mark_credit_synced(self, local_id: int, server_id: int | None) -> None:
        with self._session() as session:
            credit = session.get(OfflineCredit, local_id)
            if credit is None:
                return
            credit.synced = True
            credit.server_id = server_id
            session.commit()

    def pending_counts(self) -> tuple[int, int]:
        with self._session() as session:
            sales = session.scalar(select(func.count(OfflineSale.id)).where(OfflineSale.synced.is_(False)))
            credits = session.scalar(select(func.count(OfflineCredit.id)).where(OfflineCredit.synced.is_(False)))
            return int(sales or 0), int(credits or 0)

    # -- read caches ----------------------------------------------------------

    def cache_products(self, products: list[dict]) -> int:
        """Replace the product cache with `products` (server product dicts)."""
        now = epoch_ms()
        with self._session() as session:
            session.execute(delete(CachedProduct))
            for p in products:
                session.add(CachedProduct(
                    product_id=int(p["id"]),
                    last_updated=now,
                    **{field: p.get(field) for field in _PRODUCT_FIELDS},
                ))
            session.commit()
        return len(products)

    def cached_products(self) -> list[dict]:
        with self._session() as session:
            rows = session.scalars(select(CachedProduct).order_by(CachedProduct.name, CachedProduct.id))
            return [_row_dict(r) for r in rows]

    def search_products(self, q: str) -> list[dict]:
        like = f"%{q.strip()}%"
        with self._session() as session:
            rows = session.scalars(
                select(CachedProduct)
                .where(or_(
                    CachedProduct.name.ilike(like),
                    CachedProduct.brand.ilike(like),
                    CachedProduct.category.ilike(like),
                ))
                .order_by(CachedProduct.name, CachedProduct.id)
            )
            return [_row_dict(r) for r in rows]

    def cache_workers(self, workers: list[dict]) -> int:
        """Replace the worker cache. PINs never leave the server."""
        now = epoch_ms()
        with self._session() as session:
            session.execute(delete(CachedWorker))
            for w in workers:
                session.add(CachedWorker(worker_id=int(w["id"]), name=w["name"], last_synced=now))
            session.commit()
        return len(workers)

    def cached_workers(self) -> list[dict]:
        with self._session() as session:
            rows = session.scalars(select(CachedWorker).order_by(CachedWorker.id))
            return [_row_dict(r) for r in rows]

    # -- sync bookkeeping -----------------------------------------------------

    def get_sync_state(self) -> dict:
        with self._session() as session:
            state = session.get(SyncState, _STATE_ROW_ID)
            if state is None:
                return {"last_sync_time": None, "pending_sales": 0, "pending_credits": 0, "last_error": None}
            return {field: getattr(state, field) for field in _SYNC_STATE_FIELDS}

    def update_sync_state(self, **fields) -> dict:
        unknown = set(fields) - set(_SYNC_STATE_FIELDS)
        if unknown:
            raise ValueError(f"Unknown sync_state fields: {', '.join(sorted(unknown))}")

        with self._session() as session:
            state = session.get(SyncState, _STATE_ROW_ID)
            if state is None:
                state = SyncState(id=_STATE_ROW_ID, pending_sales=0, pending_credits=0)
                session.add(state)
            for key, value in fields.items():
                setattr(state, key, value)
            session.commit()
            return {field: getattr(state, field) for field in _SYNC_STATE_FIELDS}
