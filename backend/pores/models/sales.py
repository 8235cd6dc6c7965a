from __future__ import annotations

from ..extensions import db
from pores.time_utils import to_utc_z, utcnow

KEEPER_DISPLAY_NAME = "Store Keeper"


class Sale(db.Model):
    """
    Immutable record of one checkout.

    WHY: Once settled a sale is never edited. Later money movement is
    tracked on the Credit opened for its shortfall, never on the sale.

    PAYMENT STATUS:
    - completed: amount_paid >= total_price
    - partial: shortfall, caller flagged partial intent
    - pending: shortfall, no partial intent

    worker_id is NULL when the store keeper recorded the sale.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_store_created", "store_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.String(64), nullable=False, unique=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    worker_id = db.Column(db.Integer, db.ForeignKey("workers.id", ondelete="SET NULL"), nullable=True, index=True)

    total_price = db.Column(db.Integer, nullable=False)
    total_cost = db.Column(db.Integer, nullable=False)
    amount_paid = db.Column(db.Integer, nullable=False)
    remaining_balance = db.Column(db.Integer, nullable=False, default=0)
    payment_status = db.Column(db.String(16), nullable=False, index=True)
    payment_method = db.Column(db.String(32), nullable=False, default="cash")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now(), index=True)

    store = db.relationship("Store", backref=db.backref("sales", lazy=True))
    worker = db.relationship("Worker", backref=db.backref("sales", lazy=True))
    items = db.relationship(
        "SaleItem",
        back_populates="sale",
        lazy=True,
        order_by="SaleItem.id",
        cascade="all, delete-orphan",
    )

    @property
    def worker_name(self) -> str:
        return self.worker.name if self.worker else KEEPER_DISPLAY_NAME

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "transaction_id": self.transaction_id,
            "store_id": self.store_id,
            "worker_id": self.worker_id,
            "worker_name": self.worker_name,
            "total_price": self.total_price,
            "total_cost": self.total_cost,
            "amount_paid": self.amount_paid,
            "remaining_balance": self.remaining_balance,
            "payment_status": self.payment_status,
            "payment_method": self.payment_method,
            "created_at": to_utc_z(self.created_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class SaleItem(db.Model):
    """
    Line item on a sale.

    unit_price, cost_price and product_name are snapshots taken at checkout
    and stay fixed when the live Product is repriced or deleted.
    """
    __tablename__ = "sale_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True)
    product_name = db.Column(db.String(255), nullable=True)

    quantity = db.Column(db.Integer, nullable=False)
    sell_by_bulk = db.Column(db.Boolean, nullable=False, default=False)
    unit_price = db.Column(db.Integer, nullable=False)
    total_price = db.Column(db.Integer, nullable=False)
    cost_price = db.Column(db.Integer, nullable=False)

    sale = db.relationship("Sale", back_populates="items")
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "sell_by_bulk": self.sell_by_bulk,
            "unit_price": self.unit_price,
            "total_price": self.total_price,
            "cost_price": self.cost_price,
        }
