from __future__ import annotations

from ..extensions import db
from pores.time_utils import to_utc_z, utcnow

CREDIT_STATUS_PENDING = "pending"
CREDIT_STATUS_PARTIAL = "partial"
CREDIT_STATUS_PAID = "paid"


class Credit(db.Model):
    """
    Outstanding customer debt, usually opened by a sale shortfall.

    BALANCE: remaining_balance = max(0, total_owed - total_paid)

    STORE CREDIT: is_store_credit rows are zero-debt wallets created from
    an overpayment. They have total_owed = 0, remaining_balance = 0,
    status paid, and total_paid holding the overpaid amount. They never
    receive CreditPayment rows.

    CONCURRENCY: version_id is an optimistic lock; a payment that loses a
    race raises StaleDataError on flush and is retried.
    """
    __tablename__ = "credits"
    __table_args__ = (
        db.Index("ix_credits_store_status", "store_id", "payment_status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True, index=True)

    customer_name = db.Column(db.String(255), nullable=False)
    phone_number = db.Column(db.String(32), nullable=True)

    total_owed = db.Column(db.Integer, nullable=False)
    total_paid = db.Column(db.Integer, nullable=False, default=0)
    remaining_balance = db.Column(db.Integer, nullable=False)
    payment_status = db.Column(db.String(16), nullable=False, default=CREDIT_STATUS_PENDING, index=True)
    is_store_credit = db.Column(db.Boolean, nullable=False, default=False)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now(), index=True)
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=db.func.now(),
        onupdate=utcnow,
    )

    store = db.relationship("Store", backref=db.backref("credits", lazy=True))
    sale = db.relationship("Sale", backref=db.backref("credits", lazy=True))
    payments = db.relationship(
        "CreditPayment",
        back_populates="credit",
        lazy=True,
        order_by="CreditPayment.id.desc()",
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Credit id={self.id} customer={self.customer_name!r} remaining={self.remaining_balance}>"

    def to_dict(self, include_payments: bool = False) -> dict:
        data = {
            "id": self.id,
            "store_id": self.store_id,
            "sale_id": self.sale_id,
            "customer_name": self.customer_name,
            "phone_number": self.phone_number,
            "total_owed": self.total_owed,
            "total_paid": self.total_paid,
            "remaining_balance": self.remaining_balance,
            "payment_status": self.payment_status,
            "is_store_credit": self.is_store_credit,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_payments:
            data["payments"] = [p.to_dict() for p in self.payments]
        return data


class CreditPayment(db.Model):
    """
    Append-only ledger entry against a Credit.

    amount is only the applied portion; any overpayment lives on the
    store-credit record instead. For every non-store credit the sum of
    its payment amounts equals Credit.total_paid.

    IMMUTABLE: Records are never updated or deleted.
    """
    __tablename__ = "credit_payments"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    credit_id = db.Column(db.Integer, db.ForeignKey("credits.id"), nullable=False, index=True)
    amount = db.Column(db.Integer, nullable=False)

    # worker | keeper
    recorded_by = db.Column(db.String(16), nullable=False, default="worker")
    worker_id = db.Column(db.Integer, db.ForeignKey("workers.id", ondelete="SET NULL"), nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now(), index=True)

    credit = db.relationship("Credit", back_populates="payments")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "credit_id": self.credit_id,
            "amount": self.amount,
            "recorded_by": self.recorded_by,
            "worker_id": self.worker_id,
            "created_at": to_utc_z(self.created_at),
        }
