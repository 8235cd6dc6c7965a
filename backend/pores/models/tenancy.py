from __future__ import annotations

from ..extensions import db
from pores.time_utils import to_utc_z, utcnow


class Store(db.Model):
    """
    Multi-tenant root: every merchant is a Store.

    DESIGN:
    - Products, workers, sales and credits all carry store_id
    - Every merchant-facing query must be scoped by store_id
    - setup_completed stays False until onboarding finishes
    - keeper_password_hash is the transaction approval password checked
      by PIN verification when no worker PIN matches
    """
    __tablename__ = "stores"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    business_name = db.Column(db.String(255), nullable=False)
    currency = db.Column(db.String(8), nullable=False, default="NGN")

    # Key of a StoreTypeDef, chosen during onboarding
    store_type = db.Column(db.String(64), nullable=True)
    setup_completed = db.Column(db.Boolean, nullable=False, default=False)

    keeper_password_hash = db.Column(db.String(255), nullable=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=db.func.now(),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=db.func.now(),
        onupdate=utcnow,
    )

    def __repr__(self) -> str:
        return f"<Store id={self.id} email={self.email!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "business_name": self.business_name,
            "currency": self.currency,
            "store_type": self.store_type,
            "setup_completed": self.setup_completed,
            "created_at": to_utc_z(self.created_at),
        }


class Worker(db.Model):
    """
    Staff account scoped to one store, authenticated by a short PIN.

    The PIN itself is never stored. pin_digest is a keyed HMAC over
    "<store_id>:<pin>", which keeps lookups exact and lets the database
    enforce PIN uniqueness within a store.
    """
    __tablename__ = "workers"
    __table_args__ = (
        db.UniqueConstraint("store_id", "pin_digest", name="uq_workers_store_pin"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)
    pin_digest = db.Column(db.String(64), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())

    store = db.relationship("Store", backref=db.backref("workers", lazy=True))

    def __repr__(self) -> str:
        return f"<Worker id={self.id} name={self.name!r} store_id={self.store_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "created_at": to_utc_z(self.created_at),
        }
