from __future__ import annotations

from ..extensions import db
from pores.time_utils import to_utc_z, utcnow


class Product(db.Model):
    """
    Store-scoped product with live pricing.

    QUANTITY: Always counted in the smallest sellable unit (unit_name).
    Bulk sales multiply by units_per_bulk before decrementing.

    Quantity is expected to stay >= 0 but is not constrained; concurrent
    sales decrement atomically and can cross below zero.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_store_name", "store_id", "name"),
        db.Index("ix_products_store_category", "store_id", "category"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    brand = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(120), nullable=False)

    cost_price = db.Column(db.Integer, nullable=False, default=0)
    selling_price = db.Column(db.Integer, nullable=False, default=0)
    quantity = db.Column(db.Integer, nullable=False, default=0)

    unit_name = db.Column(db.String(64), nullable=False, default="Piece")
    units_per_bulk = db.Column(db.Integer, nullable=True)
    bulk_selling_price = db.Column(db.Integer, nullable=True)
    bulk_unit_name = db.Column(db.String(64), nullable=True)

    image = db.Column(db.String(1024), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=db.func.now(),
        onupdate=utcnow,
    )

    store = db.relationship("Store", backref=db.backref("products", lazy=True, cascade="all, delete-orphan"))

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} store_id={self.store_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "name": self.name,
            "brand": self.brand,
            "category": self.category,
            "cost_price": self.cost_price,
            "selling_price": self.selling_price,
            "quantity": self.quantity,
            "unit_name": self.unit_name,
            "units_per_bulk": self.units_per_bulk,
            "bulk_selling_price": self.bulk_selling_price,
            "bulk_unit_name": self.bulk_unit_name,
            "image": self.image,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Restock(db.Model):
    """
    Append-only log of inventory additions (initial stock, merges, restocks).

    IMMUTABLE: Records are never updated or deleted.
    """
    __tablename__ = "restocks"
    __table_args__ = (
        db.Index("ix_restocks_store_created", "store_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    cost_price = db.Column(db.Integer, nullable=False)
    total_cost = db.Column(db.Integer, nullable=False)
    notes = db.Column(db.String(500), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())

    product = db.relationship("Product", backref=db.backref("restocks", lazy=True, cascade="all, delete-orphan"))

    def to_dict(self, include_product: bool = False) -> dict:
        data = {
            "id": self.id,
            "product_id": self.product_id,
            "store_id": self.store_id,
            "quantity": self.quantity,
            "cost_price": self.cost_price,
            "total_cost": self.total_cost,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }
        if include_product:
            data["product"] = self.product.to_dict() if self.product else None
        return data
