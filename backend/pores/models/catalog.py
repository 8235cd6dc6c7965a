from __future__ import annotations

from ..extensions import db
from pores.time_utils import to_utc_z, utcnow


class StoreTypeDef(db.Model):
    """Kind of shop offered during onboarding (e.g. "supermarket", "pharmacy")."""
    __tablename__ = "store_type_defs"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(64), nullable=False, unique=True, index=True)
    label = db.Column(db.String(120), nullable=False)
    icon = db.Column(db.String(64), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "key": self.key,
            "label": self.label,
            "icon": self.icon,
            "created_at": to_utc_z(self.created_at),
        }


class CatalogItem(db.Model):
    """
    Reference product template used to pre-populate a new store's inventory.

    Not transactional: onboarding copies the fields into a fresh Product.
    """
    __tablename__ = "catalog_items"
    __table_args__ = (
        db.Index("ix_catalog_items_type_created", "store_type_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_type_id = db.Column(db.Integer, db.ForeignKey("store_type_defs.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    brand = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(120), nullable=False)
    cost_price = db.Column(db.Integer, nullable=False, default=0)
    selling_price = db.Column(db.Integer, nullable=False, default=0)
    unit_name = db.Column(db.String(64), nullable=False, default="Piece")
    units_per_bulk = db.Column(db.Integer, nullable=True)
    bulk_selling_price = db.Column(db.Integer, nullable=True)
    bulk_unit_name = db.Column(db.String(64), nullable=True)
    image = db.Column(db.String(1024), nullable=True)
    description = db.Column(db.Text, nullable=True)
    keywords = db.Column(db.JSON, nullable=False, default=list)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())

    store_type = db.relationship("StoreTypeDef", backref=db.backref("catalog_items", lazy=True))

    def to_dict(self, include_store_type: bool = False) -> dict:
        data = {
            "id": self.id,
            "store_type_id": self.store_type_id,
            "name": self.name,
            "brand": self.brand,
            "category": self.category,
            "cost_price": self.cost_price,
            "selling_price": self.selling_price,
            "unit_name": self.unit_name,
            "units_per_bulk": self.units_per_bulk,
            "bulk_selling_price": self.bulk_selling_price,
            "bulk_unit_name": self.bulk_unit_name,
            "image": self.image,
            "description": self.description,
            "keywords": list(self.keywords or []),
            "created_at": to_utc_z(self.created_at),
        }
        if include_store_type and self.store_type is not None:
            data["store_type"] = {
                "id": self.store_type.id,
                "key": self.store_type.key,
                "label": self.store_type.label,
            }
        return data
