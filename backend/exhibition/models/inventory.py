from __future__ import annotations

from ..extensions import db
from ..money import format_cents
from exhibition.time_utils import to_utc_z


class Category(db.Model):
    """Product grouping. Retired categories keep their products."""
    __tablename__ = "categories"
    __table_args__ = {"sqlite_autoincrement": True}

    STATUS_ACTIVE = "ACTIVE"
    STATUS_INACTIVE = "INACTIVE"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False, index=True)
    status = db.Column(db.String(16), nullable=False, default=STATUS_ACTIVE)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
        }


class Product(db.Model):
    """
    Product master data and its stock counter.

    STOCK: stock_quantity is only ever decremented by a committed invoice
    (see inventory_service.decrement_stock). The CHECK constraint is the last
    line against a negative counter; the guarded UPDATE is the first.

    LIFECYCLE: products are never deleted while invoice lines reference them.
    Retiring a product moves status to INACTIVE, which makes it unavailable
    for new invoices while historical invoices keep rendering its name.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("stock_quantity >= 0", name="ck_products_stock_non_negative"),
        db.CheckConstraint("price_cents >= 0", name="ck_products_price_non_negative"),
        db.Index("ix_products_status_name", "status", "name"),
        {"sqlite_autoincrement": True},
    )

    STATUS_ACTIVE = "ACTIVE"
    STATUS_INACTIVE = "INACTIVE"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)

    # Authoritative storage in cents
    price_cents = db.Column(db.Integer, nullable=False)

    stock_quantity = db.Column(db.Integer, nullable=False, default=0)

    dose = db.Column(db.String(100), nullable=True)
    notes = db.Column(db.String(1000), nullable=True)
    location_in_store = db.Column(db.String(200), nullable=True)

    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=True, index=True)

    status = db.Column(db.String(16), nullable=False, default=STATUS_ACTIVE, index=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    category = db.relationship("Category", backref=db.backref("products", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_active(self) -> bool:
        return self.status == self.STATUS_ACTIVE

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} stock={self.stock_quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "price": format_cents(self.price_cents),
            "price_cents": self.price_cents,
            "stock_quantity": self.stock_quantity,
            "dose": self.dose,
            "notes": self.notes,
            "location_in_store": self.location_in_store,
            "category_id": self.category_id,
            "status": self.status,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
