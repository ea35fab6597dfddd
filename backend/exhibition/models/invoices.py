from __future__ import annotations

from ..extensions import db
from ..money import format_cents
from exhibition.time_utils import to_utc_z


class Invoice(db.Model):
    """
    Sales invoice created by an employee against current stock.

    LIFECYCLE (two orthogonal, one-way axes plus a read flag):
    - status: PENDING -> CONFIRMED (owner action, compare-and-set guarded)
    - owner_visibility: VISIBLE -> DELETED (hides the invoice from owners only)
    - is_viewed_by_owner: False -> True (UI badge tracking)

    IMMUTABLE after creation: customer_name, total_amount_cents,
    created_by_user_id, created_at and the item lines.
    Rows are never physically deleted by the application.
    """
    __tablename__ = "invoices"
    __table_args__ = (
        db.CheckConstraint("total_amount_cents >= 0", name="ck_invoices_total_non_negative"),
        # Employee list view: own invoices within a day window
        db.Index("ix_invoices_creator_created", "created_by_user_id", "created_at"),
        # Owner list view: visible invoices newest first
        db.Index("ix_invoices_visibility_created", "owner_visibility", "created_at"),
        {"sqlite_autoincrement": True},
    )

    STATUS_PENDING = "PENDING"
    STATUS_CONFIRMED = "CONFIRMED"

    VISIBILITY_VISIBLE = "VISIBLE"
    VISIBILITY_DELETED = "DELETED"

    id = db.Column(db.Integer, primary_key=True)
    customer_name = db.Column(db.String(100), nullable=False)
    total_amount_cents = db.Column(db.Integer, nullable=False)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    status = db.Column(db.String(16), nullable=False, default=STATUS_PENDING, index=True)
    confirmed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    confirmed_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    is_viewed_by_owner = db.Column(db.Boolean, nullable=False, default=False)

    owner_visibility = db.Column(db.String(16), nullable=False, default=VISIBILITY_VISIBLE)
    deleted_by_owner_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_by = db.relationship("User", foreign_keys=[created_by_user_id])
    items = db.relationship(
        "InvoiceItem",
        backref="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceItem.id",
        lazy=True,
    )

    @property
    def is_confirmed(self) -> bool:
        return self.status == self.STATUS_CONFIRMED

    @property
    def is_deleted_by_owner(self) -> bool:
        return self.owner_visibility == self.VISIBILITY_DELETED

    def __repr__(self) -> str:
        return f"<Invoice id={self.id} status={self.status} total_cents={self.total_amount_cents}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_name": self.customer_name,
            "total_amount": format_cents(self.total_amount_cents),
            "total_amount_cents": self.total_amount_cents,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "status": self.status,
            "is_confirmed": self.is_confirmed,
            "confirmed_at": to_utc_z(self.confirmed_at),
            "is_viewed_by_owner": self.is_viewed_by_owner,
            "owner_visibility": self.owner_visibility,
            "deleted_by_owner_at": to_utc_z(self.deleted_by_owner_at),
        }


class InvoiceItem(db.Model):
    """
    Individual line on an invoice.

    unit_price_cents is captured from the product at creation time so later
    price changes never alter historical invoices.
    """
    __tablename__ = "invoice_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_invoice_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    invoice_id = db.Column(
        db.Integer,
        db.ForeignKey("invoices.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_id = db.Column(
        db.Integer,
        db.ForeignKey("products.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    total_price_cents = db.Column(db.Integer, nullable=False)

    product = db.relationship("Product", backref=db.backref("invoice_items", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "invoice_id": self.invoice_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "unit_price": format_cents(self.unit_price_cents),
            "unit_price_cents": self.unit_price_cents,
            "total_price": format_cents(self.total_price_cents),
            "total_price_cents": self.total_price_cents,
        }
