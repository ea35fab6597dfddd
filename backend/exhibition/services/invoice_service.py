# Overview: Invoice workflow engine and invoice repository queries.

"""
Invoice Workflow

WHY: Invoices are the only writes that move money and stock together.
Creation must be all-or-nothing across the invoice row, its lines and every
stock decrement; confirmation must happen at most once.

STATE MACHINE (per invoice):
- status: PENDING -> CONFIRMED           (owner, compare-and-set)
- owner_visibility: VISIBLE -> DELETED   (owner, idempotent, no restock)
- is_viewed_by_owner: False -> True      (owner, read tracking only)
Nothing moves backwards.

Views returned to callers are assembled here from explicit joins
(creator username, product names) rather than by walking relationships.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime

from flask import current_app
from sqlalchemy import update

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import MAX_DB_INTEGER, db
from ..models import Invoice, InvoiceItem, Product, User
from ..money import format_cents
from ..roles import Role
from . import inventory_service, notification_service
from .access_policy import (
    InvoiceFilters,
    Principal,
    check_invoice_access,
    invoice_list_criteria,
    require_owner,
)
from .concurrency import begin_write_transaction, lock_for_update, run_with_retry
from .inventory_service import InsufficientStockError, ProductUnavailableError
from .push_gateway import PushGateway
from exhibition.time_utils import utcnow, to_utc_z


CUSTOMER_NAME_MAX_LENGTH = 100


class AlreadyConfirmedError(ConflictError):
    """Raised when confirming an invoice a second time."""
    http_status = 400


def _strict_int(value, field: str, index: int) -> int:
    # Reject bools, floats and numeric strings with decimals
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise ValidationError(f"items[{index}].{field} must be an integer")
    if isinstance(value, str):
        try:
            value = int(value.strip())
        except ValueError:
            raise ValidationError(f"items[{index}].{field} must be an integer")
    if not -MAX_DB_INTEGER <= value <= MAX_DB_INTEGER:
        raise ValidationError(f"items[{index}].{field} is out of range")
    return value


def _normalize_customer_name(customer_name) -> str:
    if customer_name is not None and not isinstance(customer_name, str):
        raise ValidationError("customer_name must be a string")
    name = (customer_name or "").strip()
    if not name:
        raise ValidationError("customer_name is required")
    if len(name) > CUSTOMER_NAME_MAX_LENGTH:
        raise ValidationError(f"customer_name must be at most {CUSTOMER_NAME_MAX_LENGTH} characters")
    return name


def _normalize_items(items) -> list[tuple[int, int]]:
    if not isinstance(items, (list, tuple)) or not items:
        raise ValidationError("At least one item is required")

    lines = []
    for index, raw in enumerate(items):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{index}] must be an object")
        if raw.get("product_id") is None:
            raise ValidationError(f"items[{index}].product_id is required")
        if raw.get("quantity") is None:
            raise ValidationError(f"items[{index}].quantity is required")
        product_id = _strict_int(raw["product_id"], "product_id", index)
        quantity = _strict_int(raw["quantity"], "quantity", index)
        if product_id < 1:
            raise ValidationError(f"items[{index}].product_id must be a positive integer")
        if quantity < 1:
            raise ValidationError(
                f"items[{index}].quantity must be at least 1",
                details={"product_id": product_id, "quantity": quantity},
            )
        lines.append((product_id, quantity))
    return lines


def _validate_stock(lines: list[tuple[int, int]], products: dict[int, Product]) -> dict[int, int]:
    """
    Check every line against the locked products.

    Quantities are aggregated per product so two lines for the same product
    are checked against the stock together. Returns the aggregate.
    """
    requested: dict[int, int] = {}
    for product_id, quantity in lines:
        requested[product_id] = requested.get(product_id, 0) + quantity

    for product_id, quantity in requested.items():
        product = products.get(product_id)
        if product is None or not product.is_active:
            raise ProductUnavailableError(
                f"Product {product_id} not found",
                details={"product_id": product_id},
            )
        if product.stock_quantity < quantity:
            raise InsufficientStockError(
                f"Insufficient stock for {product.name}",
                details={
                    "product_id": product_id,
                    "requested_quantity": quantity,
                    "available": product.stock_quantity,
                },
            )
    return requested


def create_invoice(
    customer_name,
    items,
    acting_user_id: int,
    *,
    now: datetime | None = None,
) -> Invoice:
    """
    Create an invoice and decrement stock as one transaction.

    Fails fast on the first violated precondition; nothing is persisted
    unless every line passes.
    """
    name = _normalize_customer_name(customer_name)
    lines = _normalize_items(items)

    def _op():
        begin_write_transaction()

        creator = db.session.query(User).filter_by(id=acting_user_id, is_active=True).first()
        if not creator:
            raise NotFoundError("User not found")

        products = inventory_service.lock_products(pid for pid, _ in lines)
        requested = _validate_stock(lines, products)

        invoice = Invoice(
            customer_name=name,
            created_by_user_id=acting_user_id,
            created_at=now or utcnow(),
            status=Invoice.STATUS_PENDING,
            owner_visibility=Invoice.VISIBILITY_VISIBLE,
            is_viewed_by_owner=False,
        )

        total_cents = 0
        for product_id, quantity in lines:
            unit_price_cents = products[product_id].price_cents
            line_total = unit_price_cents * quantity
            invoice.items.append(InvoiceItem(
                product_id=product_id,
                quantity=quantity,
                unit_price_cents=unit_price_cents,
                total_price_cents=line_total,
            ))
            total_cents += line_total
        invoice.total_amount_cents = total_cents

        db.session.add(invoice)
        db.session.flush()

        for product_id, quantity in requested.items():
            inventory_service.decrement_stock(product_id, quantity)

        db.session.commit()
        return invoice

    invoice = run_with_retry(_op)
    current_app.logger.info(
        "Invoice %s created by user %s (%s line(s), total %s)",
        invoice.id, acting_user_id, len(lines), format_cents(invoice.total_amount_cents),
    )
    return invoice


def confirm_invoice(invoice_id: int, principal: Principal, *, gateway: PushGateway | None = None) -> Invoice:
    """
    Confirm a pending invoice, then notify every active owner.

    The PENDING -> CONFIRMED transition is a guarded UPDATE, so of two
    concurrent confirmations exactly one succeeds and only one notification
    batch is produced. Notification failures never undo the confirmation.
    """
    require_owner(principal, "confirm invoices")

    def _op():
        begin_write_transaction()
        result = db.session.execute(
            update(Invoice)
            .where(Invoice.id == invoice_id, Invoice.status == Invoice.STATUS_PENDING)
            .values(
                status=Invoice.STATUS_CONFIRMED,
                confirmed_at=utcnow(),
                confirmed_by_user_id=principal.user_id,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            db.session.rollback()
            if db.session.query(Invoice.id).filter_by(id=invoice_id).first() is None:
                raise NotFoundError("Invoice not found")
            raise AlreadyConfirmedError("Invoice is already confirmed", details={"invoice_id": invoice_id})

        # Everything the caller and the notification need is read before the
        # commit; nothing after it touches storage except the dispatcher.
        invoice = db.session.get(Invoice, invoice_id, populate_existing=True)
        creator_name = (
            db.session.query(User.username).filter(User.id == invoice.created_by_user_id).scalar()
            or "unknown"
        )
        db.session.expunge(invoice)
        db.session.commit()
        return invoice, creator_name

    invoice, creator_name = run_with_retry(_op)
    current_app.logger.info("Invoice %s confirmed by user %s", invoice_id, principal.user_id)

    notification_service.notify_owners_of_invoice(
        invoice.id,
        invoice.customer_name,
        invoice.total_amount_cents,
        creator_name,
        gateway=gateway,
    )
    return invoice


def delete_invoice(invoice_id: int, principal: Principal) -> Invoice:
    """
    Hide an invoice from owners. Idempotent: the first deletion time sticks.

    Stock is not restored and the row is kept; the creating employee still
    sees the invoice.
    """
    require_owner(principal, "delete invoices")

    def _op():
        begin_write_transaction()
        invoice = lock_for_update(db.session.query(Invoice).filter_by(id=invoice_id)).first()
        if not invoice:
            raise NotFoundError("Invoice not found")
        if invoice.is_deleted_by_owner:
            db.session.rollback()
            return invoice

        invoice.owner_visibility = Invoice.VISIBILITY_DELETED
        invoice.deleted_by_owner_at = utcnow()
        db.session.commit()
        current_app.logger.info("Invoice %s deleted from owner view by user %s", invoice_id, principal.user_id)
        return invoice

    return run_with_retry(_op)


def mark_invoice_as_viewed(invoice_id: int, principal: Principal) -> Invoice:
    require_owner(principal, "mark invoices as viewed")

    def _op():
        invoice = db.session.query(Invoice).filter_by(id=invoice_id).first()
        if not invoice:
            raise NotFoundError("Invoice not found")
        if not invoice.is_viewed_by_owner:
            invoice.is_viewed_by_owner = True
            db.session.commit()
        return invoice

    return run_with_retry(_op)


# -- repository queries --

def build_invoice_views(invoices: list[Invoice]) -> list[dict]:
    """Assemble API views with creator usernames and product names in two queries."""
    if not invoices:
        return []

    invoice_ids = [i.id for i in invoices]
    creator_ids = {i.created_by_user_id for i in invoices}

    usernames = dict(
        db.session.query(User.id, User.username).filter(User.id.in_(creator_ids)).all()
    )

    rows = (
        db.session.query(InvoiceItem, Product.name)
        .join(Product, Product.id == InvoiceItem.product_id)
        .filter(InvoiceItem.invoice_id.in_(invoice_ids))
        .order_by(InvoiceItem.invoice_id.asc(), InvoiceItem.id.asc())
        .all()
    )
    items_by_invoice: dict[int, list[dict]] = defaultdict(list)
    for item, product_name in rows:
        items_by_invoice[item.invoice_id].append({
            "id": item.id,
            "product_id": item.product_id,
            "product_name": product_name,
            "quantity": item.quantity,
            "unit_price": format_cents(item.unit_price_cents),
            "unit_price_cents": item.unit_price_cents,
            "total_price": format_cents(item.total_price_cents),
            "total_price_cents": item.total_price_cents,
        })

    return [
        {
            "id": invoice.id,
            "customer_name": invoice.customer_name,
            "total_amount": format_cents(invoice.total_amount_cents),
            "total_amount_cents": invoice.total_amount_cents,
            "created_at": to_utc_z(invoice.created_at),
            "created_by_user_id": invoice.created_by_user_id,
            "created_by_user_name": usernames.get(invoice.created_by_user_id),
            "status": invoice.status,
            "is_confirmed": invoice.is_confirmed,
            "is_viewed_by_owner": invoice.is_viewed_by_owner,
            "items": items_by_invoice.get(invoice.id, []),
        }
        for invoice in invoices
    ]


def query_invoices(principal: Principal, filters: InvoiceFilters | None = None, *, now: datetime | None = None) -> list[Invoice]:
    """Invoices visible to `principal`, newest first."""
    criteria = invoice_list_criteria(
        principal,
        filters or InvoiceFilters(),
        now=now or utcnow(),
        tz_name=current_app.config.get("INVOICE_DAY_TIMEZONE", "UTC"),
    )
    return (
        db.session.query(Invoice)
        .filter(*criteria)
        .order_by(Invoice.created_at.desc(), Invoice.id.desc())
        .all()
    )


def list_invoices(principal: Principal, filters: InvoiceFilters | None = None, *, now: datetime | None = None) -> list[dict]:
    return build_invoice_views(query_invoices(principal, filters, now=now))


def get_invoice(invoice_id: int, principal: Principal) -> dict:
    invoice = db.session.query(Invoice).filter_by(id=invoice_id).first()
    check_invoice_access(principal, invoice)
    return build_invoice_views([invoice])[0]


def list_employee_invoices(employee_id: int, principal: Principal, is_confirmed: bool | None = None) -> list[dict]:
    """Owner drill-down into one employee's invoices (owner-visible ones only)."""
    require_owner(principal, "view employee invoices")
    employee = (
        db.session.query(User)
        .filter_by(id=employee_id, role=Role.EMPLOYEE.value, is_active=True)
        .first()
    )
    if not employee:
        raise NotFoundError("Employee not found")
    return list_invoices(
        principal,
        InvoiceFilters(is_confirmed=is_confirmed, created_by_user_id=employee_id),
    )
