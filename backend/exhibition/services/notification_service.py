# Overview: Notification dispatch to owners and recipient-side notification operations.

from __future__ import annotations

from flask import current_app

from ..errors import NotFoundError
from ..extensions import db
from ..models import Notification, User
from ..money import format_cents
from ..roles import Role
from .push_gateway import PushGateway, default_gateway
from exhibition.time_utils import utcnow


INVOICE_NOTIFICATION_TITLE = "New invoice"


def list_active_owners() -> list[User]:
    """Directory lookup: every active user holding the OWNER role."""
    return (
        db.session.query(User)
        .filter(User.role == Role.OWNER.value, User.is_active.is_(True))
        .order_by(User.id.asc())
        .all()
    )


def format_invoice_message(customer_name: str, total_amount_cents: int, created_by_user_name: str) -> str:
    return (
        f"New invoice from {created_by_user_name} for customer {customer_name} "
        f"totalling {format_cents(total_amount_cents)}"
    )


def notify_owners_of_invoice(
    invoice_id: int,
    customer_name: str,
    total_amount_cents: int,
    created_by_user_name: str,
    *,
    gateway: PushGateway | None = None,
) -> list[Notification]:
    """
    Persist one notification per active owner describing the invoice.

    Best-effort: any failure is logged and swallowed, and the batch is rolled
    back as a whole. Callers must have committed their own work first.
    Returns the notifications created (empty on failure).
    """
    gateway = gateway or default_gateway
    try:
        owners = list_active_owners()
        message = format_invoice_message(customer_name, total_amount_cents, created_by_user_name)
        now = utcnow()

        created = []
        for owner in owners:
            notification = Notification(
                user_id=owner.id,
                title=INVOICE_NOTIFICATION_TITLE,
                message=message,
                invoice_id=invoice_id,
                is_read=False,
                created_at=now,
            )
            db.session.add(notification)
            created.append((owner, notification))

        db.session.commit()
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to dispatch notifications for invoice %s", invoice_id)
        return []

    for owner, notification in created:
        try:
            gateway.deliver(owner, notification)
        except Exception:
            current_app.logger.exception(
                "Push delivery failed for notification %s (user %s)", notification.id, owner.id
            )

    current_app.logger.info("Notified %s owner(s) of invoice %s", len(created), invoice_id)
    return [n for _, n in created]


def list_notifications(user_id: int, unread_only: bool = False) -> list[Notification]:
    query = db.session.query(Notification).filter(Notification.user_id == user_id)
    if unread_only:
        query = query.filter(Notification.is_read.is_(False))
    return query.order_by(Notification.created_at.desc(), Notification.id.desc()).all()


def unread_count(user_id: int) -> int:
    return (
        db.session.query(Notification)
        .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
        .count()
    )


def mark_as_read(notification_id: int, user_id: int) -> Notification:
    """Only the recipient may mark a notification; anyone else gets NotFound."""
    notification = (
        db.session.query(Notification)
        .filter_by(id=notification_id, user_id=user_id)
        .first()
    )
    if not notification:
        raise NotFoundError("Notification not found")

    if not notification.is_read:
        notification.is_read = True
        notification.read_at = utcnow()
        db.session.commit()
    return notification


def mark_all_as_read(user_id: int) -> int:
    now = utcnow()
    count = (
        db.session.query(Notification)
        .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
        .update({"is_read": True, "read_at": now}, synchronize_session=False)
    )
    db.session.commit()
    return count
