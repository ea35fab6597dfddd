# Overview: Role-scoped access rules for invoices; the single place visibility is decided.

"""
Access Policy

Every invoice read goes through this module. List visibility is expressed
as SQL criteria dispatched on the closed Role variant:

OWNER
- lists every invoice whose owner_visibility is VISIBLE
- may narrow by created_by_user_id and is_confirmed
- single lookups of owner-deleted invoices are NotFound

EMPLOYEE
- lists only own invoices created within the current calendar day
  ([00:00, next 00:00) in INVOICE_DAY_TIMEZONE, UTC by default)
- may narrow by is_confirmed; created_by_user_id is ignored
- single lookups are not day-restricted but must be own invoices
- owner deletion never hides an invoice from its creator
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from ..errors import ForbiddenError, NotFoundError
from ..models import Invoice, User
from ..roles import Role
from exhibition.time_utils import local_day_bounds


@dataclass(frozen=True)
class Principal:
    """Identity of the caller as resolved from the bearer token."""
    user_id: int
    role: Role

    @property
    def is_owner(self) -> bool:
        return self.role is Role.OWNER

    @classmethod
    def for_user(cls, user: User) -> "Principal":
        return cls(user_id=user.id, role=user.role_enum)


@dataclass(frozen=True)
class InvoiceFilters:
    is_confirmed: bool | None = None
    created_by_user_id: int | None = None


def require_owner(principal: Principal, action: str = "perform this action") -> None:
    if not principal.is_owner:
        raise ForbiddenError(f"Only the owner can {action}")


def employee_window(now: datetime, tz_name: str = "UTC") -> tuple[datetime, datetime]:
    """UTC-naive [start, end) of the day an employee's list covers."""
    return local_day_bounds(now, tz_name)


# -- list visibility --

def _owner_list_criteria(principal: Principal, filters: InvoiceFilters, now: datetime, tz_name: str) -> list:
    criteria = [Invoice.owner_visibility == Invoice.VISIBILITY_VISIBLE]
    if filters.created_by_user_id is not None:
        criteria.append(Invoice.created_by_user_id == filters.created_by_user_id)
    return criteria


def _employee_list_criteria(principal: Principal, filters: InvoiceFilters, now: datetime, tz_name: str) -> list:
    start, end = employee_window(now, tz_name)
    return [
        Invoice.created_by_user_id == principal.user_id,
        Invoice.created_at >= start,
        Invoice.created_at < end,
    ]


_LIST_CRITERIA = {
    Role.OWNER: _owner_list_criteria,
    Role.EMPLOYEE: _employee_list_criteria,
}


def invoice_list_criteria(
    principal: Principal,
    filters: InvoiceFilters,
    *,
    now: datetime,
    tz_name: str = "UTC",
) -> list:
    """SQLAlchemy criteria selecting the invoices `principal` may list."""
    criteria = _LIST_CRITERIA[principal.role](principal, filters, now, tz_name)
    if filters.is_confirmed is not None:
        wanted = Invoice.STATUS_CONFIRMED if filters.is_confirmed else Invoice.STATUS_PENDING
        criteria.append(Invoice.status == wanted)
    return criteria


# -- single invoice access --

def check_invoice_access(principal: Principal, invoice: Invoice | None) -> Invoice:
    """
    Gate a single-invoice lookup. Returns the invoice or raises.

    Forbidden responses carry no detail about the other user's invoice.
    """
    if invoice is None:
        raise NotFoundError("Invoice not found")
    if principal.is_owner:
        if invoice.is_deleted_by_owner:
            raise NotFoundError("Invoice not found")
        return invoice
    if invoice.created_by_user_id != principal.user_id:
        raise ForbiddenError("You do not have access to this invoice")
    return invoice
