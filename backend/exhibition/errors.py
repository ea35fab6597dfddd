# Overview: Error kinds raised by the service layer and translated by routes.

from __future__ import annotations


class InvoicingError(Exception):
    """
    Base class for expected, user-facing failures.

    `kind` lets clients tell "nothing happened because the input was wrong"
    apart from "nothing happened because the target is missing".
    """
    kind = "error"
    http_status = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": self.message, "kind": self.kind, "details": self.details}


class ValidationError(InvoicingError, ValueError):
    """400-level input problem (empty item list, bad quantity, missing field)."""
    kind = "validation"
    http_status = 400


class NotFoundError(InvoicingError, LookupError):
    """Invoice, product or employee absent (or hidden from the caller)."""
    kind = "not_found"
    http_status = 404


class ConflictError(InvoicingError):
    """Business rule conflict: insufficient stock, already confirmed, duplicate user."""
    kind = "conflict"
    http_status = 409


class ForbiddenError(InvoicingError):
    """Role or ownership mismatch. Messages never describe the other user's data."""
    kind = "forbidden"
    http_status = 403
