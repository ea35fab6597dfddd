# Overview: Shared request parsing and error translation for API routes.

from __future__ import annotations

from flask import jsonify, request

from ..errors import InvoicingError, ValidationError


def error_response(exc: InvoicingError):
    return jsonify(exc.to_dict()), exc.http_status


def parse_bool_arg(name: str) -> bool | None:
    """?flag=true|false|1|0 -> bool; absent -> None; anything else is a 400."""
    raw = request.args.get(name)
    if raw is None or raw == "":
        return None
    value = raw.strip().lower()
    if value in {"true", "1", "yes"}:
        return True
    if value in {"false", "0", "no"}:
        return False
    raise ValidationError(f"{name} must be true or false")


def parse_int_arg(name: str) -> int | None:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer")
