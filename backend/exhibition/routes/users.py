from __future__ import annotations

from flask import Blueprint, jsonify, g, current_app

from ..decorators import require_auth, require_role
from ..errors import InvoicingError
from ..roles import Role
from ..services import auth_service, invoice_service
from ._helpers import error_response, parse_bool_arg

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.route("/employees", methods=["GET"])
@require_auth
@require_role(Role.OWNER)
def list_employees():
    return jsonify([u.to_dict() for u in auth_service.list_employees()])


@users_bp.route("/employees/<int:employee_id>", methods=["GET"])
@require_auth
@require_role(Role.OWNER)
def get_employee(employee_id: int):
    try:
        return jsonify(auth_service.get_employee(employee_id).to_dict())
    except InvoicingError as e:
        return error_response(e)


@users_bp.route("/employees/<int:employee_id>/invoices", methods=["GET"])
@require_auth
@require_role(Role.OWNER)
def list_employee_invoices(employee_id: int):
    try:
        result = invoice_service.list_employee_invoices(
            employee_id,
            g.principal,
            is_confirmed=parse_bool_arg("is_confirmed"),
        )
        return jsonify(result)
    except InvoicingError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list invoices for employee %s", employee_id)
        return jsonify({"error": "Internal server error"}), 500
