# Overview: Flask API routes for invoice operations; parses input and returns JSON responses.

# backend/exhibition/routes/invoices.py
"""Invoice API routes with role enforcement"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_role
from ..errors import InvoicingError
from ..roles import Role
from ..services import invoice_service
from ..services.access_policy import InvoiceFilters
from ._helpers import error_response, parse_bool_arg, parse_int_arg


invoices_bp = Blueprint("invoices", __name__, url_prefix="/api/invoices")


@invoices_bp.post("")
@require_auth
def create_invoice_route():
    """
    Create an invoice and decrement stock.

    Available to: owner, employee
    Body: {"customer_name": str, "items": [{"product_id": int, "quantity": int}, ...]}
    """
    try:
        data = request.get_json(silent=True) or {}
        invoice = invoice_service.create_invoice(
            data.get("customer_name"),
            data.get("items"),
            g.principal.user_id,
        )
        return jsonify({
            "message": "Invoice created",
            "invoice_id": invoice.id,
            "total_amount": invoice.to_dict()["total_amount"],
        }), 200

    except InvoicingError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create invoice")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.post("/<int:invoice_id>/confirm")
@require_auth
@require_role(Role.OWNER)
def confirm_invoice_route(invoice_id: int):
    """
    Confirm a pending invoice and notify owners.

    Available to: owner
    """
    try:
        invoice = invoice_service.confirm_invoice(invoice_id, g.principal)
        return jsonify({"message": "Invoice confirmed", "invoice": invoice.to_dict()}), 200

    except InvoicingError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to confirm invoice %s", invoice_id)
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.get("")
@require_auth
def list_invoices_route():
    """
    List invoices visible to the caller, newest first.

    Owner: all invoices not deleted by the owner; ?is_confirmed, ?created_by_user_id
    Employee: own invoices created today; ?is_confirmed
    """
    try:
        created_by_user_id = parse_int_arg("created_by_user_id")
        filters = InvoiceFilters(
            is_confirmed=parse_bool_arg("is_confirmed"),
            created_by_user_id=created_by_user_id if g.principal.is_owner else None,
        )
        return jsonify(invoice_service.list_invoices(g.principal, filters)), 200

    except InvoicingError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list invoices")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.get("/<int:invoice_id>")
@require_auth
def get_invoice_route(invoice_id: int):
    try:
        return jsonify(invoice_service.get_invoice(invoice_id, g.principal)), 200

    except InvoicingError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load invoice %s", invoice_id)
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.delete("/<int:invoice_id>")
@require_auth
@require_role(Role.OWNER)
def delete_invoice_route(invoice_id: int):
    """
    Remove an invoice from the owner's view. Stock is not restored.

    Available to: owner
    """
    try:
        invoice_service.delete_invoice(invoice_id, g.principal)
        return jsonify({"message": "Invoice deleted"}), 200

    except InvoicingError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete invoice %s", invoice_id)
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.post("/<int:invoice_id>/mark-as-viewed")
@require_auth
@require_role(Role.OWNER)
def mark_invoice_viewed_route(invoice_id: int):
    try:
        invoice_service.mark_invoice_as_viewed(invoice_id, g.principal)
        return jsonify({"message": "Invoice marked as viewed"}), 200

    except InvoicingError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to mark invoice %s as viewed", invoice_id)
        return jsonify({"error": "Internal server error"}), 500
