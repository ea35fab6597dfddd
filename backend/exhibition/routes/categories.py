from __future__ import annotations

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_auth, require_role
from ..errors import InvoicingError
from ..roles import Role
from ..services import inventory_service
from ._helpers import error_response

categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")


@categories_bp.get("")
@require_auth
def list_categories():
    try:
        return jsonify([c.to_dict() for c in inventory_service.list_categories()])
    except Exception:
        current_app.logger.exception("Failed to list categories")
        return jsonify({"error": "Internal server error"}), 500


@categories_bp.post("")
@require_auth
@require_role(Role.OWNER)
def create_category():
    try:
        data = request.get_json(silent=True) or {}
        category = inventory_service.create_category(data.get("name"))
        return jsonify({"message": "Category created", "category": category.to_dict()}), 201
    except InvoicingError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create category")
        return jsonify({"error": "Internal server error"}), 500


@categories_bp.delete("/<int:category_id>")
@require_auth
@require_role(Role.OWNER)
def delete_category(category_id: int):
    try:
        inventory_service.deactivate_category(category_id)
        return jsonify({"message": "Category deleted"})
    except InvoicingError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete category %s", category_id)
        return jsonify({"error": "Internal server error"}), 500
