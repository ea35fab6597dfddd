# Overview: Flask API routes for catalog products; parses input and returns JSON responses.

# backend/exhibition/routes/products.py
"""
Product catalog routes

SECURITY: All routes require authentication.
- Reads are open to every role; cashiers need product ids to invoice
- Writes are owner-only
- Stock only grows through /restock; invoices are the only thing that
  decrement it
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_role
from ..errors import InvoicingError
from ..roles import Role
from ..services import inventory_service
from ._helpers import error_response


products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
def list_products_route():
    """
    List active products ordered by name.

    Query params:
    - search: str (optional) - case-insensitive name substring
    """
    try:
        products = inventory_service.list_products(search=request.args.get("search"))
        return jsonify([p.to_dict() for p in products]), 200
    except Exception:
        current_app.logger.exception("Failed to list products")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/<int:product_id>")
@require_auth
def get_product_route(product_id: int):
    try:
        return jsonify(inventory_service.get_active_product(product_id).to_dict()), 200
    except InvoicingError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load product %s", product_id)
        return jsonify({"error": "Internal server error"}), 500


@products_bp.post("")
@require_auth
@require_role(Role.OWNER)
def create_product_route():
    """
    Create a product.

    Available to: owner
    Body: {"name": str, "price": "12.50", "stock_quantity": int, "category_id": int?,
           "dose": str?, "notes": str?, "location_in_store": str?}
    """
    try:
        data = request.get_json(silent=True) or {}
        product = inventory_service.create_product(
            data.get("name"),
            data.get("price"),
            data.get("stock_quantity", 0),
            category_id=data.get("category_id"),
            dose=data.get("dose"),
            notes=data.get("notes"),
            location_in_store=data.get("location_in_store"),
        )
        current_app.logger.info("Product %s created by user %s", product.id, g.principal.user_id)
        return jsonify({"message": "Product created", "product": product.to_dict()}), 201

    except InvoicingError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.put("/<int:product_id>")
@require_auth
@require_role(Role.OWNER)
def update_product_route(product_id: int):
    """
    Partially update a product. Only the fields present in the body change.

    Available to: owner
    Body: any of name, price, category_id, dose, notes, location_in_store
    """
    try:
        data = request.get_json(silent=True)
        if not isinstance(data, dict) or not data:
            return jsonify({"error": "At least one field is required"}), 400

        product = inventory_service.update_product(product_id, data)
        return jsonify({"message": "Product updated", "product": product.to_dict()}), 200

    except InvoicingError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update product %s", product_id)
        return jsonify({"error": "Internal server error"}), 500


@products_bp.post("/<int:product_id>/restock")
@require_auth
@require_role(Role.OWNER)
def restock_product_route(product_id: int):
    """Body: {"quantity": int} - units received."""
    try:
        data = request.get_json(silent=True) or {}
        product = inventory_service.restock(product_id, data.get("quantity"))
        current_app.logger.info(
            "Product %s restocked by %s (now %s)", product_id, data.get("quantity"), product.stock_quantity,
        )
        return jsonify({"message": "Product restocked", "product": product.to_dict()}), 200

    except InvoicingError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to restock product %s", product_id)
        return jsonify({"error": "Internal server error"}), 500


@products_bp.delete("/<int:product_id>")
@require_auth
@require_role(Role.OWNER)
def delete_product_route(product_id: int):
    """
    Retire a product. The row stays so historical invoices keep its name.

    Available to: owner
    """
    try:
        inventory_service.deactivate_product(product_id)
        return jsonify({"message": "Product deleted"}), 200

    except InvoicingError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete product %s", product_id)
        return jsonify({"error": "Internal server error"}), 500
