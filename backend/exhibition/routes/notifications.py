from __future__ import annotations

from flask import Blueprint, jsonify, g, current_app

from ..decorators import require_auth
from ..errors import InvoicingError
from ..services import notification_service
from ._helpers import error_response, parse_bool_arg

notifications_bp = Blueprint("notifications", __name__, url_prefix="/api/notifications")


@notifications_bp.route("", methods=["GET"])
@require_auth
def list_notifications():
    try:
        unread_only = bool(parse_bool_arg("unread_only"))
        items = notification_service.list_notifications(g.current_user.id, unread_only=unread_only)
        return jsonify([n.to_dict() for n in items])
    except InvoicingError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list notifications")
        return jsonify({"error": "Internal server error"}), 500


@notifications_bp.route("/unread-count", methods=["GET"])
@require_auth
def unread_count():
    try:
        return jsonify({"unread_count": notification_service.unread_count(g.current_user.id)})
    except Exception:
        current_app.logger.exception("Failed to count unread notifications")
        return jsonify({"error": "Internal server error"}), 500


@notifications_bp.route("/<int:notification_id>/mark-as-read", methods=["POST"])
@require_auth
def mark_as_read(notification_id: int):
    try:
        notification = notification_service.mark_as_read(notification_id, g.current_user.id)
        return jsonify(notification.to_dict())
    except InvoicingError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to mark notification %s as read", notification_id)
        return jsonify({"error": "Internal server error"}), 500


@notifications_bp.route("/mark-all-as-read", methods=["POST"])
@require_auth
def mark_all_as_read():
    try:
        count = notification_service.mark_all_as_read(g.current_user.id)
        return jsonify({"updated": count})
    except Exception:
        current_app.logger.exception("Failed to mark all notifications as read")
        return jsonify({"error": "Internal server error"}), 500
