# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/exhibition/routes/auth.py
"""
Authentication API routes

- create-owner bootstraps the single owner account on an empty system
- register lets the owner create employee accounts
- login issues a bearer token for every other route
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_role, bearer_token
from ..errors import InvoicingError
from ..roles import Role
from ..services import auth_service
from ..services import session_service
from ._helpers import error_response


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _account_fields(data: dict) -> dict:
    return {
        "username": data.get("username"),
        "email": data.get("email"),
        "password": data.get("password"),
        "full_name": data.get("full_name"),
        "phone_number": data.get("phone_number"),
    }


@auth_bp.post("/create-owner")
def create_owner_route():
    """
    Create the owner account. Only works while no user exists.
    """
    try:
        data = request.get_json(silent=True) or {}
        if not all([data.get("username"), data.get("email"), data.get("password")]):
            return jsonify({"error": "username, email and password required"}), 400

        user = auth_service.create_owner(**_account_fields(data))
        return jsonify({"message": "Owner account created", "user": user.to_dict()}), 200

    except InvoicingError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create owner")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/register")
@require_auth
@require_role(Role.OWNER)
def register_route():
    """
    Create an employee account.

    Available to: owner
    """
    try:
        data = request.get_json(silent=True) or {}
        if not all([data.get("username"), data.get("email"), data.get("password")]):
            return jsonify({"error": "username, email and password required"}), 400

        role = data.get("role")
        if role is not None and str(role).strip().upper() != Role.EMPLOYEE.value:
            return jsonify({"error": "Only employee accounts can be created"}), 400

        user = auth_service.register_employee(**_account_fields(data))
        return jsonify({"message": "Employee account created", "user": user.to_dict()}), 201

    except InvoicingError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to register employee")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Token must be included in Authorization header for protected routes.
    """
    try:
        data = request.get_json(silent=True) or {}
        username = data.get("username") or data.get("email")
        password = data.get("password")

        if not all([username, password]):
            return jsonify({"error": "username/email and password required"}), 400

        user = auth_service.authenticate(username, password)
        if not user:
            return jsonify({"error": "Invalid credentials"}), 401

        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )

        return jsonify({
            "user": user.to_dict(),
            "token": token,
            "session": session.to_dict(),
            "message": "Login successful"
        }), 200

    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
@require_auth
def logout_route():
    """Revoke the bearer token used for this request."""
    try:
        session_service.revoke_session(bearer_token())
        return jsonify({"message": "Logged out"}), 200
    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({"user": g.current_user.to_dict()}), 200


@auth_bp.post("/change-password")
@require_auth
def change_password_route():
    """
    Change the caller's password.

    Request body:
    {
        "current_password": "...", // required
        "new_password": "..."      // required, same strength rules as registration
    }

    SECURITY: Requires the current password. Every other session of the
    user is revoked; the token used for this request stays valid.
    """
    try:
        data = request.get_json(silent=True) or {}
        current_password = data.get("current_password")
        new_password = data.get("new_password")

        if not isinstance(current_password, str) or not isinstance(new_password, str) \
                or not current_password or not new_password:
            return jsonify({"error": "current_password and new_password required"}), 400

        user = auth_service.change_password(g.current_user.id, current_password, new_password)
        revoked = session_service.revoke_all_user_sessions(
            user.id, "Password changed", keep_token=bearer_token(),
        )
        current_app.logger.info("User %s changed password (%s other session(s) revoked)", user.id, revoked)
        return jsonify({"message": "Password changed", "sessions_revoked": revoked}), 200

    except PermissionError:
        return jsonify({"error": "Invalid password"}), 401
    except InvoicingError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to change password")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/device-token")
@require_auth
def device_token_route():
    """Register (or clear) the caller's push device token."""
    try:
        data = request.get_json(silent=True) or {}
        auth_service.update_device_token(g.current_user.id, data.get("device_token"))
        return jsonify({"message": "Device token updated"}), 200

    except InvoicingError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update device token")
        return jsonify({"error": "Internal server error"}), 500
