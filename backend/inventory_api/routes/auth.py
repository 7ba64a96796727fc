# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/inventory_api/routes/auth.py
"""
Authentication API routes

- Login returns an opaque access token and a refresh token
- Refresh rotates the refresh token (the old one stops working)
- Registration is limited to administrators
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..models.auth import ROLE_ADMIN, ROLE_CASHIER
from ..services import auth_service
from ..services import session_service
from ..services.auth_service import AuthError, PasswordValidationError
from ..validation import ConflictError, ValidationError
from ..decorators import require_auth, require_role


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _token_response(user, session, token: str, refresh_token: str, message: str):
    return {
        "user": user.to_dict(),
        "token": token,
        "refresh_token": refresh_token,
        "session": session.to_dict(),
        "message": message,
    }


@auth_bp.post("/register")
@require_auth
@require_role(ROLE_ADMIN)
def register_route():
    """
    Create a user account.

    Requires: admin role
    """
    try:
        data = request.get_json(silent=True) or {}
        user = auth_service.create_user(
            username=data.get("username"),
            email=data.get("email"),
            password=data.get("password"),
            full_name=data.get("full_name"),
            role=data.get("role") or ROLE_CASHIER,
        )
        return jsonify({"user": user.to_dict()}), 201

    except (ValidationError, PasswordValidationError) as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to register user")
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

        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )
        refresh_token = auth_service.issue_refresh_token(user)

        return jsonify(_token_response(user, session, token, refresh_token, "Login successful")), 200

    except AuthError as e:
        return jsonify({"error": str(e)}), 401
    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/refresh")
def refresh_route():
    """Exchange a refresh token for a new access token and refresh token."""
    try:
        data = request.get_json(silent=True) or {}
        user, refresh_token = auth_service.rotate_refresh_token(data.get("refresh_token"))

        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )
        return jsonify(_token_response(user, session, token, refresh_token, "Token refreshed")), 200

    except AuthError as e:
        return jsonify({"error": str(e)}), 401
    except Exception:
        current_app.logger.exception("Failed to refresh token")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/revoke")
@require_auth
def revoke_route():
    """Drop the caller's refresh token."""
    auth_service.revoke_refresh_token(g.current_user.id)
    return jsonify({"message": "Refresh token revoked"}), 200


@auth_bp.post("/logout")
@require_auth
def logout_route():
    """Revoke the access token used for this request."""
    session_service.revoke_session(g.access_token, reason="User logout")
    return jsonify({"message": "Logged out"}), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({"user": g.current_user.to_dict()}), 200


@auth_bp.post("/change-password")
@require_auth
def change_password_route():
    """
    Change password. All access and refresh tokens of the user are revoked,
    including the one used for this request.
    """
    try:
        data = request.get_json(silent=True) or {}
        auth_service.change_password(
            user_id=g.current_user.id,
            current_password=data.get("current_password"),
            new_password=data.get("new_password"),
        )
        return jsonify({"message": "Password changed"}), 200

    except AuthError as e:
        return jsonify({"error": str(e)}), 401
    except PasswordValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to change password")
        return jsonify({"error": "Internal server error"}), 500
