# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/laundry/routes/auth.py
"""
Authentication API routes

- First-run setup creates the initial admin (only while none exists)
- Login returns an opaque bearer token; logout revokes it
- Users are otherwise created by admins (see routes/users.py)
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import auth_service
from ..services import session_service
from ..decorators import bearer_token, require_auth


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.get("/setup")
def setup_status_route():
    """Whether the first-run setup page should be shown."""
    return jsonify({"needs_setup": not auth_service.has_admin()}), 200


@auth_bp.post("/setup")
def setup_route():
    """
    Create the first admin account.

    Request body:
    {
        "email": "owner@example.com",
        "password": "Str0ng!pass",
        "full_name": "Owner"
    }

    Returns:
        201: Admin created
        400: Invalid input
        409: An admin already exists
    """
    data = request.get_json(silent=True) or {}
    user = auth_service.setup_first_admin(
        email=data.get("email"),
        password=data.get("password"),
        full_name=data.get("full_name"),
    )
    current_app.logger.info("First admin %s created via setup", user.email)
    return jsonify({"user": user.to_dict()}), 201


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Token must be included in Authorization header for protected routes.
    """
    data = request.get_json(silent=True) or {}
    email = data.get("email")
    password = data.get("password")

    if not all([email, password]):
        return jsonify({"error": "email and password required"}), 400

    user = auth_service.authenticate(email, password)
    if not user:
        return jsonify({"error": "Invalid credentials"}), 401

    session, token = session_service.create_session(
        user_id=user.id,
        user_agent=request.headers.get("User-Agent"),
        ip_address=request.remote_addr
    )

    return jsonify({
        "user": user.to_dict(),
        "token": token,
        "session": session.to_dict(),
        "message": "Login successful"
    }), 200


@auth_bp.post("/logout")
@require_auth
def logout_route():
    session_service.revoke_session(bearer_token())
    return jsonify({"message": "Logged out"}), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    outlet = g.current_user.outlet
    return jsonify({
        "user": g.current_user.to_dict(),
        "outlet": outlet.to_dict() if outlet else None,
    }), 200
