# Overview: Flask API routes for user management; admin-only.

from flask import Blueprint, request, jsonify, g

from ..services import auth_service
from ..decorators import require_auth, require_admin


users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_auth
@require_admin
def list_users_route():
    users = auth_service.list_users(g.caller)
    return jsonify({"users": [u.to_dict() for u in users]}), 200


@users_bp.post("")
@require_auth
@require_admin
def create_user_route():
    """
    Request body:
    {
        "email": "staff@example.com",
        "password": "Str0ng!pass",
        "full_name": "Ravi",
        "role": "staff",
        "outlet_id": 1,  (required for staff)
        "phone": "..."  (optional)
    }
    """
    data = request.get_json(silent=True) or {}
    user = auth_service.create_user_as(
        g.caller,
        email=data.get("email"),
        password=data.get("password"),
        full_name=data.get("full_name"),
        role=data.get("role") or "staff",
        outlet_id=data.get("outlet_id"),
        phone=data.get("phone"),
    )
    return jsonify({"user": user.to_dict()}), 201
