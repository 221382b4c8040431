# Overview: Flask API routes for outlets; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g

from ..services import outlet_service
from ..decorators import require_auth, require_admin


outlets_bp = Blueprint("outlets", __name__, url_prefix="/api/outlets")


@outlets_bp.get("")
@require_auth
def list_outlets_route():
    outlets = outlet_service.list_outlets(g.caller)
    return jsonify({"outlets": [o.to_dict() for o in outlets]}), 200


@outlets_bp.post("")
@require_auth
@require_admin
def create_outlet_route():
    """
    Request body:
    {
        "name": "Bandra",
        "prefix": "BD",
        "address": "...",  (optional)
        "phone": "..."  (optional)
    }
    """
    data = request.get_json(silent=True) or {}
    outlet = outlet_service.create_outlet(
        g.caller,
        name=data.get("name"),
        prefix=data.get("prefix"),
        address=data.get("address"),
        phone=data.get("phone"),
    )
    return jsonify({"outlet": outlet.to_dict()}), 201


@outlets_bp.get("/<int:outlet_id>")
@require_auth
def get_outlet_route(outlet_id: int):
    outlet = outlet_service.get_outlet(g.caller, outlet_id)
    return jsonify({"outlet": outlet.to_dict()}), 200


@outlets_bp.patch("/<int:outlet_id>")
@require_auth
@require_admin
def update_outlet_route(outlet_id: int):
    data = request.get_json(silent=True) or {}
    outlet = outlet_service.update_outlet(g.caller, outlet_id, data)
    return jsonify({"outlet": outlet.to_dict()}), 200
