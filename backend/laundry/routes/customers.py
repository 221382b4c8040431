# Overview: Flask API routes for customers; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g

from ..services import customer_service
from ..decorators import require_auth


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
@require_auth
def list_customers_route():
    """
    Query params:
    - outlet_id: admin filter (staff are always scoped to their outlet)
    - q: search by name or phone
    """
    customers = customer_service.list_customers(
        g.caller,
        outlet_id=request.args.get("outlet_id", type=int),
        search=request.args.get("q"),
    )
    return jsonify({"customers": customers}), 200


@customers_bp.post("")
@require_auth
def create_customer_route():
    """
    Request body:
    {
        "outlet_id": 1,  (admin only; staff default to their outlet)
        "name": "Asha",
        "phone": "9820000000",
        "address": "..."  (optional)
    }
    """
    data = dict(request.get_json(silent=True) or {})
    outlet_id = data.pop("outlet_id", None)
    customer = customer_service.create_customer(g.caller, outlet_id, data)
    return jsonify({"customer": customer.to_dict()}), 201


@customers_bp.get("/<int:customer_id>")
@require_auth
def get_customer_route(customer_id: int):
    customer = customer_service.get_customer(g.caller, customer_id)
    return jsonify({"customer": customer.to_dict()}), 200


@customers_bp.patch("/<int:customer_id>")
@require_auth
def update_customer_route(customer_id: int):
    data = request.get_json(silent=True) or {}
    customer = customer_service.update_customer(g.caller, customer_id, data)
    return jsonify({"customer": customer.to_dict()}), 200


@customers_bp.delete("/<int:customer_id>")
@require_auth
def delete_customer_route(customer_id: int):
    customer_service.delete_customer(g.caller, customer_id)
    return jsonify({"message": "Customer deleted"}), 200


@customers_bp.get("/<int:customer_id>/summary")
@require_auth
def customer_summary_route(customer_id: int):
    summary = customer_service.get_customer_summary(g.caller, customer_id)
    return jsonify({"customer": summary}), 200
