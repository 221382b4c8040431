# Overview: Flask API routes for invoices and line items; parses input and returns JSON responses.

# backend/laundry/routes/invoices.py
"""
Invoice API Routes

DESIGN:
- Invoice numbers are allocated server-side; clients never send one
- Item rates are honored for admins only
- invoice_status and payment_status are read-only here; they change only as
  a consequence of item status updates and payments
"""

from flask import Blueprint, request, jsonify, g

from ..services import invoice_service
from ..services import item_status_service
from ..decorators import require_auth, require_admin


invoices_bp = Blueprint("invoices", __name__, url_prefix="/api/invoices")


@invoices_bp.get("")
@require_auth
def list_invoices_route():
    """
    Query params:
    - outlet_id: admin filter
    - q: search invoice number, customer name or phone
    - limit / offset: paging (newest first)
    """
    invoices = invoice_service.list_invoices(
        g.caller,
        outlet_id=request.args.get("outlet_id", type=int),
        search=request.args.get("q"),
        limit=request.args.get("limit", default=invoice_service.DEFAULT_LIST_LIMIT, type=int),
        offset=request.args.get("offset", default=0, type=int),
    )
    return jsonify({"invoices": invoices}), 200


@invoices_bp.post("")
@require_auth
def create_invoice_route():
    """
    Create an invoice with its items.

    Request body:
    {
        "outlet_id": 1,
        "customer_id": 7,
        "delivery_date": "2024-05-20",
        "order_type": "Normal",
        "notes": "...",
        "items": [
            {
                "product_category": "Saree",
                "product_type": "Silk",
                "services": ["Polish", "Fall-Beading"],
                "quantity": 2,
                "rate_paise": 15000
            }
        ]
    }

    Returns:
        201: Invoice created (with items and financials)
    """
    data = request.get_json(silent=True) or {}
    invoice = invoice_service.create_invoice(
        g.caller,
        outlet_id=data.get("outlet_id", g.caller.outlet_id),
        customer_id=data.get("customer_id"),
        delivery_date=data.get("delivery_date"),
        order_type=data.get("order_type"),
        notes=data.get("notes"),
        items=data.get("items"),
        invoice_date=data.get("date"),
    )
    detail = invoice_service.get_invoice_detail(g.caller, invoice.id)
    return jsonify({"invoice": detail}), 201


@invoices_bp.get("/<int:invoice_id>")
@require_auth
def get_invoice_route(invoice_id: int):
    return jsonify({"invoice": invoice_service.get_invoice_detail(g.caller, invoice_id)}), 200


@invoices_bp.delete("/<int:invoice_id>")
@require_auth
@require_admin
def delete_invoice_route(invoice_id: int):
    invoice = invoice_service.soft_delete_invoice(g.caller, invoice_id)
    return jsonify({"message": f"Invoice {invoice.invoice_number} deleted"}), 200


@invoices_bp.patch("/<int:invoice_id>/delivery-notes")
@require_auth
def update_delivery_notes_route(invoice_id: int):
    data = request.get_json(silent=True) or {}
    invoice_service.update_delivery_notes(g.caller, invoice_id, data.get("delivery_notes"))
    return jsonify({"invoice": invoice_service.get_invoice_detail(g.caller, invoice_id)}), 200


@invoices_bp.patch("/items/<int:item_id>/status")
@require_auth
def set_item_status_route(item_id: int):
    """
    Request body: {"status": "Ready"}

    Returns the item and the invoice status it rolled up to.
    """
    data = request.get_json(silent=True) or {}
    item = item_status_service.set_item_status(g.caller, item_id, data.get("status"))
    return jsonify({
        "item": item.to_dict(),
        "invoice_status": item.invoice.invoice_status,
    }), 200
