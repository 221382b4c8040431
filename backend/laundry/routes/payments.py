# Overview: Flask API routes for invoice payments; parses input and returns JSON responses.

# backend/laundry/routes/payments.py
"""
Payment API Routes

Payments are recorded against an invoice and are admin-only (both adding
and viewing). Each response carries the refreshed balance so the client
never computes money itself.
"""

from flask import Blueprint, request, jsonify, g

from ..services import financial_service
from ..services import payment_service
from ..decorators import require_auth, require_admin


payments_bp = Blueprint("payments", __name__, url_prefix="/api/invoices")


@payments_bp.get("/<int:invoice_id>/payments")
@require_auth
@require_admin
def list_payments_route(invoice_id: int):
    payments = payment_service.list_payments(g.caller, invoice_id)
    summary = financial_service.financials(invoice_id)
    return jsonify({
        "payments": [p.to_dict() for p in payments],
        "summary": summary.to_dict(),
    }), 200


@payments_bp.post("/<int:invoice_id>/payments")
@require_auth
@require_admin
def add_payment_route(invoice_id: int):
    """
    Record a payment.

    Request body:
    {
        "amount_paise": 40000,
        "payment_mode": "UPI",
        "payment_date": "2024-05-20",  (optional, defaults to today)
        "notes": "..."  (optional)
    }

    Returns:
        201: Payment recorded, with the invoice's new balance
        400: Invalid amount, fully paid invoice or amount above balance
    """
    data = request.get_json(silent=True) or {}
    payment = payment_service.add_payment(
        g.caller,
        invoice_id,
        amount_paise=data.get("amount_paise"),
        payment_mode=data.get("payment_mode"),
        notes=data.get("notes"),
        payment_date=data.get("payment_date"),
    )
    summary = financial_service.financials(invoice_id)
    return jsonify({
        "payment": payment.to_dict(),
        "summary": summary.to_dict(),
    }), 201
