# Overview: Service-layer operations for payments; append-only receipts against invoices.

"""
Payment Service

WHY: Record money received against an invoice without ever letting the
balance go negative.

DESIGN PRINCIPLES:
- Payments are append-only (no edit, no delete)
- Split payments: one invoice can have many payments
- The owning invoice row is locked while the balance is checked and the
  payment inserted, so two concurrent payments cannot both pass the check
- payment_status is refreshed from SUM(payments) in the same transaction
"""

from __future__ import annotations

import logging

from ..extensions import db
from ..models import Payment
from . import financial_service, lifecycle_service
from .access_policy import Caller, require_admin
from .concurrency import run_with_retry
from .invoice_service import get_invoice_for_caller, require_live
from laundry.catalog import PAYMENT_MODES
from laundry.time_utils import today
from laundry.validation import ValidationError, clean_text, coerce_choice, coerce_date, coerce_paise

logger = logging.getLogger(__name__)


def add_payment(
    caller: Caller,
    invoice_id: int,
    amount_paise: int,
    payment_mode: str,
    notes: str | None = None,
    payment_date=None,
) -> Payment:
    """
    Add a payment to an invoice.

    Args:
        caller: Request context; recording payments is admin-only
        invoice_id: Invoice being paid
        amount_paise: Amount received (> 0, <= current balance)
        payment_mode: Cash, UPI or Bank
        notes: Optional free text
        payment_date: Defaults to today

    Returns:
        Payment record

    Raises:
        ValidationError: amount <= 0, amount > balance, bad mode/date
        PermissionDeniedError: caller is not admin or lacks outlet access
        NotFoundError: unknown invoice
        ConflictError: invoice has been deleted
    """
    require_admin(caller, "record payments")
    amount = coerce_paise(amount_paise, "amount_paise", allow_zero=False)
    mode = coerce_choice(payment_mode, "payment_mode", PAYMENT_MODES)
    paid_on = coerce_date(payment_date, "payment_date", required=False) or today()
    notes = clean_text(notes)

    def _op() -> Payment:
        invoice = get_invoice_for_caller(caller, invoice_id, lock=True, include_deleted=True)
        require_live(invoice)

        balance = invoice.total_amount_paise - financial_service.total_paid(invoice.id)
        if balance <= 0:
            raise ValidationError("Invoice is already fully paid")
        if amount > balance:
            raise ValidationError(f"Payment exceeds balance. Max allowed: {balance}")

        payment = Payment(
            invoice_id=invoice.id,
            amount_paise=amount,
            payment_mode=mode,
            payment_date=paid_on,
            notes=notes,
            created_by_user_id=caller.user_id,
        )
        db.session.add(payment)
        db.session.flush()

        lifecycle_service.refresh_payment_status(invoice)

        db.session.commit()
        return payment

    payment = run_with_retry(_op)
    logger.info(
        "Payment %s recorded on invoice %s (%s paise, %s) by user=%s",
        payment.id, invoice_id, amount, mode, caller.user_id,
    )
    return payment


def list_payments(caller: Caller, invoice_id: int) -> list[Payment]:
    """Newest first. Payment history is admin-only."""
    require_admin(caller, "view payments")
    invoice = get_invoice_for_caller(caller, invoice_id, include_deleted=True)
    return (
        db.session.query(Payment)
        .filter_by(invoice_id=invoice.id)
        .order_by(Payment.created_at.desc(), Payment.id.desc())
        .all()
    )
