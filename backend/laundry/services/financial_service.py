# Overview: Invoice and customer financial aggregation over the payments table.

"""
Financial Aggregator

total_paid is never stored authoritatively: it is SUM(payments.amount_paise)
evaluated inside the caller's transaction, so every committed payment is
counted exactly once. total_due = max(0, total_amount - total_paid).
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import func

from ..extensions import db
from ..models import Invoice, Payment
from laundry.catalog import PAYMENT_PAID, PAYMENT_PARTIAL, PAYMENT_UNPAID, PaymentStatus
from laundry.validation import NotFoundError


@dataclass(frozen=True)
class InvoiceFinancials:
    total_amount_paise: int
    total_paid_paise: int

    @property
    def total_due_paise(self) -> int:
        return max(0, self.total_amount_paise - self.total_paid_paise)

    @property
    def payment_status(self) -> str:
        return payment_status_for(self.total_amount_paise, self.total_paid_paise)

    def to_dict(self) -> dict:
        return {
            "total_amount_paise": self.total_amount_paise,
            "total_paid_paise": self.total_paid_paise,
            "total_due_paise": self.total_due_paise,
            "payment_status": self.payment_status,
        }


def payment_status_for(total_amount_paise: int, total_paid_paise: int) -> PaymentStatus:
    """
    Pure derivation of payment status.

    Paid iff balance <= 0, Partially Paid iff something but not everything
    has been paid, Unpaid iff nothing has been paid. A zero-total invoice
    has nothing to collect and is therefore Paid.
    """
    balance = total_amount_paise - total_paid_paise
    if balance <= 0:
        return PAYMENT_PAID
    if total_paid_paise > 0:
        return PAYMENT_PARTIAL
    return PAYMENT_UNPAID


def total_paid(invoice_id: int) -> int:
    paid = (
        db.session.query(func.coalesce(func.sum(Payment.amount_paise), 0))
        .filter(Payment.invoice_id == invoice_id)
        .scalar()
    )
    return int(paid or 0)


def financials(invoice_id: int) -> InvoiceFinancials:
    invoice = db.session.query(Invoice).filter_by(id=invoice_id).first()
    if not invoice:
        raise NotFoundError(f"Invoice {invoice_id} not found")
    return InvoiceFinancials(
        total_amount_paise=invoice.total_amount_paise,
        total_paid_paise=total_paid(invoice_id),
    )


def financials_for(invoices: list[Invoice]) -> dict[int, InvoiceFinancials]:
    """Batch variant for list views: one grouped aggregate query."""
    if not invoices:
        return {}

    ids = [inv.id for inv in invoices]
    rows = (
        db.session.query(Payment.invoice_id, func.sum(Payment.amount_paise))
        .filter(Payment.invoice_id.in_(ids))
        .group_by(Payment.invoice_id)
        .all()
    )
    paid_by_invoice = {invoice_id: int(paid or 0) for invoice_id, paid in rows}

    return {
        inv.id: InvoiceFinancials(
            total_amount_paise=inv.total_amount_paise,
            total_paid_paise=paid_by_invoice.get(inv.id, 0),
        )
        for inv in invoices
    }


def customer_totals(customer_id: int) -> dict:
    """Billed / paid / due across a customer's live (not deleted) invoices."""
    return customer_totals_for([customer_id])[customer_id]


def customer_totals_for(customer_ids: list[int]) -> dict[int, dict]:
    """
    Batch variant of customer_totals for list views.

    Two grouped queries regardless of how many customers are asked for;
    customers without live invoices get zero totals.
    """
    if not customer_ids:
        return {}

    live = (Invoice.customer_id.in_(customer_ids), Invoice.is_deleted.is_(False))

    billed_rows = (
        db.session.query(
            Invoice.customer_id,
            func.count(Invoice.id),
            func.coalesce(func.sum(Invoice.total_amount_paise), 0),
        )
        .filter(*live)
        .group_by(Invoice.customer_id)
        .all()
    )
    paid_rows = (
        db.session.query(Invoice.customer_id, func.coalesce(func.sum(Payment.amount_paise), 0))
        .select_from(Payment)
        .join(Invoice, Invoice.id == Payment.invoice_id)
        .filter(*live)
        .group_by(Invoice.customer_id)
        .all()
    )

    billed_by_customer = {cid: (int(count or 0), int(billed or 0)) for cid, count, billed in billed_rows}
    paid_by_customer = {cid: int(paid or 0) for cid, paid in paid_rows}

    totals = {}
    for cid in customer_ids:
        count, billed = billed_by_customer.get(cid, (0, 0))
        paid = paid_by_customer.get(cid, 0)
        totals[cid] = {
            "invoice_count": count,
            "total_billed_paise": billed,
            "total_paid_paise": paid,
            "total_due_paise": max(0, billed - paid),
        }
    return totals
