# Overview: Service-layer operations for reporting; dashboard counters for the front desk.

"""
Dashboard counters.

Workload counters (pieces in process / ready, deliveries due and overdue)
are visible to every caller for their scoped outlet(s). Money counters
(billed, collected, outstanding) are admin-only, matching who may see
payments.
"""

from __future__ import annotations

from datetime import date

from sqlalchemy import func

from ..extensions import db
from ..models import Invoice, InvoiceItem, Payment
from . import financial_service
from .access_policy import Caller, scope_outlet_filter
from laundry.catalog import INVOICE_DELIVERED, ITEM_IN_PROCESS, ITEM_READY, PAYMENT_PAID
from laundry.time_utils import to_iso_date
from laundry.time_utils import today as current_day


def _live_invoices(outlet_id: int | None):
    query = db.session.query(Invoice).filter(Invoice.is_deleted.is_(False))
    if outlet_id is not None:
        query = query.filter(Invoice.outlet_id == outlet_id)
    return query


def _pieces_with_status(outlet_id: int | None, status: str) -> int:
    query = (
        db.session.query(func.coalesce(func.sum(InvoiceItem.quantity), 0))
        .join(Invoice, Invoice.id == InvoiceItem.invoice_id)
        .filter(Invoice.is_deleted.is_(False), InvoiceItem.status == status)
    )
    if outlet_id is not None:
        query = query.filter(Invoice.outlet_id == outlet_id)
    return int(query.scalar() or 0)


def _billed_since(outlet_id: int | None, start: date, end: date) -> int:
    query = (
        db.session.query(func.coalesce(func.sum(Invoice.total_amount_paise), 0))
        .filter(Invoice.is_deleted.is_(False), Invoice.date >= start, Invoice.date <= end)
    )
    if outlet_id is not None:
        query = query.filter(Invoice.outlet_id == outlet_id)
    return int(query.scalar() or 0)


def _collected_on(outlet_id: int | None, day: date) -> int:
    query = (
        db.session.query(func.coalesce(func.sum(Payment.amount_paise), 0))
        .join(Invoice, Invoice.id == Payment.invoice_id)
        .filter(Invoice.is_deleted.is_(False), Payment.payment_date == day)
    )
    if outlet_id is not None:
        query = query.filter(Invoice.outlet_id == outlet_id)
    return int(query.scalar() or 0)


def _outstanding(outlet_id: int | None) -> int:
    unpaid = _live_invoices(outlet_id).filter(Invoice.payment_status != PAYMENT_PAID).all()
    fins = financial_service.financials_for(unpaid)
    return sum(fin.total_due_paise for fin in fins.values())


def dashboard_summary(caller: Caller, outlet_id: int | None = None, today: date | None = None) -> dict:
    """
    Counters for the dashboard of one outlet (staff) or one/all outlets (admin).

    `today` is injectable so the date-relative counters are testable.
    """
    scoped = scope_outlet_filter(caller, outlet_id)
    day = today or current_day()

    pending = _live_invoices(scoped).filter(Invoice.invoice_status != INVOICE_DELIVERED)

    summary = {
        "outlet_id": scoped,
        "date": to_iso_date(day),
        "invoices_today": _live_invoices(scoped).filter(Invoice.date == day).count(),
        "pieces_in_process": _pieces_with_status(scoped, ITEM_IN_PROCESS),
        "pieces_ready": _pieces_with_status(scoped, ITEM_READY),
        "deliveries_due_today": pending.filter(Invoice.delivery_date == day).count(),
        "overdue_deliveries": pending.filter(Invoice.delivery_date < day).count(),
    }

    if caller.is_admin:
        summary.update({
            "billed_today_paise": _billed_since(scoped, day, day),
            "billed_month_paise": _billed_since(scoped, day.replace(day=1), day),
            "collected_today_paise": _collected_on(scoped, day),
            "outstanding_paise": _outstanding(scoped),
        })
    return summary
