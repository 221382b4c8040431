# Overview: Invoice lifecycle state machine; derives invoice and payment status.

"""
Invoice Lifecycle Service

================================================================================
STATE MACHINE (invoice_status):
    Open -> Partial -> Delivered
================================================================================

- Trigger: any change to the status of a child item.
- Transition function: recompute from the FULL current set of item statuses,
  never as a delta. The result is idempotent and independent of which item
  changed or in what order concurrent updates land.
- No client may set invoice_status directly; Delivered is only ever the
  consequence of every item reaching Delivered.

ITEM TRANSITIONS:
    Received -> In Process -> Ready -> Delivered

  Staff may mark an item Delivered only when it is currently Ready (the
  quality-check step cannot be skipped). Admins are unrestricted. No other
  ordering is enforced.

payment_status is cached on the invoice and refreshed from the Financial
Aggregator in the same transaction as every payment insert.
"""

from __future__ import annotations

from typing import Iterable

from ..models import Invoice
from . import financial_service
from .access_policy import Caller, PermissionDeniedError
from laundry.catalog import (
    INVOICE_DELIVERED,
    INVOICE_OPEN,
    INVOICE_PARTIAL,
    ITEM_DELIVERED,
    ITEM_READY,
    ITEM_STATUSES,
    InvoiceStatus,
    ItemStatus,
)
from laundry.time_utils import utcnow
from laundry.validation import ValidationError, coerce_choice


def validate_item_status(status) -> ItemStatus:
    return coerce_choice(status, "item status", ITEM_STATUSES)


def derive_invoice_status(item_statuses: Iterable[str]) -> InvoiceStatus:
    """
    Item status rollup.

    Delivered iff every item is Delivered, Partial iff at least one but not
    all are, Open otherwise (including an invoice with no items).
    """
    statuses = list(item_statuses)
    delivered = sum(1 for s in statuses if s == ITEM_DELIVERED)
    if statuses and delivered == len(statuses):
        return INVOICE_DELIVERED
    if delivered > 0:
        return INVOICE_PARTIAL
    return INVOICE_OPEN


def check_item_transition(caller: Caller, current: str, new: str) -> None:
    """
    Raises PermissionDeniedError if the caller may not move an item from
    `current` to `new`, ValidationError if `new` is not a known status.
    """
    validate_item_status(new)
    if caller.is_admin:
        return
    if new == ITEM_DELIVERED and current not in (ITEM_READY, ITEM_DELIVERED):
        raise PermissionDeniedError("Item must be Ready before marking Delivered")


def refresh_invoice_status(invoice: Invoice) -> str:
    """
    Reapply the rollup to the invoice's persisted items.

    updated_at is always touched so the invoice row is written (and its
    version checked) even when the rolled-up status is unchanged.
    """
    if not invoice.items:
        raise ValidationError("Invoice has no items")
    invoice.invoice_status = derive_invoice_status(item.status for item in invoice.items)
    invoice.updated_at = utcnow()
    return invoice.invoice_status


def refresh_payment_status(invoice: Invoice) -> str:
    paid = financial_service.total_paid(invoice.id)
    invoice.payment_status = financial_service.payment_status_for(invoice.total_amount_paise, paid)
    invoice.updated_at = utcnow()
    return invoice.payment_status
