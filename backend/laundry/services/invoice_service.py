# Overview: Service-layer operations for invoices; creation, reads, notes and soft delete.

"""
Invoice Service

WHY: An invoice and its items are created as one logical unit together
with the invoice number reservation, so a failed insert leaves nothing
behind except (at worst) a skipped number.

DESIGN:
- total_amount_paise and total_pieces are computed here from the items
  and never recomputed afterwards (immutable snapshot)
- item rates are admin-only; staff-created items always carry rate 0
  whatever the client sent
- read paths return invoices enriched with derived financial fields
"""

from __future__ import annotations

import logging
from datetime import date

from sqlalchemy import or_
from sqlalchemy.orm import selectinload

from ..extensions import db
from ..models import Customer, Invoice, InvoiceItem, Outlet, Payment
from . import financial_service, sequence_service
from .access_policy import (
    Caller,
    can_manage_payments,
    can_write_rate,
    require_access,
    require_delete,
    scope_outlet_filter,
)
from .concurrency import lock_for_update, run_with_retry
from laundry.catalog import (
    INVOICE_OPEN,
    ITEM_RECEIVED,
    ORDER_NORMAL,
    ORDER_TYPES,
    PAYMENT_UNPAID,
    PRODUCT_CATEGORIES,
    PRODUCT_TYPES,
    SERVICE_SEPARATOR,
    SERVICES,
)
from laundry.time_utils import today, utcnow
from laundry.validation import (
    MAX_AMOUNT_PAISE,
    MAX_QUANTITY,
    ConflictError,
    NotFoundError,
    ValidationError,
    clean_text,
    coerce_choice,
    coerce_date,
    coerce_int,
    coerce_paise,
)

logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 50
MAX_LIST_LIMIT = 200


# =============================================================================
# INPUT NORMALIZATION
# =============================================================================

def _normalize_services(raw) -> str:
    """Multi-select services arrive as a list (or comma-joined string)."""
    if isinstance(raw, str):
        raw = [s.strip() for s in raw.split(",")]
    if not isinstance(raw, (list, tuple)):
        raise ValidationError("services must be a list")

    selected: list[str] = []
    for service in raw:
        if not service:
            continue
        coerce_choice(service, "service", SERVICES)
        if service not in selected:
            selected.append(service)

    if not selected:
        raise ValidationError("At least one service must be selected")
    return SERVICE_SEPARATOR.join(selected)


def normalize_item(caller: Caller, raw: dict, index: int) -> dict:
    """
    Validate one item payload and compute its total.

    Returns the column values for an InvoiceItem.
    """
    if not isinstance(raw, dict):
        raise ValidationError(f"Item {index + 1}: invalid item payload")

    category = coerce_choice(raw.get("product_category"), "product_category", PRODUCT_CATEGORIES)
    product_type = coerce_choice(raw.get("product_type"), "product_type", PRODUCT_TYPES[category])
    service = _normalize_services(raw.get("services", raw.get("service")))

    if raw.get("quantity") is None:
        raise ValidationError(f"Item {index + 1}: quantity is required")
    quantity = coerce_int(raw.get("quantity"), "quantity")
    if quantity <= 0:
        raise ValidationError(f"Item {index + 1}: quantity must be greater than zero")
    if quantity > MAX_QUANTITY:
        raise ValidationError(f"Item {index + 1}: quantity cannot exceed {MAX_QUANTITY}")

    if can_write_rate(caller):
        rate = coerce_paise(raw.get("rate_paise"), "rate_paise", allow_zero=True)
    else:
        # Staff never set prices, whatever the client sent
        rate = 0

    total = quantity * rate
    if total > MAX_AMOUNT_PAISE:
        raise ValidationError(f"Item {index + 1}: line total is too large")

    return {
        "product_category": category,
        "product_type": product_type,
        "service": service,
        "quantity": quantity,
        "rate_paise": rate,
        "total_paise": total,
    }


# =============================================================================
# LOOKUPS
# =============================================================================

def get_invoice_for_caller(caller: Caller, invoice_id: int, *, lock: bool = False, include_deleted: bool = False) -> Invoice:
    """
    Load an invoice the caller is allowed to see.

    Soft-deleted invoices are reported as not found unless include_deleted.
    """
    query = db.session.query(Invoice).filter_by(id=invoice_id)
    if lock:
        query = lock_for_update(query)
    invoice = query.first()
    if not invoice or (invoice.is_deleted and not include_deleted):
        raise NotFoundError(f"Invoice {invoice_id} not found")
    require_access(caller, invoice.outlet_id)
    return invoice


def require_live(invoice: Invoice) -> None:
    if invoice.is_deleted:
        raise ConflictError(f"Invoice {invoice.invoice_number} has been deleted")


# =============================================================================
# CREATE
# =============================================================================

def create_invoice(
    caller: Caller,
    outlet_id: int,
    customer_id: int,
    delivery_date,
    order_type: str = ORDER_NORMAL,
    notes: str | None = None,
    items: list[dict] | None = None,
    invoice_date=None,
) -> Invoice:
    """
    Create an invoice with its items.

    Args:
        caller: Request context (role/outlet)
        outlet_id: Outlet issuing the invoice (staff: must be their own)
        customer_id: Customer of the same outlet
        delivery_date: Promised delivery date (ISO date or date)
        order_type: Normal or Urgent
        notes: Free text
        items: [{product_category, product_type, services, quantity, rate_paise}]
        invoice_date: Defaults to today

    Returns:
        The committed Invoice

    Raises:
        ValidationError, PermissionDeniedError, NotFoundError
    """
    if outlet_id is None:
        raise ValidationError("outlet_id is required")
    if customer_id is None:
        raise ValidationError("customer_id is required")
    outlet_id = coerce_int(outlet_id, "outlet_id")
    customer_id = coerce_int(customer_id, "customer_id")
    require_access(caller, outlet_id)

    order_type = coerce_choice(order_type or ORDER_NORMAL, "order_type", ORDER_TYPES)
    delivery = coerce_date(delivery_date, "delivery_date")
    issued: date = coerce_date(invoice_date, "date", required=False) or today()
    if delivery < issued:
        raise ValidationError("delivery_date cannot be before the invoice date")

    if not items:
        raise ValidationError("At least one item is required")
    lines = [normalize_item(caller, raw, i) for i, raw in enumerate(items)]
    notes = clean_text(notes)

    def _op() -> Invoice:
        outlet = db.session.query(Outlet).filter_by(id=outlet_id).first()
        if not outlet:
            raise NotFoundError(f"Outlet {outlet_id} not found")

        customer = db.session.query(Customer).filter_by(id=customer_id).first()
        if not customer:
            raise NotFoundError(f"Customer {customer_id} not found")
        if customer.outlet_id != outlet_id:
            raise ValidationError("Customer belongs to a different outlet")

        number = sequence_service.allocate_invoice_number(outlet)

        invoice = Invoice(
            invoice_number=number,
            outlet_id=outlet_id,
            customer_id=customer_id,
            date=issued,
            delivery_date=delivery,
            order_type=order_type,
            notes=notes,
            total_pieces=sum(line["quantity"] for line in lines),
            total_amount_paise=sum(line["total_paise"] for line in lines),
            invoice_status=INVOICE_OPEN,
            payment_status=PAYMENT_UNPAID,
            created_by_user_id=caller.user_id,
        )
        # A zero-total invoice (staff-created, unpriced) has nothing to collect
        invoice.payment_status = financial_service.payment_status_for(invoice.total_amount_paise, 0)
        db.session.add(invoice)
        db.session.flush()

        for line in lines:
            db.session.add(InvoiceItem(invoice_id=invoice.id, status=ITEM_RECEIVED, **line))

        db.session.commit()
        return invoice

    invoice = run_with_retry(_op)
    logger.info(
        "Invoice %s created (outlet=%s customer=%s pieces=%s total_paise=%s by user=%s)",
        invoice.invoice_number, outlet_id, customer_id,
        invoice.total_pieces, invoice.total_amount_paise, caller.user_id,
    )
    return invoice


# =============================================================================
# READS
# =============================================================================

def serialize_invoice(invoice: Invoice, fin: financial_service.InvoiceFinancials) -> dict:
    data = invoice.to_dict()
    data.update(fin.to_dict())
    if invoice.customer is not None:
        data["customer_name"] = invoice.customer.name
        data["customer_phone"] = invoice.customer.phone
    return data


def list_invoices(
    caller: Caller,
    outlet_id: int | None = None,
    search: str | None = None,
    limit: int = DEFAULT_LIST_LIMIT,
    offset: int = 0,
) -> list[dict]:
    """
    Newest-first live invoices, enriched with financials.

    search matches invoice number, customer name or customer phone.
    """
    scoped_outlet = scope_outlet_filter(caller, outlet_id)
    limit = max(1, min(int(limit or DEFAULT_LIST_LIMIT), MAX_LIST_LIMIT))
    offset = max(0, int(offset or 0))

    query = (
        db.session.query(Invoice)
        .join(Customer, Customer.id == Invoice.customer_id)
        .options(selectinload(Invoice.customer))
        .filter(Invoice.is_deleted.is_(False))
    )
    if scoped_outlet is not None:
        query = query.filter(Invoice.outlet_id == scoped_outlet)

    term = clean_text(search)
    if term:
        like = f"%{term}%"
        query = query.filter(
            or_(
                Invoice.invoice_number.ilike(like),
                Customer.name.ilike(like),
                Customer.phone.like(like),
            )
        )

    invoices = (
        query.order_by(Invoice.created_at.desc(), Invoice.id.desc())
        .limit(limit)
        .offset(offset)
        .all()
    )
    fins = financial_service.financials_for(invoices)
    return [serialize_invoice(inv, fins[inv.id]) for inv in invoices]


def get_invoice_detail(caller: Caller, invoice_id: int) -> dict:
    """
    Invoice with items, outlet, customer and financials.

    Payment history is included for admins only.
    """
    invoice = get_invoice_for_caller(caller, invoice_id)
    fin = financial_service.financials(invoice.id)

    data = serialize_invoice(invoice, fin)
    data["customer_address"] = invoice.customer.address if invoice.customer else None
    data["outlet"] = invoice.outlet.to_dict() if invoice.outlet else None
    data["items"] = [item.to_dict() for item in invoice.items]
    if can_manage_payments(caller):
        payments = (
            db.session.query(Payment)
            .filter_by(invoice_id=invoice.id)
            .order_by(Payment.created_at.desc(), Payment.id.desc())
            .all()
        )
        data["payments"] = [p.to_dict() for p in payments]
    return data


# =============================================================================
# UPDATES
# =============================================================================

def update_delivery_notes(caller: Caller, invoice_id: int, text) -> Invoice:
    """Free-form delivery notes; only null is rejected (empty string clears)."""
    if text is None:
        raise ValidationError("delivery_notes is required")
    if not isinstance(text, str):
        raise ValidationError("delivery_notes must be a string")

    def _op() -> Invoice:
        invoice = get_invoice_for_caller(caller, invoice_id, lock=True, include_deleted=True)
        require_live(invoice)
        invoice.delivery_notes = text
        db.session.commit()
        return invoice

    return run_with_retry(_op)


def soft_delete_invoice(caller: Caller, invoice_id: int) -> Invoice:
    """Admin-only: flag the invoice deleted. Items and payments are kept."""
    require_delete("invoice", caller)

    def _op() -> Invoice:
        invoice = get_invoice_for_caller(caller, invoice_id, lock=True, include_deleted=True)
        require_live(invoice)
        invoice.is_deleted = True
        invoice.deleted_at = utcnow()
        invoice.deleted_by_user_id = caller.user_id
        db.session.commit()
        return invoice

    invoice = run_with_retry(_op)
    logger.info("Invoice %s soft-deleted by user=%s", invoice.invoice_number, caller.user_id)
    return invoice
