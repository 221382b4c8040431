# Overview: Service-layer operations for customers; outlet-scoped CRUD and financial summaries.

from __future__ import annotations

import logging

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Customer, Invoice, Outlet, Payment
from . import financial_service
from .access_policy import Caller, require_access, require_delete, scope_outlet_filter
from .concurrency import run_with_retry
from laundry.time_utils import to_utc_z
from laundry.validation import (
    ConflictError,
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    clean_text,
    coerce_int,
    validate_payload,
)

logger = logging.getLogger(__name__)

CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "phone", "address"},
    required_on_create={"name", "phone"},
)

REFERENCED_MESSAGE = "Customer is still referenced by invoices and cannot be deleted"


def get_customer(caller: Caller, customer_id: int) -> Customer:
    customer = db.session.query(Customer).filter_by(id=customer_id).first()
    if not customer:
        raise NotFoundError(f"Customer {customer_id} not found")
    require_access(caller, customer.outlet_id)
    return customer


def create_customer(caller: Caller, outlet_id: int | None, fields: dict) -> Customer:
    """
    Create a customer owned by an outlet.

    Staff always create into their own outlet; admins must name one.
    """
    if outlet_id is None:
        outlet_id = caller.outlet_id
    if outlet_id is None:
        raise ValidationError("outlet_id is required")
    outlet_id = coerce_int(outlet_id, "outlet_id")
    require_access(caller, outlet_id)

    patch = validate_payload(model=Customer, payload=fields, policy=CUSTOMER_POLICY, partial=False)

    if not db.session.query(Outlet).filter_by(id=outlet_id).first():
        raise NotFoundError(f"Outlet {outlet_id} not found")

    customer = Customer(outlet_id=outlet_id, **patch)
    db.session.add(customer)
    db.session.commit()
    logger.info("Customer %s created in outlet %s by user=%s", customer.id, outlet_id, caller.user_id)
    return customer


def update_customer(caller: Caller, customer_id: int, fields: dict) -> Customer:
    patch = validate_payload(model=Customer, payload=fields, policy=CUSTOMER_POLICY, partial=True)
    for key in ("name", "phone"):
        if key in patch and patch[key] is None:
            raise ValidationError(f"{key} cannot be blank")

    def _op() -> Customer:
        customer = get_customer(caller, customer_id)
        for key, value in patch.items():
            setattr(customer, key, value)
        db.session.commit()
        return customer

    return run_with_retry(_op)


def _has_invoices(customer_id: int) -> bool:
    return db.session.query(Invoice.id).filter_by(customer_id=customer_id).first() is not None


def delete_customer(caller: Caller, customer_id: int) -> None:
    """
    Admin-only hard delete.

    Fails with ConflictError while any invoice (deleted or not) still
    references the customer; soft-deleted invoices keep their reference.
    An invoice committed after the check trips the RESTRICT foreign key
    and is reported the same way.
    """
    require_delete("customer", caller)

    def _op() -> None:
        customer = get_customer(caller, customer_id)
        if _has_invoices(customer.id):
            raise ConflictError(REFERENCED_MESSAGE)
        db.session.delete(customer)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise ConflictError(REFERENCED_MESSAGE)

    run_with_retry(_op)
    logger.info("Customer %s deleted by user=%s", customer_id, caller.user_id)


def list_customers(caller: Caller, outlet_id: int | None = None, search: str | None = None) -> list[dict]:
    """Customers ordered by name, each with its financial summary."""
    scoped_outlet = scope_outlet_filter(caller, outlet_id)

    query = db.session.query(Customer)
    if scoped_outlet is not None:
        query = query.filter(Customer.outlet_id == scoped_outlet)

    term = clean_text(search)
    if term:
        query = query.filter(or_(Customer.name.ilike(f"%{term}%"), Customer.phone.like(f"%{term}%")))

    customers = query.order_by(Customer.name.asc(), Customer.id.asc()).all()
    totals = financial_service.customer_totals_for([c.id for c in customers])

    rows = []
    for customer in customers:
        data = customer.to_dict()
        data.update(totals[customer.id])
        rows.append(data)
    return rows


def get_customer_summary(caller: Caller, customer_id: int) -> dict:
    """
    Customer profile: totals, invoices (with financials) and payment history.
    """
    customer = get_customer(caller, customer_id)

    invoices = (
        db.session.query(Invoice)
        .filter(Invoice.customer_id == customer.id, Invoice.is_deleted.is_(False))
        .order_by(Invoice.created_at.desc(), Invoice.id.desc())
        .all()
    )
    fins = financial_service.financials_for(invoices)

    payments = []
    if invoices:
        numbers = {inv.id: inv.invoice_number for inv in invoices}
        rows = (
            db.session.query(Payment)
            .filter(Payment.invoice_id.in_(list(numbers)))
            .order_by(Payment.created_at.desc(), Payment.id.desc())
            .all()
        )
        for payment in rows:
            data = payment.to_dict()
            data["invoice_number"] = numbers[payment.invoice_id]
            payments.append(data)

    summary = customer.to_dict()
    summary.update(financial_service.customer_totals(customer.id))
    summary["invoices"] = [
        {
            "id": inv.id,
            "invoice_number": inv.invoice_number,
            "date": inv.date.isoformat(),
            "invoice_status": inv.invoice_status,
            "created_at": to_utc_z(inv.created_at),
            **fins[inv.id].to_dict(),
        }
        for inv in invoices
    ]
    summary["payments"] = payments
    return summary
