# Overview: Per-outlet invoice number allocation.

from __future__ import annotations

import logging

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import InvoiceSequence, Outlet
from laundry.validation import NotFoundError
from .concurrency import run_with_retry

logger = logging.getLogger(__name__)

DEFAULT_PAD = 4


def format_invoice_number(prefix: str, number: int, pad: int = DEFAULT_PAD) -> str:
    return f"{prefix}{number:0{pad}d}"


def _increment(outlet_id: int) -> int | None:
    """
    Advance the counter with a single UPDATE and read it back inside the
    same transaction. The UPDATE takes the row lock, so no other writer can
    observe or advance the counter until this transaction ends.
    """
    stmt = (
        update(InvoiceSequence)
        .where(InvoiceSequence.outlet_id == outlet_id)
        .values(last_number=InvoiceSequence.last_number + 1)
    )
    result = db.session.execute(stmt)
    if not result.rowcount:
        return None
    return (
        db.session.query(InvoiceSequence.last_number)
        .filter_by(outlet_id=outlet_id)
        .scalar()
    )


def reserve_number(outlet_id: int) -> int:
    """
    Atomically allocate the next raw counter value for an outlet.

    Does NOT commit: the reservation becomes durable with the caller's
    transaction. If the caller's insert fails after this, the number is
    skipped (gaps under failure are accepted).
    """
    next_num = _increment(outlet_id)
    if next_num is not None:
        return next_num

    # First invoice for an outlet created without a sequence row
    seq = InvoiceSequence(outlet_id=outlet_id, last_number=1)
    try:
        with db.session.begin_nested():
            db.session.add(seq)
        return 1
    except IntegrityError:
        # Another writer created the row first; take the next value from it
        next_num = _increment(outlet_id)
        if next_num is None:
            raise
        return next_num


def allocate_invoice_number(outlet: Outlet) -> str:
    """
    Reserve and format the next number for an already-loaded outlet.

    Does NOT commit; used inside the invoice-creation transaction.
    """
    pad = current_app.config.get("INVOICE_NUMBER_PAD", DEFAULT_PAD)
    return format_invoice_number(outlet.prefix, reserve_number(outlet.id), pad)


def next_invoice_number(outlet_id: int) -> str:
    """
    Allocate the next invoice number for an outlet, e.g. "BD0001".

    Concurrent callers for the same outlet never receive the same number;
    counters of different outlets are independent.
    """
    def _op() -> str:
        outlet = db.session.query(Outlet).filter_by(id=outlet_id).first()
        if not outlet:
            raise NotFoundError(f"Outlet {outlet_id} not found")
        number = allocate_invoice_number(outlet)
        db.session.commit()
        return number

    number = run_with_retry(_op)
    logger.debug("Allocated invoice number %s for outlet %s", number, outlet_id)
    return number
