# Overview: Line-item status updates with invoice status rollup in the same transaction.

from __future__ import annotations

import logging

from ..extensions import db
from ..models import InvoiceItem
from . import lifecycle_service
from .access_policy import Caller
from .concurrency import run_with_retry
from .invoice_service import get_invoice_for_caller, require_live
from laundry.validation import NotFoundError

logger = logging.getLogger(__name__)


def set_item_status(caller: Caller, item_id: int, new_status: str) -> InvoiceItem:
    """
    Change one item's fulfilment status and roll the invoice status up.

    The owning invoice is locked first, then the transition rule is checked
    against the item's current (locked) status, the item is written and
    invoice_status is recomputed from the full item set. Both writes commit
    together; on any failure neither is visible.
    """
    new_status = lifecycle_service.validate_item_status(new_status)

    def _op() -> InvoiceItem:
        item = db.session.query(InvoiceItem).filter_by(id=item_id).first()
        if not item:
            raise NotFoundError(f"Item {item_id} not found")

        invoice = get_invoice_for_caller(caller, item.invoice_id, lock=True, include_deleted=True)
        require_live(invoice)
        db.session.refresh(item)

        previous = item.status
        lifecycle_service.check_item_transition(caller, previous, new_status)

        item.status = new_status
        lifecycle_service.refresh_invoice_status(invoice)

        db.session.commit()
        logger.info(
            "Item %s on invoice %s: %s -> %s (invoice now %s) by user=%s",
            item.id, invoice.invoice_number, previous, new_status,
            invoice.invoice_status, caller.user_id,
        )
        return item

    return run_with_retry(_op)
