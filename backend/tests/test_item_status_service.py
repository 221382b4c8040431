"""
Item status tests.

Verifies:
- Item updates roll the invoice status up in the same commit
- Staff must pass through Ready before Delivered; admin need not
- Staff cannot touch another outlet's items
- Parallel updates to different items never lose the invoice rollup
"""

import pytest

from laundry.extensions import db
from laundry.models import Invoice
from laundry.services import invoice_service
from laundry.services.access_policy import Caller, PermissionDeniedError
from laundry.services.item_status_service import set_item_status
from laundry.services.lifecycle_service import derive_invoice_status
from laundry.validation import ConflictError, NotFoundError, ValidationError

SYSTEM_ADMIN = Caller(user_id=None, role="admin")


class TestRollup:

    def test_invoice_follows_items(self, admin, make_invoice):
        invoice = make_invoice(lines=[(1, 100), (2, 100)])
        first, second = invoice.items

        set_item_status(admin, first.id, "Ready")
        assert invoice.invoice_status == "Open"

        set_item_status(admin, first.id, "Delivered")
        assert invoice.invoice_status == "Partial"

        set_item_status(admin, second.id, "Delivered")
        assert invoice.invoice_status == "Delivered"

    def test_moving_item_back_reopens_invoice(self, admin, make_invoice):
        invoice = make_invoice(lines=[(1, 100)])
        item = invoice.items[0]

        set_item_status(admin, item.id, "Delivered")
        assert invoice.invoice_status == "Delivered"

        set_item_status(admin, item.id, "Ready")
        assert invoice.invoice_status == "Open"

    def test_unknown_status_leaves_item_unchanged(self, admin, make_invoice):
        invoice = make_invoice()
        item = invoice.items[0]
        with pytest.raises(ValidationError):
            set_item_status(admin, item.id, "Lost")
        assert item.status == "Received"


class TestStaffTransitions:

    def test_staff_cannot_deliver_from_in_process(self, staff, make_invoice):
        invoice = make_invoice()
        item = invoice.items[0]
        set_item_status(staff, item.id, "In Process")

        with pytest.raises(PermissionDeniedError):
            set_item_status(staff, item.id, "Delivered")

        assert item.status == "In Process"
        assert invoice.invoice_status == "Open"

    def test_staff_delivers_after_ready(self, staff, make_invoice):
        invoice = make_invoice()
        item = invoice.items[0]
        set_item_status(staff, item.id, "Ready")
        set_item_status(staff, item.id, "Delivered")
        assert invoice.invoice_status == "Delivered"

    def test_admin_can_skip_ready(self, admin, make_invoice):
        invoice = make_invoice()
        item = invoice.items[0]
        set_item_status(admin, item.id, "In Process")
        set_item_status(admin, item.id, "Delivered")
        assert item.status == "Delivered"

    def test_staff_of_other_outlet_denied(self, other_staff, make_invoice):
        invoice = make_invoice()
        with pytest.raises(PermissionDeniedError):
            set_item_status(other_staff, invoice.items[0].id, "Ready")


class TestMissingOrDeleted:

    def test_unknown_item(self, admin, db_session):
        with pytest.raises(NotFoundError):
            set_item_status(admin, 4242, "Ready")

    def test_deleted_invoice_items_are_frozen(self, admin, make_invoice):
        invoice = make_invoice()
        item_id = invoice.items[0].id
        invoice_service.soft_delete_invoice(admin, invoice.id)
        with pytest.raises(ConflictError):
            set_item_status(admin, item_id, "Ready")


# =============================================================================
# CONCURRENCY
# =============================================================================

def _set_with_retry(caller, item_id, status, attempts=5):
    for attempt in range(attempts):
        try:
            return set_item_status(caller, item_id, status)
        except ConflictError:
            if attempt == attempts - 1:
                raise


class TestConcurrentItemUpdates:

    def test_parallel_deliveries_keep_the_rollup(self, file_app, file_invoice, run_threads):
        invoice = file_invoice(lines=[(1, 100)] * 8)
        invoice_id = invoice.id
        staff_caller = Caller(user_id=None, role="staff", outlet_id=invoice.outlet_id)
        item_ids = [item.id for item in invoice.items]

        def deliver(index):
            with file_app.app_context():
                _set_with_retry(staff_caller, item_ids[index], "Ready")
                return _set_with_retry(staff_caller, item_ids[index], "Delivered").id

        delivered, errors = run_threads(deliver, len(item_ids))

        assert not errors
        assert sorted(delivered) == sorted(item_ids)
        db.session.expire_all()
        stored = db.session.get(Invoice, invoice_id)
        assert [item.status for item in stored.items] == ["Delivered"] * 8
        assert stored.invoice_status == "Delivered"

    def test_parallel_updates_on_half_the_items(self, file_app, file_invoice, run_threads):
        invoice = file_invoice(lines=[(1, 100)] * 6)
        invoice_id = invoice.id
        item_ids = [item.id for item in invoice.items][:3]

        def deliver(index):
            with file_app.app_context():
                return _set_with_retry(SYSTEM_ADMIN, item_ids[index], "Delivered").id

        _, errors = run_threads(deliver, len(item_ids))

        assert not errors
        db.session.expire_all()
        stored = db.session.get(Invoice, invoice_id)
        statuses = [item.status for item in stored.items]
        assert statuses.count("Delivered") == 3
        assert stored.invoice_status == derive_invoice_status(statuses) == "Partial"
