"""
Outlet and dashboard tests.

Verifies:
- Outlet creation seeds the invoice counter; prefixes are unique
- Staff see only their own outlet
- Dashboard counters are outlet-scoped; money counters are admin-only
"""

from datetime import timedelta

import pytest

from laundry.models import InvoiceSequence
from laundry.services import outlet_service, payment_service, reporting_service
from laundry.services.access_policy import PermissionDeniedError
from laundry.services.item_status_service import set_item_status
from laundry.time_utils import today
from laundry.validation import ConflictError, ValidationError


class TestOutlets:

    def test_create_seeds_sequence(self, db_session, admin):
        outlet = outlet_service.create_outlet(admin, name="Juhu", prefix="jh")
        assert outlet.prefix == "JH"
        seq = db_session.query(InvoiceSequence).filter_by(outlet_id=outlet.id).one()
        assert seq.last_number == 0

    def test_duplicate_prefix(self, admin, outlet_bd):
        with pytest.raises(ConflictError):
            outlet_service.create_outlet(admin, name="Other", prefix="BD")

    @pytest.mark.parametrize("prefix", ["", "B-D", "TOOLONGPREFIX"])
    def test_invalid_prefix(self, admin, prefix):
        with pytest.raises(ValidationError):
            outlet_service.create_outlet(admin, name="X", prefix=prefix)

    def test_staff_cannot_create(self, staff):
        with pytest.raises(PermissionDeniedError):
            outlet_service.create_outlet(staff, name="X", prefix="XX")

    def test_staff_lists_own_outlet_only(self, staff, outlet_bd, outlet_second):
        assert [o.id for o in outlet_service.list_outlets(staff)] == [outlet_bd.id]

    def test_update_keeps_prefix(self, admin, outlet_bd):
        outlet_service.update_outlet(admin, outlet_bd.id, {"name": "Bandra West", "phone": "022-1234"})
        assert outlet_bd.name == "Bandra West"
        with pytest.raises(ValidationError):
            outlet_service.update_outlet(admin, outlet_bd.id, {"prefix": "ZZ"})


class TestDashboard:

    def test_counters(self, admin, staff, make_invoice):
        day = today()
        first = make_invoice(lines=[(2, 1000)])
        second = make_invoice(lines=[(3, 500)])

        set_item_status(admin, first.items[0].id, "In Process")
        set_item_status(admin, second.items[0].id, "Ready")
        payment_service.add_payment(admin, first.id, 500, "Cash")

        staff_view = reporting_service.dashboard_summary(staff, today=day)
        assert staff_view["invoices_today"] == 2
        assert staff_view["pieces_in_process"] == 2
        assert staff_view["pieces_ready"] == 3
        assert "outstanding_paise" not in staff_view

        admin_view = reporting_service.dashboard_summary(admin, today=day)
        assert admin_view["billed_today_paise"] == 3500
        assert admin_view["collected_today_paise"] == 500
        assert admin_view["outstanding_paise"] == 3000

    def test_due_and_overdue(self, admin, make_invoice):
        make_invoice()  # due in three days
        later = today() + timedelta(days=3)
        assert reporting_service.dashboard_summary(admin, today=later)["deliveries_due_today"] == 1
        summary = reporting_service.dashboard_summary(admin, today=later + timedelta(days=1))
        assert summary["overdue_deliveries"] == 1
        assert summary["deliveries_due_today"] == 0

    def test_other_outlet_sees_nothing(self, other_staff, make_invoice):
        make_invoice()
        summary = reporting_service.dashboard_summary(other_staff)
        assert summary["invoices_today"] == 0
        assert summary["pieces_in_process"] == 0
