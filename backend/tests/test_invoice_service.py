"""
Invoice service tests.

Verifies:
- Totals are computed from items; staff rates are forced to 0
- Input validation (catalog, quantities, dates, customer ownership)
- Listing, search, detail visibility and soft delete
"""

from datetime import timedelta

import pytest

from laundry.models import Customer, Invoice
from laundry.services import invoice_service, payment_service
from laundry.services.access_policy import PermissionDeniedError
from laundry.time_utils import today
from laundry.validation import ConflictError, NotFoundError, ValidationError


def _item(**overrides):
    item = {
        "product_category": "Garment",
        "product_type": "Blazer",
        "services": ["Dry-Cleaning"],
        "quantity": 2,
        "rate_paise": 25000,
    }
    item.update(overrides)
    return item


def _create(caller, outlet, customer, items, **kwargs):
    kwargs.setdefault("delivery_date", today() + timedelta(days=2))
    return invoice_service.create_invoice(
        caller, outlet_id=outlet.id, customer_id=customer.id, items=items, **kwargs
    )


class TestCreateInvoice:

    def test_totals_from_items(self, admin, outlet_bd, customer):
        invoice = _create(admin, outlet_bd, customer, [
            _item(),
            _item(product_category="Saree", product_type="Banarasi", services=["Polish", "Tassel"], quantity=1, rate_paise=40000),
        ])
        assert invoice.total_pieces == 3
        assert invoice.total_amount_paise == 2 * 25000 + 40000
        assert invoice.invoice_status == "Open"
        assert invoice.payment_status == "Unpaid"
        assert [i.status for i in invoice.items] == ["Received", "Received"]
        assert invoice.items[1].services == ["Polish", "Tassel"]

    def test_staff_rate_forced_to_zero(self, staff, outlet_bd, customer):
        invoice = _create(staff, outlet_bd, customer, [_item(rate_paise=99900)])
        assert invoice.items[0].rate_paise == 0
        assert invoice.items[0].total_paise == 0
        assert invoice.total_amount_paise == 0
        assert invoice.created_by_user_id == staff.user_id

    def test_staff_cannot_create_for_other_outlet(self, other_staff, outlet_bd, customer):
        with pytest.raises(PermissionDeniedError):
            _create(other_staff, outlet_bd, customer, [_item()])

    def test_customer_must_belong_to_outlet(self, admin, outlet_second, customer):
        with pytest.raises(ValidationError, match="different outlet"):
            _create(admin, outlet_second, customer, [_item()])

    def test_product_type_must_match_category(self, admin, outlet_bd, customer):
        with pytest.raises(ValidationError):
            _create(admin, outlet_bd, customer, [_item(product_category="Saree", product_type="Shirt")])

    @pytest.mark.parametrize("services", [[], ["Ironing"], None])
    def test_services_validated(self, admin, outlet_bd, customer, services):
        with pytest.raises(ValidationError):
            _create(admin, outlet_bd, customer, [_item(services=services)])

    @pytest.mark.parametrize("quantity", [0, -1, 10_001, None])
    def test_quantity_validated(self, admin, outlet_bd, customer, quantity):
        with pytest.raises(ValidationError):
            _create(admin, outlet_bd, customer, [_item(quantity=quantity)])

    def test_admin_rate_required(self, admin, outlet_bd, customer):
        with pytest.raises(ValidationError):
            _create(admin, outlet_bd, customer, [_item(rate_paise=None)])

    def test_items_required(self, admin, outlet_bd, customer):
        with pytest.raises(ValidationError):
            _create(admin, outlet_bd, customer, [])

    def test_delivery_before_invoice_date_rejected(self, admin, outlet_bd, customer):
        with pytest.raises(ValidationError):
            _create(admin, outlet_bd, customer, [_item()], delivery_date=today() - timedelta(days=1))

    def test_invalid_order_type(self, admin, outlet_bd, customer):
        with pytest.raises(ValidationError):
            _create(admin, outlet_bd, customer, [_item()], order_type="Express")

    def test_failed_create_leaves_nothing(self, db_session, admin, outlet_bd, customer):
        with pytest.raises(NotFoundError):
            invoice_service.create_invoice(
                admin, outlet_id=outlet_bd.id, customer_id=9999,
                delivery_date=today(), items=[_item()],
            )
        assert db_session.query(Invoice).count() == 0


class TestReads:

    def test_list_scoped_and_enriched(self, admin, staff, other_staff, make_invoice):
        invoice = make_invoice(lines=[(1, 1000)])
        payment_service.add_payment(admin, invoice.id, 250, "Cash")

        rows = invoice_service.list_invoices(staff)
        assert len(rows) == 1
        assert rows[0]["invoice_number"] == "BD0001"
        assert rows[0]["total_paid_paise"] == 250
        assert rows[0]["total_due_paise"] == 750
        assert rows[0]["customer_name"] == "Asha Rao"

        assert invoice_service.list_invoices(other_staff) == []

    def test_search_by_number_name_and_phone(self, db_session, admin, outlet_bd, customer, make_invoice):
        make_invoice()
        other = Customer(outlet_id=outlet_bd.id, name="Vikram", phone="9000000002")
        db_session.add(other)
        db_session.commit()
        _create(admin, outlet_bd, other, [_item()])

        assert [r["invoice_number"] for r in invoice_service.list_invoices(admin, search="BD0002")] == ["BD0002"]
        assert [r["invoice_number"] for r in invoice_service.list_invoices(admin, search="asha")] == ["BD0001"]
        assert [r["invoice_number"] for r in invoice_service.list_invoices(admin, search="90000")] == ["BD0002"]

    def test_newest_first_with_paging(self, admin, make_invoice):
        for _ in range(3):
            make_invoice()
        rows = invoice_service.list_invoices(admin, limit=2)
        assert [r["invoice_number"] for r in rows] == ["BD0003", "BD0002"]
        rows = invoice_service.list_invoices(admin, limit=2, offset=2)
        assert [r["invoice_number"] for r in rows] == ["BD0001"]

    def test_detail_payments_admin_only(self, admin, staff, make_invoice):
        invoice = make_invoice(lines=[(1, 1000)])
        payment_service.add_payment(admin, invoice.id, 100, "UPI")

        admin_view = invoice_service.get_invoice_detail(admin, invoice.id)
        staff_view = invoice_service.get_invoice_detail(staff, invoice.id)

        assert len(admin_view["payments"]) == 1
        assert "payments" not in staff_view
        assert staff_view["items"][0]["product_type"] == "Silk"
        assert staff_view["outlet"]["prefix"] == "BD"

    def test_detail_denied_for_other_outlet(self, other_staff, make_invoice):
        invoice = make_invoice()
        with pytest.raises(PermissionDeniedError):
            invoice_service.get_invoice_detail(other_staff, invoice.id)


class TestUpdatesAndDelete:

    def test_delivery_notes(self, staff, make_invoice):
        invoice = make_invoice()
        invoice_service.update_delivery_notes(staff, invoice.id, "Handed to driver")
        assert invoice.delivery_notes == "Handed to driver"
        invoice_service.update_delivery_notes(staff, invoice.id, "")
        assert invoice.delivery_notes == ""

    def test_delivery_notes_null_rejected(self, staff, make_invoice):
        invoice = make_invoice()
        with pytest.raises(ValidationError):
            invoice_service.update_delivery_notes(staff, invoice.id, None)

    def test_soft_delete_hides_invoice(self, db_session, admin, make_invoice):
        invoice = make_invoice()
        invoice_service.soft_delete_invoice(admin, invoice.id)

        assert db_session.query(Invoice).count() == 1
        assert invoice_service.list_invoices(admin) == []
        with pytest.raises(NotFoundError):
            invoice_service.get_invoice_detail(admin, invoice.id)
        with pytest.raises(ConflictError):
            invoice_service.soft_delete_invoice(admin, invoice.id)

    def test_staff_cannot_delete(self, staff, make_invoice):
        invoice = make_invoice()
        with pytest.raises(PermissionDeniedError):
            invoice_service.soft_delete_invoice(staff, invoice.id)
