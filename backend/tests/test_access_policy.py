"""
Access policy tests.

Verifies:
- Admin reaches every outlet; staff only their own
- Rates are admin-only; deletions are admin-only
- List filters pin staff to their outlet
"""

import pytest

from laundry.services.access_policy import (
    Caller,
    PermissionDeniedError,
    can_access,
    can_delete,
    can_manage_payments,
    can_write_rate,
    require_access,
    require_delete,
    scope_outlet_filter,
)

ADMIN = Caller(user_id=1, role="admin")
STAFF = Caller(user_id=2, role="staff", outlet_id=10)


class TestCaller:

    def test_staff_requires_outlet(self):
        with pytest.raises(ValueError):
            Caller(user_id=3, role="staff")

    def test_unknown_role_rejected(self):
        with pytest.raises(ValueError):
            Caller(user_id=3, role="manager", outlet_id=1)


class TestOutletAccess:

    def test_admin_accesses_any_outlet(self):
        assert can_access(ADMIN, 10)
        assert can_access(ADMIN, 99)

    def test_staff_accesses_only_own_outlet(self):
        assert can_access(STAFF, 10)
        assert not can_access(STAFF, 11)
        assert not can_access(STAFF, None)

    def test_require_access_raises_for_foreign_outlet(self):
        with pytest.raises(PermissionDeniedError):
            require_access(STAFF, 11)


class TestRolePrivileges:

    def test_rates_are_admin_only(self):
        assert can_write_rate(ADMIN)
        assert not can_write_rate(STAFF)

    @pytest.mark.parametrize("entity", ["customer", "invoice"])
    def test_deletion_is_admin_only(self, entity):
        assert can_delete(entity, ADMIN)
        assert not can_delete(entity, STAFF)
        with pytest.raises(PermissionDeniedError):
            require_delete(entity, STAFF)

    def test_unknown_entity_is_never_deletable(self):
        assert not can_delete("payment", ADMIN)

    def test_payments_are_admin_only(self):
        assert can_manage_payments(ADMIN)
        assert not can_manage_payments(STAFF)


class TestScopeOutletFilter:

    def test_admin_filter_passes_through(self):
        assert scope_outlet_filter(ADMIN, None) is None
        assert scope_outlet_filter(ADMIN, 42) == 42

    def test_staff_is_pinned_to_own_outlet(self):
        assert scope_outlet_filter(STAFF, None) == 10
        assert scope_outlet_filter(STAFF, 10) == 10

    def test_staff_asking_for_other_outlet_is_denied(self):
        with pytest.raises(PermissionDeniedError):
            scope_outlet_filter(STAFF, 11)
