# Overview: Role and outlet scoping rules; pure checks over an explicit Caller.

"""
Access Policy

WHY: Every read and write of invoices, items, payments and customers is
scoped by outlet. The caller's identity is passed explicitly as a Caller
value instead of living in ambient session state, so every rule here is a
pure function that can be tested without a request.

RULES:
- admin: may access every outlet, write item rates, delete customers and
  soft-delete invoices, record and view payments, manage users and outlets
- staff: may access exactly one outlet; item rates are forced to 0
"""

from __future__ import annotations

from dataclasses import dataclass

from laundry.catalog import ROLE_ADMIN, ROLE_STAFF, VALID_ROLES


class PermissionDeniedError(Exception):
    """Raised when the caller's role or outlet does not allow the operation."""
    pass


@dataclass(frozen=True)
class Caller:
    """
    Request context threaded into every service call.

    outlet_id is None for admins (all outlets) and required for staff.
    """
    user_id: int | None
    role: str
    outlet_id: int | None = None

    def __post_init__(self):
        if self.role not in VALID_ROLES:
            raise ValueError(f"Invalid role '{self.role}'")
        if self.role == ROLE_STAFF and self.outlet_id is None:
            raise ValueError("Staff callers must be scoped to an outlet")

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @classmethod
    def from_user(cls, user) -> "Caller":
        return cls(
            user_id=user.id,
            role=user.role,
            outlet_id=None if user.role == ROLE_ADMIN else user.outlet_id,
        )


# Entities whose deletion is admin-only
DELETABLE_ENTITIES = {"customer", "invoice"}


def can_access(caller: Caller, outlet_id: int | None) -> bool:
    if caller.is_admin:
        return True
    return outlet_id is not None and caller.outlet_id == outlet_id


def can_write_rate(caller: Caller) -> bool:
    return caller.is_admin


def can_delete(entity: str, caller: Caller) -> bool:
    """
    Deletion rights by entity kind.

    Referential checks (a customer still referenced by invoices) are a
    separate concern handled by the owning service as a ConflictError.
    """
    if entity not in DELETABLE_ENTITIES:
        return False
    return caller.is_admin


def can_manage_payments(caller: Caller) -> bool:
    return caller.is_admin


def require_access(caller: Caller, outlet_id: int | None) -> None:
    if not can_access(caller, outlet_id):
        raise PermissionDeniedError("You do not have access to this outlet")


def require_admin(caller: Caller, action: str = "perform this action") -> None:
    if not caller.is_admin:
        raise PermissionDeniedError(f"Only admins can {action}")


def require_delete(entity: str, caller: Caller) -> None:
    if not can_delete(entity, caller):
        raise PermissionDeniedError(f"Only admins can delete a {entity}")


def scope_outlet_filter(caller: Caller, requested_outlet_id: int | None) -> int | None:
    """
    Outlet filter a list query must apply.

    Admins get what they asked for (None = all outlets). Staff are pinned
    to their outlet; asking for another outlet is a permission error.
    """
    if caller.is_admin:
        return requested_outlet_id
    if requested_outlet_id is not None and requested_outlet_id != caller.outlet_id:
        raise PermissionDeniedError("You do not have access to this outlet")
    return caller.outlet_id
