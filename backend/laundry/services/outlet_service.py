# Overview: Service-layer operations for outlets; creation, listing and profile updates.

from __future__ import annotations

import logging
import re

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import InvoiceSequence, Outlet
from .access_policy import Caller, require_access, require_admin
from .concurrency import lock_for_update, run_with_retry
from laundry.validation import ConflictError, NotFoundError, ValidationError, clean_text

logger = logging.getLogger(__name__)

PREFIX_RE = re.compile(r"^[A-Z0-9]{1,8}$")


def _normalize_prefix(prefix) -> str:
    prefix = (clean_text(prefix) or "").upper()
    if not PREFIX_RE.match(prefix):
        raise ValidationError("prefix must be 1-8 letters or digits")
    return prefix


def create_outlet(
    caller: Caller,
    name: str,
    prefix: str,
    address: str | None = None,
    phone: str | None = None,
) -> Outlet:
    """
    Admin-only: register an outlet together with its invoice counter.

    The counter row starts at 0 so the first invoice is <prefix>0001.
    """
    require_admin(caller, "manage outlets")
    name = clean_text(name)
    if not name:
        raise ValidationError("name is required")
    prefix = _normalize_prefix(prefix)

    if db.session.query(Outlet.id).filter_by(prefix=prefix).first():
        raise ConflictError(f"Prefix {prefix} is already used by another outlet")

    outlet = Outlet(name=name, prefix=prefix, address=clean_text(address), phone=clean_text(phone))
    db.session.add(outlet)
    try:
        db.session.flush()
        db.session.add(InvoiceSequence(outlet_id=outlet.id, last_number=0))
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(f"Prefix {prefix} is already used by another outlet")

    logger.info("Outlet %s (%s) created by user=%s", outlet.name, outlet.prefix, caller.user_id)
    return outlet


def get_outlet(caller: Caller, outlet_id: int) -> Outlet:
    outlet = db.session.query(Outlet).filter_by(id=outlet_id).first()
    if not outlet:
        raise NotFoundError(f"Outlet {outlet_id} not found")
    require_access(caller, outlet.id)
    return outlet


def list_outlets(caller: Caller) -> list[Outlet]:
    """Admins see every outlet; staff see only their own."""
    query = db.session.query(Outlet)
    if not caller.is_admin:
        query = query.filter(Outlet.id == caller.outlet_id)
    return query.order_by(Outlet.name.asc()).all()


def update_outlet(caller: Caller, outlet_id: int, fields: dict) -> Outlet:
    """
    Admin-only: update name, address or phone.

    The prefix is fixed once invoices may have been numbered with it.
    """
    require_admin(caller, "manage outlets")
    if not isinstance(fields, dict):
        raise ValidationError("Invalid JSON payload")
    unknown = set(fields) - {"name", "address", "phone"}
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(sorted(unknown))}")
    if "name" in fields and not clean_text(fields["name"]):
        raise ValidationError("name cannot be blank")

    def _op() -> Outlet:
        outlet = lock_for_update(db.session.query(Outlet).filter_by(id=outlet_id)).first()
        if not outlet:
            raise NotFoundError(f"Outlet {outlet_id} not found")
        for key, value in fields.items():
            setattr(outlet, key, clean_text(value))
        db.session.commit()
        return outlet

    return run_with_retry(_op)
