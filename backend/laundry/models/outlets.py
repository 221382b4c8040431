from __future__ import annotations

from ..extensions import db
from laundry.time_utils import to_utc_z


class Outlet(db.Model):
    """
    Physical branch: the unit of staff scoping and invoice-number namespacing.

    The prefix is prepended to every invoice number issued by the outlet
    (e.g. "BD" -> "BD0001"), so it is unique across outlets.
    """
    __tablename__ = "outlets"
    __table_args__ = (
        db.UniqueConstraint("prefix", name="uq_outlets_prefix"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    prefix = db.Column(db.String(8), nullable=False)
    address = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Outlet id={self.id} name={self.name!r} prefix={self.prefix!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "prefix": self.prefix,
            "address": self.address,
            "phone": self.phone,
            "created_at": to_utc_z(self.created_at),
        }


class InvoiceSequence(db.Model):
    """
    Atomic per-outlet invoice counter.

    WHY: Two concurrent invoice creations for the same outlet must never
    receive the same number. The counter is advanced with a single
    UPDATE ... SET last_number = last_number + 1 under the row lock.
    """
    __tablename__ = "invoice_sequences"
    __table_args__ = (
        db.UniqueConstraint("outlet_id", name="uq_invoice_sequences_outlet"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    outlet_id = db.Column(db.Integer, db.ForeignKey("outlets.id"), nullable=False, index=True)
    last_number = db.Column(db.Integer, nullable=False, default=0)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    outlet = db.relationship("Outlet", backref=db.backref("invoice_sequence", uselist=False, lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "outlet_id": self.outlet_id,
            "last_number": self.last_number,
            "updated_at": to_utc_z(self.updated_at),
        }
