from __future__ import annotations

from ..extensions import db
from laundry.catalog import (
    INVOICE_OPEN,
    ITEM_RECEIVED,
    ORDER_NORMAL,
    PAYMENT_UNPAID,
    SERVICE_SEPARATOR,
)
from laundry.time_utils import to_iso_date, to_utc_z


class Invoice(db.Model):
    """
    One customer order spanning one or more line items.

    DERIVED FIELDS:
    - invoice_status: rolled up from item statuses (lifecycle_service)
    - payment_status: cached from total_amount_paise and SUM(payments),
      refreshed in the same transaction as every payment insert

    total_amount_paise / total_pieces are a snapshot taken at creation.
    Invoices are soft-deleted (is_deleted) and never physically removed.
    """
    __tablename__ = "invoices"
    __table_args__ = (
        db.UniqueConstraint("outlet_id", "invoice_number", name="uq_invoices_outlet_number"),
        db.Index("ix_invoices_outlet_deleted_created", "outlet_id", "is_deleted", "created_at"),
        db.Index("ix_invoices_delivery_date", "delivery_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-readable number (e.g., "BD0001"), unique per outlet
    invoice_number = db.Column(db.String(32), nullable=False)

    outlet_id = db.Column(db.Integer, db.ForeignKey("outlets.id"), nullable=False, index=True)
    customer_id = db.Column(
        db.Integer,
        db.ForeignKey("customers.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    date = db.Column(db.Date, nullable=False)
    delivery_date = db.Column(db.Date, nullable=False)
    order_type = db.Column(db.String(16), nullable=False, default=ORDER_NORMAL)
    notes = db.Column(db.Text, nullable=True)
    delivery_notes = db.Column(db.Text, nullable=True)

    total_pieces = db.Column(db.Integer, nullable=False, default=0)
    total_amount_paise = db.Column(db.BigInteger, nullable=False, default=0)

    invoice_status = db.Column(db.String(16), nullable=False, default=INVOICE_OPEN, index=True)
    payment_status = db.Column(db.String(16), nullable=False, default=PAYMENT_UNPAID, index=True)

    is_deleted = db.Column(db.Boolean, nullable=False, default=False, index=True)
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True)
    deleted_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    outlet = db.relationship("Outlet", backref=db.backref("invoices", lazy=True))
    customer = db.relationship("Customer", backref=db.backref("invoices", lazy=True, passive_deletes="all"))
    items = db.relationship(
        "InvoiceItem",
        back_populates="invoice",
        lazy=True,
        order_by="InvoiceItem.id",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Invoice id={self.id} number={self.invoice_number!r} outlet_id={self.outlet_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "invoice_number": self.invoice_number,
            "outlet_id": self.outlet_id,
            "customer_id": self.customer_id,
            "date": to_iso_date(self.date),
            "delivery_date": to_iso_date(self.delivery_date),
            "order_type": self.order_type,
            "notes": self.notes,
            "delivery_notes": self.delivery_notes,
            "total_pieces": self.total_pieces,
            "total_amount_paise": self.total_amount_paise,
            "invoice_status": self.invoice_status,
            "payment_status": self.payment_status,
            "is_deleted": self.is_deleted,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }


class InvoiceItem(db.Model):
    """
    Line item of an invoice.

    rate_paise is admin-only: items created by staff always carry 0.
    total_paise = quantity * rate_paise, fixed at creation.
    """
    __tablename__ = "invoice_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_invoice_items_quantity_positive"),
        db.CheckConstraint("rate_paise >= 0", name="ck_invoice_items_rate_non_negative"),
        db.Index("ix_invoice_items_invoice_status", "invoice_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    invoice_id = db.Column(db.Integer, db.ForeignKey("invoices.id"), nullable=False, index=True)

    product_category = db.Column(db.String(16), nullable=False)
    product_type = db.Column(db.String(64), nullable=False)
    service = db.Column(db.String(255), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    rate_paise = db.Column(db.BigInteger, nullable=False, default=0)
    total_paise = db.Column(db.BigInteger, nullable=False, default=0)

    status = db.Column(db.String(16), nullable=False, default=ITEM_RECEIVED, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    invoice = db.relationship("Invoice", back_populates="items")

    @property
    def services(self) -> list[str]:
        return [s for s in self.service.split(SERVICE_SEPARATOR) if s]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "invoice_id": self.invoice_id,
            "product_category": self.product_category,
            "product_type": self.product_type,
            "service": self.service,
            "services": self.services,
            "quantity": self.quantity,
            "rate_paise": self.rate_paise,
            "total_paise": self.total_paise,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Payment(db.Model):
    """
    Money received against an invoice.

    IMMUTABLE: Append-only. There is no edit or delete path; the sum of
    an invoice's payments never exceeds its total_amount_paise.
    """
    __tablename__ = "payments"
    __table_args__ = (
        db.CheckConstraint("amount_paise > 0", name="ck_payments_amount_positive"),
        db.Index("ix_payments_invoice_created", "invoice_id", "created_at"),
        db.Index("ix_payments_payment_date", "payment_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    invoice_id = db.Column(db.Integer, db.ForeignKey("invoices.id"), nullable=False, index=True)

    amount_paise = db.Column(db.BigInteger, nullable=False)
    payment_mode = db.Column(db.String(16), nullable=False)
    payment_date = db.Column(db.Date, nullable=False)
    notes = db.Column(db.Text, nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    invoice = db.relationship("Invoice", backref=db.backref("payments", lazy=True, order_by="Payment.id"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "invoice_id": self.invoice_id,
            "amount_paise": self.amount_paise,
            "payment_mode": self.payment_mode,
            "payment_date": to_iso_date(self.payment_date),
            "notes": self.notes,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }
