from .outlets import Outlet, InvoiceSequence
from .customers import Customer
from .invoices import Invoice, InvoiceItem, Payment
from .auth import User, SessionToken

__all__ = [
    'Outlet', 'InvoiceSequence',
    'Customer',
    'Invoice', 'InvoiceItem', 'Payment',
    'User', 'SessionToken',
]
