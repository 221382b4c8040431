# Overview: Closed value sets for roles, statuses, categories, services and payment modes.

"""
Every enumerated field is a closed set validated at the service boundary.
The string values are the persisted and wire representations.
"""

from __future__ import annotations

from typing import Literal


# =============================================================================
# ROLES
# =============================================================================

ROLE_ADMIN = "admin"
ROLE_STAFF = "staff"

VALID_ROLES = (ROLE_ADMIN, ROLE_STAFF)
Role = Literal["admin", "staff"]


# =============================================================================
# ITEM STATUS (per line item, in workflow order)
# =============================================================================

ITEM_RECEIVED = "Received"
ITEM_IN_PROCESS = "In Process"
ITEM_READY = "Ready"
ITEM_DELIVERED = "Delivered"

ITEM_STATUSES = (ITEM_RECEIVED, ITEM_IN_PROCESS, ITEM_READY, ITEM_DELIVERED)
ItemStatus = Literal["Received", "In Process", "Ready", "Delivered"]


# =============================================================================
# INVOICE STATUS (rolled up from item statuses)
# =============================================================================

INVOICE_OPEN = "Open"
INVOICE_PARTIAL = "Partial"
INVOICE_DELIVERED = "Delivered"

INVOICE_STATUSES = (INVOICE_OPEN, INVOICE_PARTIAL, INVOICE_DELIVERED)
InvoiceStatus = Literal["Open", "Partial", "Delivered"]


# =============================================================================
# PAYMENT STATUS (derived from total and payments)
# =============================================================================

PAYMENT_UNPAID = "Unpaid"
PAYMENT_PARTIAL = "Partially Paid"
PAYMENT_PAID = "Paid"

PAYMENT_STATUSES = (PAYMENT_UNPAID, PAYMENT_PARTIAL, PAYMENT_PAID)
PaymentStatus = Literal["Unpaid", "Partially Paid", "Paid"]


# =============================================================================
# ORDERS AND PAYMENTS
# =============================================================================

ORDER_NORMAL = "Normal"
ORDER_URGENT = "Urgent"
ORDER_TYPES = (ORDER_NORMAL, ORDER_URGENT)

MODE_CASH = "Cash"
MODE_UPI = "UPI"
MODE_BANK = "Bank"
PAYMENT_MODES = (MODE_CASH, MODE_UPI, MODE_BANK)


# =============================================================================
# PRODUCTS AND SERVICES
# =============================================================================

CATEGORY_SAREE = "Saree"
CATEGORY_GARMENT = "Garment"
PRODUCT_CATEGORIES = (CATEGORY_SAREE, CATEGORY_GARMENT)

PRODUCT_TYPES = {
    CATEGORY_SAREE: (
        "Silk", "Cotton", "Banarasi", "South Silk", "Rajkot Patola", "Other",
    ),
    CATEGORY_GARMENT: (
        "Shirt", "Pant", "Blazer", "Blouse", "Lehenga", "Woolen", "Top",
        "Kurta", "Salwar", "Dupatta", "Gown", "Jacket", "Other",
    ),
}

SERVICES = ("Wash/Press", "Polish", "Tassel", "Fall-Beading", "Net", "Dry-Cleaning", "Other")

# Multi-select services are persisted comma-joined in selection order
SERVICE_SEPARATOR = ", "
