# salesdesk/constants/error_codes.py

from enum import Enum


class ErrorCode(str, Enum):
    # ---------------- GENERIC ----------------
    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNAUTHORIZED = "UNAUTHORIZED"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    INTERNAL_ERROR = "INTERNAL_ERROR"

    # ---------------- COLLABORATORS ----------------
    NETWORK_ERROR = "NETWORK_ERROR"
    TIMEOUT = "TIMEOUT"

    # ---------------- WORKFLOW ----------------
    INVALID_TRANSITION = "INVALID_TRANSITION"
    ALREADY_IN_TARGET_STATE = "ALREADY_IN_TARGET_STATE"

    # ---------------- QUOTATIONS ----------------
    QUOTATION_NOT_FOUND = "QUOTATION_NOT_FOUND"
    QUOTATION_INVALID_STATE = "QUOTATION_INVALID_STATE"
    QUOTATION_VERSION_CONFLICT = "QUOTATION_VERSION_CONFLICT"
    QUOTATION_CANNOT_DELETE = "QUOTATION_CANNOT_DELETE"
    CUSTOMER_NOT_FOUND = "CUSTOMER_NOT_FOUND"

    # ---------------- INVOICES ----------------
    INVOICE_ALREADY_EXISTS = "INVOICE_ALREADY_EXISTS"
    INVOICE_NOT_ALLOWED = "INVOICE_NOT_ALLOWED"

    # ---------------- CATALOG ----------------
    CATALOG_ITEM_NOT_FOUND = "CATALOG_ITEM_NOT_FOUND"
    CURRENCY_NOT_SUPPORTED = "CURRENCY_NOT_SUPPORTED"

    # ---------------- CART SESSIONS ----------------
    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
    STALE_CURRENCY_STATE = "STALE_CURRENCY_STATE"
    CART_LOCKED = "CART_LOCKED"
    NO_PENDING_CHANGE = "NO_PENDING_CHANGE"
