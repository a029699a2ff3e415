"""
Error taxonomy for the shift ledger and checkout services.

Validation kinds are raised before any write and are fully recoverable:
the caller corrects the input and retries. CheckoutFailed carries the
stage that failed so the caller can tell a rolled-back checkout from a
completed sale whose drawer posting did not land.
"""

from __future__ import annotations


class CashdeskError(Exception):
    """Base class for user-facing service errors."""

    code = "cashdesk_error"
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        payload = {"error": self.message, "code": self.code}
        payload.update(self.details)
        return payload


class InvalidAmount(CashdeskError):
    code = "invalid_amount"


class InvalidQuantity(CashdeskError):
    code = "invalid_quantity"


class InvalidDiscount(CashdeskError):
    code = "invalid_discount"


class InvalidTransactionType(CashdeskError):
    code = "invalid_transaction_type"


class InvalidPaymentMethod(CashdeskError):
    code = "invalid_payment_method"


class InvalidOrderType(CashdeskError):
    code = "invalid_order_type"


class EmptyCart(CashdeskError):
    code = "empty_cart"


class DuplicateOpenShift(CashdeskError):
    code = "duplicate_open_shift"
    status_code = 409


class ShiftNotOpen(CashdeskError):
    code = "shift_not_open"
    status_code = 409


class ShiftNotFound(CashdeskError):
    code = "shift_not_found"
    status_code = 404


class OrderNotFound(CashdeskError):
    code = "order_not_found"
    status_code = 404


class OrderNotCancellable(CashdeskError):
    code = "order_not_cancellable"
    status_code = 409


class ConcurrentUpdate(CashdeskError):
    """Another writer changed or locked the row first; nothing was written."""

    code = "concurrent_update"
    status_code = 409


class CheckoutFailed(CashdeskError):
    """
    Raised (or reported as a warning) when a checkout stage fails.

    Stages order-create, items-create and order-complete leave nothing
    behind. shift-post is only ever reported alongside a completed order.
    """

    code = "checkout_failed"
    status_code = 500

    ORDER_CREATE = "order-create"
    ITEMS_CREATE = "items-create"
    ORDER_COMPLETE = "order-complete"
    SHIFT_POST = "shift-post"

    def __init__(self, stage: str, message: str | None = None, details: dict | None = None):
        merged = {"stage": stage}
        merged.update(details or {})
        super().__init__(message or f"Checkout failed at stage {stage}", merged)
        self.stage = stage
