"""Exceptions raised by the storefront pricing rules."""
from __future__ import annotations
from decimal import Decimal
from typing import Optional


class StorefrontError(Exception):
    """Base exception for all storefront errors."""

    pass


class DiscountError(StorefrontError):
    """A discount code was rejected. Always recoverable and shown to the shopper."""

    reason = "invalid"

    def __init__(self, code: str, message: str):
        self.code = code
        super().__init__(message)


class DiscountNotFound(DiscountError):
    reason = "not_found"

    def __init__(self, code: str):
        super().__init__(code, "Invalid discount code")


class DiscountInactive(DiscountError):
    reason = "inactive"

    def __init__(self, code: str):
        super().__init__(code, f"Discount code {code} is no longer active")


class DiscountExpired(DiscountError):
    reason = "expired"

    def __init__(self, code: str):
        super().__init__(code, "Discount code has expired")


class DiscountLimitReached(DiscountError):
    reason = "limit_reached"

    def __init__(self, code: str):
        super().__init__(code, "Discount code usage limit reached")


class BelowMinimumOrder(DiscountError):
    """Raised when the order amount is under the code's minimum."""

    reason = "below_minimum"

    def __init__(self, code: str, required: Decimal):
        self.required = required
        super().__init__(code, f"Minimum order amount of ${required} required")


class TransientLookupFailure(DiscountError):
    """Raised when the discount record could not be read."""

    reason = "lookup_failed"

    def __init__(self, code: str, cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__(code, "Failed to apply discount code")


class ValidationSuperseded(DiscountError):
    """Raised when a newer apply call replaced this one before it finished."""

    reason = "superseded"

    def __init__(self, code: str):
        super().__init__(code, f"Validation of {code} was superseded")
