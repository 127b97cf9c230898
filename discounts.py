from __future__ import annotations
import asyncio
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Awaitable, Callable, Optional

from pydantic import ValidationError
from pymongo.errors import PyMongoError

from cart import round_money
from errors import (
    BelowMinimumOrder,
    DiscountExpired,
    DiscountInactive,
    DiscountLimitReached,
    DiscountNotFound,
    TransientLookupFailure,
    ValidationSuperseded,
)
from schemas import AppliedDiscount, DiscountCode, DiscountType, OrderTotals

logger = logging.getLogger(__name__)

# Reads one discount record by canonical code; None when there is no such code
DiscountLookup = Callable[[str], Awaitable[Optional[DiscountCode]]]

ZERO = Decimal("0")


def canonical_code(code: str) -> str:
    return (code or "").strip().upper()


def _as_utc(value: datetime) -> datetime:
    # Naive timestamps from storage are UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def compute_discount_amount(record: DiscountCode, order_amount: Decimal) -> Decimal:
    """Discount for `order_amount`, kept within [0, order_amount]."""
    order_amount = Decimal(order_amount)
    if record.type == DiscountType.PERCENTAGE:
        amount = order_amount * record.value / 100
        if record.max_discount_amount is not None:
            amount = min(amount, record.max_discount_amount)
    else:
        amount = record.value
    return max(ZERO, min(amount, order_amount))


def check_eligibility(record: DiscountCode, order_amount: Decimal, now: Optional[datetime] = None) -> None:
    """Raise the first rule the record fails, in order: active, expiry, usage, minimum."""
    now = _as_utc(now or datetime.now(timezone.utc))
    if not record.is_active:
        raise DiscountInactive(record.code)
    if record.expires_at is not None and _as_utc(record.expires_at) < now:
        raise DiscountExpired(record.code)
    if record.usage_limit is not None and record.used_count >= record.usage_limit:
        raise DiscountLimitReached(record.code)
    if record.min_order_amount is not None and Decimal(order_amount) < record.min_order_amount:
        raise BelowMinimumOrder(record.code, record.min_order_amount)


async def validate_discount(
    code: str,
    order_amount: Decimal,
    fetch: DiscountLookup,
    now: Optional[datetime] = None,
) -> AppliedDiscount:
    """Check `code` against its stored record and price it for `order_amount`.

    Raises a DiscountError subclass on rejection. used_count is only read;
    counting a use is left to whoever places the order.
    """
    canonical = canonical_code(code)
    try:
        record = await fetch(canonical)
    except (PyMongoError, OSError, asyncio.TimeoutError) as e:
        logger.warning("Discount lookup for %s failed: %s", canonical, e)
        raise TransientLookupFailure(canonical, e) from e
    except ValidationError as e:
        # A stored record that does not parse is not a usable code
        logger.warning("Discount record for %s is malformed: %s", canonical, e)
        raise DiscountNotFound(canonical) from e
    if record is None:
        raise DiscountNotFound(canonical)

    check_eligibility(record, order_amount, now)
    amount = compute_discount_amount(record, order_amount)
    return AppliedDiscount(code=record.code, amount=amount, type=record.type)


def compose_order_total(
    subtotal: Decimal,
    applied: Optional[AppliedDiscount] = None,
    shipping: Decimal = ZERO,
    tax_rate: Decimal = ZERO,
) -> OrderTotals:
    """Tax is charged on the discounted subtotal; shipping is not taxed."""
    subtotal = Decimal(subtotal)
    discount = min(applied.amount, subtotal) if applied is not None else ZERO
    taxable = max(ZERO, subtotal - discount)
    tax = taxable * Decimal(tax_rate)
    total = taxable + Decimal(shipping) + tax
    return OrderTotals(
        subtotal=round_money(subtotal),
        discount_amount=round_money(discount),
        shipping_amount=round_money(shipping),
        tax_amount=round_money(tax),
        total=round_money(total),
    )


class DiscountSession:
    """Holds the one discount attached to a checkout.

    apply() replaces the current discount only when validation succeeds.
    Starting a new apply() or calling clear() cancels a validation still in
    flight; the cancelled call raises ValidationSuperseded and its result is
    never attached.
    """

    def __init__(self, fetch: DiscountLookup):
        self._fetch = fetch
        self._generation = 0
        self._pending: Optional[asyncio.Task] = None
        self.applied: Optional[AppliedDiscount] = None

    def _supersede(self) -> int:
        self._generation += 1
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None
        return self._generation

    async def apply(self, code: str, order_amount: Decimal, now: Optional[datetime] = None) -> AppliedDiscount:
        generation = self._supersede()
        task = asyncio.ensure_future(validate_discount(code, order_amount, self._fetch, now))
        self._pending = task
        try:
            result = await task
        except asyncio.CancelledError:
            if generation != self._generation:
                raise ValidationSuperseded(canonical_code(code)) from None
            raise
        finally:
            if self._pending is task:
                self._pending = None
        if generation != self._generation:
            raise ValidationSuperseded(result.code)
        self.applied = result
        logger.info("Applied discount %s (%s)", result.code, result.amount)
        return result

    def clear(self) -> None:
        self._supersede()
        self.applied = None

    def totals(self, subtotal: Decimal, shipping: Decimal = ZERO, tax_rate: Decimal = ZERO) -> OrderTotals:
        return compose_order_total(subtotal, self.applied, shipping, tax_rate)
