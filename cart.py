from __future__ import annotations
import threading
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterator, Optional

from schemas import CartLine, CartSnapshot, Product

CENT = Decimal("0.01")


def round_money(amount: Decimal) -> Decimal:
    """Round to currency precision. Only for presentation, never for running totals."""
    return Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


class CartAggregator:
    """Product id -> quantity for one shopping session.

    Lines keep insertion order and never share a product id. Every mutation
    holds the lock, so item_count() and total() always agree with the lines.
    """

    def __init__(self) -> None:
        self._lines: dict[str, CartLine] = {}
        self._lock = threading.RLock()

    def add_item(self, product: Product) -> CartLine:
        # Stock is not checked here; that is the caller's policy
        with self._lock:
            line = self._lines.get(product.id)
            if line is None:
                line = CartLine(product=product, quantity=1)
                self._lines[product.id] = line
            else:
                line.quantity += 1
            return line.model_copy()

    def update_quantity(self, product_id: str, quantity: int) -> Optional[CartLine]:
        with self._lock:
            line = self._lines.get(product_id)
            if line is None:
                return None
            if quantity <= 0:
                del self._lines[product_id]
                return None
            line.quantity = quantity
            return line.model_copy()

    def remove_item(self, product_id: str) -> None:
        with self._lock:
            self._lines.pop(product_id, None)

    def clear(self) -> None:
        with self._lock:
            self._lines.clear()

    def item_count(self) -> int:
        with self._lock:
            return sum(line.quantity for line in self._lines.values())

    def total(self) -> Decimal:
        with self._lock:
            return sum((line.product.price * line.quantity for line in self._lines.values()), Decimal("0"))

    def display_total(self) -> Decimal:
        return round_money(self.total())

    def contains(self, product_id: str) -> bool:
        with self._lock:
            return product_id in self._lines

    @property
    def lines(self) -> list[CartLine]:
        with self._lock:
            return [line.model_copy() for line in self._lines.values()]

    def snapshot(self) -> CartSnapshot:
        with self._lock:
            return CartSnapshot(lines=self.lines, item_count=self.item_count(), total=self.display_total())

    def __iter__(self) -> Iterator[CartLine]:
        return iter(self.lines)

    def __len__(self) -> int:
        with self._lock:
            return len(self._lines)
