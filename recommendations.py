"""
Product recommendations for the storefront.

recommend() builds the "You might also like" strip: candidates come from a
fixed sequence of tiers, each contributing at most TIER_CAP products, and the
combined list is cut to `limit` only at the end. rank_by_intent() feeds the
single-criterion dashboard panels.

Both are pure functions of their inputs. Every ordering is either catalog
order or a stable sort over catalog order, so the output is reproducible.
"""
from __future__ import annotations
from enum import Enum
from typing import Callable, Iterable, Optional, Sequence

from schemas import CartLine, Product

TIER_CAP = 2
HIGH_RATING = 4.5


class Intent(str, Enum):
    TRENDING = "trending"
    POPULAR = "popular"
    FEATURED_PICK = "featured_pick"


def _same_category(categories: set[str]) -> Callable[[list[Product]], list[Product]]:
    def tier(candidates: list[Product]) -> list[Product]:
        return [p for p in candidates if p.category in categories]
    return tier


def _featured(candidates: list[Product]) -> list[Product]:
    return [p for p in candidates if p.featured]


def _high_rated(candidates: list[Product]) -> list[Product]:
    rated = [p for p in candidates if p.rating >= HIGH_RATING]
    return sorted(rated, key=lambda p: p.rating, reverse=True)


def _most_reviewed(candidates: list[Product]) -> list[Product]:
    return sorted(candidates, key=lambda p: p.reviews, reverse=True)


def recommend(
    catalog: Sequence[Product],
    cart: Iterable[CartLine],
    current_product: Optional[Product] = None,
    limit: int = 4,
) -> list[Product]:
    cart_lines = list(cart)
    in_cart = {line.product.id for line in cart_lines}
    current_id = current_product.id if current_product is not None else None

    available = [
        p for p in catalog
        if p.id != current_id and p.id not in in_cart and p.in_stock
    ]

    tiers: list[Callable[[list[Product]], list[Product]]] = []
    if current_product is not None:
        tiers.append(_same_category({current_product.category}))
    if cart_lines:
        tiers.append(_same_category({line.product.category for line in cart_lines}))
    tiers += [_featured, _high_rated, _most_reviewed]

    chosen: list[Product] = []
    seen: set[str] = set()
    for tier in tiers:
        remaining = [p for p in available if p.id not in seen]
        for product in tier(remaining)[:TIER_CAP]:
            chosen.append(product)
            seen.add(product.id)

    # truncate only once every tier has had its turn
    return chosen[:max(limit, 0)]


def rank_by_intent(catalog: Sequence[Product], intent: Intent, limit: int = 4) -> list[Product]:
    in_stock = [p for p in catalog if p.in_stock]
    if intent == Intent.TRENDING:
        ranked = sorted(in_stock, key=lambda p: p.rating * p.reviews, reverse=True)
    elif intent == Intent.POPULAR:
        ranked = sorted(in_stock, key=lambda p: p.reviews, reverse=True)
    elif intent == Intent.FEATURED_PICK:
        ranked = [p for p in in_stock if p.featured]
    else:
        raise ValueError(f"Unknown intent: {intent}")
    return ranked[:max(limit, 0)]
