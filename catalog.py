from __future__ import annotations
from typing import Sequence

from schemas import Category, CategoryIcon, DiscountCode, Product

# Fixed category catalog: id -> (display name, icon)
CATEGORIES: dict[str, tuple[str, CategoryIcon]] = {
    "electronics": ("Electronics", CategoryIcon.SMARTPHONE),
    "fashion": ("Fashion", CategoryIcon.SHIRT),
    "shoes": ("Shoes", CategoryIcon.FOOTPRINTS),
    "home": ("Home & Garden", CategoryIcon.HOME),
    "sports": ("Sports", CategoryIcon.DUMBBELL),
    "books": ("Books", CategoryIcon.BOOK),
    "beauty": ("Beauty", CategoryIcon.SPARKLES),
}

ALL = "all"
SORT_OPTIONS = ("name", "price-low", "price-high", "rating")


def icon_for(category_id: str) -> CategoryIcon:
    entry = CATEGORIES.get(category_id)
    return entry[1] if entry else CategoryIcon.GRID


def build_categories(catalog: Sequence[Product]) -> list[Category]:
    counts: dict[str, int] = {}
    for product in catalog:
        counts[product.category] = counts.get(product.category, 0) + 1
    categories = [
        Category(id=cid, name=name, icon=icon, count=counts.get(cid, 0))
        for cid, (name, icon) in CATEGORIES.items()
    ]
    # Ids outside the fixed set still get listed, after the known ones
    for cid, count in counts.items():
        if cid not in CATEGORIES:
            categories.append(Category(id=cid, name=cid.title(), icon=icon_for(cid), count=count))
    return categories


def filter_products(
    catalog: Sequence[Product],
    category: str = ALL,
    query: str = "",
    sort_by: str = "name",
) -> list[Product]:
    """Category filter, then case-insensitive search, then sort. Input is left untouched."""
    filtered = list(catalog)
    if category and category != ALL:
        filtered = [p for p in filtered if p.category == category]

    q = (query or "").strip().lower()
    if q:
        filtered = [
            p for p in filtered
            if q in p.name.lower() or q in (p.description or "").lower() or q in p.category.lower()
        ]

    if sort_by == "price-low":
        return sorted(filtered, key=lambda p: p.price)
    if sort_by == "price-high":
        return sorted(filtered, key=lambda p: p.price, reverse=True)
    if sort_by == "rating":
        return sorted(filtered, key=lambda p: p.rating, reverse=True)
    return sorted(filtered, key=lambda p: p.name.lower())


# Seed data: a small mixed catalog for a fresh database
SEED_PRODUCTS: list[dict] = [
    {"id": "p-100", "name": "Wireless Noise-Cancelling Headphones", "category": "electronics", "price": "199.99", "original_price": "249.99", "rating": 4.8, "reviews": 1247, "in_stock": True, "featured": True, "description": "Over-ear headphones with 30 hours of battery life"},
    {"id": "p-101", "name": "Smart Fitness Watch", "category": "electronics", "price": "149.00", "rating": 4.6, "reviews": 892, "in_stock": True, "description": "Heart rate, GPS and sleep tracking"},
    {"id": "p-102", "name": "Portable Bluetooth Speaker", "category": "electronics", "price": "59.50", "rating": 4.2, "reviews": 2031, "in_stock": False, "description": "Waterproof speaker with deep bass"},
    {"id": "p-200", "name": "Organic Cotton T-Shirt", "category": "fashion", "price": "24.00", "original_price": "32.00", "rating": 4.4, "reviews": 356, "in_stock": True, "description": "Soft everyday tee"},
    {"id": "p-201", "name": "Leather Crossbody Bag", "category": "fashion", "price": "89.00", "rating": 4.7, "reviews": 214, "in_stock": True, "featured": True, "description": "Full-grain leather with adjustable strap"},
    {"id": "p-300", "name": "Trail Running Shoes", "category": "shoes", "price": "120.00", "rating": 4.5, "reviews": 678, "in_stock": True, "description": "Grippy outsole for rough terrain"},
    {"id": "p-400", "name": "Ceramic Pour-Over Set", "category": "home", "price": "42.00", "rating": 4.9, "reviews": 143, "in_stock": True, "featured": True, "description": "Hand-glazed dripper and carafe"},
    {"id": "p-401", "name": "Linen Throw Blanket", "category": "home", "price": "65.00", "rating": 4.3, "reviews": 97, "in_stock": True, "description": "Stonewashed linen, 130 x 170 cm"},
    {"id": "p-500", "name": "Adjustable Dumbbell Pair", "category": "sports", "price": "229.00", "rating": 4.6, "reviews": 512, "in_stock": True, "description": "2 to 24 kg per hand"},
    {"id": "p-600", "name": "The Pragmatic Kitchen", "category": "books", "price": "28.00", "rating": 4.1, "reviews": 61, "in_stock": True, "description": "Weeknight recipes with few ingredients"},
    {"id": "p-700", "name": "Vitamin C Serum", "category": "beauty", "price": "34.00", "rating": 4.4, "reviews": 1530, "in_stock": True, "description": "Brightening serum, 30 ml"},
]

SEED_DISCOUNT_CODES: list[dict] = [
    {"code": "WELCOME10", "type": "percentage", "value": "10"},
    {"code": "SAVE20", "type": "percentage", "value": "20", "min_order_amount": "50", "max_discount_amount": "15"},
    {"code": "FIVEOFF", "type": "fixed", "value": "5", "usage_limit": 1000},
]


def seed_products() -> list[Product]:
    return [Product(**p) for p in SEED_PRODUCTS]


def seed_discount_codes() -> list[DiscountCode]:
    return [DiscountCode(**d) for d in SEED_DISCOUNT_CODES]
