"""Pytest fixtures for storefront tests."""

from decimal import Decimal
from typing import Optional

import pytest

from schemas import DiscountCode, OrderRecord, Product


def make_product(
    product_id: str,
    category: str = "misc",
    price: str = "10.00",
    rating: float = 4.0,
    reviews: int = 0,
    in_stock: bool = True,
    featured: bool = False,
) -> Product:
    return Product(
        id=product_id,
        name=f"Product {product_id}",
        category=category,
        price=Decimal(price),
        rating=rating,
        reviews=reviews,
        in_stock=in_stock,
        featured=featured,
    )


class InMemoryRepository:
    """Stands in for MongoRepository in tests."""

    def __init__(self, products=None, discount_codes=None):
        self.products: list[Product] = list(products or [])
        self.discount_codes: dict[str, DiscountCode] = {d.code: d for d in discount_codes or []}
        self.orders: list[dict] = []
        self.usage_calls: list[str] = []
        self.lookups: list[str] = []
        self.fail_lookups = False

    async def list_products(self) -> list[Product]:
        return list(self.products)

    async def get_product(self, product_id: str) -> Optional[Product]:
        return next((p for p in self.products if p.id == product_id), None)

    async def fetch_discount_record(self, code: str) -> Optional[DiscountCode]:
        self.lookups.append(code)
        if self.fail_lookups:
            raise ConnectionError("discount store unavailable")
        record = self.discount_codes.get(code)
        return record.model_copy() if record else None

    async def record_discount_usage(self, code: str) -> bool:
        self.usage_calls.append(code)
        record = self.discount_codes.get(code)
        if record is None:
            return False
        if record.usage_limit is not None and record.used_count >= record.usage_limit:
            return False
        record.used_count += 1
        return True

    async def create_order(self, order: dict) -> str:
        self.orders.append(order)
        return f"order-{len(self.orders)}"

    async def get_order(self, order_id: str) -> Optional[OrderRecord]:
        for index, order in enumerate(self.orders, start=1):
            if f"order-{index}" == order_id:
                return OrderRecord(id=order_id, **order)
        return None

    async def seed(self, products, discount_codes) -> int:
        if self.products:
            return 0
        self.products = list(products)
        self.discount_codes = {d.code: d for d in discount_codes}
        return len(self.products)


@pytest.fixture
def seed_catalog():
    from catalog import seed_products

    return seed_products()


@pytest.fixture
def repository(seed_catalog):
    from catalog import seed_discount_codes

    return InMemoryRepository(seed_catalog, seed_discount_codes())


@pytest.fixture
def api_client(repository):
    """Test client wired to the in-memory repository with empty carts."""
    from fastapi.testclient import TestClient

    import main
    from database import get_repository

    main.app.dependency_overrides[get_repository] = lambda: repository
    main.CARTS.clear()
    yield TestClient(main.app)
    main.app.dependency_overrides.clear()
    main.CARTS.clear()
