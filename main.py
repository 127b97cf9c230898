from __future__ import annotations
import logging
from decimal import Decimal
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from cart import CartAggregator
from catalog import SORT_OPTIONS, build_categories, filter_products, seed_discount_codes, seed_products
from database import MongoRepository, get_repository
from discounts import canonical_code, compose_order_total, validate_discount
from errors import (
    BelowMinimumOrder,
    DiscountError,
    DiscountExpired,
    DiscountInactive,
    DiscountLimitReached,
    DiscountNotFound,
    TransientLookupFailure,
)
from recommendations import Intent, rank_by_intent, recommend
from schemas import (
    AppliedDiscount,
    CartSnapshot,
    Category,
    Order,
    OrderLine,
    OrderRecord,
    OrderStatus,
    OrderTotals,
    PaymentStatus,
    Product,
)
from settings import settings

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(title="Storefront API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

ERROR_STATUS_CODES: dict[type, int] = {
    DiscountNotFound: 404,
    DiscountInactive: 400,
    DiscountExpired: 400,
    DiscountLimitReached: 400,
    BelowMinimumOrder: 400,
    TransientLookupFailure: 503,
}


@app.exception_handler(DiscountError)
async def discount_error_handler(request: Request, exc: DiscountError) -> JSONResponse:
    """Rejected codes are shown to the shopper, so every response carries a message."""
    logger.info("Discount %s rejected: %s", exc.code, exc.reason)
    content = {"detail": str(exc), "error_type": type(exc).__name__, "reason": exc.reason}
    if isinstance(exc, BelowMinimumOrder):
        content["required"] = str(exc.required)
    return JSONResponse(status_code=ERROR_STATUS_CODES.get(type(exc), 400), content=content)


# Carts are in-process state, one per caller-supplied session id.
# Only adding an item creates an entry; an emptied cart is dropped.
CARTS: dict[str, CartAggregator] = {}


def get_cart(session_id: str) -> CartAggregator:
    cart = CARTS.get(session_id)
    if cart is None:
        cart = CARTS[session_id] = CartAggregator()
    return cart


def peek_cart(session_id: str) -> CartAggregator:
    """The session's cart, or a detached empty one. Never stores anything."""
    cart = CARTS.get(session_id)
    return cart if cart is not None else CartAggregator()


def _release_if_empty(session_id: str, cart: CartAggregator) -> None:
    if len(cart) == 0:
        CARTS.pop(session_id, None)


async def _require_product(repo: MongoRepository, product_id: str) -> Product:
    product = await repo.get_product(product_id)
    if product is None:
        raise HTTPException(status_code=404, detail=f"Product not found: {product_id}")
    return product


@app.get("/")
async def root():
    return {"message": "Storefront Backend Running"}


@app.get("/test")
async def test():
    return {"ok": True}


class SeedResponse(BaseModel):
    inserted: int


@app.post("/seed", response_model=SeedResponse)
async def seed(repo: MongoRepository = Depends(get_repository)):
    inserted = await repo.seed(seed_products(), seed_discount_codes())
    return SeedResponse(inserted=inserted)


@app.get("/products", response_model=list[Product])
async def list_products(
    category: str = Query("all"),
    q: Optional[str] = Query(None),
    sort: str = Query("name"),
    repo: MongoRepository = Depends(get_repository),
):
    if sort not in SORT_OPTIONS:
        raise HTTPException(status_code=400, detail=f"Unknown sort option: {sort}")
    catalog = await repo.list_products()
    return filter_products(catalog, category=category, query=q or "", sort_by=sort)


@app.get("/categories", response_model=list[Category])
async def list_categories(repo: MongoRepository = Depends(get_repository)):
    return build_categories(await repo.list_products())


@app.get("/dashboard/{intent}", response_model=list[Product])
async def dashboard_panel(
    intent: Intent,
    limit: int = Query(settings.DASHBOARD_LIMIT, ge=0),
    repo: MongoRepository = Depends(get_repository),
):
    # An empty list means the panel is hidden
    return rank_by_intent(await repo.list_products(), intent, limit)


# Cart

class CartItemIn(BaseModel):
    product_id: str


class QuantityIn(BaseModel):
    quantity: int


@app.get("/cart/{session_id}", response_model=CartSnapshot)
async def read_cart(session_id: str):
    return peek_cart(session_id).snapshot()


@app.post("/cart/{session_id}/items", response_model=CartSnapshot)
async def add_to_cart(session_id: str, payload: CartItemIn, repo: MongoRepository = Depends(get_repository)):
    product = await _require_product(repo, payload.product_id)
    cart = get_cart(session_id)
    cart.add_item(product)
    return cart.snapshot()


@app.put("/cart/{session_id}/items/{product_id}", response_model=CartSnapshot)
async def update_cart_item(session_id: str, product_id: str, payload: QuantityIn):
    cart = peek_cart(session_id)
    cart.update_quantity(product_id, payload.quantity)
    _release_if_empty(session_id, cart)
    return cart.snapshot()


@app.delete("/cart/{session_id}/items/{product_id}", response_model=CartSnapshot)
async def remove_cart_item(session_id: str, product_id: str):
    cart = peek_cart(session_id)
    cart.remove_item(product_id)
    _release_if_empty(session_id, cart)
    return cart.snapshot()


@app.delete("/cart/{session_id}", response_model=CartSnapshot)
async def clear_cart(session_id: str):
    CARTS.pop(session_id, None)
    return CartAggregator().snapshot()


@app.get("/cart/{session_id}/recommendations", response_model=list[Product])
async def cart_recommendations(
    session_id: str,
    current_product_id: Optional[str] = Query(None),
    limit: int = Query(settings.RECOMMENDATION_LIMIT, ge=0),
    repo: MongoRepository = Depends(get_repository),
):
    catalog = await repo.list_products()
    current = None
    if current_product_id:
        current = next((p for p in catalog if p.id == current_product_id), None)
        if current is None:
            raise HTTPException(status_code=404, detail=f"Product not found: {current_product_id}")
    return recommend(catalog, peek_cart(session_id), current, limit)


# Discounts

class DiscountCheck(BaseModel):
    code: str
    order_amount: Decimal = Field(ge=0)


@app.post("/discount", response_model=AppliedDiscount)
async def check_discount(payload: DiscountCheck, repo: MongoRepository = Depends(get_repository)):
    return await validate_discount(payload.code, payload.order_amount, repo.fetch_discount_record)


class OrderOut(BaseModel):
    id: str
    status: OrderStatus
    totals: OrderTotals
    discount: Optional[AppliedDiscount] = None


@app.post("/order", response_model=OrderOut)
async def create_order(order: Order, repo: MongoRepository = Depends(get_repository)):
    if not order.items:
        raise HTTPException(status_code=400, detail="Order has no items")

    # Compute totals server-side from catalog prices
    subtotal = Decimal("0")
    lines: list[OrderLine] = []
    for item in order.items:
        product = await _require_product(repo, item.product_id)
        subtotal += product.price * item.quantity
        lines.append(OrderLine(
            product_id=product.id,
            product_name=product.name,
            unit_price=product.price,
            quantity=item.quantity,
            total_price=product.price * item.quantity,
        ))

    # The code is re-checked against the final subtotal
    applied = None
    if order.discount_code and canonical_code(order.discount_code):
        applied = await validate_discount(order.discount_code, subtotal, repo.fetch_discount_record)

    totals = compose_order_total(subtotal, applied, order.shipping_amount, settings.TAX_RATE)
    order_id = await repo.create_order({
        "items": [line.model_dump(mode="json") for line in lines],
        "discount_code": applied.code if applied else None,
        **totals.model_dump(mode="json"),
        "customer_name": order.customer_name,
        "customer_phone": order.customer_phone,
        "customer_address": order.customer_address,
        "status": OrderStatus.PENDING.value,
        "payment_status": PaymentStatus.PENDING.value,
    })
    logger.info("Created order %s (total %s)", order_id, totals.total)

    # Usage is counted only once the order is stored
    if applied is not None:
        await repo.record_discount_usage(applied.code)
    return OrderOut(id=order_id, status=OrderStatus.PENDING, totals=totals, discount=applied)


@app.get("/order/{order_id}", response_model=OrderRecord)
async def read_order(order_id: str, repo: MongoRepository = Depends(get_repository)):
    record = await repo.get_order(order_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"Order not found: {order_id}")
    return record


if __name__ == "__main__":
    import os
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", 8000)))
