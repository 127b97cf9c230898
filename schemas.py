from __future__ import annotations
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator

# Each stored class => one collection, lowercased name (product, discount_code, order)


class Product(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    category: str
    description: Optional[str] = None
    price: Decimal = Field(ge=0)
    original_price: Optional[Decimal] = Field(default=None, ge=0)
    image: Optional[str] = None
    rating: float = Field(default=0, ge=0, le=5)
    reviews: int = Field(default=0, ge=0)
    in_stock: bool = True
    featured: bool = False

    @model_validator(mode="after")
    def _check_original_price(self) -> "Product":
        if self.original_price is not None and self.original_price < self.price:
            raise ValueError("original_price must not be lower than price")
        return self


class CartLine(BaseModel):
    product: Product
    quantity: int = Field(ge=1, default=1)

    @computed_field
    @property
    def line_total(self) -> Decimal:
        return self.product.price * self.quantity


class CartSnapshot(BaseModel):
    """What the cart looks like to a renderer or a persistence layer."""

    lines: list[CartLine]
    item_count: int
    total: Decimal


class DiscountType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class DiscountCode(BaseModel):
    code: str
    type: DiscountType
    value: Decimal = Field(ge=0)
    min_order_amount: Optional[Decimal] = None
    max_discount_amount: Optional[Decimal] = None
    usage_limit: Optional[int] = Field(default=None, ge=0)
    used_count: int = Field(default=0, ge=0)
    expires_at: Optional[datetime] = None
    is_active: bool = True

    @field_validator("code")
    @classmethod
    def _canonical_code(cls, v: str) -> str:
        return v.strip().upper()


class AppliedDiscount(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str
    amount: Decimal = Field(ge=0)
    type: DiscountType


class OrderTotals(BaseModel):
    subtotal: Decimal
    discount_amount: Decimal = Decimal("0.00")
    shipping_amount: Decimal = Decimal("0.00")
    tax_amount: Decimal = Decimal("0.00")
    total: Decimal


class CategoryIcon(str, Enum):
    GRID = "grid"
    SMARTPHONE = "smartphone"
    SHIRT = "shirt"
    HOME = "home"
    DUMBBELL = "dumbbell"
    BOOK = "book"
    SPARKLES = "sparkles"
    FOOTPRINTS = "footprints"


class Category(BaseModel):
    id: str
    name: str
    icon: CategoryIcon
    count: int = 0


class CartItem(BaseModel):
    product_id: str
    quantity: int = Field(ge=1, default=1)


class Order(BaseModel):
    items: list[CartItem]
    discount_code: Optional[str] = None
    shipping_amount: Decimal = Field(ge=0, default=Decimal("0"))
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_address: Optional[str] = None


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class OrderLine(BaseModel):
    product_id: str
    product_name: str
    unit_price: Decimal
    quantity: int = Field(ge=1)
    total_price: Decimal


class OrderRecord(BaseModel):
    """An order as stored and read back for tracking."""

    id: str
    items: list[OrderLine]
    discount_code: Optional[str] = None
    subtotal: Decimal
    discount_amount: Decimal = Decimal("0.00")
    shipping_amount: Decimal = Decimal("0.00")
    tax_amount: Decimal = Decimal("0.00")
    total: Decimal
    status: OrderStatus = OrderStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_address: Optional[str] = None
    created_at: Optional[datetime] = None
