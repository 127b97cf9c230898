from __future__ import annotations
import os
from decimal import Decimal
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = os.getenv("DATABASE_URL", "mongodb://localhost:27017")
    DATABASE_NAME: str = os.getenv("DATABASE_NAME", "storefront")

    # Default sizes for the recommendation panels
    RECOMMENDATION_LIMIT: int = 4
    DASHBOARD_LIMIT: int = 4

    # Sales tax on the discounted subtotal, e.g. 0.08
    TAX_RATE: Decimal = Decimal("0")

    CORS_ORIGINS: list[str] = ["*"]
    LOG_LEVEL: str = "INFO"


settings = Settings()
