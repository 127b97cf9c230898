from __future__ import annotations
import logging
from typing import Any, Optional
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from datetime import datetime, timezone

from bson import ObjectId
from bson.errors import InvalidId

from schemas import DiscountCode, OrderRecord, Product
from settings import settings

logger = logging.getLogger(__name__)

_client: Optional[AsyncIOMotorClient] = None
_db: Optional[AsyncIOMotorDatabase] = None

async def get_db() -> AsyncIOMotorDatabase:
    global _client, _db
    if _db is None:
        _client = AsyncIOMotorClient(settings.DATABASE_URL)
        _db = _client[settings.DATABASE_NAME]
    return _db

async def create_document(collection_name: str, data: dict[str, Any]) -> dict[str, Any]:
    db = await get_db()
    now = datetime.now(timezone.utc)
    data_with_meta = {**data, "created_at": now, "updated_at": now}
    result = await db[collection_name].insert_one(data_with_meta)
    inserted = await db[collection_name].find_one({"_id": result.inserted_id})
    if inserted and "_id" in inserted:
        inserted["id"] = str(inserted.pop("_id"))
    return inserted or {}

async def get_documents(collection_name: str, filter_dict: dict[str, Any] | None = None, limit: int = 100) -> list[dict[str, Any]]:
    db = await get_db()
    cursor = db[collection_name].find(filter_dict or {}).limit(limit)
    docs = []
    async for d in cursor:
        d["id"] = str(d.pop("_id"))
        docs.append(d)
    return docs


def _to_mongo(model: Any) -> dict[str, Any]:
    # BSON has no Decimal type; money is stored as strings and parsed back by pydantic
    return model.model_dump(mode="json")


class MongoRepository:
    """Catalog, discount codes and orders stored in MongoDB.

    Products are keyed by their own id (stored as _id). Discount codes are
    keyed by canonical code.
    """

    async def list_products(self) -> list[Product]:
        # The engines rank the whole catalog, so no cap here (limit 0 = unbounded)
        docs = await get_documents("product", {}, limit=0)
        return [Product(**d) for d in docs]

    async def get_product(self, product_id: str) -> Optional[Product]:
        db = await get_db()
        doc = await db["product"].find_one({"_id": product_id})
        if not doc:
            return None
        doc["id"] = str(doc.pop("_id"))
        return Product(**doc)

    async def fetch_discount_record(self, code: str) -> Optional[DiscountCode]:
        db = await get_db()
        doc = await db["discount_code"].find_one({"_id": code})
        if not doc:
            return None
        doc.pop("_id", None)
        return DiscountCode(**doc)

    async def record_discount_usage(self, code: str) -> bool:
        """Count one use, unless that would go past usage_limit. Returns whether it counted."""
        db = await get_db()
        result = await db["discount_code"].update_one(
            {
                "_id": code,
                "$or": [
                    {"usage_limit": None},
                    {"$expr": {"$lt": ["$used_count", "$usage_limit"]}},
                ],
            },
            {"$inc": {"used_count": 1}},
        )
        if result.matched_count == 0:
            logger.warning("Usage of discount %s not recorded: unknown code or limit reached", code)
            return False
        return True

    async def create_order(self, order: dict[str, Any]) -> str:
        saved = await create_document("order", order)
        return saved.get("id", "")

    async def get_order(self, order_id: str) -> Optional[OrderRecord]:
        try:
            oid = ObjectId(order_id)
        except (InvalidId, TypeError):
            return None
        db = await get_db()
        doc = await db["order"].find_one({"_id": oid})
        if not doc:
            return None
        doc["id"] = str(doc.pop("_id"))
        return OrderRecord(**doc)

    async def seed(self, products: list[Product], discount_codes: list[DiscountCode]) -> int:
        # Insert only if the product collection is empty
        db = await get_db()
        if await db["product"].count_documents({}) > 0:
            return 0
        for p in products:
            data = _to_mongo(p)
            data["_id"] = data.pop("id")
            await create_document("product", data)
        for d in discount_codes:
            await create_document("discount_code", {"_id": d.code, **_to_mongo(d)})
        logger.info("Seeded %d products and %d discount codes", len(products), len(discount_codes))
        return len(products)


def get_repository() -> MongoRepository:
    return MongoRepository()
