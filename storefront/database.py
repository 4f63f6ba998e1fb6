from __future__ import annotations
import logging
from datetime import datetime, timezone
from typing import Any, Optional, Protocol
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from storefront.config import settings

logger = logging.getLogger(__name__)

_client: Optional[AsyncIOMotorClient] = None
_db: Optional[AsyncIOMotorDatabase] = None


class StoreError(Exception):
    """The document store could not complete a read or a write."""


class DocumentStore(Protocol):
    async def list_documents(self, collection_name: str) -> list[dict[str, Any]]: ...

    async def append_document(self, collection_name: str, data: dict[str, Any]) -> dict[str, Any]: ...


async def get_db() -> AsyncIOMotorDatabase:
    global _client, _db
    if _db is None:
        _client = AsyncIOMotorClient(
            settings.DATABASE_URL,
            serverSelectionTimeoutMS=settings.SERVER_SELECTION_TIMEOUT_MS,
        )
        _db = _client[settings.DATABASE_NAME]
    return _db


def close_db() -> None:
    global _client, _db
    if _client is not None:
        _client.close()
    _client = None
    _db = None


async def create_document(collection_name: str, data: dict[str, Any]) -> dict[str, Any]:
    db = await get_db()
    now = datetime.now(timezone.utc)
    data_with_meta = {**data, "created_at": now, "updated_at": now}
    result = await db[collection_name].insert_one(data_with_meta)
    inserted = {**data_with_meta, "id": str(result.inserted_id)}
    inserted.pop("_id", None)
    return inserted


async def get_documents(collection_name: str, filter_dict: dict[str, Any] | None = None, limit: int = 0) -> list[dict[str, Any]]:
    db = await get_db()
    cursor = db[collection_name].find(filter_dict or {})
    if limit:
        cursor = cursor.limit(limit)
    docs = []
    async for d in cursor:
        d["id"] = str(d.pop("_id"))
        docs.append(d)
    return docs


async def count_documents(collection_name: str) -> int:
    db = await get_db()
    return await db[collection_name].count_documents({})


class MongoStore:
    """The two store operations the storefront uses, over motor."""

    async def list_documents(self, collection_name: str) -> list[dict[str, Any]]:
        try:
            return await get_documents(collection_name)
        except PyMongoError as exc:
            raise StoreError(f"reading {collection_name} failed: {exc}") from exc

    async def append_document(self, collection_name: str, data: dict[str, Any]) -> dict[str, Any]:
        try:
            return await create_document(collection_name, data)
        except PyMongoError as exc:
            raise StoreError(f"writing to {collection_name} failed: {exc}") from exc


async def describe() -> dict[str, Any]:
    """Connection diagnostics for the /test endpoint."""
    info: dict[str, Any] = {"database_name": settings.DATABASE_NAME, "collections": []}
    try:
        db = await get_db()
        info["collections"] = await db.list_collection_names()
        info["connected"] = True
    except PyMongoError as exc:
        logger.warning("database check failed: %s", exc)
        info["connected"] = False
        info["error"] = str(exc)
    return info
