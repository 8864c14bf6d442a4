"""
MongoDB client, request dependency and document helpers
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Iterable, List

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from quest_academy import config
from quest_academy.common.errors import AppError

logger = logging.getLogger(__name__)

client = AsyncIOMotorClient(config.MONGO_URL)
db = client[config.MONGO_DB_NAME]


def get_db_instance() -> AsyncIOMotorDatabase:
    return db


# ==================== DEPENDENCY FUNCTIONS ====================

async def get_db() -> AsyncIOMotorDatabase:
    """Database dependency"""
    return get_db_instance()


# ==================== DOCUMENT HELPERS ====================

def serialize_mongo(value: Any) -> Any:
    """Convert ObjectIds (recursively) to strings so documents are JSON-safe"""
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, dict):
        return {key: serialize_mongo(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [serialize_mongo(item) for item in value]
    return value


def to_object_id(value: Any, label: str = "ID") -> ObjectId:
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        raise AppError.bad_request(f"Invalid {label}")


def to_object_ids(values: Iterable[Any], label: str = "ID") -> List[ObjectId]:
    return [to_object_id(value, label) for value in values]


def timestamps(doc: dict) -> dict:
    now = datetime.utcnow()
    doc.setdefault("created_at", now)
    doc["updated_at"] = now
    return doc


# ==================== TRANSACTIONS ====================

@asynccontextmanager
async def transaction(database: AsyncIOMotorDatabase):
    """
    Yields a session bound to a started transaction, or None when
    transactions are disabled. Commits on success, aborts on error.
    """
    if not config.MONGO_USE_TRANSACTIONS:
        yield None
        return

    async with await database.client.start_session() as session:
        async with session.start_transaction():
            try:
                yield session
                await session.commit_transaction()
            except Exception:
                logger.warning("Transaction aborted")
                await session.abort_transaction()
                raise
