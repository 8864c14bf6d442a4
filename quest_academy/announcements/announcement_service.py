import logging
from datetime import datetime
from typing import List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from quest_academy.announcements.announcement_schemas import (
    AnnouncementCreate, AnnouncementType, AnnouncementUpdate
)
from quest_academy.common.errors import AppError
from quest_academy.database import timestamps, to_object_id, to_object_ids

logger = logging.getLogger(__name__)


def window_query(now: datetime) -> dict:
    """Inside [start_date, end_date]; a missing bound is open"""
    return {
        "$or": [
            {"start_date": {"$lte": now}, "end_date": {"$gte": now}},
            {"start_date": {"$lte": now}, "end_date": None},
            {"start_date": None, "end_date": {"$gte": now}},
            {"start_date": None, "end_date": None},
        ]
    }


async def active_promotions(db: AsyncIOMotorDatabase, now: Optional[datetime] = None) -> List[dict]:
    now = now or datetime.utcnow()
    return await db.announcements.find({
        "type": AnnouncementType.PROMOTION.value,
        "is_active": True,
        "show_in_shop": True,
        **window_query(now),
    }).sort("created_at", -1).to_list(length=None)


async def _attach_discount_items(db: AsyncIOMotorDatabase, announcements: List[dict]) -> List[dict]:
    ids = {i for a in announcements for i in ((a.get("discount") or {}).get("item_ids") or [])}
    if not ids:
        return announcements
    items = await db.items.find({"_id": {"$in": list(ids)}}, {"name": 1, "icon": 1, "price": 1}).to_list(length=None)
    item_map = {item["_id"]: item for item in items}
    for announcement in announcements:
        discount = announcement.get("discount")
        if discount and discount.get("item_ids"):
            discount["items"] = [item_map[i] for i in discount["item_ids"] if i in item_map]
    return announcements


def _discount_doc(discount: Optional[dict]) -> Optional[dict]:
    if not discount:
        return None
    return {**discount, "item_ids": to_object_ids(discount.get("item_ids") or [], "item ID")}


async def _get(db: AsyncIOMotorDatabase, announcement_id: str) -> dict:
    announcement = await db.announcements.find_one({"_id": to_object_id(announcement_id, "announcement ID")})
    if not announcement:
        raise AppError.not_found("Announcement not found")
    return announcement


# ==================== STAFF ====================

async def list_announcements(db: AsyncIOMotorDatabase, announcement_type: Optional[str], include_inactive: bool) -> List[dict]:
    query = {}
    if announcement_type:
        query["type"] = announcement_type
    if not include_inactive:
        query["is_active"] = True
    announcements = await db.announcements.find(query).sort([("is_pinned", -1), ("created_at", -1)]).to_list(length=None)
    return await _attach_discount_items(db, announcements)


async def get_announcement(db: AsyncIOMotorDatabase, announcement_id: str) -> dict:
    announcement = await _get(db, announcement_id)
    return (await _attach_discount_items(db, [announcement]))[0]


async def create_announcement(db: AsyncIOMotorDatabase, data: AnnouncementCreate, created_by: ObjectId) -> dict:
    doc = data.dict()
    doc["type"] = AnnouncementType(doc["type"]).value
    doc["discount"] = _discount_doc(doc.get("discount"))
    doc.update({"is_active": True, "created_by": created_by})
    timestamps(doc)
    result = await db.announcements.insert_one(doc)
    doc["_id"] = result.inserted_id
    logger.info("Announcement %s created by %s", result.inserted_id, created_by)
    return doc


async def update_announcement(db: AsyncIOMotorDatabase, announcement_id: str, data: AnnouncementUpdate) -> dict:
    await _get(db, announcement_id)
    updates = data.changes()
    if "discount" in updates:
        updates["discount"] = _discount_doc(updates["discount"])
    updates["updated_at"] = datetime.utcnow()
    announcement = await db.announcements.find_one_and_update(
        {"_id": to_object_id(announcement_id)},
        {"$set": updates},
        return_document=ReturnDocument.AFTER
    )
    return (await _attach_discount_items(db, [announcement]))[0]


async def delete_announcement(db: AsyncIOMotorDatabase, announcement_id: str) -> None:
    result = await db.announcements.delete_one({"_id": to_object_id(announcement_id, "announcement ID")})
    if not result.deleted_count:
        raise AppError.not_found("Announcement not found")


# ==================== PLAYER ====================

async def active_announcements(db: AsyncIOMotorDatabase) -> dict:
    """Info announcements (latest 10) plus events and promotions running now"""
    info = await db.announcements.find({
        "type": AnnouncementType.INFO.value,
        "is_active": True,
    }).sort([("is_pinned", -1), ("created_at", -1)]).limit(10).to_list(length=None)

    running = await db.announcements.find({
        "type": {"$in": [AnnouncementType.EVENT.value, AnnouncementType.PROMOTION.value]},
        "is_active": True,
        **window_query(datetime.utcnow()),
    }).sort([("is_pinned", -1), ("start_date", -1)]).to_list(length=None)
    running = await _attach_discount_items(db, running)

    return {
        "announcements": info + running,
        "promotions": [a for a in running if a["type"] == AnnouncementType.PROMOTION.value],
    }


async def shop_promotions(db: AsyncIOMotorDatabase) -> List[dict]:
    return await _attach_discount_items(db, await active_promotions(db))
