import logging
import math
from datetime import datetime, timedelta
from typing import List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from quest_academy.common.errors import AppError, ErrorCode
from quest_academy.database import timestamps, to_object_id, transaction
from quest_academy.items.item_schemas import DURATION_EFFECTS, ItemType

logger = logging.getLogger(__name__)

DEFAULT_EFFECT_MINUTES = 30


def remaining_minutes(expires_at: datetime, now: Optional[datetime] = None) -> int:
    now = now or datetime.utcnow()
    return math.ceil((expires_at - now).total_seconds() / 60)


async def _items_by_id(db: AsyncIOMotorDatabase, item_ids: List[ObjectId], projection: Optional[dict] = None) -> dict:
    items = await db.items.find({"_id": {"$in": item_ids}}, projection).to_list(length=None)
    return {item["_id"]: item for item in items}


async def active_effects(db: AsyncIOMotorDatabase, player_id: ObjectId) -> List[dict]:
    now = datetime.utcnow()
    effects = await db.active_effects.find({
        "player_id": player_id,
        "expires_at": {"$gt": now},
    }).to_list(length=None)
    items = await _items_by_id(db, [e["item_id"] for e in effects], {"name": 1, "icon": 1})
    return [
        {
            "_id": effect["_id"],
            "item": items.get(effect["item_id"]),
            "effect_type": effect["effect_type"],
            "value": effect["value"],
            "expires_at": effect["expires_at"],
            "remaining_minutes": remaining_minutes(effect["expires_at"], now),
        }
        for effect in effects
    ]


async def get_inventory(db: AsyncIOMotorDatabase, player_id: ObjectId) -> dict:
    owned = await db.player_items.find(
        {"player_id": player_id, "quantity": {"$gt": 0}}
    ).sort("acquired_at", -1).to_list(length=None)
    items = await _items_by_id(db, [pi["item_id"] for pi in owned])

    return {
        "inventory": [
            {
                "_id": pi["_id"],
                "item": items.get(pi["item_id"]),
                "quantity": pi["quantity"],
                "acquired_at": pi.get("acquired_at"),
            }
            for pi in owned
        ],
        "active_effects": await active_effects(db, player_id),
    }


async def use_item(db: AsyncIOMotorDatabase, player_id: ObjectId, item_id: str) -> dict:
    """
    Consume one unit of a consumable and start (or extend) its timed effects
    Instant effects (hint, skip) have no lasting state and are ignored here.
    """
    item = await db.items.find_one({"_id": to_object_id(item_id, "item ID")})
    if not item:
        raise AppError.not_found("Item not found", ErrorCode.ITEM_NOT_FOUND)
    if item.get("type") != ItemType.CONSUMABLE.value:
        raise AppError.bad_request("This item cannot be used")

    owned = await db.player_items.find_one({"player_id": player_id, "item_id": item["_id"]})
    if not owned or owned.get("quantity", 0) < 1:
        raise AppError.bad_request("You do not own this item")

    now = datetime.utcnow()
    remaining = owned["quantity"] - 1
    applied = []

    async with transaction(db) as session:
        if remaining == 0:
            await db.player_items.delete_one({"_id": owned["_id"]}, session=session)
        else:
            await db.player_items.update_one(
                {"_id": owned["_id"]},
                {"$inc": {"quantity": -1}, "$set": {"updated_at": now}},
                session=session
            )

        for effect in item.get("effects") or []:
            if effect.get("type") not in DURATION_EFFECTS:
                continue
            duration = effect.get("duration") or DEFAULT_EFFECT_MINUTES

            existing = await db.active_effects.find_one({
                "player_id": player_id,
                "effect_type": effect["type"],
                "expires_at": {"$gt": now},
            }, session=session)
            if existing:
                await db.active_effects.update_one(
                    {"_id": existing["_id"]},
                    {"$set": {
                        "expires_at": existing["expires_at"] + timedelta(minutes=duration),
                        "updated_at": now,
                    }},
                    session=session
                )
            else:
                await db.active_effects.insert_one(timestamps({
                    "player_id": player_id,
                    "item_id": item["_id"],
                    "effect_type": effect["type"],
                    "value": effect["value"],
                    "expires_at": now + timedelta(minutes=duration),
                }), session=session)

            applied.append({"type": effect["type"], "value": effect["value"], "duration": duration})

    logger.info("Player %s used %s", player_id, item["_id"])
    return {
        "message": f"Used {item['name']}",
        "item": {"_id": item["_id"], "name": item["name"], "icon": item.get("icon")},
        "applied_effects": applied,
        "remaining_quantity": remaining,
    }
