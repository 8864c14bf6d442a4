"""
Equipping owned cosmetic/equipment items into the avatar slots
stored on student_profile.equipped_items
"""

import logging
from datetime import datetime

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from quest_academy.common.errors import AppError, ErrorCode
from quest_academy.database import to_object_id
from quest_academy.items.item_schemas import EQUIPPABLE_TYPES, EquipmentSlot

logger = logging.getLogger(__name__)

SLOTS = [slot.value for slot in EquipmentSlot]


def _item_summary(item: dict) -> dict:
    return {
        "_id": item["_id"],
        "name": item.get("name"),
        "icon": item.get("icon"),
        "image_url": item.get("image_url"),
        "slot": item.get("slot"),
        "rarity": item.get("rarity"),
    }


async def _equipped(db: AsyncIOMotorDatabase, player_id: ObjectId) -> dict:
    user = await db.users.find_one({"_id": player_id}, {"student_profile": 1})
    if not user or not user.get("student_profile"):
        raise AppError.not_found("Player profile not found", ErrorCode.USER_NOT_FOUND)
    return user["student_profile"].get("equipped_items") or {}


async def _owned_item(db: AsyncIOMotorDatabase, player_id: ObjectId, player_item_id: str):
    owned = await db.player_items.find_one({
        "_id": to_object_id(player_item_id, "player item ID"),
        "player_id": player_id,
    })
    if not owned:
        raise AppError.not_found("Item not found", ErrorCode.ITEM_NOT_FOUND)
    item = await db.items.find_one({"_id": owned["item_id"]})
    if not item:
        raise AppError.not_found("Item not found", ErrorCode.ITEM_NOT_FOUND)
    return owned, item


async def get_avatar(db: AsyncIOMotorDatabase, player_id: ObjectId) -> dict:
    equipped = await _equipped(db, player_id)
    avatar = {}
    for slot in SLOTS:
        avatar[slot] = None
        item_id = equipped.get(slot)
        if not item_id:
            continue
        item = await db.items.find_one({"_id": item_id})
        if not item:
            continue
        owned = await db.player_items.find_one({"player_id": player_id, "item_id": item_id}, {"_id": 1})
        avatar[slot] = {
            "player_item_id": owned["_id"] if owned else None,
            "item": _item_summary(item),
        }
    return {"avatar": avatar}


async def equippable_items(db: AsyncIOMotorDatabase, player_id: ObjectId) -> dict:
    equipped = await _equipped(db, player_id)
    owned = await db.player_items.find({"player_id": player_id, "quantity": {"$gt": 0}}).to_list(length=None)
    items = await db.items.find({"_id": {"$in": [pi["item_id"] for pi in owned]}}).to_list(length=None)
    item_map = {item["_id"]: item for item in items}

    result = []
    by_slot = {slot: [] for slot in SLOTS}
    for pi in owned:
        item = item_map.get(pi["item_id"])
        if not item or item.get("type") not in EQUIPPABLE_TYPES or not item.get("slot"):
            continue
        entry = {
            "player_item_id": pi["_id"],
            "is_equipped": equipped.get(item["slot"]) == item["_id"],
            "item": {**_item_summary(item), "description": item.get("description"), "type": item.get("type")},
        }
        result.append(entry)
        by_slot.setdefault(item["slot"], []).append(entry)

    return {"items": result, "by_slot": by_slot}


async def equip(db: AsyncIOMotorDatabase, player_id: ObjectId, player_item_id: str) -> dict:
    owned, item = await _owned_item(db, player_id, player_item_id)
    if item.get("type") not in EQUIPPABLE_TYPES:
        raise AppError.bad_request("This item cannot be equipped")
    if not item.get("slot"):
        raise AppError.bad_request("This item has no equipment slot")

    await _equipped(db, player_id)
    slot = item["slot"]
    await db.users.update_one(
        {"_id": player_id},
        {"$set": {f"student_profile.equipped_items.{slot}": item["_id"], "updated_at": datetime.utcnow()}}
    )
    logger.info("Player %s equipped %s in %s", player_id, item["_id"], slot)

    return {
        "message": f"Equipped {item['name']}",
        "equipped": {
            "player_item_id": owned["_id"],
            "slot": slot,
            "item": _item_summary(item),
        },
    }


async def unequip(db: AsyncIOMotorDatabase, player_id: ObjectId, player_item_id: str) -> dict:
    owned, item = await _owned_item(db, player_id, player_item_id)
    slot = item.get("slot")
    if not slot:
        raise AppError.bad_request("This item has no equipment slot")

    equipped = await _equipped(db, player_id)
    if equipped.get(slot) != item["_id"]:
        raise AppError.bad_request("This item is not equipped")

    await db.users.update_one(
        {"_id": player_id},
        {"$set": {f"student_profile.equipped_items.{slot}": None, "updated_at": datetime.utcnow()}}
    )
    return {
        "message": "Item unequipped",
        "unequipped": {"player_item_id": owned["_id"], "slot": slot},
    }
