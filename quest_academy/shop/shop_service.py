import logging
from datetime import datetime

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from quest_academy.achievements.achievement_rules import PURCHASE_TRIGGERS
from quest_academy.achievements.achievement_service import check_achievements
from quest_academy.announcements.announcement_service import active_promotions
from quest_academy.common.errors import AppError, ErrorCode
from quest_academy.database import to_object_id, transaction
from quest_academy.shop.pricing import discounted_price

logger = logging.getLogger(__name__)

RARITY_ORDER = {"common": 0, "rare": 1, "epic": 2, "legendary": 3}


async def _player_gold(db: AsyncIOMotorDatabase, player_id: ObjectId) -> int:
    user = await db.users.find_one({"_id": player_id}, {"student_profile.gold": 1})
    return ((user or {}).get("student_profile") or {}).get("gold", 0)


# ==================== CATALOGUE ====================

async def shop_items(db: AsyncIOMotorDatabase, player_id: ObjectId) -> dict:
    items = await db.items.find({"is_active": True}).to_list(length=None)
    items.sort(key=lambda i: (i.get("order", 0), RARITY_ORDER.get(i.get("rarity"), 0)))

    promotions = await active_promotions(db)
    gold = await _player_gold(db, player_id)

    owned = await db.player_items.find({"player_id": player_id}).to_list(length=None)
    owned_map = {str(pi["item_id"]): pi.get("quantity", 0) for pi in owned}

    enriched = []
    for item in items:
        price, discount = discounted_price(str(item["_id"]), item["price"], promotions)
        enriched.append({
            **item,
            "original_price": item["price"],
            "price": price,
            "discount": discount,
            "owned": owned_map.get(str(item["_id"]), 0),
            "can_afford": gold >= price,
        })

    return {
        "items": enriched,
        "player_gold": gold,
        "promotions": [
            {
                "_id": p["_id"],
                "title": p.get("title"),
                "content": p.get("content"),
                "icon": p.get("icon"),
                "end_date": p.get("end_date"),
                "discount": p.get("discount"),
            }
            for p in promotions
        ],
    }


# ==================== PURCHASE ====================

async def buy_item(db: AsyncIOMotorDatabase, player_id: ObjectId, item_id: str, quantity: int) -> dict:
    """
    Purchase `quantity` of an item at its current (discounted) price

    Raises:
        404: Item missing or inactive, or the caller has no student profile
        400: Not enough gold, or the purchase would exceed max_stack
    """
    item = await db.items.find_one({"_id": to_object_id(item_id, "item ID"), "is_active": True})
    if not item:
        raise AppError.not_found("Item not found", ErrorCode.ITEM_NOT_FOUND)

    promotions = await active_promotions(db)
    unit_price, discount = discounted_price(str(item["_id"]), item["price"], promotions)
    total_cost = unit_price * quantity

    user = await db.users.find_one({"_id": player_id}, {"student_profile": 1})
    if not user or not user.get("student_profile"):
        raise AppError.not_found("Player profile not found", ErrorCode.USER_NOT_FOUND)
    if user["student_profile"].get("gold", 0) < total_cost:
        raise AppError.bad_request("Not enough gold")

    max_stack = item.get("max_stack", 99)
    if max_stack > 0:
        existing = await db.player_items.find_one({"player_id": player_id, "item_id": item["_id"]})
        current = (existing or {}).get("quantity", 0)
        if current + quantity > max_stack:
            raise AppError.bad_request(f"You can hold at most {max_stack} of this item")

    now = datetime.utcnow()
    async with transaction(db) as session:
        updated = await db.users.find_one_and_update(
            {"_id": player_id, "student_profile.gold": {"$gte": total_cost}},
            {"$inc": {"student_profile.gold": -total_cost}, "$set": {"updated_at": now}},
            projection={"student_profile.gold": 1},
            return_document=ReturnDocument.AFTER,
            session=session
        )
        # Lost a race with another purchase
        if not updated:
            raise AppError.bad_request("Not enough gold")

        await db.player_items.update_one(
            {"player_id": player_id, "item_id": item["_id"]},
            {
                "$inc": {"quantity": quantity},
                "$set": {"updated_at": now},
                "$setOnInsert": {"acquired_at": now, "created_at": now},
            },
            upsert=True,
            session=session
        )

    remaining = updated["student_profile"]["gold"]
    logger.info("Player %s bought %s x%d for %d gold", player_id, item["_id"], quantity, total_cost)
    unlocked_achievements = await check_achievements(db, player_id, PURCHASE_TRIGGERS)

    return {
        "message": f"Bought {item['name']} x{quantity}" + (" (discounted)" if discount else ""),
        "item": {
            "_id": item["_id"],
            "name": item["name"],
            "icon": item.get("icon"),
            "quantity": quantity,
        },
        "cost": total_cost,
        "original_cost": item["price"] * quantity if discount else None,
        "discount": {
            "type": discount["type"],
            "value": discount["value"],
            "saved": (item["price"] - unit_price) * quantity,
        } if discount else None,
        "remaining_gold": remaining,
        "unlocked_achievements": unlocked_achievements,
    }
