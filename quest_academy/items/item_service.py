import logging
from datetime import datetime
from typing import List

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from quest_academy.common.errors import AppError, ErrorCode
from quest_academy.database import timestamps, to_object_id
from quest_academy.items.item_schemas import ItemCreate, ItemRarity, ItemType, ItemUpdate

logger = logging.getLogger(__name__)

DEFAULT_ITEMS = [
    {
        "name": "經驗加倍藥水",
        "description": "使用後 30 分鐘內獲得的經驗值加倍",
        "type": "consumable",
        "rarity": "rare",
        "icon": "🧪",
        "price": 100,
        "effects": [{"type": "exp_boost", "value": 2, "duration": 30}],
        "max_stack": 10,
        "order": 1,
    },
    {
        "name": "金幣加倍藥水",
        "description": "使用後 30 分鐘內獲得的金幣加倍",
        "type": "consumable",
        "rarity": "rare",
        "icon": "💎",
        "price": 100,
        "effects": [{"type": "gold_boost", "value": 2, "duration": 30}],
        "max_stack": 10,
        "order": 2,
    },
    {
        "name": "護盾藥水",
        "description": "使用後答錯題目不會扣除連續答對紀錄",
        "type": "consumable",
        "rarity": "epic",
        "icon": "🛡️",
        "price": 150,
        "effects": [{"type": "shield", "value": 1, "duration": 30}],
        "max_stack": 5,
        "order": 3,
    },
    {
        "name": "小型經驗石",
        "description": "立即獲得 50 經驗值",
        "type": "consumable",
        "rarity": "common",
        "icon": "💠",
        "price": 30,
        "effects": [],
        "max_stack": 99,
        "order": 4,
    },
    {
        "name": "中型經驗石",
        "description": "立即獲得 150 經驗值",
        "type": "consumable",
        "rarity": "rare",
        "icon": "💎",
        "price": 80,
        "effects": [],
        "max_stack": 50,
        "order": 5,
    },
    {
        "name": "幸運草",
        "description": "增加獲得稀有道具的機率",
        "type": "consumable",
        "rarity": "epic",
        "icon": "🍀",
        "price": 200,
        "effects": [],
        "max_stack": 5,
        "order": 6,
    },
    {
        "name": "勇者徽章",
        "description": "連續答對 10 題的象徵",
        "type": "cosmetic",
        "rarity": "rare",
        "slot": "title",
        "icon": "🏅",
        "price": 500,
        "effects": [],
        "max_stack": 1,
        "order": 10,
    },
    {
        "name": "智者之冠",
        "description": "展示你的學習成就",
        "type": "cosmetic",
        "rarity": "legendary",
        "slot": "head",
        "icon": "👑",
        "price": 2000,
        "effects": [],
        "max_stack": 1,
        "order": 11,
    },
]


async def get_item(db: AsyncIOMotorDatabase, item_id: str) -> dict:
    item = await db.items.find_one({"_id": to_object_id(item_id, "item ID")})
    if not item:
        raise AppError.not_found("Item not found", ErrorCode.ITEM_NOT_FOUND)
    return item


async def list_items(db: AsyncIOMotorDatabase) -> List[dict]:
    return await db.items.find().sort([("order", 1), ("created_at", -1)]).to_list(length=None)


async def create_item(db: AsyncIOMotorDatabase, data: ItemCreate) -> dict:
    doc = data.dict()
    doc["type"] = ItemType(doc["type"]).value
    doc["rarity"] = ItemRarity(doc["rarity"]).value
    doc["is_active"] = True
    timestamps(doc)
    result = await db.items.insert_one(doc)
    doc["_id"] = result.inserted_id
    logger.info("Item %s created: %s", result.inserted_id, doc["name"])
    return doc


async def update_item(db: AsyncIOMotorDatabase, item_id: str, data: ItemUpdate) -> dict:
    updates = data.changes()
    updates["updated_at"] = datetime.utcnow()
    item = await db.items.find_one_and_update(
        {"_id": to_object_id(item_id, "item ID")},
        {"$set": updates},
        return_document=ReturnDocument.AFTER
    )
    if not item:
        raise AppError.not_found("Item not found", ErrorCode.ITEM_NOT_FOUND)
    return item


async def delete_item(db: AsyncIOMotorDatabase, item_id: str) -> None:
    result = await db.items.delete_one({"_id": to_object_id(item_id, "item ID")})
    if not result.deleted_count:
        raise AppError.not_found("Item not found", ErrorCode.ITEM_NOT_FOUND)


async def seed_items(db: AsyncIOMotorDatabase) -> int:
    """Insert the default catalogue; refused once any item exists"""
    if await db.items.count_documents({}) > 0:
        raise AppError.bad_request("Items already exist; the catalogue cannot be re-seeded")

    docs = [timestamps({**item, "is_active": True}) for item in DEFAULT_ITEMS]
    await db.items.insert_many(docs)
    logger.info("Seeded %d default items", len(docs))
    return len(docs)
