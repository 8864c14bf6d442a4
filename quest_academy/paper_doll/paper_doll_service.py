import logging
from datetime import datetime
from typing import List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from quest_academy.common.errors import AppError, ErrorCode
from quest_academy.database import timestamps, to_object_id
from quest_academy.paper_doll import compositor, layers
from quest_academy.paper_doll.paper_doll_schemas import (
    AcquisitionType, AvatarCategory, AvatarUpdate, PartCreate, PartRarity, PartUpdate
)

logger = logging.getLogger(__name__)

DEFAULT_AVATAR_NAME = "冒險者"
CACHE_RESET = {"composite_image_url": None, "composite_updated_at": None}


def group_by_category(parts: List[dict]) -> dict:
    grouped = {}
    for part in parts:
        grouped.setdefault(part["category"], []).append(part)
    return grouped


# ==================== AVATAR ====================

async def _default_parts(db: AsyncIOMotorDatabase) -> dict:
    """First active default part per category, creating placeholders for missing required ones"""
    by_category = {}
    for part in await db.avatar_parts.find({"is_default": True, "is_active": True}).to_list(length=None):
        by_category.setdefault(part["category"], part)

    missing = [c for c in layers.REQUIRED_CATEGORIES if c not in by_category]
    if missing:
        logger.warning("Missing default avatar parts for: %s", ", ".join(missing))
    for category in missing:
        placeholder = timestamps({
            "name": f"Default {category}",
            "category": category,
            "layer": layers.layer_for(category),
            "assets": {"idle": layers.PLACEHOLDER_ASSET},
            "transform": dict(layers.DEFAULT_TRANSFORM),
            "colorizable": category in layers.COLOR_TARGETS,
            "acquisition": {"type": "default", "level_required": 1},
            "rarity": "common",
            "is_default": True,
            "is_custom": False,
            "is_active": True,
        })
        result = await db.avatar_parts.insert_one(placeholder)
        placeholder["_id"] = result.inserted_id
        by_category[category] = placeholder
    return by_category


async def _ensure_avatar(db: AsyncIOMotorDatabase, user_id: ObjectId) -> dict:
    avatar = await db.student_avatars.find_one({"user_id": user_id})
    if avatar:
        return avatar

    defaults = await _default_parts(db)
    avatar = timestamps({
        "user_id": user_id,
        "name": DEFAULT_AVATAR_NAME,
        "equipped": {
            "body": defaults["body"]["_id"],
            "skin_tone": layers.SKIN_TONE_PRESETS[1],
            "face": defaults["face"]["_id"],
            "eyes": defaults["eyes"]["_id"],
            "eye_color": layers.EYE_COLOR_PRESETS[0],
            "mouth": defaults["mouth"]["_id"],
            "hair": defaults["hair"]["_id"],
            "hair_color": layers.HAIR_COLOR_PRESETS[1],
            "outfit": defaults["outfit"]["_id"],
        },
        **CACHE_RESET,
    })
    try:
        result = await db.student_avatars.insert_one(avatar)
    except DuplicateKeyError:
        # Created by a concurrent request
        return await db.student_avatars.find_one({"user_id": user_id})
    avatar["_id"] = result.inserted_id
    logger.info("Created avatar for %s", user_id)
    return avatar


async def _equipped_parts(db: AsyncIOMotorDatabase, equipped: dict) -> dict:
    """Part documents keyed by category for every equipped slot"""
    ids = {category: equipped.get(category) for category in layers.LAYER_ORDER if equipped.get(category)}
    parts = await db.avatar_parts.find({"_id": {"$in": list(ids.values())}}).to_list(length=None)
    part_map = {p["_id"]: p for p in parts}
    return {category: part_map[pid] for category, pid in ids.items() if pid in part_map}


async def _populated(db: AsyncIOMotorDatabase, avatar: dict) -> dict:
    equipped = dict(avatar.get("equipped") or {})
    equipped.update(await _equipped_parts(db, equipped))
    return {**avatar, "equipped": equipped}


async def get_avatar(db: AsyncIOMotorDatabase, user_id: ObjectId) -> dict:
    avatar = await _ensure_avatar(db, user_id)
    return {"avatar": await _populated(db, avatar), "color_presets": layers.COLOR_PRESETS}


async def update_avatar(db: AsyncIOMotorDatabase, user_id: ObjectId, data: AvatarUpdate) -> dict:
    avatar = await _ensure_avatar(db, user_id)
    changes = data.changes()
    updates = {**CACHE_RESET, "updated_at": datetime.utcnow()}
    if "name" in changes:
        updates["name"] = changes.pop("name").strip()
    for field, value in changes.items():
        updates[f"equipped.{field}"] = value

    avatar = await db.student_avatars.find_one_and_update(
        {"_id": avatar["_id"]}, {"$set": updates}, return_document=ReturnDocument.AFTER
    )
    return {"avatar": await _populated(db, avatar)}


async def equip_part(db: AsyncIOMotorDatabase, user_id: ObjectId, level: int, part_id: str) -> dict:
    """
    Equip an active part into its category slot

    Raises:
        404: Part missing or inactive
        403: Player level below the part's level_required
        400: Category is a color, not an equippable part
    """
    part = await db.avatar_parts.find_one({"_id": to_object_id(part_id, "part ID"), "is_active": True})
    if not part:
        raise AppError.not_found("Part not found")

    level_required = (part.get("acquisition") or {}).get("level_required", 1)
    if level_required > level:
        raise AppError.forbidden(f"Level {level_required} is required for this part", ErrorCode.LEVEL_REQUIREMENT_NOT_MET)

    category = part["category"]
    if category not in layers.LAYER_ORDER:
        raise AppError.bad_request("This category cannot be equipped")

    avatar = await _ensure_avatar(db, user_id)
    await db.student_avatars.update_one(
        {"_id": avatar["_id"]},
        {"$set": {f"equipped.{category}": part["_id"], **CACHE_RESET, "updated_at": datetime.utcnow()}}
    )
    return {"message": f"Equipped {part['name']}", "equipped": {"category": category, "part": part}}


async def unequip_category(db: AsyncIOMotorDatabase, user_id: ObjectId, category: str) -> dict:
    if category not in layers.OPTIONAL_CATEGORIES:
        raise AppError.bad_request("Required parts cannot be unequipped")

    result = await db.student_avatars.update_one(
        {"user_id": user_id},
        {"$set": {f"equipped.{category}": None, **CACHE_RESET, "updated_at": datetime.utcnow()}}
    )
    if not result.matched_count:
        raise AppError.not_found("Avatar not found")
    return {"message": f"Unequipped {category}"}


async def render_avatar(db: AsyncIOMotorDatabase, user_id: ObjectId) -> bytes:
    avatar = await _ensure_avatar(db, user_id)
    equipped = avatar.get("equipped") or {}
    png = await compositor.render_avatar(equipped, await _equipped_parts(db, equipped))
    await db.student_avatars.update_one(
        {"_id": avatar["_id"]},
        {"$set": {"composite_updated_at": datetime.utcnow()}}
    )
    return png


# ==================== PARTS ====================

async def list_parts(db: AsyncIOMotorDatabase, category: Optional[str], rarity: Optional[str]) -> dict:
    query = {"is_active": True}
    if category:
        query["category"] = category
    if rarity:
        query["rarity"] = rarity
    parts = await db.avatar_parts.find(query).sort([("category", 1), ("layer", 1), ("rarity", 1)]).to_list(length=None)
    return {
        "parts": parts,
        "by_category": group_by_category(parts),
        "total": len(parts),
        "presets": layers.COLOR_PRESETS,
    }


async def admin_list_parts(db: AsyncIOMotorDatabase) -> dict:
    parts = await db.avatar_parts.find().sort([("category", 1), ("layer", 1), ("created_at", -1)]).to_list(length=None)
    return {"parts": parts, "by_category": group_by_category(parts), "total": len(parts)}


async def create_part(db: AsyncIOMotorDatabase, data: PartCreate, uploaded_by: ObjectId) -> dict:
    doc = data.dict()
    category = AvatarCategory(doc["category"]).value
    doc["acquisition"]["type"] = AcquisitionType(doc["acquisition"]["type"]).value
    doc.update({
        "category": category,
        "layer": layers.layer_for(category),
        "rarity": PartRarity(doc["rarity"]).value,
        "is_custom": True,
        "uploaded_by": uploaded_by,
        "is_active": True,
    })
    timestamps(doc)
    result = await db.avatar_parts.insert_one(doc)
    doc["_id"] = result.inserted_id
    logger.info("Avatar part %s (%s) created by %s", result.inserted_id, category, uploaded_by)
    return doc


async def update_part(db: AsyncIOMotorDatabase, part_id: str, data: PartUpdate) -> dict:
    updates = data.changes()
    if "category" in updates:
        updates["layer"] = layers.layer_for(updates["category"])
    updates["updated_at"] = datetime.utcnow()
    part = await db.avatar_parts.find_one_and_update(
        {"_id": to_object_id(part_id, "part ID")},
        {"$set": updates},
        return_document=ReturnDocument.AFTER
    )
    if not part:
        raise AppError.not_found("Part not found")
    return part


async def delete_part(db: AsyncIOMotorDatabase, part_id: str) -> None:
    part = await db.avatar_parts.find_one({"_id": to_object_id(part_id, "part ID")})
    if not part:
        raise AppError.not_found("Part not found")
    if part.get("is_default"):
        raise AppError.bad_request("Default parts cannot be deleted")
    await db.avatar_parts.update_one(
        {"_id": part["_id"]},
        {"$set": {"is_active": False, "updated_at": datetime.utcnow()}}
    )
    logger.info("Avatar part %s deactivated", part["_id"])
