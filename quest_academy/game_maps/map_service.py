import logging
import uuid
from datetime import datetime
from typing import List

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from quest_academy.common.errors import AppError, ErrorCode
from quest_academy.database import timestamps, to_object_id
from quest_academy.game_maps import map_rules
from quest_academy.game_maps.map_schemas import (
    BattleResult, LayersUpdate, MapCreate, MapObjectIn, MapObjectType, MapTheme, MapUpdate,
    MonsterDifficulty, PositionUpdate
)
from quest_academy.questions.question_service import sample_questions

logger = logging.getLogger(__name__)


def _optional_oid(value, label: str):
    return to_object_id(value, label) if value else None


def _requirements_doc(requirements: dict) -> dict:
    return {
        "level_required": requirements.get("level_required", 1),
        "previous_map_id": _optional_oid(requirements.get("previous_map_id"), "previous map ID"),
        "stage_required": _optional_oid(requirements.get("stage_required"), "stage ID"),
    }


def _object_doc(data: MapObjectIn, object_id: str) -> dict:
    doc = data.dict()
    doc["id"] = object_id
    doc["type"] = MapObjectType(doc["type"]).value

    monster = doc.get("monster_data")
    if monster:
        pool = monster["question_pool"]
        pool["subject_id"] = _optional_oid(pool.get("subject_id"), "subject ID")
        pool["unit_id"] = _optional_oid(pool.get("unit_id"), "unit ID")
        monster["difficulty"] = MonsterDifficulty(monster["difficulty"]).value
    chest = doc.get("chest_data")
    if chest:
        for entry in chest["items"]:
            entry["item_id"] = to_object_id(entry["item_id"], "item ID")
    portal = doc.get("portal_data")
    if portal:
        portal["target_map_id"] = to_object_id(portal["target_map_id"], "map ID")
        portal["requires_key"] = _optional_oid(portal.get("requires_key"), "item ID")
    return doc


async def _get_map(db: AsyncIOMotorDatabase, map_id: str) -> dict:
    game_map = await db.game_maps.find_one({"_id": to_object_id(map_id, "map ID")})
    if not game_map:
        raise AppError.not_found("Map not found")
    return game_map


def _find_object(game_map: dict, object_id: str) -> dict:
    for obj in game_map.get("objects") or []:
        if obj.get("id") == object_id:
            return obj
    raise AppError.not_found("Object not found on map")


async def _get_state(db: AsyncIOMotorDatabase, player_id: ObjectId, map_id: ObjectId) -> dict:
    state = await db.player_map_states.find_one({"player_id": player_id, "map_id": map_id})
    if not state:
        raise AppError.not_found("Enter the map first")
    return state


# ==================== STAFF ====================

async def list_maps(db: AsyncIOMotorDatabase) -> List[dict]:
    return await db.game_maps.find().sort([("order", 1), ("created_at", -1)]).to_list(length=None)


async def get_map(db: AsyncIOMotorDatabase, map_id: str) -> dict:
    return await _get_map(db, map_id)


async def create_map(db: AsyncIOMotorDatabase, data: MapCreate, created_by: ObjectId) -> dict:
    doc = data.dict()
    doc["theme"] = MapTheme(doc["theme"]).value
    doc["requirements"] = _requirements_doc(doc["requirements"])
    doc.update({
        "layers": map_rules.empty_layers(data.width, data.height),
        "objects": [],
        "is_active": True,
        "created_by": created_by,
    })
    timestamps(doc)
    result = await db.game_maps.insert_one(doc)
    doc["_id"] = result.inserted_id
    logger.info("Map %s created by %s", result.inserted_id, created_by)
    return doc


async def _set_map(db: AsyncIOMotorDatabase, map_id: ObjectId, update: dict) -> dict:
    update.setdefault("$set", {})["updated_at"] = datetime.utcnow()
    game_map = await db.game_maps.find_one_and_update(
        {"_id": map_id}, update, return_document=ReturnDocument.AFTER
    )
    if not game_map:
        raise AppError.not_found("Map not found")
    return game_map


async def update_map(db: AsyncIOMotorDatabase, map_id: str, data: MapUpdate) -> dict:
    updates = data.changes()
    if "requirements" in updates:
        updates["requirements"] = _requirements_doc(updates["requirements"])
    return await _set_map(db, to_object_id(map_id, "map ID"), {"$set": updates})


async def delete_map(db: AsyncIOMotorDatabase, map_id: str) -> None:
    oid = to_object_id(map_id, "map ID")
    result = await db.game_maps.delete_one({"_id": oid})
    if not result.deleted_count:
        raise AppError.not_found("Map not found")
    removed = await db.player_map_states.delete_many({"map_id": oid})
    logger.info("Map %s deleted with %d player states", oid, removed.deleted_count)


async def update_layers(db: AsyncIOMotorDatabase, map_id: str, data: LayersUpdate) -> dict:
    game_map = await _get_map(db, map_id)
    layers = data.layers.dict()
    for name, layer in layers.items():
        if not map_rules.layer_matches(layer, game_map["width"], game_map["height"]):
            raise AppError.bad_request(f"Layer {name} must be {game_map['height']}x{game_map['width']}")
    return await _set_map(db, game_map["_id"], {"$set": {"layers": layers}})


async def add_object(db: AsyncIOMotorDatabase, map_id: str, data: MapObjectIn) -> dict:
    obj = _object_doc(data, uuid.uuid4().hex)
    game_map = await _set_map(db, to_object_id(map_id, "map ID"), {"$push": {"objects": obj}})
    return {"map": game_map, "added_object": obj}


async def update_object(db: AsyncIOMotorDatabase, map_id: str, object_id: str, data: MapObjectIn) -> dict:
    game_map = await _get_map(db, map_id)
    _find_object(game_map, object_id)
    objects = [
        _object_doc(data, object_id) if obj.get("id") == object_id else obj
        for obj in game_map.get("objects") or []
    ]
    return await _set_map(db, game_map["_id"], {"$set": {"objects": objects}})


async def remove_object(db: AsyncIOMotorDatabase, map_id: str, object_id: str) -> dict:
    return await _set_map(db, to_object_id(map_id, "map ID"), {"$pull": {"objects": {"id": object_id}}})


# ==================== PLAYER ====================

async def student_maps(db: AsyncIOMotorDatabase, player_id: ObjectId, level: int) -> List[dict]:
    maps = await db.game_maps.find({"is_active": True}).sort("order", 1).to_list(length=None)
    states = await db.player_map_states.find({"player_id": player_id}).to_list(length=None)
    state_map = {s["map_id"]: s for s in states}

    result = []
    for game_map in maps:
        state = state_map.get(game_map["_id"])
        is_unlocked, reason = map_rules.unlock_status(game_map, level, set(state_map))
        result.append({
            "_id": game_map["_id"],
            "name": game_map["name"],
            "description": game_map.get("description"),
            "theme": game_map.get("theme"),
            "background_url": game_map.get("background_url"),
            "requirements": game_map.get("requirements"),
            "is_unlocked": is_unlocked,
            "unlock_reason": reason,
            "has_visited": state is not None,
            "stats": state.get("stats") if state else None,
        })
    return result


async def enter_map(db: AsyncIOMotorDatabase, player_id: ObjectId, level: int, map_id: str) -> dict:
    game_map = await db.game_maps.find_one({"_id": to_object_id(map_id, "map ID"), "is_active": True})
    if not game_map:
        raise AppError.not_found("Map not found or not available")

    level_required = (game_map.get("requirements") or {}).get("level_required", 1)
    if level_required > level:
        raise AppError.forbidden(
            f"Level {level_required} is required to enter this map", ErrorCode.LEVEL_REQUIREMENT_NOT_MET
        )

    now = datetime.utcnow()
    spawn = game_map.get("spawn_point") or {"x": 1, "y": 1}
    state = await db.player_map_states.find_one({"player_id": player_id, "map_id": game_map["_id"]})
    if not state:
        state = timestamps({
            "player_id": player_id,
            "map_id": game_map["_id"],
            "position": spawn,
            "direction": "down",
            "completed_objects": [],
            "last_save_point": None,
            "stats": {"total_visits": 1, "monsters_defeated": 0, "chests_opened": 0, "time_spent": 0},
            "explored_areas": [map_rules.area_key(spawn["x"], spawn["y"])],
            "first_entry": True,
        })
        result = await db.player_map_states.insert_one(state)
        state["_id"] = result.inserted_id
    else:
        state = await db.player_map_states.find_one_and_update(
            {"_id": state["_id"]},
            {"$inc": {"stats.total_visits": 1}, "$set": {"first_entry": False, "updated_at": now}},
            return_document=ReturnDocument.AFTER
        )

    return {
        "map": {
            "_id": game_map["_id"],
            "name": game_map["name"],
            "description": game_map.get("description"),
            "theme": game_map.get("theme"),
            "width": game_map["width"],
            "height": game_map["height"],
            "tile_size": game_map.get("tile_size", 32),
            "background_url": game_map.get("background_url"),
            "tileset_url": game_map.get("tileset_url"),
            "ambient_music": game_map.get("ambient_music"),
            "layers": game_map.get("layers"),
            "spawn_point": spawn,
            "objects": map_rules.available_objects(game_map.get("objects") or [], state, now),
        },
        "player_state": {
            "position": state["position"],
            "direction": state["direction"],
            "stats": state["stats"],
            "first_entry": state["first_entry"],
        },
    }


async def update_position(db: AsyncIOMotorDatabase, player_id: ObjectId, map_id: str, data: PositionUpdate) -> dict:
    state = await _get_state(db, player_id, to_object_id(map_id, "map ID"))
    updates = {"position": {"x": data.x, "y": data.y}, "updated_at": datetime.utcnow()}
    if data.direction:
        updates["direction"] = data.direction
    state = await db.player_map_states.find_one_and_update(
        {"_id": state["_id"]},
        {"$set": updates, "$addToSet": {"explored_areas": map_rules.area_key(data.x, data.y)}},
        return_document=ReturnDocument.AFTER
    )
    return {"position": state["position"], "direction": state["direction"]}


async def _reward_player(db: AsyncIOMotorDatabase, player_id: ObjectId, exp: int, gold: int) -> None:
    await db.users.update_one(
        {"_id": player_id},
        {"$inc": {"student_profile.exp": exp, "student_profile.gold": gold},
         "$set": {"updated_at": datetime.utcnow()}}
    )


async def _open_chest(db: AsyncIOMotorDatabase, player_id: ObjectId, obj: dict, state: dict, now: datetime) -> dict:
    chest = obj.get("chest_data")
    if not chest:
        raise AppError.bad_request("Invalid chest data")

    await _reward_player(db, player_id, chest.get("exp") or 0, chest.get("gold") or 0)
    for entry in chest.get("items") or []:
        await db.player_items.update_one(
            {"player_id": player_id, "item_id": entry["item_id"]},
            {"$inc": {"quantity": entry.get("quantity", 1)},
             "$setOnInsert": {"acquired_at": now, "created_at": now}},
            upsert=True
        )

    completion = map_rules.completion_entry(obj["id"], now, map_rules.chest_respawn(chest))
    await db.player_map_states.update_one(
        {"_id": state["_id"]},
        {"$set": {"completed_objects": map_rules.with_completion(state, completion), "updated_at": now},
         "$inc": {"stats.chests_opened": 1}}
    )
    logger.info("Player %s opened chest %s", player_id, obj["id"])
    return {
        "type": "chest",
        "rewards": {
            "gold": chest.get("gold") or 0,
            "exp": chest.get("exp") or 0,
            "items": chest.get("items") or [],
        },
    }


async def _start_battle(db: AsyncIOMotorDatabase, obj: dict) -> dict:
    monster = obj.get("monster_data")
    if not monster:
        raise AppError.bad_request("Invalid monster data")

    pool = monster.get("question_pool") or {}
    match = {}
    if pool.get("subject_id"):
        match["subject_id"] = pool["subject_id"]
    if pool.get("unit_id"):
        match["unit_id"] = pool["unit_id"]
    if pool.get("difficulty"):
        match["difficulty"] = pool["difficulty"]

    return {
        "type": "battle",
        "monster": {
            "id": obj["id"],
            "name": monster.get("name"),
            "image_url": monster.get("image_url"),
            "description": monster.get("description"),
            "difficulty": monster.get("difficulty"),
            "hp": monster.get("hp"),
            "rewards": monster.get("rewards"),
        },
        "questions": await sample_questions(db, match, pool.get("count") or 5),
    }


async def interact(db: AsyncIOMotorDatabase, player_id: ObjectId, map_id: str, object_id: str) -> dict:
    """
    Interact with a map object

    Raises:
        404: Map, object or player state missing
        400: Object already completed (and not respawned), decoration, or malformed object data
    """
    game_map = await _get_map(db, map_id)
    obj = _find_object(game_map, object_id)
    state = await _get_state(db, player_id, game_map["_id"])

    now = datetime.utcnow()
    if not map_rules.is_available(map_rules.completion_for(state, object_id), now):
        raise AppError.bad_request("Object already completed")

    object_type = obj.get("type")
    if object_type == MapObjectType.CHEST.value:
        return await _open_chest(db, player_id, obj, state, now)
    if object_type == MapObjectType.MONSTER.value:
        return await _start_battle(db, obj)
    if object_type == MapObjectType.NPC.value:
        npc = obj.get("npc_data")
        if not npc:
            raise AppError.bad_request("Invalid NPC data")
        return {"type": "dialogue", "npc": npc}
    if object_type == MapObjectType.PORTAL.value:
        portal = obj.get("portal_data")
        if not portal:
            raise AppError.bad_request("Invalid portal data")
        return {
            "type": "portal",
            "destination": {"map_id": portal["target_map_id"], "position": portal["target_position"]},
            "requires_key": portal.get("requires_key"),
        }
    if object_type == MapObjectType.SAVE_POINT.value:
        await db.player_map_states.update_one(
            {"_id": state["_id"]},
            {"$set": {"last_save_point": obj["position"], "updated_at": now}}
        )
        return {"type": "save_point", "message": "Progress saved", "position": obj["position"]}

    raise AppError.bad_request("This object cannot be interacted with")


async def complete_battle(db: AsyncIOMotorDatabase, player_id: ObjectId, map_id: str, object_id: str, data: BattleResult) -> dict:
    game_map = await _get_map(db, map_id)
    obj = _find_object(game_map, object_id)
    if obj.get("type") != MapObjectType.MONSTER.value or not obj.get("monster_data"):
        raise AppError.not_found("Monster not found")
    state = await _get_state(db, player_id, game_map["_id"])

    now = datetime.utcnow()
    if not map_rules.is_available(map_rules.completion_for(state, object_id), now):
        raise AppError.bad_request("Monster already defeated")

    rewards = {"exp": 0, "gold": 0}
    if data.victory:
        monster = obj["monster_data"]
        rewards = map_rules.battle_rewards(monster.get("rewards") or {}, data.correct_answers, data.total_questions)
        await _reward_player(db, player_id, rewards["exp"], rewards["gold"])

        completion = map_rules.completion_entry(object_id, now, map_rules.monster_respawn(monster))
        await db.player_map_states.update_one(
            {"_id": state["_id"]},
            {"$set": {"completed_objects": map_rules.with_completion(state, completion), "updated_at": now},
             "$inc": {"stats.monsters_defeated": 1}}
        )
        logger.info("Player %s defeated %s on map %s", player_id, object_id, game_map["_id"])

    return {
        "victory": data.victory,
        "rewards": rewards,
        "stats": {"correct_answers": data.correct_answers, "total_questions": data.total_questions},
    }


async def save_time(db: AsyncIOMotorDatabase, player_id: ObjectId, map_id: str, time_spent: int) -> dict:
    state = await _get_state(db, player_id, to_object_id(map_id, "map ID"))
    state = await db.player_map_states.find_one_and_update(
        {"_id": state["_id"]},
        {"$inc": {"stats.time_spent": time_spent}, "$set": {"updated_at": datetime.utcnow()}},
        return_document=ReturnDocument.AFTER
    )
    return {"total_time_spent": state["stats"]["time_spent"]}
