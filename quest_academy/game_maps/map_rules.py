"""
Game map rules: layer grids, object availability/respawn, unlocks and battle rewards
Pure functions over plain map and player-state dicts.
"""

from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from quest_academy.questions.question_rules import round_half_up

LAYER_NAMES = ("ground", "obstacles", "decorations")
CHEST_RESPAWN = timedelta(hours=24)


def empty_layer(width: int, height: int) -> List[List[int]]:
    return [[0] * width for _ in range(height)]


def empty_layers(width: int, height: int) -> dict:
    return {name: empty_layer(width, height) for name in LAYER_NAMES}


def layer_matches(layer: List[List[int]], width: int, height: int) -> bool:
    return len(layer) == height and all(len(row) == width for row in layer)


def area_key(x: int, y: int) -> str:
    return f"{x},{y}"


# ==================== OBJECT STATE ====================

def completion_for(state: dict, object_id: str) -> Optional[dict]:
    for entry in state.get("completed_objects") or []:
        if entry.get("object_id") == object_id:
            return entry
    return None


def is_available(completion: Optional[dict], now: datetime) -> bool:
    """Never completed, or completed and already respawned"""
    if not completion:
        return True
    respawn_at = completion.get("respawn_at")
    return bool(completion.get("can_respawn") and respawn_at and respawn_at <= now)


def available_objects(objects: List[dict], state: dict, now: datetime) -> List[dict]:
    return [obj for obj in objects if is_available(completion_for(state, obj["id"]), now)]


def completion_entry(object_id: str, now: datetime, respawn_after: Optional[timedelta]) -> dict:
    return {
        "object_id": object_id,
        "completed_at": now,
        "can_respawn": respawn_after is not None,
        "respawn_at": now + respawn_after if respawn_after is not None else None,
    }


def chest_respawn(chest: dict) -> Optional[timedelta]:
    return None if chest.get("is_one_time") else CHEST_RESPAWN


def monster_respawn(monster: dict) -> Optional[timedelta]:
    seconds = monster.get("respawn_time") or 0
    return timedelta(seconds=seconds) if seconds > 0 else None


def with_completion(state: dict, entry: dict) -> List[dict]:
    """Completed-object list with `entry` replacing any earlier record of the same object"""
    kept = [c for c in state.get("completed_objects") or [] if c.get("object_id") != entry["object_id"]]
    return kept + [entry]


# ==================== UNLOCKS / REWARDS ====================

def unlock_status(game_map: dict, player_level: int, visited_map_ids: set) -> Tuple[bool, str]:
    requirements = game_map.get("requirements") or {}
    level_required = requirements.get("level_required", 1)
    if level_required > player_level:
        return False, f"Requires level {level_required}"
    previous = requirements.get("previous_map_id")
    if previous and previous not in visited_map_ids:
        return False, "Visit the previous map first"
    return True, ""


def battle_rewards(rewards: dict, correct: int, total: int) -> dict:
    if total < 1:
        return {"exp": 0, "gold": 0}
    ratio = correct / total
    return {
        "exp": round_half_up((rewards.get("exp") or 0) * ratio),
        "gold": round_half_up((rewards.get("gold") or 0) * ratio),
    }
