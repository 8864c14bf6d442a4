import logging
from datetime import datetime
from typing import Dict, Iterable, List

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from quest_academy.achievements.achievement_rules import (
    DEFAULT_ACHIEVEMENTS, RequirementType, group_by_category, is_met, player_view, unlocked_percentage
)
from quest_academy.common.errors import AppError
from quest_academy.daily_tasks.task_rules import leading_streak, start_of_day
from quest_academy.database import timestamps, to_object_id

logger = logging.getLogger(__name__)

STREAK_WINDOW = 100


# ==================== PROGRESS ====================

async def _attempt_totals(db: AsyncIOMotorDatabase, player_id: ObjectId) -> dict:
    pipeline = [
        {"$match": {"student_id": player_id}},
        {"$group": {
            "_id": None,
            "answered": {"$sum": 1},
            "correct": {"$sum": {"$cond": ["$is_correct", 1, 0]}},
            "exp": {"$sum": "$exp_gained"},
            "gold": {"$sum": "$gold_gained"},
        }},
    ]
    rows = await db.question_attempts.aggregate(pipeline).to_list(length=1)
    return rows[0] if rows else {}


async def player_progress(db: AsyncIOMotorDatabase, player_id: ObjectId, kinds: Iterable[str] = None) -> Dict[str, int]:
    """
    Current value for each requirement type in `kinds` (all types when omitted)
    """
    kinds = set(kinds or [k.value for k in RequirementType])
    progress: Dict[str, int] = {}

    if kinds & {"questions_answered", "correct_answers", "exp_earned", "gold_earned"}:
        totals = await _attempt_totals(db, player_id)
        progress["questions_answered"] = totals.get("answered", 0)
        progress["correct_answers"] = totals.get("correct", 0)
        progress["exp_earned"] = totals.get("exp", 0)
        progress["gold_earned"] = totals.get("gold", 0)

    if "correct_streak" in kinds:
        recent = await db.question_attempts.find(
            {"student_id": player_id}, {"is_correct": 1}
        ).sort("created_at", -1).limit(STREAK_WINDOW).to_list(length=STREAK_WINDOW)
        progress["correct_streak"] = leading_streak(a.get("is_correct", False) for a in recent)

    if "daily_questions" in kinds:
        progress["daily_questions"] = await db.question_attempts.count_documents(
            {"student_id": player_id, "created_at": {"$gte": start_of_day()}}
        )

    if "items_purchased" in kinds:
        rows = await db.player_items.find({"player_id": player_id}, {"quantity": 1}).to_list(length=None)
        progress["items_purchased"] = sum(r.get("quantity", 0) for r in rows)

    if "level_reached" in kinds:
        user = await db.users.find_one({"_id": player_id}, {"student_profile.level": 1})
        progress["level_reached"] = ((user or {}).get("student_profile") or {}).get("level", 1)

    return progress


async def _subject_stats(db: AsyncIOMotorDatabase, player_id: ObjectId) -> dict:
    user = await db.users.find_one({"_id": player_id}, {"student_profile.stats": 1})
    return ((user or {}).get("student_profile") or {}).get("stats") or {}


# ==================== UNLOCKING ====================

async def check_achievements(db: AsyncIOMotorDatabase, player_id: ObjectId, triggers: List[str]) -> List[dict]:
    """
    Unlock every active achievement of the triggered types whose target is met
    Rewards are added to the player's profile as soon as an achievement unlocks.
    Returns the achievements unlocked by this call.
    """
    candidates = await db.achievements.find(
        {"is_active": True, "requirement_type": {"$in": list(triggers)}}
    ).sort("order", 1).to_list(length=None)
    if not candidates:
        return []

    owned = await db.player_achievements.find(
        {"player_id": player_id, "achievement_id": {"$in": [a["_id"] for a in candidates]}},
        {"achievement_id": 1}
    ).to_list(length=None)
    owned_ids = {row["achievement_id"] for row in owned}
    candidates = [a for a in candidates if a["_id"] not in owned_ids]
    if not candidates:
        return []

    progress = await player_progress(db, player_id, {a["requirement_type"] for a in candidates})
    subject_stats = None
    if any(a["requirement_type"] == RequirementType.SUBJECT_MASTERY.value for a in candidates):
        subject_stats = await _subject_stats(db, player_id)

    unlocked = []
    for achievement in candidates:
        if not is_met(achievement, progress, subject_stats):
            continue

        now = datetime.utcnow()
        result = await db.player_achievements.update_one(
            {"player_id": player_id, "achievement_id": achievement["_id"]},
            {"$setOnInsert": {
                "unlocked_at": now,
                "progress": achievement["requirement_value"],
                "is_new": True,
                "created_at": now,
                "updated_at": now,
            }},
            upsert=True
        )
        # Another request unlocked it first
        if result.upserted_id is None:
            continue

        exp = achievement.get("exp_reward", 0)
        gold = achievement.get("gold_reward", 0)
        if exp or gold:
            await db.users.update_one(
                {"_id": player_id},
                {"$inc": {"student_profile.exp": exp, "student_profile.gold": gold}}
            )
        logger.info("Player %s unlocked achievement %s", player_id, achievement["code"])
        unlocked.append({
            "_id": achievement["_id"],
            "code": achievement["code"],
            "name": achievement["name"],
            "description": achievement.get("description"),
            "icon": achievement.get("icon"),
            "rarity": achievement.get("rarity"),
            "exp_reward": exp,
            "gold_reward": gold,
        })

    return unlocked


# ==================== PLAYER VIEWS ====================

async def list_achievements(db: AsyncIOMotorDatabase, player_id: ObjectId) -> dict:
    catalogue = await db.achievements.find({"is_active": True}).sort(
        [("category", 1), ("order", 1)]
    ).to_list(length=None)
    rows = await db.player_achievements.find({"player_id": player_id}).to_list(length=None)
    unlocked_map = {row["achievement_id"]: row for row in rows}

    progress = await player_progress(db, player_id)
    subject_stats = await _subject_stats(db, player_id)
    entries = [
        player_view(a, unlocked_map.get(a["_id"]), progress, subject_stats)
        for a in catalogue
    ]
    unlocked_count = sum(1 for e in entries if e["is_unlocked"])

    return {
        "achievements": group_by_category(entries),
        "stats": {
            "total": len(entries),
            "unlocked": unlocked_count,
            "percentage": unlocked_percentage(unlocked_count, len(entries)),
            "new_count": sum(1 for e in entries if e["is_unlocked"] and e["is_new"]),
        },
    }


async def new_achievements(db: AsyncIOMotorDatabase, player_id: ObjectId) -> List[dict]:
    rows = await db.player_achievements.find(
        {"player_id": player_id, "is_new": True}
    ).sort("unlocked_at", -1).to_list(length=None)
    catalogue = await db.achievements.find(
        {"_id": {"$in": [r["achievement_id"] for r in rows]}}
    ).to_list(length=None)
    by_id = {a["_id"]: a for a in catalogue}

    return [
        {"_id": row["_id"], "achievement": by_id.get(row["achievement_id"]), "unlocked_at": row["unlocked_at"]}
        for row in rows
    ]


async def mark_seen(db: AsyncIOMotorDatabase, player_id: ObjectId, achievement_id: str) -> dict:
    oid = to_object_id(achievement_id, "achievement ID")
    result = await db.player_achievements.update_one(
        {"player_id": player_id, "achievement_id": oid},
        {"$set": {"is_new": False, "updated_at": datetime.utcnow()}}
    )
    if not result.matched_count:
        raise AppError.bad_request("Achievement is not unlocked")
    return {"message": "Marked as seen"}


async def mark_all_seen(db: AsyncIOMotorDatabase, player_id: ObjectId) -> dict:
    result = await db.player_achievements.update_many(
        {"player_id": player_id, "is_new": True},
        {"$set": {"is_new": False, "updated_at": datetime.utcnow()}}
    )
    return {"message": "All achievements marked as seen", "count": result.modified_count}


# ==================== ADMIN ====================

async def seed_achievements(db: AsyncIOMotorDatabase) -> dict:
    """Replace the catalogue with the default achievements"""
    await db.achievements.delete_many({})
    docs = [
        timestamps({**a, "requirement_subject": None, "is_active": True, "is_hidden": False})
        for a in DEFAULT_ACHIEVEMENTS
    ]
    result = await db.achievements.insert_many(docs)
    logger.info("Seeded %d achievements", len(result.inserted_ids))
    return {"message": f"Created {len(result.inserted_ids)} achievements", "count": len(result.inserted_ids)}
