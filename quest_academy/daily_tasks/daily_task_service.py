import logging
from datetime import datetime
from typing import Dict, List

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from quest_academy.common.errors import AppError
from quest_academy.daily_tasks.task_rules import (
    DEFAULT_TASKS, progress_by_type, start_of_day, task_progress
)
from quest_academy.database import timestamps, to_object_id

logger = logging.getLogger(__name__)


async def _active_tasks(db: AsyncIOMotorDatabase) -> List[dict]:
    return await db.daily_tasks.find({"is_active": True}).sort("order", 1).to_list(length=None)


async def initialize_daily_tasks(db: AsyncIOMotorDatabase, player_id: ObjectId) -> None:
    """Create today's player task rows for any active task that has none"""
    today = start_of_day()
    tasks = await _active_tasks(db)
    existing = await db.player_daily_tasks.find(
        {"player_id": player_id, "date": today}, {"task_id": 1}
    ).to_list(length=None)
    existing_ids = {row["task_id"] for row in existing}

    new_rows = [
        timestamps({
            "player_id": player_id,
            "task_id": task["_id"],
            "date": today,
            "progress": 0,
            "is_completed": False,
            "is_claimed": False,
            "completed_at": None,
            "claimed_at": None,
        })
        for task in tasks
        if task["_id"] not in existing_ids
    ]
    if new_rows:
        await db.player_daily_tasks.insert_many(new_rows)


async def calculate_progress(db: AsyncIOMotorDatabase, player_id: ObjectId):
    """
    Today's progress per task type, plus per-subject attempt counts
    Subject counts are keyed by both the legacy subject code and the subject id.
    """
    attempts = await db.question_attempts.find(
        {"student_id": player_id, "created_at": {"$gte": start_of_day()}}
    ).sort("created_at", -1).to_list(length=None)

    question_ids = list({a["question_id"] for a in attempts})
    questions = await db.questions.find(
        {"_id": {"$in": question_ids}}, {"subject": 1, "subject_id": 1}
    ).to_list(length=None)
    by_id = {q["_id"]: q for q in questions}

    subject_counts: Dict[str, int] = {}
    for attempt in attempts:
        question = by_id.get(attempt["question_id"]) or {}
        for key in {question.get("subject"), str(question.get("subject_id") or "")}:
            if key:
                subject_counts[key] = subject_counts.get(key, 0) + 1

    return progress_by_type(attempts), subject_counts


async def update_task_progress(db: AsyncIOMotorDatabase, player_id: ObjectId) -> List[dict]:
    """
    Sync today's rows with the recomputed progress
    Returns the tasks that became completed during this call.
    """
    today = start_of_day()
    await initialize_daily_tasks(db, player_id)
    tasks = await _active_tasks(db)
    progress, subject_counts = await calculate_progress(db, player_id)

    completed = []
    for task in tasks:
        current = task_progress(task, progress, subject_counts)
        key = {"player_id": player_id, "task_id": task["_id"], "date": today}

        if current >= task["target_value"]:
            result = await db.player_daily_tasks.update_one(
                {**key, "is_completed": False},
                {"$set": {
                    "progress": task["target_value"],
                    "is_completed": True,
                    "completed_at": datetime.utcnow(),
                    "updated_at": datetime.utcnow(),
                }}
            )
            if result.modified_count:
                completed.append({
                    "task_id": str(task["_id"]),
                    "name": task["name"],
                    "icon": task.get("icon"),
                    "exp_reward": task.get("exp_reward", 0),
                    "gold_reward": task.get("gold_reward", 0),
                })
        else:
            await db.player_daily_tasks.update_one(
                key, {"$set": {"progress": current, "updated_at": datetime.utcnow()}}
            )

    return completed


async def get_daily_tasks(db: AsyncIOMotorDatabase, player_id: ObjectId) -> dict:
    await update_task_progress(db, player_id)
    today = start_of_day()
    tasks = await _active_tasks(db)
    rows = await db.player_daily_tasks.find({"player_id": player_id, "date": today}).to_list(length=None)
    row_map = {row["task_id"]: row for row in rows}
    progress, subject_counts = await calculate_progress(db, player_id)

    result = []
    for task in tasks:
        row = row_map.get(task["_id"]) or {}
        current = min(task_progress(task, progress, subject_counts), task["target_value"])
        result.append({
            "_id": task["_id"],
            "code": task["code"],
            "name": task["name"],
            "description": task.get("description"),
            "icon": task.get("icon"),
            "task_type": task["task_type"],
            "target_value": task["target_value"],
            "target_subject": task.get("target_subject"),
            "exp_reward": task.get("exp_reward", 0),
            "gold_reward": task.get("gold_reward", 0),
            "difficulty": task.get("difficulty"),
            "progress": current,
            "is_completed": current >= task["target_value"],
            "is_claimed": row.get("is_claimed", False),
        })

    return {
        "tasks": result,
        "stats": {
            "total": len(result),
            "completed": sum(1 for t in result if t["is_completed"]),
            "claimed": sum(1 for t in result if t["is_claimed"]),
        },
    }


async def claim_task(db: AsyncIOMotorDatabase, player_id: ObjectId, task_id: str) -> dict:
    task_oid = to_object_id(task_id, "task ID")
    claimable = {
        "player_id": player_id,
        "task_id": task_oid,
        "date": start_of_day(),
        "is_completed": True,
        "is_claimed": False,
    }
    row = await db.player_daily_tasks.find_one(claimable, {"_id": 1})
    task = await db.daily_tasks.find_one({"_id": task_oid}) if row else None
    if not row or not task:
        raise AppError.bad_request("Task is not completed or already claimed")

    now = datetime.utcnow()
    claimed = await db.player_daily_tasks.find_one_and_update(
        {**claimable, "_id": row["_id"]},
        {"$set": {"is_claimed": True, "claimed_at": now, "updated_at": now}}
    )
    if not claimed:
        raise AppError.bad_request("Task is not completed or already claimed")

    rewards = {"exp": task.get("exp_reward", 0), "gold": task.get("gold_reward", 0)}
    await db.users.update_one(
        {"_id": player_id},
        {"$inc": {"student_profile.exp": rewards["exp"], "student_profile.gold": rewards["gold"]}}
    )
    logger.info("Player %s claimed daily task %s", player_id, task["code"])
    return {"message": "Reward claimed", "rewards": rewards}


async def claim_all_tasks(db: AsyncIOMotorDatabase, player_id: ObjectId) -> dict:
    query = {
        "player_id": player_id,
        "date": start_of_day(),
        "is_completed": True,
        "is_claimed": False,
    }
    rows = await db.player_daily_tasks.find(query).to_list(length=None)
    tasks = await db.daily_tasks.find({"_id": {"$in": [r["task_id"] for r in rows]}}).to_list(length=None)
    rewarded_ids = {t["_id"] for t in tasks}
    rows = [r for r in rows if r["task_id"] in rewarded_ids]
    if not rows:
        raise AppError.bad_request("No task rewards to claim")

    total_exp = sum(t.get("exp_reward", 0) for t in tasks)
    total_gold = sum(t.get("gold_reward", 0) for t in tasks)

    now = datetime.utcnow()
    await db.player_daily_tasks.update_many(
        {**query, "_id": {"$in": [r["_id"] for r in rows]}},
        {"$set": {"is_claimed": True, "claimed_at": now, "updated_at": now}}
    )
    await db.users.update_one(
        {"_id": player_id},
        {"$inc": {"student_profile.exp": total_exp, "student_profile.gold": total_gold}}
    )
    return {
        "message": f"Claimed {len(rows)} task rewards",
        "rewards": {"exp": total_exp, "gold": total_gold},
        "count": len(rows),
    }


async def seed_daily_tasks(db: AsyncIOMotorDatabase) -> dict:
    await db.daily_tasks.delete_many({})
    docs = [timestamps({**task, "target_subject": None, "is_active": True}) for task in DEFAULT_TASKS]
    result = await db.daily_tasks.insert_many(docs)
    logger.info("Seeded %d daily tasks", len(result.inserted_ids))
    return {"message": f"Created {len(result.inserted_ids)} daily tasks", "count": len(result.inserted_ids)}
