"""
Student rankings

period=all ranks the stored student profiles; daily/weekly/monthly
aggregate question attempts made since the period start.
"""

from datetime import datetime, timedelta
from typing import List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from quest_academy.common.errors import AppError, ErrorCode
from quest_academy.daily_tasks.task_rules import start_of_day
from quest_academy.database import to_object_id
from quest_academy.questions.question_rules import round_half_up
from quest_academy.reports.analytics import CORRECT_SUM

PROFILE_FIELDS = {
    "exp": "exp",
    "level": "level",
    "gold": "gold",
    "correct_rate": "correct_rate",
    "questions_answered": "total_questions_answered",
}
PROFILE_DEFAULTS = {"level": 1}


def period_start(period: str, now: Optional[datetime] = None) -> Optional[datetime]:
    now = now or datetime.utcnow()
    if period == "daily":
        return start_of_day(now)
    if period == "weekly":
        return now - timedelta(days=7)
    if period == "monthly":
        return now - timedelta(days=30)
    return None


def profile_value(user: dict, board_type: str):
    field = PROFILE_FIELDS.get(board_type, "exp")
    profile = user.get("student_profile") or {}
    return profile.get(field) or PROFILE_DEFAULTS.get(field, 0)


def period_value(row: dict, board_type: str) -> int:
    """Level has no per-period meaning and ranks by exp gained"""
    if board_type == "gold":
        return row["total_gold"]
    if board_type == "correct_rate":
        return round_half_up(row["correct_rate"])
    if board_type == "questions_answered":
        return row["total_attempts"]
    return row["total_exp"]


def period_sort_key(row: dict, board_type: str):
    if board_type == "correct_rate":
        return (row["correct_rate"], row["total_attempts"])
    return (period_value(row, board_type),)


async def _title_map(db: AsyncIOMotorDatabase, users: List[dict]) -> dict:
    ids = [
        ((u.get("student_profile") or {}).get("equipped_items") or {}).get("title")
        for u in users
    ]
    ids = [i for i in ids if i]
    if not ids:
        return {}
    items = await db.items.find({"_id": {"$in": ids}}, {"name": 1, "icon": 1, "rarity": 1}).to_list(length=None)
    return {item["_id"]: {"name": item["name"], "icon": item.get("icon"), "rarity": item.get("rarity")} for item in items}


def _entry(user: dict, rank: int, value, current_id: ObjectId, titles: dict) -> dict:
    profile = user.get("student_profile") or {}
    title_id = (profile.get("equipped_items") or {}).get("title")
    return {
        "rank": rank,
        "_id": user["_id"],
        "name": user.get("display_name"),
        "avatar": user.get("avatar_url"),
        "level": profile.get("level", 1),
        "value": value,
        "is_current_user": user["_id"] == current_id,
        "title": titles.get(title_id) if title_id else None,
    }


# ==================== ALL TIME ====================

async def _profile_board(
    db: AsyncIOMotorDatabase,
    board_type: str,
    limit: int,
    student_ids: Optional[List[ObjectId]],
    current_id: ObjectId
) -> dict:
    match = {"role": "student"}
    if student_ids is not None:
        match["_id"] = {"$in": student_ids}

    sort_field = f"student_profile.{PROFILE_FIELDS.get(board_type, 'exp')}"
    users = await db.users.find(match, {"password_hash": 0}).sort(
        [(sort_field, -1), ("student_profile.level", -1)]
    ).limit(limit).to_list(length=None)

    me = await db.users.find_one({"_id": current_id}, {"password_hash": 0})
    my_rank = None
    if me:
        better = await db.users.count_documents({**match, sort_field: {"$gt": profile_value(me, board_type)}})
        my_rank = better + 1

    titles = await _title_map(db, users + ([me] if me else []))
    board = [_entry(u, i + 1, profile_value(u, board_type), current_id, titles) for i, u in enumerate(users)]

    current_user = None
    if me and not any(e["is_current_user"] for e in board):
        current_user = _entry(me, my_rank, profile_value(me, board_type), current_id, titles)

    return {"type": board_type, "period": "all", "leaderboard": board, "current_user": current_user}


# ==================== PERIOD ====================

async def _period_rows(db: AsyncIOMotorDatabase, match: dict) -> List[dict]:
    rows = await db.question_attempts.aggregate([
        {"$match": match},
        {"$group": {
            "_id": "$student_id",
            "total_exp": {"$sum": "$exp_gained"},
            "total_gold": {"$sum": "$gold_gained"},
            "total_attempts": {"$sum": 1},
            "correct_attempts": CORRECT_SUM,
        }},
    ]).to_list(length=None)
    for row in rows:
        total = row["total_attempts"]
        row["correct_rate"] = row["correct_attempts"] / total * 100 if total else 0
    return rows


async def _period_board(
    db: AsyncIOMotorDatabase,
    board_type: str,
    period: str,
    limit: int,
    student_ids: Optional[List[ObjectId]],
    current_id: ObjectId
) -> dict:
    match = {"created_at": {"$gte": period_start(period)}}
    if student_ids is not None:
        match["student_id"] = {"$in": student_ids}

    rows = await _period_rows(db, match)
    rows.sort(key=lambda r: period_sort_key(r, board_type), reverse=True)
    top = rows[:limit]

    users = await db.users.find(
        {"_id": {"$in": [r["_id"] for r in top] + [current_id]}}, {"password_hash": 0}
    ).to_list(length=None)
    user_map = {u["_id"]: u for u in users}
    titles = await _title_map(db, users)

    board = []
    for row in top:
        user = user_map.get(row["_id"])
        if user:
            board.append(_entry(user, len(board) + 1, period_value(row, board_type), current_id, titles))

    current_user = None
    mine = next((r for r in rows if r["_id"] == current_id), None)
    if mine and current_id in user_map and not any(e["is_current_user"] for e in board):
        my_key = period_sort_key(mine, board_type)
        rank = sum(1 for r in rows if period_sort_key(r, board_type) > my_key) + 1
        current_user = _entry(user_map[current_id], rank, period_value(mine, board_type), current_id, titles)

    return {"type": board_type, "period": period, "leaderboard": board, "current_user": current_user}


async def get_leaderboard(
    db: AsyncIOMotorDatabase,
    current_id: ObjectId,
    board_type: str = "exp",
    period: str = "all",
    class_id: Optional[str] = None,
    limit: int = 20
) -> dict:
    student_ids = None
    if class_id:
        cls = await db.classes.find_one({"_id": to_object_id(class_id, "class ID")}, {"students": 1})
        if not cls:
            raise AppError.not_found("Class not found", ErrorCode.CLASS_NOT_FOUND)
        student_ids = cls.get("students", [])

    if period == "all":
        return await _profile_board(db, board_type, limit, student_ids, current_id)
    return await _period_board(db, board_type, period, limit, student_ids, current_id)


async def my_ranks(db: AsyncIOMotorDatabase, current_id: ObjectId) -> dict:
    user = await db.users.find_one({"_id": current_id}, {"student_profile": 1})
    if not user:
        raise AppError.not_found("User not found", ErrorCode.USER_NOT_FOUND)

    total = await db.users.count_documents({"role": "student"})
    ranks = {}
    for board_type in ("exp", "level", "gold", "correct_rate"):
        field = f"student_profile.{PROFILE_FIELDS[board_type]}"
        better = await db.users.count_documents({"role": "student", field: {"$gt": profile_value(user, board_type)}})
        ranks[board_type] = {"rank": better + 1, "total": total}

    return {"user_id": current_id, "ranks": ranks, "profile": user.get("student_profile")}
