import logging
from datetime import datetime
from typing import List, Optional, Tuple

from motor.motor_asyncio import AsyncIOMotorDatabase

from quest_academy.common.errors import AppError, ErrorCode
from quest_academy.database import to_object_id
from quest_academy.questions.question_rules import round_half_up
from quest_academy.reports import analytics
from quest_academy.students.student_schemas import StudentUpdate

logger = logging.getLogger(__name__)

PROFILE_SORT_FIELDS = {"level", "exp", "correct_rate", "total_questions_answered"}


def sort_field(sort_by: str) -> str:
    if sort_by in PROFILE_SORT_FIELDS:
        return f"student_profile.{sort_by}"
    return sort_by


async def _get_student(db: AsyncIOMotorDatabase, student_id: str) -> dict:
    student = await db.users.find_one(
        {"_id": to_object_id(student_id, "student ID"), "role": "student"},
        {"password_hash": 0}
    )
    if not student:
        raise AppError.not_found("Student not found", ErrorCode.USER_NOT_FOUND)
    return student


# ==================== LIST ====================

async def list_students(
    db: AsyncIOMotorDatabase,
    search: Optional[str],
    class_id: Optional[str],
    sort_by: str,
    sort_order: str,
    skip: int,
    limit: int
) -> Tuple[List[dict], int]:
    query = {"role": "student"}
    if search:
        query["$or"] = [
            {"display_name": {"$regex": search, "$options": "i"}},
            {"email": {"$regex": search, "$options": "i"}},
        ]
    if class_id:
        query["student_profile.class_id"] = to_object_id(class_id, "class ID")

    direction = 1 if sort_order == "asc" else -1
    students = await db.users.find(query, {"password_hash": 0}).sort(sort_field(sort_by), direction).skip(skip).limit(limit).to_list(length=None)
    total = await db.users.count_documents(query)

    ids = [s["_id"] for s in students]
    attempt_rows = await db.question_attempts.aggregate([
        {"$match": {"student_id": {"$in": ids}}},
        {"$group": {
            "_id": "$student_id",
            "total_attempts": {"$sum": 1},
            "correct_attempts": analytics.CORRECT_SUM,
            "last_attempt_at": {"$max": "$created_at"},
        }},
    ]).to_list(length=None)
    attempt_map = {row["_id"]: row for row in attempt_rows}

    classes = await db.classes.find(
        {"students": {"$in": ids}, "is_active": True}, {"name": 1, "students": 1}
    ).to_list(length=None)
    class_map = {}
    for cls in classes:
        for sid in cls.get("students", []):
            class_map.setdefault(sid, []).append({"_id": cls["_id"], "name": cls["name"]})

    result = []
    for student in students:
        profile = student.get("student_profile") or {}
        attempts = attempt_map.get(student["_id"]) or {}
        result.append({
            "_id": student["_id"],
            "display_name": student.get("display_name"),
            "email": student.get("email"),
            "level": profile.get("level", 1),
            "exp": profile.get("exp", 0),
            "exp_to_next_level": profile.get("exp_to_next_level", 100),
            "gold": profile.get("gold", 0),
            "total_questions_answered": profile.get("total_questions_answered", 0),
            "correct_rate": profile.get("correct_rate", 0),
            "class_id": profile.get("class_id"),
            "total_attempts": attempts.get("total_attempts", 0),
            "correct_attempts": attempts.get("correct_attempts", 0),
            "last_attempt_at": attempts.get("last_attempt_at"),
            "created_at": student.get("created_at"),
            "last_login_at": student.get("last_login_at"),
            "classes": class_map.get(student["_id"], []),
        })
    return result, total


# ==================== DETAIL ====================

def _trend(this_week: dict, last_week: dict) -> dict:
    def rate(stats):
        total = stats["total_attempts"]
        return stats["correct_attempts"] / total * 100 if total else 0

    def shaped(stats):
        return {
            "attempts": stats["total_attempts"],
            "correct": stats["correct_attempts"],
            "correct_rate": stats["correct_rate"],
            "avg_time": stats["avg_time_seconds"],
        }

    return {
        "this_week": shaped(this_week),
        "last_week": shaped(last_week),
        "improvement": {
            "attempts_change": this_week["total_attempts"] - last_week["total_attempts"],
            "correct_rate_change": round_half_up(rate(this_week) - rate(last_week)),
            "avg_time_change": this_week["avg_time_seconds"] - last_week["avg_time_seconds"],
        },
    }


async def get_student_detail(db: AsyncIOMotorDatabase, student_id: str) -> dict:
    student = await _get_student(db, student_id)
    sid = student["_id"]
    mine = {"student_id": sid}

    classes = await db.classes.find({"students": sid, "is_active": True}, {"name": 1}).to_list(length=None)
    overview = await analytics.summary(db, mine)
    units = await analytics.by_unit(db, mine)
    difficulties = await analytics.by_question_field(db, mine, "difficulty")

    stage_rows = await db.player_stage_progress.aggregate([
        {"$match": {"player_id": sid}},
        {"$lookup": {"from": "stages", "localField": "stage_id", "foreignField": "_id", "as": "stage"}},
        {"$unwind": "$stage"},
        {"$sort": {"stage.order": 1}},
    ]).to_list(length=None)

    this_week = await analytics.summary(db, {**mine, "created_at": {"$gte": analytics.days_ago(7)}})
    last_week = await analytics.summary(db, {
        **mine, "created_at": {"$gte": analytics.days_ago(14), "$lt": analytics.days_ago(7)}
    })

    profile = student.get("student_profile") or {}
    return {
        "student": {
            "_id": sid,
            "display_name": student.get("display_name"),
            "email": student.get("email"),
            "level": profile.get("level", 1),
            "exp": profile.get("exp", 0),
            "exp_to_next_level": profile.get("exp_to_next_level", 100),
            "gold": profile.get("gold", 0),
            "created_at": student.get("created_at"),
            "last_login_at": student.get("last_login_at"),
            "classes": [{"_id": c["_id"], "name": c["name"]} for c in classes],
        },
        "stats": {
            "overview": {
                "total_attempts": overview["total_attempts"],
                "correct_attempts": overview["correct_attempts"],
                "correct_rate": overview["correct_rate"],
                "total_exp": overview["total_exp"],
                "total_gold": overview["total_gold"],
                "avg_time_seconds": overview["avg_time_seconds"],
                "total_time_seconds": overview["total_time_seconds"],
                "first_attempt_at": overview["first_attempt_at"],
                "last_attempt_at": overview["last_attempt_at"],
            },
            "by_subject": await analytics.by_subject(db, mine),
            "by_unit": units[:10],
            "by_difficulty": [analytics.with_rate(row, "difficulty") for row in difficulties],
            "weak_units": analytics.weak_units(units),
            "stage_progress": [
                {
                    "stage_id": row["stage_id"],
                    "stage_name": row["stage"].get("name"),
                    "stage_icon": row["stage"].get("icon"),
                    "order": row["stage"].get("order", 0),
                    "is_unlocked": row.get("is_unlocked", False),
                    "is_completed": row.get("is_completed", False),
                    "completed_at": row.get("completed_at"),
                    "best_score": row.get("best_score", 0),
                    "total_attempts": row.get("total_attempts", 0),
                }
                for row in stage_rows
            ],
            "learning_trend": _trend(this_week, last_week),
            "recent_activity": await analytics.daily_series(
                db, {**mine, "created_at": {"$gte": analytics.days_ago(7)}}
            ),
        },
    }


async def get_student_attempts(
    db: AsyncIOMotorDatabase,
    student_id: str,
    subject_id: Optional[str],
    unit_id: Optional[str],
    is_correct: Optional[bool],
    skip: int,
    limit: int
) -> Tuple[List[dict], int]:
    student = await _get_student(db, student_id)
    match = {"student_id": student["_id"]}
    if is_correct is not None:
        match["is_correct"] = is_correct

    question_match = {}
    if subject_id:
        question_match["question.subject_id"] = to_object_id(subject_id, "subject ID")
    if unit_id:
        question_match["question.unit_id"] = to_object_id(unit_id, "unit ID")

    base = [{"$match": match}, *analytics.JOIN_QUESTION]
    if question_match:
        base.append({"$match": question_match})

    counted = await db.question_attempts.aggregate([*base, {"$count": "total"}]).to_list(length=None)
    total = counted[0]["total"] if counted else 0

    rows = await db.question_attempts.aggregate([
        *base,
        {"$lookup": {"from": "subjects", "localField": "question.subject_id", "foreignField": "_id", "as": "subject"}},
        {"$lookup": {"from": "units", "localField": "question.unit_id", "foreignField": "_id", "as": "unit"}},
        {"$sort": {"created_at": -1}},
        {"$skip": skip},
        {"$limit": limit},
    ]).to_list(length=None)

    attempts = []
    for row in rows:
        question = row["question"]
        attempts.append({
            "_id": row["_id"],
            "submitted_answer": row.get("submitted_answer"),
            "is_correct": row.get("is_correct"),
            "time_spent_seconds": row.get("time_spent_seconds"),
            "exp_gained": row.get("exp_gained", 0),
            "gold_gained": row.get("gold_gained", 0),
            "created_at": row.get("created_at"),
            "question": {
                "_id": question["_id"],
                "type": question.get("type"),
                "difficulty": question.get("difficulty"),
                "content": question.get("content"),
                "answer": question.get("answer"),
            },
            "subject": row["subject"][0] if row.get("subject") else None,
            "unit": row["unit"][0] if row.get("unit") else None,
        })
    return attempts, total


# ==================== UPDATE ====================

async def update_student(db: AsyncIOMotorDatabase, student_id: str, data: StudentUpdate) -> dict:
    student = await _get_student(db, student_id)
    updates = {}
    changes = data.changes()

    if "display_name" in changes:
        updates["display_name"] = changes["display_name"].strip()

    if "class_id" in data.dict(exclude_unset=True):
        class_oid = None
        if data.class_id:
            class_oid = to_object_id(data.class_id, "class ID")
            cls = await db.classes.find_one({"_id": class_oid})
            if not cls:
                raise AppError.not_found("Class not found", ErrorCode.CLASS_NOT_FOUND)
            await db.classes.update_one({"_id": class_oid}, {"$addToSet": {"students": student["_id"]}})
        previous = (student.get("student_profile") or {}).get("class_id")
        if previous and previous != class_oid:
            await db.classes.update_one({"_id": previous}, {"$pull": {"students": student["_id"]}})
        updates["student_profile.class_id"] = class_oid

    if updates:
        updates["updated_at"] = datetime.utcnow()
        await db.users.update_one({"_id": student["_id"]}, {"$set": updates})
        logger.info("Updated student %s: %s", student["_id"], ", ".join(updates))

    return await _get_student(db, student_id)
