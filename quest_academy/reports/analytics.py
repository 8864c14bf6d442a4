"""
Aggregation helpers over question_attempts shared by the teacher views
"""

from datetime import date, datetime, time, timedelta
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from quest_academy.questions.question_rules import correct_rate, round_half_up

CORRECT_SUM = {"$sum": {"$cond": ["$is_correct", 1, 0]}}

JOIN_QUESTION = [
    {"$lookup": {"from": "questions", "localField": "question_id", "foreignField": "_id", "as": "question"}},
    {"$unwind": "$question"},
]


# ==================== FILTERS ====================

def date_filter(start_date: Optional[date], end_date: Optional[date]) -> dict:
    """created_at range; the end date is inclusive to its last millisecond"""
    if not start_date and not end_date:
        return {}
    created = {}
    if start_date:
        created["$gte"] = datetime.combine(start_date, time.min)
    if end_date:
        created["$lte"] = datetime.combine(end_date, time(23, 59, 59, 999000))
    return {"created_at": created}


def days_ago(days: int) -> datetime:
    return datetime.utcnow() - timedelta(days=days)


# ==================== SHAPING ====================

def with_rate(row: dict, label: str = None) -> dict:
    shaped = {
        "attempts": row.get("attempts", 0),
        "correct": row.get("correct", 0),
        "correct_rate": correct_rate(row.get("correct", 0), row.get("attempts", 0)),
    }
    if label:
        shaped[label] = row.get("_id")
    if "avg_time" in row:
        shaped["avg_time"] = round_half_up(row.get("avg_time") or 0)
    return shaped


# ==================== PIPELINES ====================

async def summary(db: AsyncIOMotorDatabase, match: dict) -> dict:
    rows = await db.question_attempts.aggregate([
        {"$match": match},
        {"$group": {
            "_id": None,
            "total_attempts": {"$sum": 1},
            "correct_attempts": CORRECT_SUM,
            "total_exp": {"$sum": "$exp_gained"},
            "total_gold": {"$sum": "$gold_gained"},
            "avg_time": {"$avg": "$time_spent_seconds"},
            "total_time": {"$sum": "$time_spent_seconds"},
            "first_attempt_at": {"$min": "$created_at"},
            "last_attempt_at": {"$max": "$created_at"},
        }},
    ]).to_list(length=None)
    stats = rows[0] if rows else {}
    total = stats.get("total_attempts", 0)
    correct = stats.get("correct_attempts", 0)
    return {
        "total_attempts": total,
        "correct_attempts": correct,
        "correct_rate": correct_rate(correct, total),
        "total_exp": stats.get("total_exp", 0),
        "total_gold": stats.get("total_gold", 0),
        "avg_time_seconds": round_half_up(stats.get("avg_time") or 0),
        "total_time_seconds": stats.get("total_time", 0),
        "first_attempt_at": stats.get("first_attempt_at"),
        "last_attempt_at": stats.get("last_attempt_at"),
    }


async def by_question_field(db: AsyncIOMotorDatabase, match: dict, field: str, extra_match: Optional[dict] = None) -> List[dict]:
    """Attempts grouped by a field of the joined question, e.g. subject or difficulty"""
    pipeline = [{"$match": match}, *JOIN_QUESTION]
    if extra_match:
        pipeline.append({"$match": extra_match})
    pipeline += [
        {"$group": {
            "_id": f"$question.{field}",
            "attempts": {"$sum": 1},
            "correct": CORRECT_SUM,
            "avg_time": {"$avg": "$time_spent_seconds"},
        }},
        {"$sort": {"attempts": -1}},
    ]
    return await db.question_attempts.aggregate(pipeline).to_list(length=None)


async def by_subject(db: AsyncIOMotorDatabase, match: dict) -> List[dict]:
    rows = await db.question_attempts.aggregate([
        {"$match": match},
        *JOIN_QUESTION,
        {"$lookup": {"from": "subjects", "localField": "question.subject_id", "foreignField": "_id", "as": "subject"}},
        {"$group": {
            "_id": {"subject_id": "$question.subject_id", "legacy_subject": "$question.subject"},
            "subject_info": {"$first": {"$arrayElemAt": ["$subject", 0]}},
            "attempts": {"$sum": 1},
            "correct": CORRECT_SUM,
            "total_exp": {"$sum": "$exp_gained"},
        }},
        {"$sort": {"attempts": -1}},
    ]).to_list(length=None)

    result = []
    for row in rows:
        info = row.get("subject_info") or {}
        result.append({
            "subject_id": row["_id"].get("subject_id"),
            "subject_name": info.get("name") or row["_id"].get("legacy_subject") or "Uncategorized",
            "subject_icon": info.get("icon"),
            "total_exp": row.get("total_exp", 0),
            **with_rate(row),
        })
    return result


async def by_unit(db: AsyncIOMotorDatabase, match: dict) -> List[dict]:
    rows = await db.question_attempts.aggregate([
        {"$match": match},
        *JOIN_QUESTION,
        {"$match": {"question.unit_id": {"$ne": None}}},
        {"$lookup": {"from": "units", "localField": "question.unit_id", "foreignField": "_id", "as": "unit"}},
        {"$unwind": "$unit"},
        {"$group": {
            "_id": "$question.unit_id",
            "unit_name": {"$first": "$unit.name"},
            "academic_year": {"$first": "$unit.academic_year"},
            "grade": {"$first": "$unit.grade"},
            "semester": {"$first": "$unit.semester"},
            "attempts": {"$sum": 1},
            "correct": CORRECT_SUM,
        }},
        {"$sort": {"attempts": -1}},
    ]).to_list(length=None)
    return [
        {
            "unit_id": row["_id"],
            "unit_name": row.get("unit_name"),
            "academic_year": row.get("academic_year"),
            "grade": row.get("grade"),
            "semester": row.get("semester"),
            **with_rate(row),
        }
        for row in rows
    ]


def weak_units(units: List[dict], min_attempts: int = 3, below_rate: float = 60, limit: int = 5) -> List[dict]:
    weak = [
        u for u in units
        if u["attempts"] >= min_attempts and u["correct"] / u["attempts"] * 100 < below_rate
    ]
    weak.sort(key=lambda u: u["correct"] / u["attempts"])
    return weak[:limit]


async def daily_series(db: AsyncIOMotorDatabase, match: dict) -> List[dict]:
    rows = await db.question_attempts.aggregate([
        {"$match": match},
        {"$group": {
            "_id": {"$dateToString": {"format": "%Y-%m-%d", "date": "$created_at"}},
            "attempts": {"$sum": 1},
            "correct": CORRECT_SUM,
            "exp": {"$sum": "$exp_gained"},
        }},
        {"$sort": {"_id": 1}},
    ]).to_list(length=None)
    return [{"date": row["_id"], "exp": row.get("exp", 0), **with_rate(row)} for row in rows]


async def per_student(db: AsyncIOMotorDatabase, match: dict) -> List[dict]:
    rows = await db.question_attempts.aggregate([
        {"$match": match},
        {"$group": {
            "_id": "$student_id",
            "attempts": {"$sum": 1},
            "correct": CORRECT_SUM,
            "total_exp": {"$sum": "$exp_gained"},
        }},
    ]).to_list(length=None)
    return [{"student_id": row["_id"], "total_exp": row.get("total_exp", 0), **with_rate(row)} for row in rows]


async def attach_attempt_refs(db: AsyncIOMotorDatabase, attempts: List[dict]) -> List[dict]:
    """Join the student name and question summary onto each attempt"""
    student_ids = list({a["student_id"] for a in attempts})
    question_ids = list({a["question_id"] for a in attempts})
    students = await db.users.find({"_id": {"$in": student_ids}}, {"display_name": 1}).to_list(length=None)
    questions = await db.questions.find(
        {"_id": {"$in": question_ids}}, {"content.text": 1, "subject": 1, "difficulty": 1, "type": 1}
    ).to_list(length=None)
    student_map = {s["_id"]: s for s in students}
    question_map = {q["_id"]: q for q in questions}

    shaped = []
    for attempt in attempts:
        student = student_map.get(attempt["student_id"]) or {}
        question = question_map.get(attempt["question_id"]) or {}
        shaped.append({
            "_id": attempt["_id"],
            "student": {"_id": attempt["student_id"], "name": student.get("display_name", "Unknown student")},
            "question": {
                "_id": attempt["question_id"],
                "text": (question.get("content") or {}).get("text", "Question deleted"),
                "subject": question.get("subject"),
                "difficulty": question.get("difficulty"),
                "type": question.get("type"),
            },
            "is_correct": attempt.get("is_correct"),
            "time_spent_seconds": attempt.get("time_spent_seconds"),
            "exp_gained": attempt.get("exp_gained", 0),
            "gold_gained": attempt.get("gold_gained", 0),
            "created_at": attempt.get("created_at"),
        })
    return shaped
