from datetime import date
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from quest_academy.auth.auth_permissions import UserContext, check_class_access
from quest_academy.common.errors import AppError, ErrorCode
from quest_academy.daily_tasks.task_rules import start_of_day
from quest_academy.database import to_object_id
from quest_academy.questions.question_rules import correct_rate, round_half_up
from quest_academy.reports import analytics


async def _names(db: AsyncIOMotorDatabase, user_ids: List) -> dict:
    users = await db.users.find({"_id": {"$in": user_ids}}, {"display_name": 1}).to_list(length=None)
    return {u["_id"]: u.get("display_name") for u in users}


# ==================== DASHBOARD ====================

async def dashboard(db: AsyncIOMotorDatabase, teacher: UserContext) -> dict:
    classes = await db.classes.find({"teacher_id": teacher.oid, "is_active": True}).to_list(length=None)
    student_ids = list({sid for c in classes for sid in c.get("students", [])})
    in_classes = {"student_id": {"$in": student_ids}}

    totals = await analytics.summary(db, in_classes)
    today_attempts = await db.question_attempts.count_documents(
        {**in_classes, "created_at": {"$gte": start_of_day()}}
    )
    weekly = await analytics.daily_series(db, {**in_classes, "created_at": {"$gte": analytics.days_ago(7)}})
    recent = await db.question_attempts.find(in_classes).sort("created_at", -1).limit(10).to_list(length=None)

    week_rows = await analytics.per_student(db, {**in_classes, "created_at": {"$gte": analytics.days_ago(7)}})
    struggling = [r for r in week_rows if r["attempts"] >= 5 and r["correct"] / r["attempts"] < 0.5]
    struggling.sort(key=lambda r: r["correct"] / r["attempts"])
    struggling = struggling[:5]
    names = await _names(db, [r["student_id"] for r in struggling])

    return {
        "overview": {
            "total_classes": len(classes),
            "total_students": await db.users.count_documents({"_id": {"$in": student_ids}, "role": "student"}),
            "total_questions": await db.questions.count_documents({"created_by": teacher.oid, "is_active": True}),
            "total_attempts": totals["total_attempts"],
            "correct_rate": totals["correct_rate"],
            "today_attempts": today_attempts,
        },
        "weekly_trend": [{k: v for k, v in day.items() if k != "exp"} for day in weekly],
        "classes": [
            {"_id": c["_id"], "name": c["name"], "student_count": len(c.get("students", []))}
            for c in classes
        ],
        "recent_activity": await analytics.attach_attempt_refs(db, recent),
        "students_needing_attention": [
            {
                "_id": r["student_id"],
                "name": names.get(r["student_id"]),
                "attempts": r["attempts"],
                "correct": r["correct"],
                "correct_rate": r["correct_rate"],
            }
            for r in struggling
        ],
    }


# ==================== CLASS ====================

async def class_report(
    db: AsyncIOMotorDatabase,
    class_id: str,
    current: UserContext,
    start_date: Optional[date],
    end_date: Optional[date]
) -> dict:
    cls = await db.classes.find_one({"_id": to_object_id(class_id, "class ID")})
    if not cls:
        raise AppError.not_found("Class not found", ErrorCode.CLASS_NOT_FOUND)
    check_class_access(cls, current)

    student_ids = cls.get("students", [])
    match = {"student_id": {"$in": student_ids}, **analytics.date_filter(start_date, end_date)}

    stats = await analytics.summary(db, match)
    subjects = await analytics.by_question_field(db, match, "subject")
    ranked = sorted(await analytics.per_student(db, match), key=lambda r: r["total_exp"], reverse=True)[:10]
    names = await _names(db, [r["student_id"] for r in ranked])
    students = await db.users.find(
        {"_id": {"$in": student_ids}}, {"display_name": 1, "email": 1, "student_profile": 1}
    ).to_list(length=None)

    return {
        "class": {
            "_id": cls["_id"],
            "name": cls["name"],
            "description": cls.get("description"),
            "student_count": len(student_ids),
            "invite_code": cls.get("invite_code"),
        },
        "stats": {
            "total_attempts": stats["total_attempts"],
            "correct_attempts": stats["correct_attempts"],
            "correct_rate": stats["correct_rate"],
            "total_exp": stats["total_exp"],
            "avg_time_spent": stats["avg_time_seconds"],
        },
        "by_subject": [analytics.with_rate(row, "subject") for row in subjects],
        "top_students": [
            {
                "_id": r["student_id"],
                "name": names.get(r["student_id"]),
                "attempts": r["attempts"],
                "correct": r["correct"],
                "correct_rate": r["correct_rate"],
                "total_exp": r["total_exp"],
            }
            for r in ranked
        ],
        "students": [
            {
                "_id": s["_id"],
                "name": s.get("display_name"),
                "email": s.get("email"),
                "level": (s.get("student_profile") or {}).get("level", 1),
                "exp": (s.get("student_profile") or {}).get("exp", 0),
                "correct_rate": (s.get("student_profile") or {}).get("correct_rate", 0),
            }
            for s in students
        ],
    }


# ==================== STUDENT ====================

async def student_report(
    db: AsyncIOMotorDatabase,
    student_id: str,
    current: UserContext,
    start_date: Optional[date],
    end_date: Optional[date]
) -> dict:
    student = await db.users.find_one({"_id": to_object_id(student_id, "student ID")})
    if not student or student.get("role") != "student":
        raise AppError.not_found("Student not found", ErrorCode.USER_NOT_FOUND)

    classes = await db.classes.find(
        {"teacher_id": current.oid, "students": student["_id"], "is_active": True}, {"name": 1}
    ).to_list(length=None)
    if not classes and not current.is_admin:
        raise AppError.forbidden("You cannot view this student")

    match = {"student_id": student["_id"], **analytics.date_filter(start_date, end_date)}
    stats = await analytics.summary(db, match)
    subjects = await analytics.by_question_field(db, match, "subject")
    difficulties = await analytics.by_question_field(db, match, "difficulty")
    trend = await analytics.daily_series(
        db, {"student_id": student["_id"], "created_at": {"$gte": analytics.days_ago(14)}}
    )
    recent = await db.question_attempts.find({"student_id": student["_id"]}).sort("created_at", -1).limit(10).to_list(length=None)
    profile = student.get("student_profile") or {}

    return {
        "student": {
            "_id": student["_id"],
            "name": student.get("display_name"),
            "email": student.get("email"),
            "level": profile.get("level", 1),
            "exp": profile.get("exp", 0),
            "exp_to_next_level": profile.get("exp_to_next_level", 100),
            "gold": profile.get("gold", 0),
            "correct_rate": profile.get("correct_rate", 0),
            "total_questions_answered": profile.get("total_questions_answered", 0),
        },
        "stats": {
            "total_attempts": stats["total_attempts"],
            "correct_attempts": stats["correct_attempts"],
            "correct_rate": stats["correct_rate"],
            "total_exp": stats["total_exp"],
            "total_gold": stats["total_gold"],
            "avg_time_spent": stats["avg_time_seconds"],
        },
        "by_subject": [analytics.with_rate(row, "subject") for row in subjects],
        "by_difficulty": [analytics.with_rate(row, "difficulty") for row in difficulties],
        "daily_trend": [{k: v for k, v in day.items() if k != "exp"} for day in trend],
        "recent_attempts": await analytics.attach_attempt_refs(db, recent),
        "classes": [{"_id": c["_id"], "name": c["name"]} for c in classes],
    }


# ==================== QUESTIONS ====================

async def question_analysis(
    db: AsyncIOMotorDatabase,
    teacher: UserContext,
    class_id: Optional[str],
    start_date: Optional[date],
    end_date: Optional[date]
) -> dict:
    """
    Per-question performance for questions the caller created
    hard: below 40% with at least 5 attempts; easy: above 80% with at least 5
    """
    match = analytics.date_filter(start_date, end_date)
    if class_id:
        cls = await db.classes.find_one({"_id": to_object_id(class_id, "class ID")})
        if not cls:
            raise AppError.not_found("Class not found", ErrorCode.CLASS_NOT_FOUND)
        check_class_access(cls, teacher)
        match["student_id"] = {"$in": cls.get("students", [])}

    own = {"question.created_by": teacher.oid}
    rows = await db.question_attempts.aggregate([
        {"$match": match},
        {"$group": {
            "_id": "$question_id",
            "attempts": {"$sum": 1},
            "correct": analytics.CORRECT_SUM,
            "avg_time": {"$avg": "$time_spent_seconds"},
        }},
        {"$lookup": {"from": "questions", "localField": "_id", "foreignField": "_id", "as": "question"}},
        {"$unwind": "$question"},
        {"$match": own},
        {"$sort": {"attempts": -1}},
    ]).to_list(length=None)

    questions = []
    for row in rows:
        question = row["question"]
        raw_rate = row["correct"] / row["attempts"] * 100 if row["attempts"] else 0
        questions.append({
            "_id": question["_id"],
            "subject": question.get("subject"),
            "difficulty": question.get("difficulty"),
            "type": question.get("type"),
            "content": (question.get("content") or {}).get("text"),
            "attempts": row["attempts"],
            "raw_rate": raw_rate,
            "correct_rate": correct_rate(row["correct"], row["attempts"]),
            "avg_time": round_half_up(row.get("avg_time") or 0),
        })

    def public(items):
        return [{k: v for k, v in q.items() if k != "raw_rate"} for q in items]

    hard = [q for q in questions if q["raw_rate"] < 40 and q["attempts"] >= 5][:10]
    easy = [q for q in questions if q["raw_rate"] > 80 and q["attempts"] >= 5][:10]
    difficulties = await analytics.by_question_field(db, match, "difficulty", own)
    types = await analytics.by_question_field(db, match, "type", own)

    return {
        "summary": {
            "total_questions": len(questions),
            "total_attempts": sum(q["attempts"] for q in questions),
            "avg_correct_rate": round_half_up(
                sum(q["raw_rate"] for q in questions) / len(questions)
            ) if questions else 0,
        },
        "by_difficulty": [analytics.with_rate(row, "difficulty") for row in difficulties],
        "by_type": [analytics.with_rate(row, "type") for row in types],
        "hard_questions": public(hard),
        "easy_questions": public(easy),
        "most_attempted": public(questions[:10]),
    }
