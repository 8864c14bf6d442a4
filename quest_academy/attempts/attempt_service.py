import logging
from datetime import datetime
from typing import List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from quest_academy import config
from quest_academy.achievements.achievement_rules import answer_triggers
from quest_academy.achievements.achievement_service import check_achievements
from quest_academy.attempts import progression
from quest_academy.attempts.attempt_schemas import AnswerSubmit, AttemptSource
from quest_academy.common.errors import AppError, ErrorCode
from quest_academy.daily_tasks.daily_task_service import update_task_progress
from quest_academy.database import timestamps, to_object_id, to_object_ids
from quest_academy.questions.question_rules import (
    base_rewards, check_answer, correct_rate, updated_stats
)
from quest_academy.questions.question_service import sample_questions

logger = logging.getLogger(__name__)


# ==================== SUBMISSION ====================

async def _active_boosts(db: AsyncIOMotorDatabase, player_id: ObjectId) -> List[dict]:
    return await db.active_effects.find({
        "player_id": player_id,
        "effect_type": {"$in": ["exp_boost", "gold_boost"]},
        "expires_at": {"$gt": datetime.utcnow()},
    }).to_list(length=None)


async def submit_answer(
    db: AsyncIOMotorDatabase,
    student_id: ObjectId,
    question_id: str,
    data: AnswerSubmit
) -> dict:
    """
    Grade an answer, record the attempt and progress the student

    Rewards are only granted for correct answers. Practice answers beyond the
    daily reward limit still count but earn nothing.
    """
    question = await db.questions.find_one({"_id": to_object_id(question_id, "question ID")})
    if not question or not question.get("is_active", True):
        raise AppError.not_found("Question not found", ErrorCode.QUESTION_NOT_FOUND)

    student = await db.users.find_one({"_id": student_id})
    profile = (student or {}).get("student_profile") or {}
    now = datetime.utcnow()

    is_correct = check_answer(question["type"], question["answer"]["correct"], data.answer)
    source = AttemptSource(data.source).value
    practice = source == AttemptSource.PRACTICE.value
    daily = progression.current_daily_practice(profile, now)
    rewards_limited = practice and not progression.can_earn_rewards(daily)

    exp, gold = base_rewards(question) if is_correct else (0, 0)
    if rewards_limited:
        exp, gold = 0, 0
    if is_correct and not rewards_limited:
        exp, gold = progression.apply_boosts(exp, gold, await _active_boosts(db, student_id))

    attempt = timestamps({
        "student_id": student_id,
        "question_id": question["_id"],
        "submitted_answer": data.answer,
        "is_correct": is_correct,
        "time_spent_seconds": data.time_spent_seconds,
        "exp_gained": exp,
        "gold_gained": gold,
        "source": source,
    })
    result = await db.question_attempts.insert_one(attempt)

    stats = updated_stats(question.get("stats") or {}, is_correct, data.time_spent_seconds)
    await db.questions.update_one(
        {"_id": question["_id"]},
        {
            "$inc": {"stats.total_attempts": 1, "stats.correct_count": 1 if is_correct else 0},
            "$set": {"stats.avg_time_seconds": stats["avg_time_seconds"]},
        }
    )

    levels_gained = []
    if profile:
        updated, levels_gained = progression.progress_profile(
            profile,
            exp=exp,
            gold=gold,
            rewarded=is_correct and not rewards_limited,
            subject=question.get("subject"),
            practice=practice,
            now=now,
        )
        total = await db.question_attempts.count_documents({"student_id": student_id})
        correct = await db.question_attempts.count_documents({"student_id": student_id, "is_correct": True})
        updated["correct_rate"] = correct_rate(correct, total)
        await db.users.update_one(
            {"_id": student_id},
            {"$set": {"student_profile": updated, "updated_at": now}}
        )
        daily = updated.get("daily_practice", daily)
        if levels_gained:
            logger.info("Student %s reached level %d", student_id, levels_gained[-1])

    unlocked_achievements = await check_achievements(db, student_id, answer_triggers(is_correct))
    completed_tasks = await update_task_progress(db, student_id)

    response = {
        "attempt_id": result.inserted_id,
        "is_correct": is_correct,
        "correct_answer": question["answer"]["correct"],
        "explanation": question["answer"].get("explanation"),
        "rewards": {"exp": exp, "gold": gold},
        "level_up": bool(levels_gained),
        "completed_tasks": completed_tasks,
        "unlocked_achievements": unlocked_achievements,
    }
    if practice:
        response["daily_practice"] = {
            "questions_answered_today": daily["questions_answered"],
            "rewarded_questions_today": daily["rewarded_questions"],
            "daily_limit": config.DAILY_PRACTICE_REWARD_LIMIT,
            "can_earn_more_rewards": progression.can_earn_rewards(daily),
            "rewards_limited": rewards_limited,
        }
    return response


# ==================== PRACTICE QUESTIONS ====================

async def random_practice_question(
    db: AsyncIOMotorDatabase,
    unit_ids: Optional[List[str]] = None,
    subject_id: Optional[str] = None,
    subject: Optional[str] = None,
    difficulty: Optional[str] = None
) -> dict:
    """
    Unit ids win over subject_id, which wins over the legacy subject code
    """
    match = {}
    if unit_ids:
        match["unit_id"] = {"$in": to_object_ids(unit_ids, "unit ID")}
    elif subject_id:
        match["subject_id"] = to_object_id(subject_id, "subject ID")
    elif subject:
        match["subject"] = subject
    if difficulty:
        match["difficulty"] = difficulty

    questions = await sample_questions(db, match, 1, lookups=True)
    if not questions:
        raise AppError.not_found("No matching question found", ErrorCode.QUESTION_NOT_FOUND)

    question = questions[0]
    subject_info = question.pop("subject_info", [])
    unit_info = question.pop("unit_info", [])
    question["subject_id"] = subject_info[0] if subject_info else None
    question["unit_id"] = unit_info[0] if unit_info else None
    return question


# ==================== HISTORY & STATS ====================

async def _attach_questions(db: AsyncIOMotorDatabase, attempts: List[dict]) -> List[dict]:
    ids = list({a["question_id"] for a in attempts})
    questions = await db.questions.find(
        {"_id": {"$in": ids}},
        {"subject": 1, "subject_id": 1, "type": 1, "content.text": 1, "difficulty": 1}
    ).to_list(length=None)
    by_id = {q["_id"]: q for q in questions}
    for attempt in attempts:
        attempt["question"] = by_id.get(attempt["question_id"])
    return attempts


async def attempt_history(db: AsyncIOMotorDatabase, student_id: ObjectId, skip: int, limit: int):
    query = {"student_id": student_id}
    attempts = await db.question_attempts.find(query).sort("created_at", -1).skip(skip).limit(limit).to_list(length=None)
    total = await db.question_attempts.count_documents(query)
    return await _attach_questions(db, attempts), total


async def student_stats(db: AsyncIOMotorDatabase, student_id: ObjectId) -> dict:
    totals = await db.question_attempts.aggregate([
        {"$match": {"student_id": student_id}},
        {"$group": {
            "_id": None,
            "total_attempts": {"$sum": 1},
            "correct_attempts": {"$sum": {"$cond": ["$is_correct", 1, 0]}},
            "total_exp": {"$sum": "$exp_gained"},
            "total_gold": {"$sum": "$gold_gained"},
        }},
    ]).to_list(length=None)

    by_subject = await db.question_attempts.aggregate([
        {"$match": {"student_id": student_id}},
        {"$lookup": {"from": "questions", "localField": "question_id", "foreignField": "_id", "as": "question"}},
        {"$unwind": "$question"},
        {"$group": {
            "_id": "$question.subject",
            "attempts": {"$sum": 1},
            "correct": {"$sum": {"$cond": ["$is_correct", 1, 0]}},
        }},
    ]).to_list(length=None)

    recent = await db.question_attempts.find({"student_id": student_id}).sort("created_at", -1).limit(5).to_list(length=None)

    stats = totals[0] if totals else {
        "total_attempts": 0, "correct_attempts": 0, "total_exp": 0, "total_gold": 0
    }
    return {
        "overview": {
            "total_attempts": stats["total_attempts"],
            "correct_attempts": stats["correct_attempts"],
            "correct_rate": correct_rate(stats["correct_attempts"], stats["total_attempts"]),
            "total_exp": stats["total_exp"],
            "total_gold": stats["total_gold"],
        },
        "by_subject": [
            {
                "subject": row["_id"],
                "attempts": row["attempts"],
                "correct": row["correct"],
                "correct_rate": correct_rate(row["correct"], row["attempts"]),
            }
            for row in by_subject
        ],
        "recent_attempts": await _attach_questions(db, recent),
    }
