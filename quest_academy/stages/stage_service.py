import logging
from datetime import datetime
from typing import List, Optional, Tuple

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from quest_academy.common.errors import AppError, ErrorCode
from quest_academy.database import timestamps, to_object_id, to_object_ids
from quest_academy.questions.question_service import sample_questions
from quest_academy.stages.stage_rules import evaluate_completion, is_stage_unlocked, stage_matches_subject
from quest_academy.stages.stage_schemas import StageComplete, StageCreate, StageUpdate

logger = logging.getLogger(__name__)


def _question_filter(stage: dict) -> dict:
    query = {"unit_id": {"$in": stage.get("unit_ids", [])}}
    if stage.get("difficulty"):
        query["difficulty"] = {"$in": stage["difficulty"]}
    return query


async def _question_count(db: AsyncIOMotorDatabase, stage: dict) -> int:
    return await db.questions.count_documents({**_question_filter(stage), "is_active": True})


async def _verify_units(db: AsyncIOMotorDatabase, unit_ids: List[str]) -> List[ObjectId]:
    oids = to_object_ids(unit_ids, "unit ID")
    found = await db.units.count_documents({"_id": {"$in": oids}})
    if found != len(set(oids)):
        raise AppError.bad_request("Some units do not exist")
    return oids


async def _units_with_subjects(db: AsyncIOMotorDatabase, unit_ids: List[ObjectId]) -> List[dict]:
    units = await db.units.find(
        {"_id": {"$in": unit_ids}},
        {"name": 1, "subject_id": 1, "academic_year": 1, "grade": 1, "semester": 1}
    ).to_list(length=None)
    subject_ids = list({u.get("subject_id") for u in units if u.get("subject_id")})
    subjects = await db.subjects.find(
        {"_id": {"$in": subject_ids}}, {"name": 1, "icon": 1, "code": 1}
    ).to_list(length=None)
    by_id = {s["_id"]: s for s in subjects}
    for unit in units:
        unit["subject"] = by_id.get(unit.get("subject_id"))
    return units


async def _get_stage(db: AsyncIOMotorDatabase, stage_id: str, active_only: bool = False) -> dict:
    stage = await db.stages.find_one({"_id": to_object_id(stage_id, "stage ID")})
    if not stage or (active_only and not stage.get("is_active", True)):
        raise AppError.not_found("Stage not found")
    return stage


# ==================== TEACHER / ADMIN ====================

async def list_stages(db: AsyncIOMotorDatabase, include_inactive: bool, skip: int, limit: int) -> Tuple[List[dict], int]:
    query = {} if include_inactive else {"is_active": True}
    stages = await db.stages.find(query).sort([("order", 1), ("created_at", -1)]).skip(skip).limit(limit).to_list(length=None)
    total = await db.stages.count_documents(query)
    for stage in stages:
        stage["question_count"] = await _question_count(db, stage)
        stage["units"] = await _units_with_subjects(db, stage.get("unit_ids", []))
    return stages, total


async def get_stage(db: AsyncIOMotorDatabase, stage_id: str) -> dict:
    stage = await _get_stage(db, stage_id)
    stage["units"] = await _units_with_subjects(db, stage.get("unit_ids", []))
    stage["question_count"] = await _question_count(db, stage)
    return stage


async def create_stage(db: AsyncIOMotorDatabase, data: StageCreate, created_by: ObjectId) -> dict:
    unit_oids = await _verify_units(db, data.unit_ids)
    doc = timestamps({
        **data.dict(),
        "unit_ids": unit_oids,
        "is_active": True,
        "created_by": created_by,
    })
    result = await db.stages.insert_one(doc)
    doc["_id"] = result.inserted_id
    logger.info("Stage %s created by %s", result.inserted_id, created_by)
    return doc


async def update_stage(db: AsyncIOMotorDatabase, stage_id: str, data: StageUpdate) -> dict:
    stage = await _get_stage(db, stage_id)
    updates = data.changes()
    if "unit_ids" in updates:
        updates["unit_ids"] = await _verify_units(db, updates["unit_ids"])
    if updates:
        updates["updated_at"] = datetime.utcnow()
        stage = await db.stages.find_one_and_update(
            {"_id": stage["_id"]}, {"$set": updates}, return_document=ReturnDocument.AFTER
        )
    return stage


async def delete_stage(db: AsyncIOMotorDatabase, stage_id: str) -> None:
    stage = await _get_stage(db, stage_id)
    await db.stages.update_one(
        {"_id": stage["_id"]},
        {"$set": {"is_active": False, "updated_at": datetime.utcnow()}}
    )


# ==================== STUDENT ====================

async def list_student_stages(db: AsyncIOMotorDatabase, player_id: ObjectId, player_level: int, subject: Optional[str]) -> List[dict]:
    """
    Active stages in order with unlock state and the player's progress
    The previous-stage rule looks at the filtered list.
    """
    stages = await db.stages.find({"is_active": True}).sort("order", 1).to_list(length=None)
    for stage in stages:
        stage["units"] = await _units_with_subjects(db, stage.get("unit_ids", []))

    if subject:
        stages = [s for s in stages if stage_matches_subject(s["units"], subject)]

    records = await db.player_stage_progress.find(
        {"player_id": player_id, "stage_id": {"$in": [s["_id"] for s in stages]}}
    ).to_list(length=None)
    progress_map = {str(p["stage_id"]): p for p in records}

    result = []
    for index, stage in enumerate(stages):
        progress = progress_map.get(str(stage["_id"])) or {}
        result.append({
            "_id": stage["_id"],
            "name": stage["name"],
            "description": stage.get("description"),
            "icon": stage.get("icon"),
            "image_url": stage.get("image_url"),
            "order": stage.get("order", 0),
            "questions_per_session": stage.get("questions_per_session", 10),
            "rewards": stage.get("rewards"),
            "units": stage["units"],
            "is_unlocked": is_stage_unlocked(stages, index, progress_map, player_level),
            "is_completed": progress.get("is_completed", False),
            "completed_at": progress.get("completed_at"),
            "best_score": progress.get("best_score", 0),
            "total_attempts": progress.get("total_attempts", 0),
        })
    return result


def _new_progress(player_id: ObjectId, stage_id: ObjectId) -> dict:
    return timestamps({
        "player_id": player_id,
        "stage_id": stage_id,
        "is_unlocked": True,
        "is_completed": False,
        "completed_at": None,
        "total_attempts": 0,
        "best_score": 0,
        "total_questions_answered": 0,
        "total_correct": 0,
        "current_session_correct": 0,
        "current_session_total": 0,
    })


async def get_stage_question(db: AsyncIOMotorDatabase, player_id: ObjectId, stage_id: str) -> dict:
    stage = await _get_stage(db, stage_id, active_only=True)

    questions = await sample_questions(db, _question_filter(stage), 1, lookups=True)
    if not questions:
        raise AppError.not_found("This stage has no available questions", ErrorCode.QUESTION_NOT_FOUND)

    progress = await db.player_stage_progress.find_one({"player_id": player_id, "stage_id": stage["_id"]})
    if not progress:
        progress = _new_progress(player_id, stage["_id"])
        result = await db.player_stage_progress.insert_one(progress)
        progress["_id"] = result.inserted_id

    question = questions[0]
    subject_info = question.pop("subject_info", [])
    unit_info = question.pop("unit_info", [])
    question["subject_id"] = subject_info[0] if subject_info else None
    question["unit_id"] = unit_info[0] if unit_info else None
    question.update({
        "stage_id": stage["_id"],
        "stage_name": stage["name"],
        "questions_per_session": stage.get("questions_per_session", 10),
        "current_progress": {
            "session_correct": progress.get("current_session_correct", 0),
            "session_total": progress.get("current_session_total", 0),
        },
    })
    return question


async def start_stage(db: AsyncIOMotorDatabase, player_id: ObjectId, stage_id: str) -> dict:
    stage = await _get_stage(db, stage_id, active_only=True)
    now = datetime.utcnow()
    progress = await db.player_stage_progress.find_one_and_update(
        {"player_id": player_id, "stage_id": stage["_id"]},
        {
            "$set": {
                "is_unlocked": True,
                "current_session_correct": 0,
                "current_session_total": 0,
                "updated_at": now,
            },
            "$inc": {"total_attempts": 1},
            "$setOnInsert": {
                "is_completed": False,
                "completed_at": None,
                "best_score": 0,
                "total_questions_answered": 0,
                "total_correct": 0,
                "created_at": now,
            },
        },
        upsert=True,
        return_document=ReturnDocument.AFTER
    )
    return {
        "stage_id": stage["_id"],
        "stage_name": stage["name"],
        "questions_per_session": stage.get("questions_per_session", 10),
        "progress": {
            "session_correct": progress.get("current_session_correct", 0),
            "session_total": progress.get("current_session_total", 0),
            "best_score": progress.get("best_score", 0),
            "is_completed": progress.get("is_completed", False),
        },
    }


async def complete_stage(db: AsyncIOMotorDatabase, player_id: ObjectId, stage_id: str, data: StageComplete) -> dict:
    stage = await _get_stage(db, stage_id)
    progress = await db.player_stage_progress.find_one({"player_id": player_id, "stage_id": stage["_id"]})
    if not progress:
        raise AppError.bad_request("Please start the stage first")

    outcome = evaluate_completion(
        data.correct_count, data.total_count, progress.get("is_completed", False), stage.get("rewards")
    )

    now = datetime.utcnow()
    best_score = max(progress.get("best_score", 0), data.correct_count)
    updates = {
        "current_session_correct": data.correct_count,
        "current_session_total": data.total_count,
        "best_score": best_score,
        "updated_at": now,
    }
    if outcome["is_first_clear"]:
        updates["is_completed"] = True
        updates["completed_at"] = now

    progress = await db.player_stage_progress.find_one_and_update(
        {"_id": progress["_id"]},
        {
            "$set": updates,
            "$inc": {
                "total_questions_answered": data.total_count,
                "total_correct": data.correct_count,
            },
        },
        return_document=ReturnDocument.AFTER
    )

    if outcome["bonus_exp"] > 0 or outcome["bonus_gold"] > 0:
        await db.users.update_one(
            {"_id": player_id},
            {"$inc": {
                "student_profile.exp": outcome["bonus_exp"],
                "student_profile.gold": outcome["bonus_gold"],
            }}
        )
    if outcome["is_first_clear"]:
        logger.info("Player %s cleared stage %s", player_id, stage["_id"])

    return {
        "is_passed": outcome["is_passed"],
        "is_first_clear": outcome["is_first_clear"],
        "correct_count": data.correct_count,
        "total_count": data.total_count,
        "correct_rate": outcome["correct_rate"],
        "rewards": {"bonus_exp": outcome["bonus_exp"], "bonus_gold": outcome["bonus_gold"]},
        "progress": {
            "is_completed": progress.get("is_completed", False),
            "best_score": progress.get("best_score", 0),
            "total_attempts": progress.get("total_attempts", 0),
        },
    }
