import logging
from datetime import datetime
from typing import List, Optional, Tuple

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from quest_academy.common.errors import AppError, ErrorCode
from quest_academy.database import timestamps, to_object_id, to_object_ids
from quest_academy.questions.question_schemas import QuestionCreate, QuestionUpdate

logger = logging.getLogger(__name__)


def empty_stats() -> dict:
    return {"total_attempts": 0, "correct_count": 0, "avg_time_seconds": 0}


async def sample_questions(db: AsyncIOMotorDatabase, match: dict, size: int, lookups: bool = False) -> List[dict]:
    """
    Random active questions matching `match`, answers stripped
    With lookups=True the subject and unit documents are joined in.
    """
    pipeline = [
        {"$match": {**match, "is_active": True}},
        {"$sample": {"size": size}},
    ]
    if lookups:
        pipeline += [
            {"$lookup": {"from": "subjects", "localField": "subject_id", "foreignField": "_id", "as": "subject_info"}},
            {"$lookup": {"from": "units", "localField": "unit_id", "foreignField": "_id", "as": "unit_info"}},
        ]
    pipeline.append({"$project": {"answer": 0}})
    return await db.questions.aggregate(pipeline).to_list(length=None)


async def _verify_hierarchy(db: AsyncIOMotorDatabase, subject_id: Optional[str], unit_id: Optional[str]) -> Tuple[Optional[ObjectId], Optional[ObjectId]]:
    """
    Subject must exist; unit must exist and belong to the subject
    """
    subject_oid = None
    unit_oid = None

    if subject_id:
        subject_oid = to_object_id(subject_id, "subject ID")
        if not await db.subjects.find_one({"_id": subject_oid}):
            raise AppError.bad_request("Subject does not exist")

    if unit_id:
        unit_oid = to_object_id(unit_id, "unit ID")
        unit = await db.units.find_one({"_id": unit_oid})
        if not unit:
            raise AppError.bad_request("Unit does not exist")
        if subject_oid and unit.get("subject_id") != subject_oid:
            raise AppError.bad_request("Unit does not belong to the selected subject")

    return subject_oid, unit_oid


async def list_questions(
    db: AsyncIOMotorDatabase,
    filters: dict,
    search: Optional[str],
    skip: int,
    limit: int
) -> Tuple[List[dict], int]:
    query = {"is_active": True}
    for key in ("subject_id", "unit_id"):
        if filters.get(key):
            query[key] = to_object_id(filters[key], key.replace("_", " "))
    for key in ("subject", "difficulty", "type"):
        if filters.get(key):
            query[key] = filters[key]
    if search:
        query["content.text"] = {"$regex": search, "$options": "i"}

    cursor = db.questions.find(query).sort("created_at", -1).skip(skip).limit(limit)
    questions = await cursor.to_list(length=None)
    total = await db.questions.count_documents(query)
    return questions, total


async def get_question(db: AsyncIOMotorDatabase, question_id: str) -> dict:
    question = await db.questions.find_one({"_id": to_object_id(question_id, "question ID")})
    if not question:
        raise AppError.not_found("Question not found", ErrorCode.QUESTION_NOT_FOUND)
    return question


async def create_question(db: AsyncIOMotorDatabase, data: QuestionCreate, created_by: ObjectId) -> dict:
    subject_oid, unit_oid = await _verify_hierarchy(db, data.subject_id, data.unit_id)

    doc = timestamps({
        **data.dict(exclude={"subject_id", "unit_id"}),
        "subject_id": subject_oid,
        "unit_id": unit_oid,
        "stats": empty_stats(),
        "created_by": created_by,
        "is_active": True,
    })
    result = await db.questions.insert_one(doc)
    doc["_id"] = result.inserted_id
    return doc


async def update_question(db: AsyncIOMotorDatabase, question_id: str, data: QuestionUpdate) -> dict:
    question = await get_question(db, question_id)
    updates = data.changes()

    if "subject_id" in updates or "unit_id" in updates:
        target_subject = updates.get("subject_id") or (
            str(question["subject_id"]) if question.get("subject_id") else None
        )
        subject_oid, unit_oid = await _verify_hierarchy(db, target_subject, updates.get("unit_id"))
        if "subject_id" in updates:
            updates["subject_id"] = subject_oid
        if "unit_id" in updates:
            updates["unit_id"] = unit_oid

    if updates:
        updates["updated_at"] = datetime.utcnow()
        await db.questions.update_one({"_id": question["_id"]}, {"$set": updates})
        question.update(updates)
    return question


async def delete_question(db: AsyncIOMotorDatabase, question_id: str) -> None:
    question = await get_question(db, question_id)
    await db.questions.update_one(
        {"_id": question["_id"]},
        {"$set": {"is_active": False, "updated_at": datetime.utcnow()}}
    )
    logger.info("Soft-deleted question %s", question["_id"])


async def random_questions(
    db: AsyncIOMotorDatabase,
    subject: str,
    count: int = 5,
    difficulty: Optional[str] = None,
    exclude_ids: Optional[List[str]] = None
) -> List[dict]:
    match = {"subject": subject}
    if difficulty:
        match["difficulty"] = difficulty
    if exclude_ids:
        match["_id"] = {"$nin": to_object_ids(exclude_ids, "question ID")}
    return await sample_questions(db, match, min(max(count, 1), 10))
