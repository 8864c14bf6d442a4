import logging
from datetime import datetime
from typing import List, Optional, Tuple

from motor.motor_asyncio import AsyncIOMotorDatabase

from quest_academy.common.errors import AppError
from quest_academy.curriculum.curriculum_schemas import (
    SubjectCreate, SubjectUpdate, UnitCreate, UnitUpdate
)
from quest_academy.database import timestamps, to_object_id

logger = logging.getLogger(__name__)

SUBJECT_SUMMARY = {"name": 1, "code": 1, "icon": 1}


# ==================== SUBJECTS ====================

async def list_subjects(db: AsyncIOMotorDatabase, include_inactive: bool = False) -> List[dict]:
    query = {} if include_inactive else {"is_active": True}
    cursor = db.subjects.find(query).sort([("order", 1), ("name", 1)])
    return await cursor.to_list(length=None)


async def get_subject(db: AsyncIOMotorDatabase, subject_id: str) -> dict:
    subject = await db.subjects.find_one({"_id": to_object_id(subject_id, "subject ID")})
    if not subject:
        raise AppError.not_found("Subject not found")
    return subject


async def create_subject(db: AsyncIOMotorDatabase, data: SubjectCreate) -> dict:
    if await db.subjects.find_one({"code": data.code}):
        raise AppError.bad_request(f"Subject code '{data.code}' already exists")

    doc = timestamps({**data.dict(), "is_active": True})
    result = await db.subjects.insert_one(doc)
    doc["_id"] = result.inserted_id
    logger.info("Created subject %s (%s)", doc["_id"], data.code)
    return doc


async def update_subject(db: AsyncIOMotorDatabase, subject_id: str, data: SubjectUpdate) -> dict:
    subject = await get_subject(db, subject_id)
    updates = data.changes()

    if "code" in updates and updates["code"] != subject.get("code"):
        clash = await db.subjects.find_one({"code": updates["code"], "_id": {"$ne": subject["_id"]}})
        if clash:
            raise AppError.bad_request(f"Subject code '{updates['code']}' already exists")

    if updates:
        updates["updated_at"] = datetime.utcnow()
        await db.subjects.update_one({"_id": subject["_id"]}, {"$set": updates})
        subject.update(updates)
    return subject


async def delete_subject(db: AsyncIOMotorDatabase, subject_id: str) -> None:
    subject = await get_subject(db, subject_id)
    unit_count = await db.units.count_documents({"subject_id": subject["_id"]})
    if unit_count > 0:
        raise AppError.bad_request(f"Cannot delete: {unit_count} units reference this subject")
    await db.subjects.delete_one({"_id": subject["_id"]})
    logger.info("Deleted subject %s", subject["_id"])


# ==================== UNITS ====================

async def _attach_subjects(db: AsyncIOMotorDatabase, units: List[dict]) -> List[dict]:
    subject_ids = list({unit["subject_id"] for unit in units if unit.get("subject_id")})
    subjects = await db.subjects.find({"_id": {"$in": subject_ids}}, SUBJECT_SUMMARY).to_list(length=None)
    by_id = {s["_id"]: s for s in subjects}
    for unit in units:
        unit["subject"] = by_id.get(unit.get("subject_id"))
    return units


async def list_units(
    db: AsyncIOMotorDatabase,
    subject_id: Optional[str] = None,
    academic_year: Optional[str] = None,
    grade: Optional[int] = None,
    semester: Optional[str] = None,
    skip: int = 0,
    limit: int = 20
) -> Tuple[List[dict], int]:
    query = {}
    if subject_id:
        query["subject_id"] = to_object_id(subject_id, "subject ID")
    if academic_year:
        query["academic_year"] = academic_year
    if grade is not None:
        query["grade"] = grade
    if semester:
        query["semester"] = semester

    cursor = db.units.find(query).sort([
        ("academic_year", -1), ("grade", 1), ("semester", 1), ("order", 1), ("name", 1)
    ]).skip(skip).limit(limit)
    units = await cursor.to_list(length=None)
    total = await db.units.count_documents(query)
    return await _attach_subjects(db, units), total


async def get_unit(db: AsyncIOMotorDatabase, unit_id: str) -> dict:
    unit = await db.units.find_one({"_id": to_object_id(unit_id, "unit ID")})
    if not unit:
        raise AppError.not_found("Unit not found")
    await _attach_subjects(db, [unit])
    return unit


async def create_unit(db: AsyncIOMotorDatabase, data: UnitCreate) -> dict:
    subject = await get_subject(db, data.subject_id)

    doc = timestamps({
        **data.dict(exclude={"subject_id"}),
        "subject_id": subject["_id"],
        "is_active": True,
    })
    result = await db.units.insert_one(doc)
    doc["_id"] = result.inserted_id
    doc["subject"] = {k: subject.get(k) for k in ("_id", "name", "code", "icon")}
    return doc


async def update_unit(db: AsyncIOMotorDatabase, unit_id: str, data: UnitUpdate) -> dict:
    unit = await db.units.find_one({"_id": to_object_id(unit_id, "unit ID")})
    if not unit:
        raise AppError.not_found("Unit not found")

    updates = data.changes()
    if "subject_id" in updates:
        subject = await get_subject(db, updates["subject_id"])
        updates["subject_id"] = subject["_id"]

    if updates:
        updates["updated_at"] = datetime.utcnow()
        await db.units.update_one({"_id": unit["_id"]}, {"$set": updates})
        unit.update(updates)
    await _attach_subjects(db, [unit])
    return unit


async def delete_unit(db: AsyncIOMotorDatabase, unit_id: str) -> None:
    unit = await db.units.find_one({"_id": to_object_id(unit_id, "unit ID")})
    if not unit:
        raise AppError.not_found("Unit not found")

    question_count = await db.questions.count_documents({"unit_id": unit["_id"]})
    if question_count > 0:
        raise AppError.bad_request(f"Cannot delete: {question_count} questions belong to this unit")
    await db.units.delete_one({"_id": unit["_id"]})


def grade_label(academic_year: str, grade: int, semester: str) -> str:
    return f"{academic_year}_{grade}{semester}"


async def get_units_grouped(db: AsyncIOMotorDatabase) -> List[dict]:
    """
    Active units grouped by subject -> academic year -> grade + semester
    """
    pipeline = [
        {"$match": {"is_active": True}},
        {"$lookup": {
            "from": "subjects",
            "localField": "subject_id",
            "foreignField": "_id",
            "as": "subject"
        }},
        {"$unwind": "$subject"},
        {"$match": {"subject.is_active": True}},
        {"$group": {
            "_id": {
                "subject_id": "$subject_id",
                "subject_name": "$subject.name",
                "subject_code": "$subject.code",
                "subject_icon": "$subject.icon",
                "academic_year": "$academic_year",
                "grade": "$grade",
                "semester": "$semester",
            },
            "units": {"$push": {"_id": "$_id", "name": "$name", "order": "$order"}}
        }},
        {"$sort": {
            "_id.subject_name": 1,
            "_id.academic_year": -1,
            "_id.grade": 1,
            "_id.semester": 1,
        }},
    ]
    groups = await db.units.aggregate(pipeline).to_list(length=None)

    return [
        {
            "subject": {
                "_id": g["_id"]["subject_id"],
                "name": g["_id"]["subject_name"],
                "code": g["_id"]["subject_code"],
                "icon": g["_id"]["subject_icon"],
            },
            "academic_year": g["_id"]["academic_year"],
            "grade": g["_id"]["grade"],
            "semester": g["_id"]["semester"],
            "grade_label": grade_label(g["_id"]["academic_year"], g["_id"]["grade"], g["_id"]["semester"]),
            "units": sorted(g["units"], key=lambda u: u.get("order", 0)),
        }
        for g in groups
    ]
