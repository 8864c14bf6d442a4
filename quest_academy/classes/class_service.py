import logging
import secrets
from datetime import datetime
from typing import List, Tuple

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from quest_academy.auth.auth_permissions import UserContext, check_class_access
from quest_academy.classes.class_schemas import ClassCreate, ClassUpdate
from quest_academy.common.errors import AppError, ErrorCode
from quest_academy.database import timestamps, to_object_id, to_object_ids

logger = logging.getLogger(__name__)

# No O/0 or I/1
INVITE_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
INVITE_CODE_LENGTH = 6


def random_invite_code() -> str:
    return "".join(secrets.choice(INVITE_CODE_ALPHABET) for _ in range(INVITE_CODE_LENGTH))


async def generate_invite_code(db: AsyncIOMotorDatabase) -> str:
    while True:
        code = random_invite_code()
        if not await db.classes.find_one({"invite_code": code}, {"_id": 1}):
            return code


async def get_class_for(db: AsyncIOMotorDatabase, class_id: str, current: UserContext) -> dict:
    cls = await db.classes.find_one({"_id": to_object_id(class_id, "class ID")})
    if not cls:
        raise AppError.not_found("Class not found", ErrorCode.CLASS_NOT_FOUND)
    check_class_access(cls, current)
    return cls


def _with_count(cls: dict) -> dict:
    cls["student_count"] = len(cls.get("students") or [])
    return cls


# ==================== TEACHER ====================

async def list_classes(db: AsyncIOMotorDatabase, teacher_id: ObjectId, show_inactive: bool, skip: int, limit: int) -> Tuple[List[dict], int]:
    query = {"teacher_id": teacher_id}
    if not show_inactive:
        query["is_active"] = True
    classes = await db.classes.find(query).sort("created_at", -1).skip(skip).limit(limit).to_list(length=None)
    total = await db.classes.count_documents(query)
    return [_with_count(c) for c in classes], total


async def get_class_detail(db: AsyncIOMotorDatabase, class_id: str, current: UserContext) -> dict:
    cls = await get_class_for(db, class_id, current)
    students = await db.users.find(
        {"_id": {"$in": cls.get("students", [])}},
        {"display_name": 1, "email": 1, "student_profile.level": 1, "student_profile.exp": 1}
    ).to_list(length=None)
    cls["student_list"] = students
    return _with_count(cls)


async def create_class(db: AsyncIOMotorDatabase, data: ClassCreate, teacher_id: ObjectId) -> dict:
    doc = timestamps({
        **data.dict(),
        "teacher_id": teacher_id,
        "invite_code": await generate_invite_code(db),
        "students": [],
        "is_active": True,
    })
    result = await db.classes.insert_one(doc)
    doc["_id"] = result.inserted_id
    await db.users.update_one(
        {"_id": teacher_id, "teacher_profile": {"$exists": True}},
        {"$addToSet": {"teacher_profile.class_ids": result.inserted_id}}
    )
    logger.info("Class %s created by %s", result.inserted_id, teacher_id)
    return _with_count(doc)


async def update_class(db: AsyncIOMotorDatabase, class_id: str, data: ClassUpdate, current: UserContext) -> dict:
    cls = await get_class_for(db, class_id, current)
    updates = data.changes()
    if updates:
        updates["updated_at"] = datetime.utcnow()
        cls = await db.classes.find_one_and_update(
            {"_id": cls["_id"]}, {"$set": updates}, return_document=ReturnDocument.AFTER
        )
    return _with_count(cls)


async def delete_class(db: AsyncIOMotorDatabase, class_id: str, current: UserContext) -> None:
    cls = await get_class_for(db, class_id, current)
    await db.classes.delete_one({"_id": cls["_id"]})
    await db.users.update_many(
        {"student_profile.class_id": cls["_id"]},
        {"$set": {"student_profile.class_id": None}}
    )
    await db.users.update_many(
        {"teacher_profile.class_ids": cls["_id"]},
        {"$pull": {"teacher_profile.class_ids": cls["_id"]}}
    )
    logger.info("Class %s deleted", cls["_id"])


async def regenerate_code(db: AsyncIOMotorDatabase, class_id: str, current: UserContext) -> dict:
    cls = await get_class_for(db, class_id, current)
    code = await generate_invite_code(db)
    await db.classes.update_one(
        {"_id": cls["_id"]},
        {"$set": {"invite_code": code, "updated_at": datetime.utcnow()}}
    )
    return {"invite_code": code}


async def add_students(db: AsyncIOMotorDatabase, class_id: str, student_ids: List[str], current: UserContext) -> dict:
    cls = await get_class_for(db, class_id, current)
    requested = to_object_ids(student_ids, "student ID")

    found = await db.users.find(
        {"_id": {"$in": requested}, "role": "student"}, {"_id": 1}
    ).to_list(length=None)
    valid = {u["_id"] for u in found}
    invalid = [str(oid) for oid in requested if oid not in valid]
    if invalid:
        raise AppError.bad_request(f"Invalid student IDs: {', '.join(invalid)}")

    existing = set(cls.get("students") or [])
    new_ids = [oid for oid in dict.fromkeys(requested) if oid not in existing]
    skipped = len(valid) - len(new_ids)

    if len(existing) + len(new_ids) > cls.get("max_students", 50):
        raise AppError.bad_request(
            f"Class limit exceeded ({cls.get('max_students', 50)}): "
            f"{len(existing)} enrolled, {len(new_ids)} to add"
        )

    if new_ids:
        await db.classes.update_one(
            {"_id": cls["_id"]},
            {"$push": {"students": {"$each": new_ids}}, "$set": {"updated_at": datetime.utcnow()}}
        )
        await db.users.update_many(
            {"_id": {"$in": new_ids}},
            {"$set": {"student_profile.class_id": cls["_id"]}}
        )

    return {
        "message": f"Added {len(new_ids)} students",
        "added": len(new_ids),
        "skipped": skipped,
        "total": len(existing) + len(new_ids),
    }


async def remove_student(db: AsyncIOMotorDatabase, class_id: str, student_id: str, current: UserContext) -> None:
    cls = await get_class_for(db, class_id, current)
    student_oid = to_object_id(student_id, "student ID")
    if student_oid not in (cls.get("students") or []):
        raise AppError.not_found("Student is not in this class")

    await db.classes.update_one({"_id": cls["_id"]}, {"$pull": {"students": student_oid}})
    await db.users.update_one(
        {"_id": student_oid, "student_profile.class_id": cls["_id"]},
        {"$set": {"student_profile.class_id": None}}
    )


# ==================== STUDENT ====================

async def join_class(db: AsyncIOMotorDatabase, invite_code: str, student_id: ObjectId) -> dict:
    cls = await db.classes.find_one({"invite_code": invite_code.upper(), "is_active": True})
    if not cls:
        raise AppError.not_found("Invalid invite code or class closed", ErrorCode.INVALID_JOIN_CODE)

    members = cls.get("students") or []
    if student_id in members:
        raise AppError.bad_request("You are already in this class")
    if len(members) >= cls.get("max_students", 50):
        raise AppError.bad_request("This class is full")

    await db.classes.update_one({"_id": cls["_id"]}, {"$addToSet": {"students": student_id}})
    await db.users.update_one(
        {"_id": student_id},
        {"$set": {"student_profile.class_id": cls["_id"]}}
    )
    logger.info("Student %s joined class %s", student_id, cls["_id"])
    return {
        "message": "Joined class",
        "class": {"_id": cls["_id"], "name": cls["name"], "description": cls.get("description")},
    }


async def my_classes(db: AsyncIOMotorDatabase, student_id: ObjectId) -> List[dict]:
    classes = await db.classes.find(
        {"students": student_id, "is_active": True},
        {"name": 1, "description": 1, "teacher_id": 1, "students": 1}
    ).to_list(length=None)
    teacher_ids = list({c["teacher_id"] for c in classes})
    teachers = await db.users.find(
        {"_id": {"$in": teacher_ids}}, {"display_name": 1, "email": 1}
    ).to_list(length=None)
    by_id = {t["_id"]: t for t in teachers}

    result = []
    for cls in classes:
        result.append({
            "_id": cls["_id"],
            "name": cls["name"],
            "description": cls.get("description"),
            "teacher": by_id.get(cls["teacher_id"]),
            "student_count": len(cls.get("students") or []),
        })
    return result


async def leave_class(db: AsyncIOMotorDatabase, class_id: str, student_id: ObjectId) -> None:
    cls = await db.classes.find_one({"_id": to_object_id(class_id, "class ID")})
    if not cls:
        raise AppError.not_found("Class not found", ErrorCode.CLASS_NOT_FOUND)
    if student_id not in (cls.get("students") or []):
        raise AppError.bad_request("You are not in this class")

    await db.classes.update_one({"_id": cls["_id"]}, {"$pull": {"students": student_id}})
    await db.users.update_one(
        {"_id": student_id, "student_profile.class_id": cls["_id"]},
        {"$set": {"student_profile.class_id": None}}
    )
