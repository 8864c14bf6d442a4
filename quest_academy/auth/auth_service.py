import logging
from datetime import datetime

from motor.motor_asyncio import AsyncIOMotorDatabase

from quest_academy.auth.auth_schemas import LoginRequest, RegisterRequest
from quest_academy.auth.auth_utils import create_access_token, hash_password, verify_password
from quest_academy.auth.user_models import new_user_document, public_user
from quest_academy.common.errors import AppError, ErrorCode

logger = logging.getLogger(__name__)


async def register_user(db: AsyncIOMotorDatabase, data: RegisterRequest) -> dict:
    existing = await db.users.find_one({"email": data.email})
    if existing:
        raise AppError.bad_request("This email is already registered")

    doc = new_user_document(
        email=data.email,
        password_hash=hash_password(data.password),
        display_name=data.display_name,
        role=data.role,
    )

    if data.class_join_code:
        cls = await db.classes.find_one({
            "invite_code": data.class_join_code.strip().upper(),
            "is_active": True
        })
        if cls and len(cls.get("students", [])) < cls.get("max_students", 50):
            doc["student_profile"]["class_id"] = cls["_id"]

    result = await db.users.insert_one(doc)
    doc["_id"] = result.inserted_id

    class_id = doc["student_profile"].get("class_id")
    if class_id:
        await db.classes.update_one({"_id": class_id}, {"$addToSet": {"students": doc["_id"]}})

    logger.info("Registered student %s", doc["_id"])
    return {
        "user": public_user(doc),
        "token": create_access_token(str(doc["_id"]), doc["role"]),
    }


async def login_user(db: AsyncIOMotorDatabase, data: LoginRequest) -> dict:
    user = await db.users.find_one({"email": data.email})
    if not user or not verify_password(data.password, user.get("password_hash", "")):
        raise AppError.unauthorized("Incorrect email or password", ErrorCode.AUTH_INVALID_CREDENTIALS)

    now = datetime.utcnow()
    await db.users.update_one({"_id": user["_id"]}, {"$set": {"last_login_at": now}})
    user["last_login_at"] = now

    return {
        "user": public_user(user),
        "token": create_access_token(str(user["_id"]), user["role"]),
    }
