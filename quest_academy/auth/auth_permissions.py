from typing import Callable, Optional

from bson import ObjectId
from fastapi import Depends, Header
from motor.motor_asyncio import AsyncIOMotorDatabase

from quest_academy.auth.auth_utils import decode_access_token, extract_bearer_token
from quest_academy.common.errors import AppError, ErrorCode
from quest_academy.database import get_db, to_object_id


class UserContext:
    """
    Authenticated caller: token claims plus the loaded user document
    """
    def __init__(self, user: dict):
        self.user = user
        self.oid: ObjectId = user["_id"]
        self.user_id = str(user["_id"])
        self.role = user.get("role", "student")
        self.email = user.get("email")
        self.display_name = user.get("display_name")

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @property
    def is_teacher(self) -> bool:
        return self.role == "teacher"

    @property
    def student_profile(self) -> dict:
        return self.user.get("student_profile") or {}

    @property
    def level(self) -> int:
        return self.student_profile.get("level", 1)


async def get_current_user(
    authorization: Optional[str] = Header(None),
    db: AsyncIOMotorDatabase = Depends(get_db)
) -> UserContext:
    """
    Dependency: validates the Bearer token and loads the user

    Raises:
        401: Missing/invalid/expired token, or the user no longer exists
    """
    token = extract_bearer_token(authorization)
    payload = decode_access_token(token)

    user_id = payload.get("user_id")
    if not user_id or not ObjectId.is_valid(user_id):
        raise AppError.unauthorized("Invalid token", ErrorCode.AUTH_TOKEN_INVALID)

    user = await db.users.find_one({"_id": to_object_id(user_id)})
    if not user:
        raise AppError.unauthorized("User does not exist", ErrorCode.USER_NOT_FOUND)

    return UserContext(user)


def require_roles(*roles: str) -> Callable:
    """Build a dependency that only admits callers with one of `roles`"""
    async def _checker(current: UserContext = Depends(get_current_user)) -> UserContext:
        if current.role not in roles:
            raise AppError.forbidden("You do not have permission for this action")
        return current
    return _checker


get_current_student = require_roles("student")
get_current_staff = require_roles("teacher", "admin")
get_current_admin = require_roles("admin")


def check_class_access(cls: dict, current: UserContext) -> None:
    """Teachers may only act on classes they own; admins may act on any"""
    if current.is_admin:
        return
    if cls.get("teacher_id") != current.oid:
        raise AppError.forbidden("You do not own this class")
