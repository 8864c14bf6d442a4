from datetime import datetime
from enum import Enum
from typing import Optional

from quest_academy.database import serialize_mongo


class UserRole(str, Enum):
    STUDENT = "student"
    TEACHER = "teacher"
    ADMIN = "admin"


EQUIPMENT_SLOTS = ("title", "head", "body", "accessory", "background", "effect")


def default_student_profile(class_id=None) -> dict:
    return {
        "level": 1,
        "exp": 0,
        "exp_to_next_level": 100,
        "gold": 0,
        "total_questions_answered": 0,
        "correct_rate": 0,
        "stats": {"chinese": 50, "math": 50},
        "class_id": class_id,
        "equipped_items": {slot: None for slot in EQUIPMENT_SLOTS},
        "daily_practice": {
            "date": datetime.utcnow(),
            "questions_answered": 0,
            "rewarded_questions": 0,
        },
    }


def default_teacher_profile(school: Optional[str] = None) -> dict:
    return {"school": school, "class_ids": []}


def new_user_document(email: str, password_hash: str, display_name: str, role: str = UserRole.STUDENT.value) -> dict:
    now = datetime.utcnow()
    doc = {
        "email": email.strip().lower(),
        "password_hash": password_hash,
        "display_name": display_name.strip(),
        "role": role,
        "last_login_at": now,
        "created_at": now,
        "updated_at": now,
    }
    if role == UserRole.STUDENT.value:
        doc["student_profile"] = default_student_profile()
    elif role == UserRole.TEACHER.value:
        doc["teacher_profile"] = default_teacher_profile()
    return doc


def public_user(user: dict) -> dict:
    """User document without credentials"""
    data = {key: value for key, value in user.items() if key != "password_hash"}
    return serialize_mongo(data)
