import re
from enum import Enum
from typing import Optional

from pydantic import Field, validator

from quest_academy.common.schemas import RequestModel

SUBJECT_CODE_PATTERN = re.compile(r"^[a-z0-9_]+$")


class Semester(str, Enum):
    FIRST = "上"
    SECOND = "下"


# ==================== SUBJECTS ====================

class SubjectCreate(RequestModel):
    name: str = Field(..., min_length=1, max_length=50)
    code: str = Field(..., min_length=1, max_length=20)
    icon: str = "📚"
    order: int = 0

    @validator("code")
    def validate_code(cls, v):
        v = v.strip().lower()
        if not SUBJECT_CODE_PATTERN.match(v):
            raise ValueError("Subject code may only contain lowercase letters, digits and underscores")
        return v


class SubjectUpdate(RequestModel):
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    code: Optional[str] = Field(None, min_length=1, max_length=20)
    icon: Optional[str] = None
    order: Optional[int] = None
    is_active: Optional[bool] = None

    @validator("code")
    def validate_code(cls, v):
        if v is None:
            return v
        v = v.strip().lower()
        if not SUBJECT_CODE_PATTERN.match(v):
            raise ValueError("Subject code may only contain lowercase letters, digits and underscores")
        return v


# ==================== UNITS ====================

class UnitCreate(RequestModel):
    name: str = Field(..., min_length=1, max_length=100)
    subject_id: str
    academic_year: str = Field(..., min_length=1)
    grade: int = Field(..., ge=1, le=6)
    semester: Semester
    order: int = 0


class UnitUpdate(RequestModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    subject_id: Optional[str] = None
    academic_year: Optional[str] = None
    grade: Optional[int] = Field(None, ge=1, le=6)
    semester: Optional[Semester] = None
    order: Optional[int] = None
    is_active: Optional[bool] = None
