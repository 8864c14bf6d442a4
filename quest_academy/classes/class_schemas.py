from typing import List, Optional

from pydantic import Field, validator

from quest_academy.common.schemas import RequestModel


class ClassCreate(RequestModel):
    name: str = Field(..., min_length=1, max_length=50)
    description: Optional[str] = Field(None, max_length=200)
    max_students: int = Field(50, ge=1, le=200)


class ClassUpdate(RequestModel):
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    description: Optional[str] = Field(None, max_length=200)
    max_students: Optional[int] = Field(None, ge=1, le=200)
    is_active: Optional[bool] = None


class JoinClassRequest(RequestModel):
    invite_code: str = Field(..., min_length=6, max_length=6)

    @validator("invite_code")
    def normalize_code(cls, v):
        return v.strip().upper()


class AddStudentsRequest(RequestModel):
    student_ids: List[str] = Field(..., min_length=1)
