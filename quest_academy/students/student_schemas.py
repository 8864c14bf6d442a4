from enum import Enum
from typing import Optional

from pydantic import Field

from quest_academy.common.schemas import RequestModel


class StudentSortField(str, Enum):
    DISPLAY_NAME = "display_name"
    LEVEL = "level"
    EXP = "exp"
    CORRECT_RATE = "correct_rate"
    TOTAL_QUESTIONS_ANSWERED = "total_questions_answered"
    CREATED_AT = "created_at"
    LAST_LOGIN_AT = "last_login_at"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class StudentUpdate(RequestModel):
    display_name: Optional[str] = Field(None, min_length=1, max_length=50)
    # null detaches the student from their class
    class_id: Optional[str] = None
