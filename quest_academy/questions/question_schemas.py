from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, Field, root_validator

from quest_academy.common.schemas import RequestModel


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class QuestionType(str, Enum):
    SINGLE_CHOICE = "single_choice"
    MULTIPLE_CHOICE = "multiple_choice"
    FILL_BLANK = "fill_blank"
    TRUE_FALSE = "true_false"


class LegacySubject(str, Enum):
    CHINESE = "chinese"
    MATH = "math"
    ENGLISH = "english"
    SCIENCE = "science"
    SOCIAL = "social"


CHOICE_TYPES = {QuestionType.SINGLE_CHOICE.value, QuestionType.MULTIPLE_CHOICE.value}


# ==================== NESTED ====================

class MediaItem(RequestModel):
    type: str = Field(..., pattern="^(image|audio|video)$")
    url: str
    caption: Optional[str] = None
    duration: Optional[float] = None
    width: Optional[int] = None
    height: Optional[int] = None


class AdventureContext(RequestModel):
    description: str
    monster_name: Optional[str] = None
    monster_image_url: Optional[str] = None


class QuestionContent(RequestModel):
    text: str = Field(..., min_length=1)
    image_url: Optional[str] = None
    media: List[MediaItem] = []
    adventure_context: Optional[AdventureContext] = None


class QuestionOption(BaseModel):
    id: str
    text: str
    image_url: Optional[str] = None


class QuestionAnswer(BaseModel):
    correct: Union[str, List[str]]
    explanation: Optional[str] = None


# ==================== REQUEST SCHEMAS ====================

class QuestionCreate(RequestModel):
    subject_id: Optional[str] = None
    unit_id: Optional[str] = None
    subject: Optional[LegacySubject] = None
    tags: List[str] = []
    difficulty: Difficulty
    base_exp: int = Field(10, ge=0)
    base_gold: int = Field(5, ge=0)
    type: QuestionType
    content: QuestionContent
    options: List[QuestionOption] = []
    answer: QuestionAnswer

    @root_validator(skip_on_failure=True)
    def validate_options(cls, values):
        qtype = values.get("type")
        if qtype in CHOICE_TYPES and len(values.get("options") or []) < 2:
            raise ValueError("Choice questions need at least 2 options")
        correct = values.get("answer").correct if values.get("answer") else None
        if correct in (None, "", []):
            raise ValueError("Please provide the correct answer")
        return values


class QuestionUpdate(RequestModel):
    subject_id: Optional[str] = None
    unit_id: Optional[str] = None
    subject: Optional[LegacySubject] = None
    tags: Optional[List[str]] = None
    difficulty: Optional[Difficulty] = None
    base_exp: Optional[int] = Field(None, ge=0)
    base_gold: Optional[int] = Field(None, ge=0)
    type: Optional[QuestionType] = None
    content: Optional[QuestionContent] = None
    options: Optional[List[QuestionOption]] = None
    answer: Optional[QuestionAnswer] = None
    is_active: Optional[bool] = None
