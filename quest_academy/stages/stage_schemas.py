from enum import Enum
from typing import List, Optional, Union

from bson import ObjectId
from pydantic import BaseModel, Field, root_validator

from quest_academy.common.schemas import RequestModel
from quest_academy.questions.question_schemas import Difficulty


class UnlockType(str, Enum):
    NONE = "none"
    PREVIOUS = "previous"
    LEVEL = "level"
    STAGE = "stage"


class UnlockCondition(BaseModel):
    type: UnlockType = UnlockType.PREVIOUS
    value: Optional[Union[int, str]] = None

    class Config:
        use_enum_values = True

    @root_validator(skip_on_failure=True)
    def normalize_value(cls, values):
        kind = values.get("type")
        value = values.get("value")
        if kind == UnlockType.LEVEL.value:
            try:
                level = int(value) if value is not None else 1
            except (TypeError, ValueError):
                raise ValueError("Level unlock value must be a whole number")
            if level < 1:
                raise ValueError("Level unlock value must be at least 1")
            values["value"] = level
        elif kind == UnlockType.STAGE.value:
            if not isinstance(value, str) or not ObjectId.is_valid(value):
                raise ValueError("Stage unlock value must be a valid stage ID")
        return values


class FirstClearBonus(BaseModel):
    exp: int = Field(50, ge=0)
    gold: int = Field(25, ge=0)


class StageRewards(BaseModel):
    bonus_exp: int = Field(0, ge=0)
    bonus_gold: int = Field(0, ge=0)
    first_clear_bonus: FirstClearBonus = FirstClearBonus()


class StageCreate(RequestModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    icon: str = "🏰"
    image_url: Optional[str] = None
    unit_ids: List[str] = Field(..., min_length=1)
    difficulty: List[Difficulty] = []
    order: int = Field(0, ge=0)
    questions_per_session: int = Field(10, ge=1, le=50)
    unlock_condition: UnlockCondition = UnlockCondition()
    rewards: StageRewards = StageRewards()


class StageUpdate(RequestModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    icon: Optional[str] = None
    image_url: Optional[str] = None
    unit_ids: Optional[List[str]] = Field(None, min_length=1)
    difficulty: Optional[List[Difficulty]] = None
    order: Optional[int] = Field(None, ge=0)
    questions_per_session: Optional[int] = Field(None, ge=1, le=50)
    unlock_condition: Optional[UnlockCondition] = None
    rewards: Optional[StageRewards] = None
    is_active: Optional[bool] = None


class StageComplete(RequestModel):
    correct_count: int = Field(..., ge=0)
    total_count: int = Field(..., ge=1)
