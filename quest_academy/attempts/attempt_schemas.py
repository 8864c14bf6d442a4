from enum import Enum
from typing import List, Union

from pydantic import Field, validator

from quest_academy.common.schemas import RequestModel


class AttemptSource(str, Enum):
    PRACTICE = "practice"
    STAGE = "stage"
    BATTLE = "battle"


class AnswerSubmit(RequestModel):
    answer: Union[str, List[str]]
    time_spent_seconds: int = Field(0, ge=0)
    source: AttemptSource = AttemptSource.PRACTICE

    @validator("answer")
    def answer_not_empty(cls, v):
        if v in ("", []):
            raise ValueError("Please provide an answer")
        return v
