from typing import Optional

from fastapi import APIRouter, Depends, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from quest_academy.auth.auth_permissions import UserContext, get_current_staff, get_current_user
from quest_academy.common.responses import PageParams, paginated, success
from quest_academy.database import get_db
from quest_academy.questions import question_service as service
from quest_academy.questions.question_schemas import (
    Difficulty, LegacySubject, QuestionCreate, QuestionType, QuestionUpdate
)

router = APIRouter(prefix="/questions", tags=["Questions"])


@router.get("/random")
async def get_random_questions(
    subject: LegacySubject,
    difficulty: Optional[Difficulty] = None,
    count: int = Query(5, ge=1),
    exclude_ids: Optional[str] = None,
    user: UserContext = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """
    Random questions for a legacy subject, answers omitted
    count is capped at 10
    """
    excluded = [i for i in (exclude_ids or "").split(",") if i]
    questions = await service.random_questions(
        db,
        subject.value,
        count=count,
        difficulty=difficulty.value if difficulty else None,
        exclude_ids=excluded,
    )
    return success(questions)


@router.get("")
async def list_questions(
    subject_id: Optional[str] = None,
    unit_id: Optional[str] = None,
    subject: Optional[LegacySubject] = None,
    difficulty: Optional[Difficulty] = None,
    type: Optional[QuestionType] = None,
    search: Optional[str] = None,
    page: PageParams = Depends(),
    staff: UserContext = Depends(get_current_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    filters = {
        "subject_id": subject_id,
        "unit_id": unit_id,
        "subject": subject.value if subject else None,
        "difficulty": difficulty.value if difficulty else None,
        "type": type.value if type else None,
    }
    questions, total = await service.list_questions(db, filters, search, page.skip, page.limit)
    return paginated(questions, page, total)


@router.get("/{question_id}")
async def get_question(
    question_id: str,
    staff: UserContext = Depends(get_current_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return success(await service.get_question(db, question_id))


@router.post("", status_code=201)
async def create_question(
    data: QuestionCreate,
    staff: UserContext = Depends(get_current_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """
    Create a question

    Validations:
    - Subject must exist (400)
    - Unit must exist and belong to the subject (400)
    - Choice questions need at least two options
    """
    return success(await service.create_question(db, data, staff.oid))


@router.put("/{question_id}")
async def update_question(
    question_id: str,
    data: QuestionUpdate,
    staff: UserContext = Depends(get_current_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return success(await service.update_question(db, question_id, data))


@router.delete("/{question_id}")
async def delete_question(
    question_id: str,
    staff: UserContext = Depends(get_current_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    await service.delete_question(db, question_id)
    return success({"message": "Question deleted"})
