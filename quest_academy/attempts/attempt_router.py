from typing import Optional

from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from quest_academy.attempts import attempt_service as service
from quest_academy.attempts.attempt_schemas import AnswerSubmit
from quest_academy.auth.auth_permissions import UserContext, get_current_student
from quest_academy.common.responses import PageParams, paginated, success
from quest_academy.database import get_db
from quest_academy.questions.question_schemas import Difficulty, LegacySubject

router = APIRouter(prefix="/attempts", tags=["Attempts"])


@router.get("/question/random")
async def get_random_question(
    unit_ids: Optional[str] = None,
    subject_id: Optional[str] = None,
    subject: Optional[LegacySubject] = None,
    difficulty: Optional[Difficulty] = None,
    student: UserContext = Depends(get_current_student),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """
    One random practice question (answer omitted)
    unit_ids is a comma-separated list of unit ids
    """
    units = [u.strip() for u in (unit_ids or "").split(",") if u.strip()]
    question = await service.random_practice_question(
        db,
        unit_ids=units,
        subject_id=subject_id,
        subject=subject.value if subject else None,
        difficulty=difficulty.value if difficulty else None,
    )
    return success(question)


@router.get("/history")
async def get_history(
    page: PageParams = Depends(),
    student: UserContext = Depends(get_current_student),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    attempts, total = await service.attempt_history(db, student.oid, page.skip, page.limit)
    return paginated(attempts, page, total)


@router.get("/stats")
async def get_stats(
    student: UserContext = Depends(get_current_student),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return success(await service.student_stats(db, student.oid))


@router.post("/{question_id}")
async def submit_answer(
    question_id: str,
    data: AnswerSubmit,
    student: UserContext = Depends(get_current_student),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """
    Submit an answer

    Returns correctness, the correct answer and explanation, rewards,
    newly completed daily tasks and (for practice) the daily limit status.
    """
    return success(await service.submit_answer(db, student.oid, question_id, data))
