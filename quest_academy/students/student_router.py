from typing import Optional

from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from quest_academy.auth.auth_permissions import UserContext, get_current_staff
from quest_academy.common.responses import PageParams, paginated, success
from quest_academy.database import get_db
from quest_academy.students import student_service as service
from quest_academy.students.student_schemas import SortOrder, StudentSortField, StudentUpdate

router = APIRouter(prefix="/students", tags=["Students"])


@router.get("")
async def list_students(
    search: Optional[str] = None,
    class_id: Optional[str] = None,
    sort_by: StudentSortField = StudentSortField.CREATED_AT,
    sort_order: SortOrder = SortOrder.DESC,
    page: PageParams = Depends(),
    staff: UserContext = Depends(get_current_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """
    Students with profile stats and attempt counts
    search matches display name or email (case-insensitive)
    """
    students, total = await service.list_students(
        db, search, class_id, sort_by.value, sort_order.value, page.skip, page.limit
    )
    return paginated(students, page, total)


@router.get("/{student_id}")
async def get_student(
    student_id: str,
    staff: UserContext = Depends(get_current_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return success(await service.get_student_detail(db, student_id))


@router.get("/{student_id}/attempts")
async def get_student_attempts(
    student_id: str,
    subject_id: Optional[str] = None,
    unit_id: Optional[str] = None,
    is_correct: Optional[bool] = None,
    page: PageParams = Depends(),
    staff: UserContext = Depends(get_current_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    attempts, total = await service.get_student_attempts(
        db, student_id, subject_id, unit_id, is_correct, page.skip, page.limit
    )
    return paginated(attempts, page, total)


@router.patch("/{student_id}")
async def update_student(
    student_id: str,
    data: StudentUpdate,
    staff: UserContext = Depends(get_current_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return success(await service.update_student(db, student_id, data))
