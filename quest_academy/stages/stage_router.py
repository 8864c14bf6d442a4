from typing import Optional

from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from quest_academy.auth.auth_permissions import (
    UserContext, get_current_staff, get_current_student, get_current_user
)
from quest_academy.common.responses import PageParams, paginated, success
from quest_academy.database import get_db
from quest_academy.stages import stage_service as service
from quest_academy.stages.stage_schemas import StageComplete, StageCreate, StageUpdate

router = APIRouter(prefix="/stages", tags=["Stages"])


# ==================== STUDENT ====================

@router.get("/student")
async def list_student_stages(
    subject: Optional[str] = None,
    student: UserContext = Depends(get_current_student),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """
    Active stages with the caller's unlock state and progress
    `subject` accepts a subject code such as math or a display name
    """
    return success(await service.list_student_stages(db, student.oid, student.level, subject))


@router.get("/{stage_id}/question")
async def get_stage_question(
    stage_id: str,
    student: UserContext = Depends(get_current_student),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return success(await service.get_stage_question(db, student.oid, stage_id))


@router.post("/{stage_id}/start")
async def start_stage(
    stage_id: str,
    student: UserContext = Depends(get_current_student),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return success(await service.start_stage(db, student.oid, stage_id))


@router.post("/{stage_id}/complete")
async def complete_stage(
    stage_id: str,
    data: StageComplete,
    student: UserContext = Depends(get_current_student),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """
    Finish a session

    A session passes at a 60% correct rate. Bonus rewards apply on every pass,
    the first-clear bonus only once.
    """
    return success(await service.complete_stage(db, student.oid, stage_id, data))


# ==================== TEACHER / ADMIN ====================

@router.get("")
async def list_stages(
    include_inactive: bool = False,
    page: PageParams = Depends(),
    staff: UserContext = Depends(get_current_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    stages, total = await service.list_stages(db, include_inactive, page.skip, page.limit)
    return paginated(stages, page, total)


@router.get("/{stage_id}")
async def get_stage(
    stage_id: str,
    user: UserContext = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return success(await service.get_stage(db, stage_id))


@router.post("", status_code=201)
async def create_stage(
    data: StageCreate,
    staff: UserContext = Depends(get_current_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return success(await service.create_stage(db, data, staff.oid))


@router.put("/{stage_id}")
async def update_stage(
    stage_id: str,
    data: StageUpdate,
    staff: UserContext = Depends(get_current_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return success(await service.update_stage(db, stage_id, data))


@router.delete("/{stage_id}")
async def delete_stage(
    stage_id: str,
    staff: UserContext = Depends(get_current_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    await service.delete_stage(db, stage_id)
    return success({"message": "Stage deleted"})
