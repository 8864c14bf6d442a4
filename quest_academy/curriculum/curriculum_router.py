from typing import Optional

from fastapi import APIRouter, Depends, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from quest_academy.auth.auth_permissions import UserContext, get_current_staff
from quest_academy.common.responses import PageParams, paginated, success
from quest_academy.curriculum import curriculum_service as service
from quest_academy.curriculum.curriculum_schemas import (
    Semester, SubjectCreate, SubjectUpdate, UnitCreate, UnitUpdate
)
from quest_academy.database import get_db

subject_router = APIRouter(prefix="/subjects", tags=["Subjects"])
unit_router = APIRouter(prefix="/units", tags=["Units"])


# ==================== SUBJECTS ====================

@subject_router.get("")
async def list_subjects(
    include_inactive: bool = False,
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return success(await service.list_subjects(db, include_inactive))


@subject_router.get("/{subject_id}")
async def get_subject(subject_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    return success(await service.get_subject(db, subject_id))


@subject_router.post("", status_code=201)
async def create_subject(
    data: SubjectCreate,
    staff: UserContext = Depends(get_current_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """
    Create a subject (teacher/admin)
    Subject codes are unique (400 on duplicate)
    """
    return success(await service.create_subject(db, data))


@subject_router.patch("/{subject_id}")
async def update_subject(
    subject_id: str,
    data: SubjectUpdate,
    staff: UserContext = Depends(get_current_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return success(await service.update_subject(db, subject_id, data))


@subject_router.delete("/{subject_id}")
async def delete_subject(
    subject_id: str,
    staff: UserContext = Depends(get_current_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """
    Delete a subject
    Refused (400) while any unit still references it
    """
    await service.delete_subject(db, subject_id)
    return success({"message": "Subject deleted"})


# ==================== UNITS ====================

@unit_router.get("")
async def list_units(
    subject_id: Optional[str] = None,
    academic_year: Optional[str] = None,
    grade: Optional[int] = Query(None, ge=1, le=6),
    semester: Optional[Semester] = None,
    page: PageParams = Depends(),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    units, total = await service.list_units(
        db,
        subject_id=subject_id,
        academic_year=academic_year,
        grade=grade,
        semester=semester.value if semester else None,
        skip=page.skip,
        limit=page.limit,
    )
    return paginated(units, page, total)


@unit_router.get("/grouped")
async def get_units_grouped(db: AsyncIOMotorDatabase = Depends(get_db)):
    return success(await service.get_units_grouped(db))


@unit_router.get("/{unit_id}")
async def get_unit(unit_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    return success(await service.get_unit(db, unit_id))


@unit_router.post("", status_code=201)
async def create_unit(
    data: UnitCreate,
    staff: UserContext = Depends(get_current_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """
    Create a unit under an existing subject (404 if the subject is missing)
    """
    return success(await service.create_unit(db, data))


@unit_router.patch("/{unit_id}")
async def update_unit(
    unit_id: str,
    data: UnitUpdate,
    staff: UserContext = Depends(get_current_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return success(await service.update_unit(db, unit_id, data))


@unit_router.delete("/{unit_id}")
async def delete_unit(
    unit_id: str,
    staff: UserContext = Depends(get_current_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    await service.delete_unit(db, unit_id)
    return success({"message": "Unit deleted"})
