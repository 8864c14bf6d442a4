from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from quest_academy.auth.auth_permissions import UserContext, get_current_staff
from quest_academy.common.responses import success
from quest_academy.database import get_db
from quest_academy.reports import report_service as service

router = APIRouter(prefix="/reports", tags=["Reports"])


@router.get("/dashboard")
async def get_dashboard(
    staff: UserContext = Depends(get_current_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """Overview across the caller's active classes"""
    return success(await service.dashboard(db, staff))


@router.get("/class/{class_id}")
async def get_class_report(
    class_id: str,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    staff: UserContext = Depends(get_current_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return success(await service.class_report(db, class_id, staff, start_date, end_date))


@router.get("/student/{student_id}")
async def get_student_report(
    student_id: str,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    staff: UserContext = Depends(get_current_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """
    Individual report
    Teachers only see students enrolled in one of their active classes.
    """
    return success(await service.student_report(db, student_id, staff, start_date, end_date))


@router.get("/questions")
async def get_question_analysis(
    class_id: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    staff: UserContext = Depends(get_current_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return success(await service.question_analysis(db, staff, class_id, start_date, end_date))
