from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from quest_academy.auth.auth_permissions import UserContext, get_current_admin, get_current_student
from quest_academy.common.responses import success
from quest_academy.daily_tasks import daily_task_service as service
from quest_academy.database import get_db

router = APIRouter(prefix="/daily-tasks", tags=["Daily Tasks"])


@router.get("")
async def get_daily_tasks(
    student: UserContext = Depends(get_current_student),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """Today's tasks with progress, creating the player's rows on first access"""
    return success(await service.get_daily_tasks(db, student.oid))


@router.post("/claim-all")
async def claim_all(
    student: UserContext = Depends(get_current_student),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return success(await service.claim_all_tasks(db, student.oid))


@router.post("/seed")
async def seed_tasks(
    admin: UserContext = Depends(get_current_admin),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """Replace the task catalogue with the default daily tasks"""
    return success(await service.seed_daily_tasks(db))


@router.post("/{task_id}/claim")
async def claim_task(
    task_id: str,
    student: UserContext = Depends(get_current_student),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return success(await service.claim_task(db, student.oid, task_id))
