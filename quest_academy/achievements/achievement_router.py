from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from quest_academy.achievements import achievement_service as service
from quest_academy.auth.auth_permissions import UserContext, get_current_admin, get_current_user
from quest_academy.common.responses import success
from quest_academy.database import get_db

router = APIRouter(prefix="/achievements", tags=["Achievements"])


@router.get("")
async def get_achievements(
    user: UserContext = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """Catalogue grouped by category with the caller's progress"""
    return success(await service.list_achievements(db, user.oid))


@router.get("/new")
async def get_new_achievements(
    user: UserContext = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return success(await service.new_achievements(db, user.oid))


@router.post("/mark-all-seen")
async def mark_all_seen(
    user: UserContext = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return success(await service.mark_all_seen(db, user.oid))


@router.post("/seed")
async def seed_achievements(
    admin: UserContext = Depends(get_current_admin),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """Replace the catalogue with the default achievements"""
    return success(await service.seed_achievements(db))


@router.post("/{achievement_id}/seen")
async def mark_seen(
    achievement_id: str,
    user: UserContext = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return success(await service.mark_seen(db, user.oid, achievement_id))
