from typing import Optional

from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from quest_academy.announcements import announcement_service as service
from quest_academy.announcements.announcement_schemas import (
    AnnouncementCreate, AnnouncementType, AnnouncementUpdate
)
from quest_academy.auth.auth_permissions import UserContext, get_current_staff, get_current_user
from quest_academy.common.responses import success
from quest_academy.database import get_db

router = APIRouter(prefix="/announcements", tags=["Announcements"])


# ==================== PLAYER ====================

@router.get("/active")
async def get_active_announcements(
    current: UserContext = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return success(await service.active_announcements(db))


@router.get("/promotions/active")
async def get_active_promotions(
    current: UserContext = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """Promotions currently shown in the shop"""
    return success(await service.shop_promotions(db))


# ==================== STAFF ====================

@router.get("")
async def list_announcements(
    type: Optional[AnnouncementType] = None,
    include_inactive: bool = False,
    staff: UserContext = Depends(get_current_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    announcement_type = type.value if type else None
    return success(await service.list_announcements(db, announcement_type, include_inactive))


@router.get("/{announcement_id}")
async def get_announcement(
    announcement_id: str,
    staff: UserContext = Depends(get_current_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return success(await service.get_announcement(db, announcement_id))


@router.post("", status_code=201)
async def create_announcement(
    data: AnnouncementCreate,
    staff: UserContext = Depends(get_current_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return success(await service.create_announcement(db, data, staff.oid))


@router.patch("/{announcement_id}")
async def update_announcement(
    announcement_id: str,
    data: AnnouncementUpdate,
    staff: UserContext = Depends(get_current_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return success(await service.update_announcement(db, announcement_id, data))


@router.delete("/{announcement_id}")
async def delete_announcement(
    announcement_id: str,
    staff: UserContext = Depends(get_current_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    await service.delete_announcement(db, announcement_id)
    return success({"message": "Announcement deleted"})
