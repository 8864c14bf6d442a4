from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from motor.motor_asyncio import AsyncIOMotorDatabase

from quest_academy.auth.auth_permissions import UserContext, get_current_staff, get_current_user
from quest_academy.common.responses import success
from quest_academy.database import get_db
from quest_academy.paper_doll import paper_doll_service as service
from quest_academy.paper_doll.paper_doll_schemas import (
    AvatarCategory, AvatarUpdate, PartCreate, PartRarity, PartUpdate
)

router = APIRouter(prefix="/paper-doll", tags=["Paper Doll"])


# ==================== STUDENT ====================

@router.get("/avatar")
async def get_avatar(
    current: UserContext = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """The caller's avatar with equipped parts; created from default parts on first access"""
    return success(await service.get_avatar(db, current.oid))


@router.get("/parts")
async def get_parts(
    category: Optional[AvatarCategory] = None,
    rarity: Optional[PartRarity] = None,
    current: UserContext = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return success(await service.list_parts(
        db, category.value if category else None, rarity.value if rarity else None
    ))


@router.put("/avatar")
async def update_avatar(
    data: AvatarUpdate,
    current: UserContext = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return success(await service.update_avatar(db, current.oid, data))


@router.post("/avatar/equip/{part_id}")
async def equip_part(
    part_id: str,
    current: UserContext = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return success(await service.equip_part(db, current.oid, current.level, part_id))


@router.delete("/avatar/unequip/{category}")
async def unequip_part(
    category: str,
    current: UserContext = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return success(await service.unequip_category(db, current.oid, category))


@router.get("/avatar/render")
async def render_avatar(
    current: UserContext = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """Server-side composite of the equipped parts as a PNG"""
    png = await service.render_avatar(db, current.oid)
    return Response(content=png, media_type="image/png")


# ==================== ADMIN ====================

@router.get("/admin/parts")
async def admin_list_parts(
    staff: UserContext = Depends(get_current_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return success(await service.admin_list_parts(db))


@router.post("/admin/parts", status_code=201)
async def admin_create_part(
    data: PartCreate,
    staff: UserContext = Depends(get_current_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return success({"part": await service.create_part(db, data, staff.oid)})


@router.put("/admin/parts/{part_id}")
async def admin_update_part(
    part_id: str,
    data: PartUpdate,
    staff: UserContext = Depends(get_current_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return success({"part": await service.update_part(db, part_id, data)})


@router.delete("/admin/parts/{part_id}")
async def admin_delete_part(
    part_id: str,
    staff: UserContext = Depends(get_current_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    await service.delete_part(db, part_id)
    return success({"message": "Part deleted"})
