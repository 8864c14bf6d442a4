from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from quest_academy.auth.auth_permissions import UserContext, get_current_user
from quest_academy.common.responses import success
from quest_academy.database import get_db
from quest_academy.inventory import equipment_service, inventory_service

router = APIRouter(prefix="/inventory", tags=["Inventory"])
avatar_router = APIRouter(prefix="/avatar", tags=["Avatar"])


# ==================== INVENTORY ====================

@router.get("")
async def get_inventory(
    current: UserContext = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """Owned items plus active (unexpired) effects"""
    return success(await inventory_service.get_inventory(db, current.oid))


@router.post("/use/{item_id}")
async def use_item(
    item_id: str,
    current: UserContext = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return success(await inventory_service.use_item(db, current.oid, item_id))


# ==================== AVATAR SLOTS ====================

@avatar_router.get("")
async def get_avatar(
    current: UserContext = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return success(await equipment_service.get_avatar(db, current.oid))


@avatar_router.get("/items")
async def get_equippable_items(
    current: UserContext = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return success(await equipment_service.equippable_items(db, current.oid))


@avatar_router.post("/equip/{player_item_id}")
async def equip_item(
    player_item_id: str,
    current: UserContext = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return success(await equipment_service.equip(db, current.oid, player_item_id))


@avatar_router.post("/unequip/{player_item_id}")
async def unequip_item(
    player_item_id: str,
    current: UserContext = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return success(await equipment_service.unequip(db, current.oid, player_item_id))
