from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from quest_academy.auth.auth_permissions import UserContext, get_current_staff
from quest_academy.common.responses import success
from quest_academy.database import get_db
from quest_academy.items import item_service as service
from quest_academy.items.item_schemas import ItemCreate, ItemUpdate

router = APIRouter(prefix="/items", tags=["Items"])


@router.get("")
async def list_items(
    staff: UserContext = Depends(get_current_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return success(await service.list_items(db))


@router.post("", status_code=201)
async def create_item(
    data: ItemCreate,
    staff: UserContext = Depends(get_current_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return success(await service.create_item(db, data))


@router.post("/seed", status_code=201)
async def seed_items(
    staff: UserContext = Depends(get_current_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """Create the default catalogue (only when no items exist)"""
    count = await service.seed_items(db)
    return success({"message": f"Created {count} default items", "count": count})


@router.patch("/{item_id}")
async def update_item(
    item_id: str,
    data: ItemUpdate,
    staff: UserContext = Depends(get_current_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return success(await service.update_item(db, item_id, data))


@router.delete("/{item_id}")
async def delete_item(
    item_id: str,
    staff: UserContext = Depends(get_current_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    await service.delete_item(db, item_id)
    return success({"message": "Item deleted"})
