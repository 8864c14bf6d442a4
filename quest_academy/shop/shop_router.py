from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import Field

from quest_academy.auth.auth_permissions import UserContext, get_current_user
from quest_academy.common.responses import success
from quest_academy.common.schemas import RequestModel
from quest_academy.database import get_db
from quest_academy.shop import shop_service as service

router = APIRouter(prefix="/shop", tags=["Shop"])


class BuyRequest(RequestModel):
    quantity: int = Field(1, ge=1, le=99)


@router.get("")
async def get_shop(
    current: UserContext = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """Active items with discounts, owned counts and affordability"""
    return success(await service.shop_items(db, current.oid))


@router.post("/buy/{item_id}")
async def buy_item(
    item_id: str,
    data: BuyRequest = BuyRequest(),
    current: UserContext = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return success(await service.buy_item(db, current.oid, item_id, data.quantity))
