from enum import Enum
from typing import Optional

from fastapi import APIRouter, Depends, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from quest_academy.auth.auth_permissions import UserContext, get_current_user
from quest_academy.common.responses import success
from quest_academy.database import get_db
from quest_academy.leaderboard import leaderboard_service as service

router = APIRouter(prefix="/leaderboard", tags=["Leaderboard"])


class BoardType(str, Enum):
    EXP = "exp"
    LEVEL = "level"
    GOLD = "gold"
    CORRECT_RATE = "correct_rate"
    QUESTIONS_ANSWERED = "questions_answered"


class Period(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    ALL = "all"


@router.get("")
async def get_leaderboard(
    type: BoardType = BoardType.EXP,
    period: Period = Period.ALL,
    class_id: Optional[str] = None,
    limit: int = Query(20, ge=1, le=100),
    current: UserContext = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return success(await service.get_leaderboard(
        db, current.oid, type.value, period.value, class_id, limit
    ))


@router.get("/my-rank")
async def get_my_rank(
    current: UserContext = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """All-time rank for each profile stat"""
    return success(await service.my_ranks(db, current.oid))
