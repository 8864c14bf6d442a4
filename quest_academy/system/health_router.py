import logging
from datetime import datetime

from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from quest_academy.common.responses import success
from quest_academy.database import get_db

logger = logging.getLogger(__name__)

router = APIRouter(tags=["System"])


@router.get("/health")
async def health(db: AsyncIOMotorDatabase = Depends(get_db)):
    """Liveness plus a database ping; no auth"""
    try:
        await db.command("ping")
        database = "connected"
    except PyMongoError as exc:
        logger.error("Database ping failed: %s", exc)
        database = "disconnected"

    return success({
        "status": "ok",
        "timestamp": datetime.utcnow(),
        "services": {"database": database},
    })
