from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from quest_academy.auth.auth_permissions import UserContext, get_current_staff, get_current_student
from quest_academy.common.responses import success
from quest_academy.database import get_db
from quest_academy.game_maps import map_service as service
from quest_academy.game_maps.map_schemas import (
    BattleResult, LayersUpdate, MapCreate, MapObjectIn, MapUpdate, PositionUpdate, SaveTime
)

router = APIRouter(prefix="/game-maps", tags=["Game Maps"])


# ==================== STUDENT ====================

@router.get("/student")
async def get_student_maps(
    student: UserContext = Depends(get_current_student),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """Active maps with unlock status and the player's visit stats"""
    return success({"maps": await service.student_maps(db, student.oid, student.level)})


@router.post("/student/{map_id}/enter")
async def enter_map(
    map_id: str,
    student: UserContext = Depends(get_current_student),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return success(await service.enter_map(db, student.oid, student.level, map_id))


@router.put("/student/{map_id}/position")
async def update_position(
    map_id: str,
    data: PositionUpdate,
    student: UserContext = Depends(get_current_student),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return success(await service.update_position(db, student.oid, map_id, data))


@router.post("/student/{map_id}/objects/{object_id}/interact")
async def interact_with_object(
    map_id: str,
    object_id: str,
    student: UserContext = Depends(get_current_student),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return success(await service.interact(db, student.oid, map_id, object_id))


@router.post("/student/{map_id}/objects/{object_id}/complete-battle")
async def complete_battle(
    map_id: str,
    object_id: str,
    data: BattleResult,
    student: UserContext = Depends(get_current_student),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return success(await service.complete_battle(db, student.oid, map_id, object_id, data))


@router.post("/student/{map_id}/save-time")
async def save_game_time(
    map_id: str,
    data: SaveTime,
    student: UserContext = Depends(get_current_student),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return success(await service.save_time(db, student.oid, map_id, data.time_spent))


# ==================== STAFF ====================

@router.get("")
async def list_maps(
    staff: UserContext = Depends(get_current_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return success({"maps": await service.list_maps(db)})


@router.get("/{map_id}")
async def get_map(
    map_id: str,
    staff: UserContext = Depends(get_current_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return success({"map": await service.get_map(db, map_id)})


@router.post("", status_code=201)
async def create_map(
    data: MapCreate,
    staff: UserContext = Depends(get_current_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return success({"map": await service.create_map(db, data, staff.oid)})


@router.put("/{map_id}")
async def update_map(
    map_id: str,
    data: MapUpdate,
    staff: UserContext = Depends(get_current_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return success({"map": await service.update_map(db, map_id, data)})


@router.delete("/{map_id}")
async def delete_map(
    map_id: str,
    staff: UserContext = Depends(get_current_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    await service.delete_map(db, map_id)
    return success({"message": "Map deleted"})


@router.put("/{map_id}/layers")
async def update_layers(
    map_id: str,
    data: LayersUpdate,
    staff: UserContext = Depends(get_current_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return success({"map": await service.update_layers(db, map_id, data)})


@router.post("/{map_id}/objects", status_code=201)
async def add_object(
    map_id: str,
    data: MapObjectIn,
    staff: UserContext = Depends(get_current_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return success(await service.add_object(db, map_id, data))


@router.put("/{map_id}/objects/{object_id}")
async def update_object(
    map_id: str,
    object_id: str,
    data: MapObjectIn,
    staff: UserContext = Depends(get_current_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return success({"map": await service.update_object(db, map_id, object_id, data)})


@router.delete("/{map_id}/objects/{object_id}")
async def remove_object(
    map_id: str,
    object_id: str,
    staff: UserContext = Depends(get_current_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return success({"map": await service.remove_object(db, map_id, object_id)})
