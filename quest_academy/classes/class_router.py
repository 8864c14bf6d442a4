from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from quest_academy.auth.auth_permissions import UserContext, get_current_staff, get_current_student
from quest_academy.classes import class_service as service
from quest_academy.classes.class_schemas import (
    AddStudentsRequest, ClassCreate, ClassUpdate, JoinClassRequest
)
from quest_academy.common.responses import PageParams, paginated, success
from quest_academy.database import get_db

router = APIRouter(prefix="/classes", tags=["Classes"])


# ==================== STUDENT ====================

@router.post("/join")
async def join_class(
    data: JoinClassRequest,
    student: UserContext = Depends(get_current_student),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """
    Join a class with its 6-character invite code

    Raises:
        404 INVALID_JOIN_CODE: No active class has this code
        400: Already a member, or the class is full
    """
    return success(await service.join_class(db, data.invite_code, student.oid))


@router.get("/my")
async def my_classes(
    student: UserContext = Depends(get_current_student),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return success(await service.my_classes(db, student.oid))


@router.post("/{class_id}/leave")
async def leave_class(
    class_id: str,
    student: UserContext = Depends(get_current_student),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    await service.leave_class(db, class_id, student.oid)
    return success({"message": "Left class"})


# ==================== TEACHER ====================

@router.get("")
async def list_classes(
    show_inactive: bool = False,
    page: PageParams = Depends(),
    staff: UserContext = Depends(get_current_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    classes, total = await service.list_classes(db, staff.oid, show_inactive, page.skip, page.limit)
    return paginated(classes, page, total)


@router.get("/{class_id}")
async def get_class(
    class_id: str,
    staff: UserContext = Depends(get_current_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return success(await service.get_class_detail(db, class_id, staff))


@router.post("", status_code=201)
async def create_class(
    data: ClassCreate,
    staff: UserContext = Depends(get_current_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return success(await service.create_class(db, data, staff.oid))


@router.patch("/{class_id}")
async def update_class(
    class_id: str,
    data: ClassUpdate,
    staff: UserContext = Depends(get_current_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return success(await service.update_class(db, class_id, data, staff))


@router.delete("/{class_id}")
async def delete_class(
    class_id: str,
    staff: UserContext = Depends(get_current_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """Delete a class and detach its members"""
    await service.delete_class(db, class_id, staff)
    return success({"message": "Class deleted"})


@router.post("/{class_id}/regenerate-code")
async def regenerate_code(
    class_id: str,
    staff: UserContext = Depends(get_current_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return success(await service.regenerate_code(db, class_id, staff))


@router.post("/{class_id}/students")
async def add_students(
    class_id: str,
    data: AddStudentsRequest,
    staff: UserContext = Depends(get_current_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return success(await service.add_students(db, class_id, data.student_ids, staff))


@router.delete("/{class_id}/students/{student_id}")
async def remove_student(
    class_id: str,
    student_id: str,
    staff: UserContext = Depends(get_current_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    await service.remove_student(db, class_id, student_id, staff)
    return success({"message": "Student removed from class"})
