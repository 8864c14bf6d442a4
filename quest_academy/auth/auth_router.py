from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from quest_academy.auth import auth_service as service
from quest_academy.auth.auth_permissions import UserContext, get_current_user
from quest_academy.auth.auth_schemas import LoginRequest, RegisterRequest
from quest_academy.auth.user_models import public_user
from quest_academy.common.responses import success
from quest_academy.database import get_db

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post("/register", status_code=201)
async def register(data: RegisterRequest, db: AsyncIOMotorDatabase = Depends(get_db)):
    """
    Student self-registration

    Validations:
    - Email must be unique (400)
    - Role must be student
    """
    return success(await service.register_user(db, data))


@router.post("/login")
async def login(data: LoginRequest, db: AsyncIOMotorDatabase = Depends(get_db)):
    return success(await service.login_user(db, data))


@router.get("/me")
async def me(current: UserContext = Depends(get_current_user)):
    return success(public_user(current.user))
