from typing import Optional

from pydantic import BaseModel, EmailStr, Field, validator

# ==================== REQUEST SCHEMAS ====================

class RegisterRequest(BaseModel):
    """
    Self-registration; only students may sign themselves up
    """
    email: EmailStr
    password: str = Field(..., min_length=6)
    display_name: str = Field(..., min_length=1, max_length=50)
    role: str = "student"
    class_join_code: Optional[str] = None

    @validator("email", pre=True)
    def normalize_email(cls, v):
        return v.strip().lower() if isinstance(v, str) else v

    @validator("display_name")
    def validate_display_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Please provide a display name")
        return v

    @validator("role")
    def validate_role(cls, v):
        if v != "student":
            raise ValueError("Only students can self-register")
        return v


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)

    @validator("email", pre=True)
    def normalize_email(cls, v):
        return v.strip().lower() if isinstance(v, str) else v
