from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, root_validator

from quest_academy.common.schemas import RequestModel


class AnnouncementType(str, Enum):
    INFO = "info"
    EVENT = "event"
    PROMOTION = "promotion"


class DiscountType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class Discount(BaseModel):
    type: DiscountType
    value: float = Field(..., ge=1)
    item_ids: List[str] = []
    min_purchase: Optional[int] = Field(None, ge=0)

    class Config:
        use_enum_values = True

    @root_validator(skip_on_failure=True)
    def check_percentage(cls, values):
        if values.get("type") == DiscountType.PERCENTAGE and values.get("value", 0) > 100:
            raise ValueError("Percentage discount cannot exceed 100")
        return values


class AnnouncementCreate(RequestModel):
    title: str = Field(..., min_length=1, max_length=100)
    content: str = Field(..., min_length=1, max_length=2000)
    type: AnnouncementType = AnnouncementType.INFO
    icon: str = "📢"
    image_url: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    discount: Optional[Discount] = None
    is_pinned: bool = False
    show_in_shop: bool = False


class AnnouncementUpdate(RequestModel):
    title: Optional[str] = Field(None, min_length=1, max_length=100)
    content: Optional[str] = Field(None, min_length=1, max_length=2000)
    type: Optional[AnnouncementType] = None
    icon: Optional[str] = None
    image_url: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    discount: Optional[Discount] = None
    is_pinned: Optional[bool] = None
    show_in_shop: Optional[bool] = None
    is_active: Optional[bool] = None
