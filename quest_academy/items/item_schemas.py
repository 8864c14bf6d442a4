from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from quest_academy.common.schemas import RequestModel


class ItemType(str, Enum):
    CONSUMABLE = "consumable"
    EQUIPMENT = "equipment"
    COSMETIC = "cosmetic"


class ItemRarity(str, Enum):
    COMMON = "common"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"


class EquipmentSlot(str, Enum):
    TITLE = "title"
    HEAD = "head"
    BODY = "body"
    ACCESSORY = "accessory"
    BACKGROUND = "background"
    EFFECT = "effect"


class EffectType(str, Enum):
    EXP_BOOST = "exp_boost"
    GOLD_BOOST = "gold_boost"
    HINT = "hint"
    SKIP = "skip"
    SHIELD = "shield"
    TIME_EXTEND = "time_extend"


# Effects that last for a duration once an item is used
DURATION_EFFECTS = {
    EffectType.EXP_BOOST.value,
    EffectType.GOLD_BOOST.value,
    EffectType.SHIELD.value,
    EffectType.TIME_EXTEND.value,
}
EQUIPPABLE_TYPES = {ItemType.EQUIPMENT.value, ItemType.COSMETIC.value}


class ItemEffect(BaseModel):
    type: EffectType
    value: float
    duration: Optional[int] = Field(None, ge=1, description="Minutes")

    class Config:
        use_enum_values = True


class ItemCreate(RequestModel):
    name: str = Field(..., min_length=1, max_length=50)
    description: str = Field(..., min_length=1, max_length=200)
    type: ItemType
    rarity: ItemRarity = ItemRarity.COMMON
    slot: Optional[EquipmentSlot] = None
    icon: str = Field(..., min_length=1)
    image_url: Optional[str] = None
    price: int = Field(..., ge=0)
    effects: List[ItemEffect] = []
    max_stack: int = Field(99, ge=0, description="0 = unlimited")
    order: int = 0


class ItemUpdate(RequestModel):
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    description: Optional[str] = Field(None, min_length=1, max_length=200)
    type: Optional[ItemType] = None
    rarity: Optional[ItemRarity] = None
    slot: Optional[EquipmentSlot] = None
    icon: Optional[str] = None
    image_url: Optional[str] = None
    price: Optional[int] = Field(None, ge=0)
    effects: Optional[List[ItemEffect]] = None
    max_stack: Optional[int] = Field(None, ge=0)
    order: Optional[int] = None
    is_active: Optional[bool] = None
