from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from quest_academy.common.schemas import RequestModel
from quest_academy.paper_doll.layers import HEX_COLOR_PATTERN


class AvatarCategory(str, Enum):
    BODY = "body"
    SKIN_TONE = "skin_tone"
    FACE = "face"
    EYES = "eyes"
    MOUTH = "mouth"
    HAIR = "hair"
    OUTFIT = "outfit"
    ARMOR = "armor"
    WEAPON = "weapon"
    ACCESSORY = "accessory"
    EFFECTS = "effects"


class PartRarity(str, Enum):
    COMMON = "common"
    UNCOMMON = "uncommon"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"


class AcquisitionType(str, Enum):
    DEFAULT = "default"
    SHOP = "shop"
    ACHIEVEMENT = "achievement"
    EVENT = "event"
    CUSTOM = "custom"


class Anchor(BaseModel):
    x: float = Field(0.5, ge=0, le=1)
    y: float = Field(0.5, ge=0, le=1)


class PartTransform(BaseModel):
    offset_x: float = 0
    offset_y: float = 0
    scale: float = Field(1, gt=0, le=10)
    anchor: Anchor = Anchor()


class SpriteSheet(BaseModel):
    url: str
    frame_width: int = Field(..., ge=1)
    frame_height: int = Field(..., ge=1)
    animations: dict = {}


class PartAssets(BaseModel):
    idle: str = Field(..., min_length=1)
    walk: List[str] = []
    attack: List[str] = []
    hurt: List[str] = []
    sprite_sheet: Optional[SpriteSheet] = None


class Acquisition(BaseModel):
    type: AcquisitionType = AcquisitionType.DEFAULT
    price: Optional[int] = Field(None, ge=0)
    level_required: int = Field(1, ge=1)

    class Config:
        use_enum_values = True


class PartCreate(RequestModel):
    name: str = Field(..., min_length=1, max_length=50)
    category: AvatarCategory
    assets: PartAssets
    transform: PartTransform = PartTransform()
    colorizable: bool = False
    default_color: Optional[str] = Field(None, pattern=HEX_COLOR_PATTERN)
    acquisition: Acquisition = Acquisition()
    rarity: PartRarity = PartRarity.COMMON
    is_default: bool = False


class PartUpdate(RequestModel):
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    category: Optional[AvatarCategory] = None
    assets: Optional[PartAssets] = None
    transform: Optional[PartTransform] = None
    colorizable: Optional[bool] = None
    default_color: Optional[str] = Field(None, pattern=HEX_COLOR_PATTERN)
    acquisition: Optional[Acquisition] = None
    rarity: Optional[PartRarity] = None
    is_default: Optional[bool] = None
    is_active: Optional[bool] = None


class AvatarUpdate(RequestModel):
    name: Optional[str] = Field(None, min_length=1, max_length=20)
    skin_tone: Optional[str] = Field(None, pattern=HEX_COLOR_PATTERN)
    hair_color: Optional[str] = Field(None, pattern=HEX_COLOR_PATTERN)
    eye_color: Optional[str] = Field(None, pattern=HEX_COLOR_PATTERN)
