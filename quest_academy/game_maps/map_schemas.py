from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, root_validator

from quest_academy.common.schemas import RequestModel
from quest_academy.questions.question_schemas import Difficulty


class MapTheme(str, Enum):
    FOREST = "forest"
    CASTLE = "castle"
    CAVE = "cave"
    TEMPLE = "temple"
    VILLAGE = "village"
    SNOW = "snow"
    DESERT = "desert"
    OCEAN = "ocean"


class MapObjectType(str, Enum):
    MONSTER = "monster"
    NPC = "npc"
    CHEST = "chest"
    PORTAL = "portal"
    SAVE_POINT = "save_point"
    DECORATION = "decoration"


class MonsterDifficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    BOSS = "boss"


class Direction(str, Enum):
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"


class Position(BaseModel):
    x: int = Field(..., ge=0)
    y: int = Field(..., ge=0)


class Size(BaseModel):
    width: int = Field(1, ge=1)
    height: int = Field(1, ge=1)


# ==================== OBJECT DATA ====================

class QuestionPool(BaseModel):
    subject_id: Optional[str] = None
    unit_id: Optional[str] = None
    count: int = Field(5, ge=1, le=20)
    difficulty: Optional[Difficulty] = None

    class Config:
        use_enum_values = True


class MonsterRewards(BaseModel):
    exp: int = Field(0, ge=0)
    gold: int = Field(0, ge=0)


class MonsterData(BaseModel):
    name: str = Field(..., min_length=1)
    image_url: Optional[str] = None
    description: Optional[str] = None
    difficulty: MonsterDifficulty = MonsterDifficulty.EASY
    hp: int = Field(3, ge=1, description="Correct answers needed to win")
    question_pool: QuestionPool = QuestionPool()
    rewards: MonsterRewards = MonsterRewards()
    respawn_time: int = Field(0, ge=0, description="Seconds; 0 never respawns")

    class Config:
        use_enum_values = True


class NpcData(BaseModel):
    name: str = Field(..., min_length=1)
    image_url: Optional[str] = None
    dialogues: List[str] = []


class ChestItem(BaseModel):
    item_id: str
    quantity: int = Field(1, ge=1)


class ChestData(BaseModel):
    items: List[ChestItem] = []
    gold: int = Field(0, ge=0)
    exp: int = Field(0, ge=0)
    is_one_time: bool = True


class PortalData(BaseModel):
    target_map_id: str
    target_position: Position
    requires_key: Optional[str] = None


class MapObjectIn(RequestModel):
    type: MapObjectType
    position: Position
    size: Size = Size()
    image_url: Optional[str] = None
    monster_data: Optional[MonsterData] = None
    npc_data: Optional[NpcData] = None
    chest_data: Optional[ChestData] = None
    portal_data: Optional[PortalData] = None
    is_visible: bool = True
    collides: bool = True


# ==================== MAPS ====================

class MapRequirements(BaseModel):
    level_required: int = Field(1, ge=1)
    previous_map_id: Optional[str] = None
    stage_required: Optional[str] = None


class MapLayers(BaseModel):
    ground: List[List[int]]
    obstacles: List[List[int]]
    decorations: List[List[int]]


class MapCreate(RequestModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str = ""
    theme: MapTheme = MapTheme.FOREST
    width: int = Field(20, ge=1, le=200)
    height: int = Field(15, ge=1, le=200)
    tile_size: int = Field(32, ge=8, le=256)
    background_url: Optional[str] = None
    tileset_url: Optional[str] = None
    ambient_music: Optional[str] = None
    spawn_point: Position = Position(x=1, y=1)
    requirements: MapRequirements = MapRequirements()
    order: int = 0


class MapUpdate(RequestModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    theme: Optional[MapTheme] = None
    tile_size: Optional[int] = Field(None, ge=8, le=256)
    background_url: Optional[str] = None
    tileset_url: Optional[str] = None
    ambient_music: Optional[str] = None
    spawn_point: Optional[Position] = None
    requirements: Optional[MapRequirements] = None
    order: Optional[int] = None
    is_active: Optional[bool] = None


class LayersUpdate(RequestModel):
    layers: MapLayers


# ==================== PLAYER ====================

class PositionUpdate(RequestModel):
    x: int = Field(..., ge=0)
    y: int = Field(..., ge=0)
    direction: Optional[Direction] = None


class BattleResult(RequestModel):
    victory: bool
    correct_answers: int = Field(..., ge=0)
    total_questions: int = Field(..., ge=1)

    @root_validator(skip_on_failure=True)
    def correct_within_total(cls, values):
        if values["correct_answers"] > values["total_questions"]:
            raise ValueError("correct_answers cannot exceed total_questions")
        return values


class SaveTime(RequestModel):
    time_spent: int = Field(..., ge=0, description="Seconds")
