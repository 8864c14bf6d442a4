"""
Paper-doll categories, draw order and color presets
"""

import re
from typing import Optional

LAYER_MAP = {
    "body": 0,
    "skin_tone": 0,
    "face": 1,
    "eyes": 1,
    "mouth": 1,
    "hair": 2,
    "outfit": 3,
    "armor": 4,
    "weapon": 5,
    "accessory": 6,
    "effects": 7,
}

# Draw order; skin_tone is a color applied to the body, never drawn itself
LAYER_ORDER = ["body", "face", "eyes", "mouth", "hair", "outfit", "armor", "weapon", "accessory", "effects"]

REQUIRED_CATEGORIES = ["body", "face", "eyes", "mouth", "hair", "outfit"]
OPTIONAL_CATEGORIES = ["armor", "weapon", "accessory", "effects"]

# Which equipped color tints which category
COLOR_TARGETS = {
    "body": "skin_tone",
    "hair": "hair_color",
    "eyes": "eye_color",
}

SKIN_TONE_PRESETS = [
    "#FFECD4", "#FFDFC4", "#F5D0B0", "#E8B89A",
    "#D4A574", "#B87E5C", "#8D5524", "#6B3E26",
]
HAIR_COLOR_PRESETS = [
    "#0D0D0D", "#3D2314", "#6B4423", "#8B4513", "#D4A76A", "#F5D76E",
    "#FF6B6B", "#E74C3C", "#9B59B6", "#3498DB", "#1ABC9C", "#95A5A6",
]
EYE_COLOR_PRESETS = [
    "#4A3728", "#2E1A0C", "#1E90FF", "#228B22",
    "#808080", "#9B59B6", "#FF6B6B", "#FFD700",
]

COLOR_PRESETS = {
    "skin_tone": SKIN_TONE_PRESETS,
    "hair_color": HAIR_COLOR_PRESETS,
    "eye_color": EYE_COLOR_PRESETS,
}

HEX_COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"
_HEX_COLOR = re.compile(HEX_COLOR_PATTERN)

DEFAULT_TRANSFORM = {"offset_x": 0, "offset_y": 0, "scale": 1, "anchor": {"x": 0.5, "y": 0.5}}
PLACEHOLDER_ASSET = "/assets/avatar/placeholder.png"


def layer_for(category: str) -> int:
    return LAYER_MAP[category]


def is_hex_color(value: Optional[str]) -> bool:
    return bool(value and _HEX_COLOR.match(value))


def color_for(category: str, part: dict, equipped: dict) -> Optional[str]:
    """Tint color for a part, or None when it is drawn as-is"""
    if not part.get("colorizable"):
        return None
    target = COLOR_TARGETS.get(category)
    return equipped.get(target) if target else None
