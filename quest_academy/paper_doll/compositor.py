"""
Server-side paper-doll renderer

Fetches each equipped part's idle sprite, tints colorizable parts and
stacks them in layer order on a transparent canvas.
"""

import io
import logging
from typing import Dict, Iterable, Optional, Tuple

import httpx
from PIL import Image

from quest_academy import config
from quest_academy.paper_doll.layers import LAYER_ORDER, color_for, is_hex_color
from quest_academy.questions.question_rules import round_half_up

logger = logging.getLogger(__name__)

WHITE = (255, 255, 255)


def hex_to_rgb(value: Optional[str]) -> Tuple[int, int, int]:
    """#RRGGBB to an RGB tuple; anything else is white"""
    if not is_hex_color(value):
        return WHITE
    return tuple(int(value[i:i + 2], 16) for i in (1, 3, 5))


def colorize(image: Image.Image, color: Optional[str]) -> Image.Image:
    """
    Keep each visible pixel's brightness, replace its hue with `color`
    Fully transparent pixels are left untouched.
    """
    target = hex_to_rgb(color)
    tinted = image.convert("RGBA")
    pixels = tinted.load()
    width, height = tinted.size
    for y in range(height):
        for x in range(width):
            r, g, b, a = pixels[x, y]
            if a == 0:
                continue
            brightness = (r + g + b) / 3 / 255
            pixels[x, y] = (
                round_half_up(target[0] * brightness),
                round_half_up(target[1] * brightness),
                round_half_up(target[2] * brightness),
                a,
            )
    return tinted


def placement(canvas_size: Tuple[int, int], sprite_size: Tuple[int, int], transform: Optional[dict]) -> Tuple[int, int, int, int]:
    """
    Top-left corner and draw size for a sprite
    The anchor point of the scaled sprite lands on canvas centre + offset.
    """
    transform = transform or {}
    anchor = transform.get("anchor") or {}
    scale = transform.get("scale", 1) or 1
    draw_w = sprite_size[0] * scale
    draw_h = sprite_size[1] * scale
    x = canvas_size[0] / 2 + transform.get("offset_x", 0) - draw_w * anchor.get("x", 0.5)
    y = canvas_size[1] / 2 + transform.get("offset_y", 0) - draw_h * anchor.get("y", 0.5)
    return round(x), round(y), max(1, round(draw_w)), max(1, round(draw_h))


def render_layers(layers: Iterable[Tuple[Image.Image, Optional[dict], Optional[str]]], size: Tuple[int, int] = None) -> bytes:
    """
    Composite (sprite, transform, color) tuples bottom-up into a PNG
    """
    size = size or config.AVATAR_CANVAS_SIZE
    canvas = Image.new("RGBA", size, (0, 0, 0, 0))
    for sprite, transform, color in layers:
        sprite = sprite.convert("RGBA")
        if color:
            sprite = colorize(sprite, color)
        x, y, w, h = placement(size, sprite.size, transform)
        if (w, h) != sprite.size:
            sprite = sprite.resize((w, h), Image.NEAREST)
        layer = Image.new("RGBA", size, (0, 0, 0, 0))
        layer.paste(sprite, (x, y), sprite)
        canvas = Image.alpha_composite(canvas, layer)

    buf = io.BytesIO()
    canvas.save(buf, format="PNG")
    return buf.getvalue()


async def fetch_sprite(client: httpx.AsyncClient, url: str) -> Optional[Image.Image]:
    """Download a sprite; a failed fetch skips that layer"""
    try:
        resp = await client.get(url, timeout=config.ASSET_FETCH_TIMEOUT)
        resp.raise_for_status()
        image = Image.open(io.BytesIO(resp.content))
        # Image.open is lazy; decode now so truncated files fail here
        image.load()
        return image
    except (httpx.HTTPError, OSError) as exc:
        logger.warning("Could not load avatar asset %s: %s", url, exc)
        return None


async def render_avatar(equipped: dict, parts: Dict[str, dict], base_url: str = None) -> bytes:
    """
    Render an avatar to PNG bytes

    Args:
        equipped: The avatar's equipped mapping (part ids and colors)
        parts: Part documents keyed by category
        base_url: Prefix for relative asset paths
    """
    layers = []
    base_url = config.ASSET_BASE_URL if base_url is None else base_url
    async with httpx.AsyncClient(base_url=base_url, follow_redirects=True) as client:
        for category in LAYER_ORDER:
            part = parts.get(category)
            if not part:
                continue
            url = (part.get("assets") or {}).get("idle")
            if not url:
                continue
            sprite = await fetch_sprite(client, url)
            if sprite is None:
                continue
            layers.append((sprite, part.get("transform"), color_for(category, part, equipped)))
    return render_layers(layers)
