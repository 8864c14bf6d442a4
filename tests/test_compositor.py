import asyncio
import io

import httpx
from PIL import Image

from quest_academy.paper_doll import compositor
from quest_academy.paper_doll.layers import color_for


def test_hex_to_rgb():
    assert compositor.hex_to_rgb("#FF8000") == (255, 128, 0)
    assert compositor.hex_to_rgb("red") == (255, 255, 255)
    assert compositor.hex_to_rgb(None) == (255, 255, 255)


def test_colorize_keeps_brightness_and_transparency():
    image = Image.new("RGBA", (2, 1), (0, 0, 0, 0))
    image.putpixel((0, 0), (255, 255, 255, 200))
    tinted = compositor.colorize(image, "#FF0000")
    assert tinted.getpixel((0, 0)) == (255, 0, 0, 200)
    assert tinted.getpixel((1, 0)) == (0, 0, 0, 0)


def test_colorize_scales_by_grey_level():
    image = Image.new("RGBA", (1, 1), (102, 102, 102, 255))
    assert compositor.colorize(image, "#FFFFFF").getpixel((0, 0)) == (102, 102, 102, 255)


def test_placement_centres_sprite_on_anchor():
    assert compositor.placement((256, 256), (64, 64), None) == (96, 96, 64, 64)
    transform = {"offset_x": 10, "offset_y": -20, "scale": 2, "anchor": {"x": 0, "y": 1}}
    assert compositor.placement((256, 256), (32, 32), transform) == (138, 44, 64, 64)


def test_render_layers_stacks_in_order():
    red = Image.new("RGBA", (4, 4), (255, 0, 0, 255))
    blue = Image.new("RGBA", (2, 2), (0, 0, 255, 255))
    png = compositor.render_layers([(red, None, None), (blue, None, None)], size=(4, 4))

    result = Image.open(io.BytesIO(png))
    assert result.size == (4, 4)
    assert result.getpixel((0, 0)) == (255, 0, 0, 255)
    assert result.getpixel((1, 1)) == (0, 0, 255, 255)


def test_color_for_only_tints_colorizable_targets():
    equipped = {"hair_color": "#123456"}
    assert color_for("hair", {"colorizable": True}, equipped) == "#123456"
    assert color_for("hair", {"colorizable": False}, equipped) is None
    assert color_for("outfit", {"colorizable": True}, equipped) is None


def png_bytes(size=(32, 32), color=(0, 128, 0, 255)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGBA", size, color).save(buf, format="PNG")
    return buf.getvalue()


def fetch_with(handler, url="/assets/part.png"):
    async def _fetch():
        transport = httpx.MockTransport(handler)
        async with httpx.AsyncClient(transport=transport, base_url="http://assets.test") as client:
            return await compositor.fetch_sprite(client, url)
    return asyncio.run(_fetch())


def test_fetch_sprite_decodes_valid_png():
    sprite = fetch_with(lambda request: httpx.Response(200, content=png_bytes()))
    assert sprite.size == (32, 32)


def test_fetch_sprite_skips_truncated_png():
    truncated = png_bytes()[:60]
    assert fetch_with(lambda request: httpx.Response(200, content=truncated)) is None


def test_fetch_sprite_skips_missing_asset():
    assert fetch_with(lambda request: httpx.Response(404)) is None


def test_render_avatar_skips_layers_that_fail_to_decode(monkeypatch):
    good = png_bytes()

    def handler(request):
        if request.url.path == "/body.png":
            return httpx.Response(200, content=good)
        return httpx.Response(200, content=good[:60])

    real_client = httpx.AsyncClient

    def client_factory(**kwargs):
        return real_client(transport=httpx.MockTransport(handler), **kwargs)

    monkeypatch.setattr(compositor.httpx, "AsyncClient", client_factory)
    parts = {
        "body": {"assets": {"idle": "/body.png"}},
        "hair": {"assets": {"idle": "/hair.png"}},
    }
    png = asyncio.run(compositor.render_avatar({}, parts, base_url="http://assets.test"))
    assert Image.open(io.BytesIO(png)).size == (256, 256)
