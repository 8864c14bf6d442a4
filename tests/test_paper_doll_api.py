from PIL import Image

from conftest import API, auth, run
from quest_academy.paper_doll import compositor


def create_part(client, admin, **fields):
    body = {"name": "劍", "category": "weapon", "assets": {"idle": "/assets/avatar/sword.png"}, **fields}
    resp = client.post(f"{API}/paper-doll/admin/parts", json=body, headers=auth(admin))
    assert resp.status_code == 201
    return resp.json()["data"]["part"]


def test_avatar_created_with_placeholders(client, db, make_user):
    student = make_user()
    data = client.get(f"{API}/paper-doll/avatar", headers=auth(student)).json()["data"]
    avatar = data["avatar"]
    assert avatar["name"] == "冒險者"
    assert avatar["equipped"]["body"]["category"] == "body"
    assert avatar["equipped"]["skin_tone"] == "#FFDFC4"
    assert "#0D0D0D" in data["color_presets"]["hair_color"]
    assert run(db.avatar_parts.count_documents({"is_default": True})) == 6

    client.get(f"{API}/paper-doll/avatar", headers=auth(student))
    assert run(db.student_avatars.count_documents({})) == 1


def test_update_colors_and_name(client, make_user):
    student = make_user()
    resp = client.put(
        f"{API}/paper-doll/avatar", json={"name": " 小勇者 ", "hair_color": "#FF6B6B"}, headers=auth(student)
    )
    avatar = resp.json()["data"]["avatar"]
    assert avatar["name"] == "小勇者"
    assert avatar["equipped"]["hair_color"] == "#FF6B6B"

    bad = client.put(f"{API}/paper-doll/avatar", json={"skin_tone": "tan"}, headers=auth(student))
    assert bad.status_code == 400


def test_equip_respects_level(client, make_user):
    admin = make_user("admin")
    part = create_part(client, admin, acquisition={"type": "shop", "price": 100, "level_required": 5})
    assert part["layer"] == 5
    assert part["is_custom"] is True

    resp = client.post(f"{API}/paper-doll/avatar/equip/{part['_id']}", headers=auth(make_user(level=3)))
    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "LEVEL_REQUIREMENT_NOT_MET"

    ok = client.post(f"{API}/paper-doll/avatar/equip/{part['_id']}", headers=auth(make_user(level=5)))
    assert ok.json()["data"]["equipped"]["category"] == "weapon"


def test_unequip_only_optional_categories(client, make_user):
    admin = make_user("admin")
    student = make_user()
    part = create_part(client, admin)
    client.post(f"{API}/paper-doll/avatar/equip/{part['_id']}", headers=auth(student))

    assert client.delete(f"{API}/paper-doll/avatar/unequip/weapon", headers=auth(student)).status_code == 200
    assert client.delete(f"{API}/paper-doll/avatar/unequip/hair", headers=auth(student)).status_code == 400


def test_default_parts_cannot_be_deleted(client, db, make_user):
    admin = make_user("admin")
    client.get(f"{API}/paper-doll/avatar", headers=auth(make_user()))
    default = run(db.avatar_parts.find_one({"is_default": True}))
    assert client.delete(f"{API}/paper-doll/admin/parts/{default['_id']}", headers=auth(admin)).status_code == 400

    custom = create_part(client, admin)
    assert client.delete(f"{API}/paper-doll/admin/parts/{custom['_id']}", headers=auth(admin)).status_code == 200
    parts = client.get(f"{API}/paper-doll/parts", params={"category": "weapon"}, headers=auth(admin)).json()["data"]
    assert parts["total"] == 0


def test_render_returns_png(client, make_user, monkeypatch):
    async def fake_fetch(http_client, url):
        return Image.new("RGBA", (16, 16), (255, 255, 255, 255))

    monkeypatch.setattr(compositor, "fetch_sprite", fake_fetch)
    resp = client.get(f"{API}/paper-doll/avatar/render", headers=auth(make_user()))
    assert resp.status_code == 200
    assert resp.headers["content-type"] == "image/png"
    assert resp.content.startswith(b"\x89PNG")
