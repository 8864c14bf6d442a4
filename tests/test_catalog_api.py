from datetime import datetime, timedelta

from conftest import API, auth


def test_seed_items_once(client, make_user):
    teacher = make_user("teacher")
    resp = client.post(f"{API}/items/seed", headers=auth(teacher))
    assert resp.status_code == 201
    assert resp.json()["data"]["count"] == 8

    assert client.post(f"{API}/items/seed", headers=auth(teacher)).status_code == 400
    items = client.get(f"{API}/items", headers=auth(teacher)).json()["data"]
    assert len(items) == 8


def test_item_effect_validation(client, make_user):
    resp = client.post(f"{API}/items", headers=auth(make_user("admin")), json={
        "name": "怪藥", "description": "?", "type": "consumable", "icon": "❓", "price": 5,
        "effects": [{"type": "teleport", "value": 1}],
    })
    assert resp.status_code == 400


def test_active_announcements_respect_window(client, make_user):
    admin = make_user("admin")
    now = datetime.utcnow()
    for body in (
        {"title": "公告", "content": "歡迎", "type": "info", "is_pinned": True},
        {"title": "活動", "content": "進行中", "type": "event",
         "start_date": (now - timedelta(days=1)).isoformat(), "end_date": (now + timedelta(days=1)).isoformat()},
        {"title": "已結束", "content": "過期", "type": "event",
         "start_date": (now - timedelta(days=3)).isoformat(), "end_date": (now - timedelta(days=2)).isoformat()},
    ):
        assert client.post(f"{API}/announcements", json=body, headers=auth(admin)).status_code == 201

    data = client.get(f"{API}/announcements/active", headers=auth(make_user())).json()["data"]
    assert [a["title"] for a in data["announcements"]] == ["公告", "活動"]
    assert data["promotions"] == []


def test_students_cannot_manage_announcements(client, make_user):
    resp = client.post(f"{API}/announcements", json={"title": "x", "content": "y"}, headers=auth(make_user()))
    assert resp.status_code == 403
