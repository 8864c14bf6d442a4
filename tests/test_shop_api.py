from bson import ObjectId

from conftest import API, auth, run


def seed_item(db, **fields):
    doc = {
        "name": "經驗藥水", "description": "經驗加倍 30 分鐘", "type": "consumable", "rarity": "common",
        "icon": "🧪", "price": 50, "effects": [{"type": "exp_boost", "value": 2, "duration": 30}],
        "max_stack": 99, "order": 0, "is_active": True,
        **fields,
    }
    return run(db.items.insert_one(doc)).inserted_id


def gold_of(db, user):
    return run(db.users.find_one({"_id": user["_id"]}))["student_profile"]["gold"]


def test_buy_with_insufficient_gold(client, db, make_user):
    student = make_user(gold=10)
    item_id = seed_item(db)
    resp = client.post(f"{API}/shop/buy/{item_id}", headers=auth(student))
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "VALIDATION_ERROR"
    assert gold_of(db, student) == 10


def test_buy_deducts_gold_and_stacks(client, db, make_user):
    student = make_user(gold=200)
    item_id = seed_item(db)

    data = client.post(f"{API}/shop/buy/{item_id}", json={"quantity": 2}, headers=auth(student)).json()["data"]
    assert data["cost"] == 100
    assert data["remaining_gold"] == 100
    assert data["discount"] is None

    client.post(f"{API}/shop/buy/{item_id}", headers=auth(student))
    owned = run(db.player_items.find_one({"player_id": student["_id"], "item_id": item_id}))
    assert owned["quantity"] == 3
    assert gold_of(db, student) == 50


def test_max_stack(client, db, make_user):
    student = make_user(gold=1000)
    item_id = seed_item(db, max_stack=1)
    assert client.post(f"{API}/shop/buy/{item_id}", headers=auth(student)).status_code == 200
    resp = client.post(f"{API}/shop/buy/{item_id}", headers=auth(student))
    assert resp.status_code == 400
    assert gold_of(db, student) == 950


def test_unknown_item(client, make_user):
    resp = client.post(f"{API}/shop/buy/{ObjectId()}", headers=auth(make_user(gold=100)))
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "ITEM_NOT_FOUND"


def test_promotion_discounts_shop_and_purchase(client, db, make_user):
    admin = make_user("admin")
    student = make_user(gold=100)
    item_id = seed_item(db, price=40)

    resp = client.post(f"{API}/announcements", headers=auth(admin), json={
        "title": "週末特賣", "content": "藥水八折", "type": "promotion", "show_in_shop": True,
        "discount": {"type": "percentage", "value": 20, "item_ids": [str(item_id)]},
    })
    assert resp.status_code == 201

    shop = client.get(f"{API}/shop", headers=auth(student)).json()["data"]
    listed = shop["items"][0]
    assert (listed["original_price"], listed["price"]) == (40, 32)
    assert listed["can_afford"] is True
    assert len(shop["promotions"]) == 1

    data = client.post(f"{API}/shop/buy/{item_id}", headers=auth(student)).json()["data"]
    assert data["cost"] == 32
    assert data["original_cost"] == 40
    assert data["discount"]["saved"] == 8
    assert gold_of(db, student) == 68


def test_percentage_over_100_rejected(client, make_user):
    resp = client.post(f"{API}/announcements", headers=auth(make_user("admin")), json={
        "title": "x", "content": "y", "type": "promotion",
        "discount": {"type": "percentage", "value": 150},
    })
    assert resp.status_code == 400


def test_use_item_starts_and_extends_effect(client, db, make_user):
    student = make_user(gold=500)
    item_id = seed_item(db)
    client.post(f"{API}/shop/buy/{item_id}", json={"quantity": 2}, headers=auth(student))

    first = client.post(f"{API}/inventory/use/{item_id}", headers=auth(student)).json()["data"]
    assert first["remaining_quantity"] == 1
    assert first["applied_effects"] == [{"type": "exp_boost", "value": 2, "duration": 30}]

    client.post(f"{API}/inventory/use/{item_id}", headers=auth(student))
    inventory = client.get(f"{API}/inventory", headers=auth(student)).json()["data"]
    assert inventory["inventory"] == []
    assert len(inventory["active_effects"]) == 1
    assert 59 <= inventory["active_effects"][0]["remaining_minutes"] <= 60

    resp = client.post(f"{API}/inventory/use/{item_id}", headers=auth(student))
    assert resp.status_code == 400


def test_equip_and_unequip_cosmetic(client, db, make_user):
    student = make_user(gold=500)
    item_id = seed_item(db, name="勇者稱號", type="cosmetic", slot="title", effects=[], price=100)
    client.post(f"{API}/shop/buy/{item_id}", headers=auth(student))

    options = client.get(f"{API}/avatar/items", headers=auth(student)).json()["data"]
    player_item_id = options["by_slot"]["title"][0]["player_item_id"]

    assert client.post(f"{API}/avatar/equip/{player_item_id}", headers=auth(student)).status_code == 200
    avatar = client.get(f"{API}/avatar", headers=auth(student)).json()["data"]["avatar"]
    assert avatar["title"]["item"]["name"] == "勇者稱號"
    assert avatar["head"] is None

    assert client.post(f"{API}/avatar/unequip/{player_item_id}", headers=auth(student)).status_code == 200
    again = client.post(f"{API}/avatar/unequip/{player_item_id}", headers=auth(student))
    assert again.status_code == 400


def test_consumables_cannot_be_equipped(client, db, make_user):
    student = make_user(gold=500)
    item_id = seed_item(db)
    client.post(f"{API}/shop/buy/{item_id}", headers=auth(student))
    owned = run(db.player_items.find_one({"player_id": student["_id"]}))
    resp = client.post(f"{API}/avatar/equip/{owned['_id']}", headers=auth(student))
    assert resp.status_code == 400
