from bson import ObjectId

from conftest import API, auth, run


def create_map(client, staff, **extra):
    resp = client.post(f"{API}/game-maps", json={"name": "迷霧森林", "width": 4, "height": 3, **extra}, headers=auth(staff))
    assert resp.status_code == 201
    return resp.json()["data"]["map"]


def add_object(client, staff, map_id, body):
    resp = client.post(f"{API}/game-maps/{map_id}/objects", json=body, headers=auth(staff))
    assert resp.status_code == 201
    return resp.json()["data"]["added_object"]


def test_new_map_has_empty_layers(client, make_user):
    game_map = create_map(client, make_user("teacher"))
    assert game_map["layers"]["ground"] == [[0, 0, 0, 0]] * 3
    assert game_map["theme"] == "forest"


def test_layers_must_match_dimensions(client, make_user):
    teacher = make_user("teacher")
    game_map = create_map(client, teacher)
    bad = {"layers": {"ground": [[1, 1]], "obstacles": [[0, 0]], "decorations": [[0, 0]]}}
    resp = client.put(f"{API}/game-maps/{game_map['_id']}/layers", json=bad, headers=auth(teacher))
    assert resp.status_code == 400


def test_level_gate(client, make_user):
    game_map = create_map(client, make_user("teacher"), requirements={"level_required": 5})
    resp = client.post(f"{API}/game-maps/student/{game_map['_id']}/enter", headers=auth(make_user(level=2)))
    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "LEVEL_REQUIREMENT_NOT_MET"


def test_chest_opens_once(client, db, make_user):
    teacher = make_user("teacher")
    student = make_user()
    item_id = run(db.items.insert_one({"name": "鑰匙", "type": "consumable", "price": 0, "is_active": True})).inserted_id
    game_map = create_map(client, teacher)
    chest = add_object(client, teacher, game_map["_id"], {
        "type": "chest", "position": {"x": 2, "y": 1},
        "chest_data": {"gold": 30, "exp": 10, "items": [{"item_id": str(item_id), "quantity": 2}]},
    })

    entered = client.post(f"{API}/game-maps/student/{game_map['_id']}/enter", headers=auth(student)).json()["data"]
    assert entered["player_state"]["first_entry"] is True
    assert [o["id"] for o in entered["map"]["objects"]] == [chest["id"]]

    url = f"{API}/game-maps/student/{game_map['_id']}/objects/{chest['id']}/interact"
    opened = client.post(url, headers=auth(student)).json()["data"]
    assert opened["type"] == "chest"
    assert opened["rewards"]["gold"] == 30

    profile = run(db.users.find_one({"_id": student["_id"]}))["student_profile"]
    assert (profile["gold"], profile["exp"]) == (30, 10)
    owned = run(db.player_items.find_one({"player_id": student["_id"], "item_id": item_id}))
    assert owned["quantity"] == 2

    assert client.post(url, headers=auth(student)).status_code == 400

    again = client.post(f"{API}/game-maps/student/{game_map['_id']}/enter", headers=auth(student)).json()["data"]
    assert again["map"]["objects"] == []
    assert again["player_state"]["stats"]["total_visits"] == 2
    assert again["player_state"]["stats"]["chests_opened"] == 1


def test_monster_battle_rewards(client, db, make_user):
    teacher = make_user("teacher")
    student = make_user()
    game_map = create_map(client, teacher)
    monster = add_object(client, teacher, game_map["_id"], {
        "type": "monster", "position": {"x": 1, "y": 1},
        "monster_data": {"name": "史萊姆", "rewards": {"exp": 40, "gold": 20}, "question_pool": {"count": 3}},
    })
    client.post(f"{API}/game-maps/student/{game_map['_id']}/enter", headers=auth(student))

    base = f"{API}/game-maps/student/{game_map['_id']}/objects/{monster['id']}"
    battle = client.post(f"{base}/interact", headers=auth(student)).json()["data"]
    assert battle["type"] == "battle"
    assert battle["monster"]["name"] == "史萊姆"

    result = client.post(
        f"{base}/complete-battle", json={"victory": True, "correct_answers": 3, "total_questions": 4}, headers=auth(student)
    ).json()["data"]
    assert result["rewards"] == {"exp": 30, "gold": 15}

    again = client.post(
        f"{base}/complete-battle", json={"victory": True, "correct_answers": 4, "total_questions": 4}, headers=auth(student)
    )
    assert again.status_code == 400


def test_battle_result_validation(client, make_user):
    teacher = make_user("teacher")
    game_map = create_map(client, teacher)
    url = f"{API}/game-maps/student/{game_map['_id']}/objects/x/complete-battle"
    resp = client.post(url, json={"victory": True, "correct_answers": 5, "total_questions": 4}, headers=auth(make_user()))
    assert resp.status_code == 400


def test_interact_requires_entry(client, make_user):
    teacher = make_user("teacher")
    game_map = create_map(client, teacher)
    npc = add_object(client, teacher, game_map["_id"], {
        "type": "npc", "position": {"x": 0, "y": 0}, "npc_data": {"name": "村長", "dialogues": ["歡迎!"]},
    })
    url = f"{API}/game-maps/student/{game_map['_id']}/objects/{npc['id']}/interact"
    resp = client.post(url, headers=auth(make_user()))
    assert resp.status_code == 404


def test_position_and_time(client, make_user):
    student = make_user()
    game_map = create_map(client, make_user("teacher"))
    client.post(f"{API}/game-maps/student/{game_map['_id']}/enter", headers=auth(student))

    moved = client.put(
        f"{API}/game-maps/student/{game_map['_id']}/position", json={"x": 3, "y": 2, "direction": "left"}, headers=auth(student)
    ).json()["data"]
    assert moved == {"position": {"x": 3, "y": 2}, "direction": "left"}

    saved = client.post(
        f"{API}/game-maps/student/{game_map['_id']}/save-time", json={"time_spent": 90}, headers=auth(student)
    ).json()["data"]
    assert saved["total_time_spent"] == 90


def test_delete_map_removes_player_states(client, db, make_user):
    teacher = make_user("teacher")
    game_map = create_map(client, teacher)
    client.post(f"{API}/game-maps/student/{game_map['_id']}/enter", headers=auth(make_user()))

    assert client.delete(f"{API}/game-maps/{game_map['_id']}", headers=auth(teacher)).status_code == 200
    assert run(db.player_map_states.count_documents({"map_id": ObjectId(game_map["_id"])})) == 0
