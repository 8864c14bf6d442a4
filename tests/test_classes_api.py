from conftest import API, auth, run


def create_class(client, teacher, **extra):
    resp = client.post(f"{API}/classes", json={"name": "三年甲班", **extra}, headers=auth(teacher))
    assert resp.status_code == 201
    return resp.json()["data"]


def test_join_with_invite_code(client, db, make_user):
    teacher = make_user("teacher")
    student = make_user()
    cls = create_class(client, teacher)
    assert len(cls["invite_code"]) == 6

    resp = client.post(f"{API}/classes/join", json={"invite_code": cls["invite_code"].lower()}, headers=auth(student))
    assert resp.status_code == 200
    assert resp.json()["data"]["class"]["name"] == "三年甲班"

    profile = run(db.users.find_one({"_id": student["_id"]}))["student_profile"]
    assert str(profile["class_id"]) == cls["_id"]

    mine = client.get(f"{API}/classes/my", headers=auth(student)).json()["data"]
    assert mine[0]["student_count"] == 1

    again = client.post(f"{API}/classes/join", json={"invite_code": cls["invite_code"]}, headers=auth(student))
    assert again.status_code == 400


def test_unknown_invite_code(client, make_user):
    resp = client.post(f"{API}/classes/join", json={"invite_code": "ZZZZZZ"}, headers=auth(make_user()))
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "INVALID_JOIN_CODE"


def test_full_class(client, make_user):
    cls = create_class(client, make_user("teacher"), max_students=1)
    client.post(f"{API}/classes/join", json={"invite_code": cls["invite_code"]}, headers=auth(make_user()))
    resp = client.post(f"{API}/classes/join", json={"invite_code": cls["invite_code"]}, headers=auth(make_user()))
    assert resp.status_code == 400


def test_register_with_join_code(client, make_user):
    cls = create_class(client, make_user("teacher"))
    resp = client.post(f"{API}/auth/register", json={
        "email": "new@example.com", "password": "secret123", "display_name": "小華",
        "class_join_code": cls["invite_code"],
    })
    assert resp.json()["data"]["user"]["student_profile"]["class_id"] == cls["_id"]


def test_other_teachers_cannot_manage_class(client, make_user):
    cls = create_class(client, make_user("teacher"))
    resp = client.get(f"{API}/classes/{cls['_id']}", headers=auth(make_user("teacher")))
    assert resp.status_code == 403
    assert client.get(f"{API}/classes/{cls['_id']}", headers=auth(make_user("admin"))).status_code == 200


def test_leave_class(client, db, make_user):
    student = make_user()
    cls = create_class(client, make_user("teacher"))
    client.post(f"{API}/classes/join", json={"invite_code": cls["invite_code"]}, headers=auth(student))

    assert client.post(f"{API}/classes/{cls['_id']}/leave", headers=auth(student)).status_code == 200
    profile = run(db.users.find_one({"_id": student["_id"]}))["student_profile"]
    assert profile["class_id"] is None
