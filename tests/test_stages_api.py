from bson import ObjectId

from conftest import API, auth, run


def seed_unit(db):
    subject_id = run(db.subjects.insert_one({"name": "數學", "code": "math", "is_active": True})).inserted_id
    unit_id = run(db.units.insert_one({
        "name": "加法", "subject_id": subject_id, "academic_year": "113", "grade": 1, "semester": "上",
    })).inserted_id
    run(db.questions.insert_one({
        "subject_id": subject_id, "unit_id": unit_id, "subject": "math", "type": "single_choice",
        "difficulty": "easy", "content": {"text": "1 + 1 = ?"},
        "options": [{"id": "A", "text": "1"}, {"id": "B", "text": "2"}],
        "answer": {"correct": "B"}, "is_active": True,
    }))
    return unit_id


def create_stage(client, teacher, unit_id, **extra):
    body = {"name": "新手村", "unit_ids": [str(unit_id)], **extra}
    resp = client.post(f"{API}/stages", json=body, headers=auth(teacher))
    assert resp.status_code == 201
    return resp.json()["data"]


def test_stage_with_unknown_unit_rejected(client, make_user):
    resp = client.post(
        f"{API}/stages", json={"name": "x", "unit_ids": [str(ObjectId())]}, headers=auth(make_user("teacher"))
    )
    assert resp.status_code == 400


def test_stage_unlock_chain_and_first_clear(client, db, make_user):
    teacher = make_user("teacher")
    student = make_user()
    unit_id = seed_unit(db)
    first = create_stage(client, teacher, unit_id, order=0, unlock_condition={"type": "none"},
                         rewards={"bonus_exp": 10, "bonus_gold": 5})
    create_stage(client, teacher, unit_id, order=1, unlock_condition={"type": "previous"})

    stages = client.get(f"{API}/stages/student", headers=auth(student)).json()["data"]
    assert [s["is_unlocked"] for s in stages] == [True, False]

    question = client.get(f"{API}/stages/{first['_id']}/question", headers=auth(student)).json()["data"]
    assert "answer" not in question
    assert question["stage_name"] == "新手村"

    started = client.post(f"{API}/stages/{first['_id']}/start", headers=auth(student))
    assert started.status_code == 200

    resp = client.post(
        f"{API}/stages/{first['_id']}/complete", json={"correct_count": 7, "total_count": 10}, headers=auth(student)
    )
    result = resp.json()["data"]
    assert result["is_passed"] is True
    assert result["is_first_clear"] is True
    assert result["correct_rate"] == 70
    assert result["rewards"] == {"bonus_exp": 60, "bonus_gold": 30}

    profile = run(db.users.find_one({"_id": student["_id"]}))["student_profile"]
    assert (profile["exp"], profile["gold"]) == (60, 30)

    stages = client.get(f"{API}/stages/student", headers=auth(student)).json()["data"]
    assert [s["is_unlocked"] for s in stages] == [True, True]
    assert stages[0]["best_score"] == 7

    again = client.post(
        f"{API}/stages/{first['_id']}/complete", json={"correct_count": 10, "total_count": 10}, headers=auth(student)
    ).json()["data"]
    assert again["is_first_clear"] is False
    assert again["rewards"] == {"bonus_exp": 10, "bonus_gold": 5}


def test_complete_requires_start(client, db, make_user):
    stage = create_stage(client, make_user("teacher"), seed_unit(db))
    resp = client.post(
        f"{API}/stages/{stage['_id']}/complete", json={"correct_count": 1, "total_count": 1}, headers=auth(make_user())
    )
    assert resp.status_code == 400


def test_complete_rejects_zero_total(client, db, make_user):
    stage = create_stage(client, make_user("teacher"), seed_unit(db))
    resp = client.post(
        f"{API}/stages/{stage['_id']}/complete", json={"correct_count": 0, "total_count": 0}, headers=auth(make_user())
    )
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "VALIDATION_ERROR"


def test_level_unlock_value_sent_as_text_is_stored_as_number(client, db, make_user):
    unit_id = seed_unit(db)
    stage = create_stage(client, make_user("teacher"), unit_id, unlock_condition={"type": "level", "value": "2"})
    assert stage["unlock_condition"] == {"type": "level", "value": 2}

    resp = client.get(f"{API}/stages/student", headers=auth(make_user(level=3)))
    assert resp.status_code == 200
    assert resp.json()["data"][0]["is_unlocked"] is True

    low = client.get(f"{API}/stages/student", headers=auth(make_user(level=1))).json()["data"]
    assert low[0]["is_unlocked"] is False


def test_invalid_unlock_values_rejected(client, db, make_user):
    teacher = make_user("teacher")
    unit_id = str(seed_unit(db))
    for condition in (
        {"type": "level", "value": "abc"},
        {"type": "level", "value": 0},
        {"type": "stage", "value": "not-an-id"},
        {"type": "stage"},
    ):
        resp = client.post(
            f"{API}/stages", json={"name": "x", "unit_ids": [unit_id], "unlock_condition": condition},
            headers=auth(teacher)
        )
        assert resp.status_code == 400, condition
