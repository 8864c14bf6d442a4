from bson import ObjectId

from conftest import API, auth, run


def seed_question(db, **fields):
    doc = {
        "subject": "math", "type": "single_choice", "difficulty": "medium",
        "content": {"text": "2 x 3 = ?"},
        "options": [{"id": "A", "text": "5"}, {"id": "B", "text": "6"}],
        "answer": {"correct": "B", "explanation": "2 個 3"},
        "stats": {"total_attempts": 0, "correct_count": 0, "avg_time_seconds": 0},
        "is_active": True,
        **fields,
    }
    return run(db.questions.insert_one(doc)).inserted_id


def submit(client, student, question_id, answer, **extra):
    return client.post(f"{API}/attempts/{question_id}", json={"answer": answer, **extra}, headers=auth(student))


def test_correct_answer_rewards_and_stats(client, db, make_user):
    student = make_user()
    question_id = seed_question(db)

    data = submit(client, student, question_id, " b ", time_spent_seconds=12).json()["data"]
    assert data["is_correct"] is True
    assert data["rewards"] == {"exp": 20, "gold": 10}
    assert data["daily_practice"]["rewarded_questions_today"] == 1

    profile = run(db.users.find_one({"_id": student["_id"]}))["student_profile"]
    assert profile["exp"] == 20
    assert profile["gold"] == 10
    assert profile["correct_rate"] == 100
    assert profile["stats"]["math"] == 52

    question = run(db.questions.find_one({"_id": question_id}))
    assert question["stats"]["total_attempts"] == 1
    assert question["stats"]["correct_count"] == 1


def test_wrong_answer_no_rewards(client, db, make_user):
    student = make_user()
    data = submit(client, student, seed_question(db), "A").json()["data"]
    assert data["is_correct"] is False
    assert data["rewards"] == {"exp": 0, "gold": 0}
    assert data["correct_answer"] == "B"


def test_exp_boost_applies(client, db, make_user):
    from datetime import datetime, timedelta

    student = make_user()
    run(db.active_effects.insert_one({
        "player_id": student["_id"], "effect_type": "exp_boost", "value": 2,
        "expires_at": datetime.utcnow() + timedelta(minutes=10),
    }))
    data = submit(client, student, seed_question(db), "B").json()["data"]
    assert data["rewards"] == {"exp": 40, "gold": 10}


def test_daily_limit_stops_practice_rewards(client, db, make_user):
    from datetime import datetime

    student = make_user(daily_practice={"date": datetime.utcnow(), "questions_answered": 20, "rewarded_questions": 20})
    data = submit(client, student, seed_question(db), "B").json()["data"]
    assert data["is_correct"] is True
    assert data["rewards"] == {"exp": 0, "gold": 0}


def test_unknown_question(client, make_user):
    resp = submit(client, make_user(), ObjectId(), "B")
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "QUESTION_NOT_FOUND"


def test_empty_answer_rejected(client, db, make_user):
    resp = submit(client, make_user(), seed_question(db), "")
    assert resp.status_code == 400


def test_daily_task_completion_and_claim(client, db, make_user):
    admin = make_user("admin")
    student = make_user()
    assert client.post(f"{API}/daily-tasks/seed", headers=auth(admin)).json()["data"]["count"] == 8

    question_id = seed_question(db)
    for answer in ("A", "B", "B"):
        submit(client, student, question_id, answer)

    tasks = client.get(f"{API}/daily-tasks", headers=auth(student)).json()["data"]["tasks"]
    by_code = {t["code"]: t for t in tasks}
    assert by_code["DAILY_Q3"]["is_completed"] is True
    assert by_code["DAILY_Q3"]["progress"] == 3
    assert by_code["DAILY_CORRECT_3"]["progress"] == 2
    assert by_code["DAILY_CORRECT_3"]["is_completed"] is False

    task_id = by_code["DAILY_Q3"]["_id"]
    claimed = client.post(f"{API}/daily-tasks/{task_id}/claim", headers=auth(student))
    assert claimed.json()["data"]["rewards"] == {"exp": 15, "gold": 5}

    again = client.post(f"{API}/daily-tasks/{task_id}/claim", headers=auth(student))
    assert again.status_code == 400
    assert client.post(f"{API}/daily-tasks/claim-all", headers=auth(student)).status_code == 400


def test_claim_for_removed_task_leaves_row_claimable(client, db, make_user):
    from quest_academy.daily_tasks.task_rules import start_of_day

    student = make_user()
    task_id = ObjectId()
    run(db.player_daily_tasks.insert_one({
        "player_id": student["_id"], "task_id": task_id, "date": start_of_day(),
        "progress": 3, "is_completed": True, "is_claimed": False,
    }))

    resp = client.post(f"{API}/daily-tasks/{task_id}/claim", headers=auth(student))
    assert resp.status_code == 400
    assert client.post(f"{API}/daily-tasks/claim-all", headers=auth(student)).status_code == 400
    row = run(db.player_daily_tasks.find_one({"task_id": task_id}))
    assert row["is_claimed"] is False

    run(db.daily_tasks.insert_one({
        "_id": task_id, "code": "DAILY_Q3", "name": "答題", "task_type": "questions_answered",
        "target_value": 3, "exp_reward": 15, "gold_reward": 5, "is_active": True,
    }))
    resp = client.post(f"{API}/daily-tasks/{task_id}/claim", headers=auth(student))
    assert resp.json()["data"]["rewards"] == {"exp": 15, "gold": 5}
    profile = run(db.users.find_one({"_id": student["_id"]}))["student_profile"]
    assert (profile["exp"], profile["gold"]) == (15, 5)
