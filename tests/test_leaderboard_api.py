from datetime import datetime

from conftest import API, auth, run


def test_all_time_exp_board(client, make_user):
    top = make_user(exp=300)
    make_user(exp=200)
    me = make_user(exp=100)

    data = client.get(f"{API}/leaderboard", params={"limit": 2}, headers=auth(me)).json()["data"]
    assert [e["value"] for e in data["leaderboard"]] == [300, 200]
    assert data["leaderboard"][0]["_id"] == str(top["_id"])
    assert data["current_user"]["rank"] == 3


def test_current_user_in_top_list(client, make_user):
    me = make_user(gold=999)
    data = client.get(f"{API}/leaderboard", params={"type": "gold"}, headers=auth(me)).json()["data"]
    assert data["leaderboard"][0]["is_current_user"] is True
    assert data["current_user"] is None


def test_daily_board_sums_attempts(client, db, make_user):
    a = make_user()
    b = make_user()
    now = datetime.utcnow()
    run(db.question_attempts.insert_many([
        {"student_id": a["_id"], "is_correct": True, "exp_gained": 10, "gold_gained": 5, "created_at": now},
        {"student_id": b["_id"], "is_correct": True, "exp_gained": 20, "gold_gained": 10, "created_at": now},
        {"student_id": b["_id"], "is_correct": False, "exp_gained": 0, "gold_gained": 0, "created_at": now},
    ]))

    exp_board = client.get(f"{API}/leaderboard", params={"period": "daily"}, headers=auth(a)).json()["data"]
    assert [e["value"] for e in exp_board["leaderboard"]] == [20, 10]

    rate_board = client.get(
        f"{API}/leaderboard", params={"period": "daily", "type": "correct_rate"}, headers=auth(a)
    ).json()["data"]
    assert [e["value"] for e in rate_board["leaderboard"]] == [100, 50]


def test_class_board_unknown_class(client, make_user):
    resp = client.get(f"{API}/leaderboard", params={"class_id": "0" * 24}, headers=auth(make_user()))
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "CLASS_NOT_FOUND"


def test_my_rank(client, make_user):
    make_user(exp=50, gold=1)
    me = make_user(exp=10, gold=100)
    ranks = client.get(f"{API}/leaderboard/my-rank", headers=auth(me)).json()["data"]["ranks"]
    assert ranks["exp"] == {"rank": 2, "total": 2}
    assert ranks["gold"]["rank"] == 1
