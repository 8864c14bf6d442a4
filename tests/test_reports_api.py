from datetime import datetime, timedelta

from bson import ObjectId

from conftest import API, auth, run


def seed_class(db, teacher, students):
    return run(db.classes.insert_one({
        "name": "一年甲班", "teacher_id": teacher["_id"], "invite_code": "ABC234",
        "students": [s["_id"] for s in students], "max_students": 50, "is_active": True,
    })).inserted_id


def seed_question(db, created_by, unit_id=None, difficulty="easy"):
    return run(db.questions.insert_one({
        "subject": "math", "unit_id": unit_id, "type": "single_choice", "difficulty": difficulty,
        "content": {"text": "1 + 1 = ?"}, "answer": {"correct": "B"},
        "created_by": created_by, "is_active": True,
    })).inserted_id


def seed_attempts(db, student, question_id, correct, wrong, when=None):
    when = when or datetime.utcnow() - timedelta(hours=1)
    results = [True] * correct + [False] * wrong
    run(db.question_attempts.insert_many([
        {
            "student_id": student["_id"], "question_id": question_id, "is_correct": ok,
            "time_spent_seconds": 10, "exp_gained": 10 if ok else 0, "gold_gained": 5 if ok else 0,
            "source": "practice", "created_at": when,
        }
        for ok in results
    ]))


def test_dashboard_flags_students_needing_attention(client, db, make_user):
    teacher = make_user("teacher")
    struggling, doing_well, few_attempts, stale = (make_user() for _ in range(4))
    seed_class(db, teacher, [struggling, doing_well, few_attempts, stale])
    question_id = seed_question(db, teacher["_id"])

    seed_attempts(db, struggling, question_id, correct=2, wrong=4)
    seed_attempts(db, doing_well, question_id, correct=5, wrong=1)
    seed_attempts(db, few_attempts, question_id, correct=0, wrong=4)
    seed_attempts(db, stale, question_id, correct=0, wrong=6, when=datetime.utcnow() - timedelta(days=10))

    data = client.get(f"{API}/reports/dashboard", headers=auth(teacher)).json()["data"]
    assert data["overview"]["total_classes"] == 1
    assert data["overview"]["total_students"] == 4
    assert data["overview"]["total_attempts"] == 22

    flagged = data["students_needing_attention"]
    assert [s["_id"] for s in flagged] == [str(struggling["_id"])]
    assert flagged[0]["correct_rate"] == 33


def test_question_analysis_buckets_hard_and_easy(client, db, make_user):
    teacher = make_user("teacher")
    student = make_user()
    hard = seed_question(db, teacher["_id"])
    easy = seed_question(db, teacher["_id"])
    too_few = seed_question(db, teacher["_id"])
    borderline = seed_question(db, teacher["_id"])
    not_mine = seed_question(db, ObjectId())

    seed_attempts(db, student, hard, correct=1, wrong=4)
    seed_attempts(db, student, easy, correct=5, wrong=0)
    seed_attempts(db, student, too_few, correct=0, wrong=4)
    seed_attempts(db, student, borderline, correct=4, wrong=1)
    seed_attempts(db, student, not_mine, correct=0, wrong=5)

    data = client.get(f"{API}/reports/questions", headers=auth(teacher)).json()["data"]
    assert data["summary"]["total_questions"] == 4
    assert data["summary"]["total_attempts"] == 19
    assert [q["_id"] for q in data["hard_questions"]] == [str(hard)]
    assert [q["_id"] for q in data["easy_questions"]] == [str(easy)]
    assert "raw_rate" not in data["hard_questions"][0]


def test_report_end_date_includes_the_whole_day(client, db, make_user):
    teacher = make_user("teacher")
    student = make_user()
    seed_class(db, teacher, [student])
    question_id = seed_question(db, teacher["_id"])

    seed_attempts(db, student, question_id, correct=1, wrong=0, when=datetime(2024, 3, 10, 0, 0, 0))
    seed_attempts(db, student, question_id, correct=0, wrong=1, when=datetime(2024, 3, 10, 23, 59, 59, 500000))
    seed_attempts(db, student, question_id, correct=1, wrong=0, when=datetime(2024, 3, 11, 0, 0, 0))

    resp = client.get(
        f"{API}/reports/student/{student['_id']}",
        params={"start_date": "2024-03-10", "end_date": "2024-03-10"},
        headers=auth(teacher),
    )
    stats = resp.json()["data"]["stats"]
    assert stats["total_attempts"] == 2
    assert stats["correct_attempts"] == 1
    assert stats["correct_rate"] == 50


def test_student_report_hidden_from_other_teachers(client, db, make_user):
    student = make_user()
    seed_class(db, make_user("teacher"), [student])
    resp = client.get(f"{API}/reports/student/{student['_id']}", headers=auth(make_user("teacher")))
    assert resp.status_code == 403


def test_student_detail_weak_units_and_learning_trend(client, db, make_user):
    teacher = make_user("teacher")
    student = make_user()
    subject_id = run(db.subjects.insert_one({"name": "數學", "code": "math", "is_active": True})).inserted_id

    def unit(name):
        return run(db.units.insert_one({
            "name": name, "subject_id": subject_id, "academic_year": "113", "grade": 1, "semester": "上",
        })).inserted_id

    long_ago = datetime.utcnow() - timedelta(days=30)
    weakest = unit("加法")
    below_floor = unit("減法")
    borderline = unit("乘法")
    weak = unit("除法")
    seed_attempts(db, student, seed_question(db, teacher["_id"], weakest), correct=1, wrong=2, when=long_ago)
    seed_attempts(db, student, seed_question(db, teacher["_id"], below_floor), correct=0, wrong=2, when=long_ago)
    seed_attempts(db, student, seed_question(db, teacher["_id"], borderline), correct=3, wrong=2, when=long_ago)
    seed_attempts(db, student, seed_question(db, teacher["_id"], weak), correct=2, wrong=2, when=long_ago)

    trend_question = seed_question(db, teacher["_id"])
    seed_attempts(db, student, trend_question, correct=3, wrong=1, when=datetime.utcnow() - timedelta(days=2))
    seed_attempts(db, student, trend_question, correct=0, wrong=2, when=datetime.utcnow() - timedelta(days=10))

    stats = client.get(f"{API}/students/{student['_id']}", headers=auth(teacher)).json()["data"]["stats"]
    assert [u["unit_id"] for u in stats["weak_units"]] == [str(weakest), str(weak)]
    assert stats["weak_units"][0]["correct_rate"] == 33

    trend = stats["learning_trend"]
    assert trend["this_week"]["attempts"] == 4
    assert trend["last_week"]["attempts"] == 2
    assert trend["improvement"]["attempts_change"] == 2
    assert trend["improvement"]["correct_rate_change"] == 75


def test_student_attempts_filter_by_correctness(client, db, make_user):
    teacher = make_user("teacher")
    student = make_user()
    seed_attempts(db, student, seed_question(db, teacher["_id"]), correct=2, wrong=3)

    resp = client.get(
        f"{API}/students/{student['_id']}/attempts", params={"is_correct": "false"}, headers=auth(teacher)
    )
    body = resp.json()
    assert body["pagination"]["total"] == 3
    assert all(a["is_correct"] is False for a in body["data"])
