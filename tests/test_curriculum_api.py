from conftest import API, auth


def test_subject_and_unit_lifecycle(client, make_user):
    teacher = make_user("teacher")
    headers = auth(teacher)

    resp = client.post(f"{API}/subjects", json={"name": "數學", "code": " Math "}, headers=headers)
    assert resp.status_code == 201
    subject = resp.json()["data"]
    assert subject["code"] == "math"
    assert subject["icon"] == "📚"

    dup = client.post(f"{API}/subjects", json={"name": "Math", "code": "math"}, headers=headers)
    assert dup.status_code == 400

    unit_body = {
        "name": "加法", "subject_id": subject["_id"], "academic_year": "113",
        "grade": 1, "semester": "上",
    }
    resp = client.post(f"{API}/units", json=unit_body, headers=headers)
    assert resp.status_code == 201
    unit = resp.json()["data"]
    assert unit["semester"] == "上"
    assert unit["subject"]["code"] == "math"

    listed = client.get(f"{API}/subjects").json()["data"]
    assert [s["code"] for s in listed] == ["math"]

    blocked = client.delete(f"{API}/subjects/{subject['_id']}", headers=headers)
    assert blocked.status_code == 400


def test_invalid_subject_code(client, make_user):
    resp = client.post(
        f"{API}/subjects", json={"name": "Bad", "code": "bad code!"}, headers=auth(make_user("admin"))
    )
    assert resp.status_code == 400
    assert "code" in resp.json()["error"]["message"]


def test_malformed_id(client):
    resp = client.get(f"{API}/subjects/not-an-id")
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "VALIDATION_ERROR"
