from conftest import API, auth


def register(client, email="kid@example.com", **extra):
    body = {"email": email, "password": "secret123", "display_name": "小明", **extra}
    return client.post(f"{API}/auth/register", json=body)


def test_register_and_login(client):
    resp = register(client, email="Kid@Example.com")
    assert resp.status_code == 201
    data = resp.json()["data"]
    assert data["user"]["email"] == "kid@example.com"
    assert data["user"]["student_profile"]["level"] == 1
    assert "password_hash" not in data["user"]
    assert data["token"]

    resp = client.post(f"{API}/auth/login", json={"email": "kid@example.com", "password": "secret123"})
    assert resp.status_code == 200
    token = resp.json()["data"]["token"]

    me = client.get(f"{API}/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.json()["data"]["display_name"] == "小明"


def test_duplicate_email_rejected(client):
    register(client)
    resp = register(client)
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "VALIDATION_ERROR"


def test_teachers_cannot_self_register(client):
    resp = register(client, role="teacher")
    assert resp.status_code == 400
    assert resp.json()["success"] is False


def test_wrong_password(client):
    register(client)
    resp = client.post(f"{API}/auth/login", json={"email": "kid@example.com", "password": "nope"})
    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "AUTH_INVALID_CREDENTIALS"


def test_missing_token(client):
    resp = client.get(f"{API}/auth/me")
    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "AUTH_TOKEN_INVALID"


def test_role_guard(client, make_user):
    student = make_user()
    resp = client.post(f"{API}/subjects", json={"name": "數學", "code": "math"}, headers=auth(student))
    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "AUTH_FORBIDDEN"


def test_malformed_email_rejected(client):
    for email in ("not-an-email", "kid@", "@example.com", "kid@@example.com"):
        resp = register(client, email=email)
        assert resp.status_code == 400, email
        assert resp.json()["error"]["code"] == "VALIDATION_ERROR"


def test_login_email_is_trimmed_and_lowercased(client):
    register(client)
    resp = client.post(f"{API}/auth/login", json={"email": "  KID@example.com ", "password": "secret123"})
    assert resp.status_code == 200
