import asyncio
import os

os.environ["MONGO_USE_TRANSACTIONS"] = "false"

import pytest
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from quest_academy.auth.auth_utils import create_access_token
from quest_academy.auth.user_models import new_user_document
from quest_academy.database import get_db
from quest_academy.main import app

API = "/api/v1"


def run(coro):
    """Drive a motor-style coroutine from synchronous test code"""
    return asyncio.run(coro)


@pytest.fixture
def db():
    return AsyncMongoMockClient()["quest_academy_test"]


@pytest.fixture
def client(db):
    app.dependency_overrides[get_db] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    def _make(role="student", email=None, **profile):
        doc = new_user_document(
            email=email or f"{role}{os.urandom(4).hex()}@example.com",
            password_hash="not-used",
            display_name=f"Test {role}",
            role=role,
        )
        if profile:
            doc["student_profile"].update(profile)
        doc["_id"] = run(db.users.insert_one(doc)).inserted_id
        return doc
    return _make


def auth(user: dict) -> dict:
    return {"Authorization": f"Bearer {create_access_token(str(user['_id']), user['role'])}"}
