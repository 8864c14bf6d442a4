from pymongo.errors import ServerSelectionTimeoutError

from conftest import API
from quest_academy.database import get_db
from quest_academy.main import app


class FakeDatabase:
    def __init__(self, error=None):
        self.error = error

    async def command(self, name):
        if self.error:
            raise self.error
        return {"ok": 1}


def check(client, database):
    app.dependency_overrides[get_db] = lambda: database
    return client.get(f"{API}/health").json()["data"]


def test_health_connected(client):
    data = check(client, FakeDatabase())
    assert data["status"] == "ok"
    assert data["services"]["database"] == "connected"


def test_health_reports_database_down(client):
    data = check(client, FakeDatabase(ServerSelectionTimeoutError("no servers")))
    assert data["status"] == "ok"
    assert data["services"]["database"] == "disconnected"
