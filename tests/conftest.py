import mongomock
import pytest
from fastapi.testclient import TestClient

from database import ensure_indexes, get_db
from main import app


@pytest.fixture
def db():
    """
    In-memory MongoDB database standing in for the real deployment.
    """
    database = mongomock.MongoClient()["eventhubDB"]
    ensure_indexes(database)
    return database


@pytest.fixture
def client(db):
    app.dependency_overrides[get_db] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def create_event(client):
    def _create(**fields):
        body = {"title": "Event", "dateTime": "2025-01-01T10:00:00", "attendeeCount": []}
        body.update(fields)
        r = client.post("/events", json=body)
        assert r.status_code == 200
        return r.json()["insertedId"]
    return _create
