import os

import jwt
import mongomock
import pytest
from fastapi.testclient import TestClient

os.environ.setdefault("JWT_SECRET", "test-secret-for-the-itinerary-suite-0123456789")

import config  # noqa: E402
from database import ensure_indexes, get_db  # noqa: E402
from main import app  # noqa: E402


@pytest.fixture
def db():
    database = mongomock.MongoClient()["itinerary_test"]
    ensure_indexes(database)
    return database


@pytest.fixture
def client(db):
    app.dependency_overrides[get_db] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    def _make(name):
        result = db["user"].insert_one({
            "userName": name,
            "email": f"{name.lower()}@example.com",
            "password": "not-a-real-hash",
        })
        return str(result.inserted_id)
    return _make


@pytest.fixture
def auth():
    def _headers(user_id):
        token = jwt.encode({"_id": user_id, "email": "someone@example.com"}, config.JWT_SECRET,
                           algorithm=config.JWT_ALGORITHM)
        return {"Authorization": f"jwt {token}"}
    return _headers


@pytest.fixture
def alice(make_user):
    return make_user("Alice")


@pytest.fixture
def bob(make_user):
    return make_user("Bob")


@pytest.fixture
def carol(make_user):
    return make_user("Carol")
