import mongomock
import pytest
from pymongo.errors import ServerSelectionTimeoutError

import database
import reviews
from errors import DuplicateReview, Unavailable


@pytest.fixture
def bare_db():
    return mongomock.MongoClient()["itinerary_bare"]


@pytest.fixture
def configured(monkeypatch, bare_db):
    monkeypatch.setattr(database, "db", bare_db)
    monkeypatch.setattr(database, "_indexes_ready", False)
    return bare_db


def test_review_uniqueness_rests_on_the_index(bare_db):
    reviews.add(bare_db, "u1", "abc", 4)
    reviews.add(bare_db, "u1", "abc", 5)
    assert bare_db["review"].count_documents({}) == 2

    bare_db["review"].delete_many({})
    database.ensure_indexes(bare_db)
    reviews.add(bare_db, "u1", "abc", 4)
    with pytest.raises(DuplicateReview):
        reviews.add(bare_db, "u1", "abc", 5)


def test_get_db_creates_indexes_before_first_use(configured):
    assert "uniq_author_attraction" not in configured["review"].index_information()
    assert database.get_db() is configured
    assert "uniq_author_attraction" in configured["review"].index_information()
    assert "uniq_external_id" in configured["attraction"].index_information()
    assert database._indexes_ready is True

    reviews.add(configured, "u1", "abc", 4)
    with pytest.raises(DuplicateReview):
        reviews.add(configured, "u1", "abc", 5)


class _Unreachable:
    def __getitem__(self, name):
        return self

    def create_index(self, *args, **kwargs):
        raise ServerSelectionTimeoutError("no servers")


def test_index_failure_is_retried_on_next_request(monkeypatch, bare_db):
    monkeypatch.setattr(database, "db", _Unreachable())
    monkeypatch.setattr(database, "_indexes_ready", False)
    with pytest.raises(Unavailable):
        database.get_db()
    assert database._indexes_ready is False

    monkeypatch.setattr(database, "db", bare_db)
    assert database.get_db() is bare_db
    assert database._indexes_ready is True


def test_get_db_without_configuration(monkeypatch):
    monkeypatch.setattr(database, "db", None)
    with pytest.raises(Unavailable):
        database.get_db()


def test_status_reports_collections(bare_db):
    bare_db["itinerary"].insert_one({"name": "Kyoto"})
    report = database.status(bare_db)
    assert report["database"] == "connected"
    assert report["collections"] == ["itinerary"]
