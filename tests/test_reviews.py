from datetime import datetime, timedelta

import pytest
from bson import ObjectId

import reviews
from errors import Conflict, DuplicateReview, Forbidden, InvalidInput, NotFound


def test_add_review(db, alice):
    saved = reviews.add(db, alice, "abc", 4, "  Lovely spot ", {"name": "Old Mill"})
    assert saved["rating"] == 4
    assert saved["comment"] == "Lovely spot"
    assert saved["attraction_name"] == "Old Mill"
    assert saved["user_id"] == alice


def test_one_review_per_user_and_attraction(db, alice, bob):
    reviews.add(db, alice, "abc", 5)
    with pytest.raises(DuplicateReview) as excinfo:
        reviews.add(db, alice, "abc", 3)
    assert isinstance(excinfo.value, Conflict)
    # someone else can still review it
    reviews.add(db, bob, "abc", 2)
    assert db["review"].count_documents({"attraction_id": "abc"}) == 2


@pytest.mark.parametrize("attraction_id, rating", [
    (None, 4),
    ("", 4),
    ("abc", None),
    ("abc", 0),
    ("abc", 6),
    ("abc", "great"),
    ("abc", True),
])
def test_invalid_input(db, alice, attraction_id, rating):
    with pytest.raises(InvalidInput):
        reviews.add(db, alice, attraction_id, rating)


def test_remove_only_by_author(db, alice, bob):
    saved = reviews.add(db, alice, "abc", 4)
    review_id = str(saved["_id"])
    assert reviews.remove(db, review_id, bob) is False
    assert db["review"].count_documents({}) == 1
    assert reviews.remove(db, review_id, alice) is True
    assert reviews.remove(db, review_id, alice) is False
    assert reviews.remove(db, "not-an-id", alice) is False


def test_update_review(db, alice, bob):
    review_id = str(reviews.add(db, alice, "abc", 4, "ok")["_id"])
    with pytest.raises(Forbidden):
        reviews.update(db, review_id, bob, rating=1)
    with pytest.raises(NotFound):
        reviews.update(db, str(ObjectId()), alice, rating=1)
    with pytest.raises(InvalidInput):
        reviews.update(db, review_id, alice, rating=9)
    updated = reviews.update(db, review_id, alice, rating=2, comment="changed my mind")
    assert updated["rating"] == 2
    assert updated["comment"] == "changed my mind"


def _seed(db, user_id, count, attraction_prefix="att"):
    base = datetime(2024, 1, 1)
    db["review"].insert_many([
        {
            "attraction_id": f"{attraction_prefix}{i}",
            "user_id": user_id,
            "rating": (i % 5) + 1,
            "comment": f"review {i}",
            "created_at": base + timedelta(hours=i),
        }
        for i in range(count)
    ])


def test_for_attraction_newest_first_with_author(db, alice, bob):
    db["review"].insert_many([
        {"attraction_id": "abc", "user_id": alice, "rating": 4, "created_at": datetime(2024, 1, 1)},
        {"attraction_id": "abc", "user_id": bob, "rating": 2, "created_at": datetime(2024, 2, 1)},
    ])
    rows = reviews.for_attraction(db, "abc")
    assert [r["author"]["userName"] for r in rows] == ["Bob", "Alice"]


def test_recent_by_user(db, alice):
    _seed(db, alice, 8)
    recent = reviews.recent_by_user(db, alice, 5)
    assert [r["comment"] for r in recent] == ["review 7", "review 6", "review 5", "review 4", "review 3"]


def test_pages_cover_everything_once(db, alice, bob):
    _seed(db, alice, 23)
    _seed(db, bob, 4, attraction_prefix="other")
    first = reviews.page_by_user(db, alice, 1, 10)
    assert first["total"] == 23
    assert first["pageCount"] == 3

    collected = []
    for page in range(1, first["pageCount"] + 1):
        collected.extend(reviews.page_by_user(db, alice, page, 10)["reviews"])
    ids = [r["_id"] for r in collected]
    assert len(ids) == 23
    assert len(set(ids)) == 23
    stamps = [r["created_at"] for r in collected]
    assert stamps == sorted(stamps, reverse=True)


def test_page_with_tied_timestamps_has_no_gaps(db, alice):
    same = datetime(2024, 5, 5)
    db["review"].insert_many([
        {"attraction_id": f"t{i}", "user_id": alice, "rating": 3, "created_at": same} for i in range(7)
    ])
    seen = []
    for page in (1, 2, 3):
        seen.extend(r["_id"] for r in reviews.page_by_user(db, alice, page, 3)["reviews"])
    assert len(seen) == 7 and len(set(seen)) == 7


def test_paging_input_is_clamped(db, alice):
    _seed(db, alice, 3)
    result = reviews.page_by_user(db, alice, 0, 500)
    assert result["page"] == 1
    assert result["limit"] == 50
    assert result["pageCount"] == 1
    assert reviews.clamp_page("x", "y") == (1, 10)
    assert reviews.clamp_page("-3", "0") == (1, 1)


def test_empty_user_has_no_pages(db, alice):
    result = reviews.page_by_user(db, alice)
    assert result["total"] == 0
    assert result["pageCount"] == 0
    assert result["reviews"] == []
