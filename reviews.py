"""
Review store.

A user may review an attraction once. Uniqueness is enforced by the
(user_id, attraction_id) unique index, so a racing duplicate insert fails
in the store instead of slipping past a pre-check.
"""
import logging
import math
from typing import Any, Dict, List, Optional

from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

import users
from config import RECENT_REVIEWS_LIMIT, REVIEW_PAGE_LIMIT_DEFAULT, REVIEW_PAGE_LIMIT_MAX
from database import create_document, store_operation, to_object_id, utcnow
from errors import DuplicateReview, Forbidden, InvalidInput, NotFound
from schemas import Review

logger = logging.getLogger(__name__)

REVIEWS = "review"

# Newest first; _id breaks created_at ties so pages never overlap
NEWEST_FIRST = [("created_at", -1), ("_id", -1)]


def _check_rating(rating) -> int:
    if rating is None or rating == "":
        raise InvalidInput("Attraction ID and rating are required.")
    if isinstance(rating, bool) or not isinstance(rating, (int, str)):
        raise InvalidInput("Rating must be a whole number between 1 and 5.")
    try:
        value = int(rating)
    except ValueError:
        raise InvalidInput("Rating must be a whole number between 1 and 5.")
    if not 1 <= value <= 5:
        raise InvalidInput("Rating must be between 1 and 5.")
    return value


def clamp_page(page, limit):
    """Normalise client paging input: page >= 1, 1 <= limit <= max."""
    try:
        page = int(page)
    except (TypeError, ValueError):
        page = 1
    try:
        limit = int(limit)
    except (TypeError, ValueError):
        limit = REVIEW_PAGE_LIMIT_DEFAULT
    return max(page, 1), min(max(limit, 1), REVIEW_PAGE_LIMIT_MAX)


@store_operation
def add(db: Database, author_id: str, attraction_id: Optional[str], rating, comment: Optional[str] = None,
        snapshot: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    if not attraction_id:
        raise InvalidInput("Attraction ID and rating are required.")
    snapshot = snapshot or {}
    review = Review(
        attraction_id=attraction_id,
        user_id=str(author_id),
        rating=_check_rating(rating),
        comment=comment.strip() if comment else comment,
        attraction_name=snapshot.get("name"),
        attraction_address=snapshot.get("address"),
        attraction_image=snapshot.get("image"),
    )
    try:
        saved = create_document(db, REVIEWS, review)
    except DuplicateKeyError:
        logger.info("Duplicate review by %s for %s rejected", author_id, attraction_id)
        raise DuplicateReview()
    logger.info("Review %s created by %s", saved["_id"], author_id)
    return saved


@store_operation
def remove(db: Database, review_id: str, caller_id: str) -> bool:
    """Delete a review owned by `caller_id`. False when missing or not theirs."""
    oid = to_object_id(review_id)
    if oid is None:
        return False
    result = db[REVIEWS].delete_one({"_id": oid, "user_id": str(caller_id)})
    return result.deleted_count == 1


@store_operation
def update(db: Database, review_id: str, caller_id: str, rating=None, comment: Optional[str] = None) -> Dict[str, Any]:
    oid = to_object_id(review_id)
    existing = db[REVIEWS].find_one({"_id": oid}) if oid else None
    if not existing:
        raise NotFound("Review not found.")
    if existing["user_id"] != str(caller_id):
        raise Forbidden("Not authorized.")
    changes: Dict[str, Any] = {"updated_at": utcnow()}
    if rating is not None:
        changes["rating"] = _check_rating(rating)
    if comment is not None:
        changes["comment"] = comment.strip()
    updated = db[REVIEWS].find_one_and_update(
        {"_id": oid, "user_id": str(caller_id)},
        {"$set": changes},
        return_document=ReturnDocument.AFTER,
    )
    if not updated:
        # deleted between the read and the write
        raise NotFound("Review not found.")
    return updated


@store_operation
def for_attraction(db: Database, attraction_id: str) -> List[Dict[str, Any]]:
    """All reviews of an attraction, newest first, with the author's userName attached."""
    rows = list(db[REVIEWS].find({"attraction_id": attraction_id}).sort(NEWEST_FIRST))
    authors = users.summaries(db, (r["user_id"] for r in rows))
    for row in rows:
        author = authors.get(row["user_id"])
        row["author"] = {"_id": row["user_id"], "userName": author.get("userName") if author else None}
    return rows


@store_operation
def recent_by_user(db: Database, user_id: str, limit: int = RECENT_REVIEWS_LIMIT) -> List[Dict[str, Any]]:
    limit = max(int(limit), 1)
    return list(db[REVIEWS].find({"user_id": str(user_id)}).sort(NEWEST_FIRST).limit(limit))


@store_operation
def page_by_user(db: Database, user_id: str, page=1, limit=REVIEW_PAGE_LIMIT_DEFAULT) -> Dict[str, Any]:
    page, limit = clamp_page(page, limit)
    query = {"user_id": str(user_id)}
    total = db[REVIEWS].count_documents(query)
    rows = list(
        db[REVIEWS].find(query).sort(NEWEST_FIRST).skip((page - 1) * limit).limit(limit)
    )
    return {
        "reviews": rows,
        "total": total,
        "page": page,
        "pageCount": math.ceil(total / limit),
        "limit": limit,
    }
