"""
Review enrichment: attach readable attraction metadata to raw reviews.

Precedence per field is snapshot on the review, then the catalog record,
then (name only) whatever title can be decoded from the attraction id,
then the literal "Attraction".
"""
import logging
from typing import Any, Dict, List, Optional

from pymongo.database import Database

import catalog
from database import serialize
from title_decoder import FALLBACK_TITLE, decode_title

logger = logging.getLogger(__name__)


def _first(*values) -> Optional[Any]:
    for value in values:
        if value:
            return value
    return None


def enrich_one(review: Dict[str, Any], record: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Flatten one review into the caller-facing shape."""
    record = record or {}
    attraction_id = review.get("attraction_id")

    name = _first(review.get("attraction_name"), record.get("name"))
    if not name:
        name = decode_title(attraction_id)
        if name:
            logger.debug("Decoded title %r from attraction id %r", name, attraction_id)
    out = {
        "_id": review.get("_id"),
        "attractionId": attraction_id,
        "userId": review.get("user_id"),
        "rating": review.get("rating"),
        "comment": review.get("comment"),
        "createdAt": review.get("created_at"),
        "updatedAt": review.get("updated_at"),
        "attractionName": name or FALLBACK_TITLE,
        "attractionAddress": _first(review.get("attraction_address"), record.get("address")),
        "attractionImage": _first(review.get("attraction_image"), record.get("image")),
        "attractionUrl": record.get("url") or None,
    }
    if "author" in review:
        out["author"] = review["author"]
    return serialize(out)


def enrich(db: Database, reviews: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Enrich a batch of reviews with a single catalog lookup, keeping order."""
    if not reviews:
        return []
    # one lookup for every id, url only lives in the catalog
    records = catalog.find_many(db, {r.get("attraction_id") for r in reviews})
    return [enrich_one(r, records.get(r.get("attraction_id"))) for r in reviews]


def enrich_page(db: Database, page: Dict[str, Any]) -> Dict[str, Any]:
    """Enrich the reviews of a page result, leaving its paging metadata alone."""
    return {**page, "reviews": enrich(db, page["reviews"])}
