"""
Attraction catalog: one shared record per external id, plus per-user saved copies.
"""
import logging
from typing import Any, Dict, Iterable, List

from pydantic import ValidationError
from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from database import create_document, get_documents, store_operation, utcnow
from errors import InvalidInput
from schemas import Attraction, SavedAttraction

logger = logging.getLogger(__name__)

CATALOG = "attraction"
SAVED = "savedattraction"


def _catalog_fields(external_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    try:
        record = Attraction(**{**data, "id": external_id}).model_dump()
    except ValidationError as e:
        raise InvalidInput(f"Invalid attraction: {e.errors()[0].get('msg')}") from e
    record.pop("id")
    return record


@store_operation
def resolve_or_create(db: Database, external_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    """Return the catalog record for `external_id`, inserting it if absent.

    The insert is a single upsert; a concurrent first writer losing the race
    on the unique index simply reads back the winner's record.
    """
    if not external_id:
        raise InvalidInput("Attraction id is required.")
    fields = _catalog_fields(external_id, data)
    now = utcnow()
    try:
        return db[CATALOG].find_one_and_update(
            {"id": external_id},
            {"$setOnInsert": {**fields, "created_at": now, "updated_at": now}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
    except DuplicateKeyError:
        logger.debug("Catalog entry %s created concurrently, reusing it", external_id)
        return db[CATALOG].find_one({"id": external_id})


@store_operation
def find_many(db: Database, external_ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
    ids = {i for i in external_ids if i}
    if not ids:
        return {}
    return {doc["id"]: doc for doc in db[CATALOG].find({"id": {"$in": list(ids)}})}


# -------------------- Saved attractions --------------------
@store_operation
def save_attraction(db: Database, user_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    saved = SavedAttraction(**{**data, "user_id": user_id})
    return create_document(db, SAVED, saved)


@store_operation
def saved_attractions(db: Database, user_id: str) -> List[Dict[str, Any]]:
    return get_documents(db, SAVED, {"user_id": user_id}, sort=[("created_at", -1)])


@store_operation
def remove_saved_attraction(db: Database, user_id: str, external_id: str) -> bool:
    result = db[SAVED].delete_one({"user_id": user_id, "id": external_id})
    return result.deleted_count == 1
