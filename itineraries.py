"""
Itinerary membership model.

Every membership change is a single conditional update on the itinerary
document, so concurrent requests cannot lose each other's writes.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

from pymongo import ReturnDocument
from pymongo.database import Database

import catalog
from database import create_document, get_documents, serialize, store_operation, to_object_id, utcnow
from errors import InvalidInput
from schemas import Itinerary

logger = logging.getLogger(__name__)

ITINERARIES = "itinerary"

_AFTER = ReturnDocument.AFTER


def _update(db: Database, query: Dict[str, Any], update: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    update.setdefault("$set", {})["updated_at"] = utcnow()
    return db[ITINERARIES].find_one_and_update(query, update, return_document=_AFTER)


def _attraction_ref(record: Dict[str, Any]) -> Dict[str, Any]:
    return {k: record.get(k) for k in ("id", "name", "image", "address", "description", "rating", "url")}


@store_operation
def create(db: Database, owner_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    attractions: List[Dict[str, Any]] = []
    seen = set()
    for a in data.get("attractions") or []:
        if a["id"] in seen:
            continue
        seen.add(a["id"])
        attractions.append(_attraction_ref(catalog.resolve_or_create(db, a["id"], a)))
    itinerary = Itinerary(
        user_id=str(owner_id),
        name=data["name"],
        from_=data.get("from"),
        to=data.get("to"),
        attractions=attractions,
    )
    doc = create_document(db, ITINERARIES, itinerary.model_dump(by_alias=True))
    logger.info("Itinerary %s created by %s", doc["_id"], owner_id)
    return doc


@store_operation
def get(db: Database, itinerary_id: str) -> Optional[Dict[str, Any]]:
    oid = to_object_id(itinerary_id)
    return db[ITINERARIES].find_one({"_id": oid}) if oid else None


@store_operation
def list_for_user(db: Database, user_id: str) -> List[Dict[str, Any]]:
    """Itineraries the user owns or collaborates on."""
    uid = str(user_id)
    return get_documents(db, ITINERARIES, {"$or": [{"user_id": uid}, {"collaborators": uid}]},
                         sort=[("created_at", -1)])


@store_operation
def public_for_user(db: Database, user_id: str) -> List[Dict[str, Any]]:
    return get_documents(db, ITINERARIES, {"user_id": str(user_id), "public": True}, sort=[("created_at", -1)])


@store_operation
def update(db: Database, itinerary_id: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Change name and/or dates. Membership and flags have their own operations."""
    oid = to_object_id(itinerary_id)
    if oid is None:
        return None
    changes = {k: v for k, v in fields.items() if k in ("name", "from", "to") and v is not None}
    return _update(db, {"_id": oid}, {"$set": changes})


@store_operation
def delete(db: Database, itinerary_id: str, owner_id: str) -> bool:
    oid = to_object_id(itinerary_id)
    if oid is None:
        return False
    result = db[ITINERARIES].delete_one({"_id": oid, "user_id": str(owner_id)})
    return result.deleted_count == 1


@store_operation
def add_attraction(db: Database, itinerary_id: str, attraction: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Attach an attraction unless one with the same id is already there.

    Returns None when the itinerary is missing or already has it.
    """
    oid = to_object_id(itinerary_id)
    external_id = attraction.get("id")
    if not external_id:
        raise InvalidInput("Attraction id is required.")
    if oid is None:
        return None
    record = catalog.resolve_or_create(db, external_id, attraction)
    return _update(
        db,
        {"_id": oid, "attractions.id": {"$ne": external_id}},
        {"$push": {"attractions": _attraction_ref(record)}},
    )


@store_operation
def remove_attraction(db: Database, itinerary_id: str, external_id: str) -> Optional[Dict[str, Any]]:
    oid = to_object_id(itinerary_id)
    if oid is None:
        return None
    return _update(db, {"_id": oid}, {"$pull": {"attractions": {"id": external_id}}})


@store_operation
def add_collaborator(db: Database, itinerary_id: str, user_id: str) -> Optional[Dict[str, Any]]:
    oid = to_object_id(itinerary_id)
    if oid is None:
        return None
    uid = str(user_id)
    updated = _update(db, {"_id": oid, "user_id": {"$ne": uid}}, {"$addToSet": {"collaborators": uid}})
    if updated is None and db[ITINERARIES].count_documents({"_id": oid, "user_id": uid}):
        raise InvalidInput("The owner cannot be added as a collaborator")
    return updated


@store_operation
def remove_collaborator(db: Database, itinerary_id: str, user_id: str) -> Optional[Dict[str, Any]]:
    oid = to_object_id(itinerary_id)
    if oid is None:
        return None
    uid = str(user_id)
    updated = _update(db, {"_id": oid, "collaborators": uid}, {"$pull": {"collaborators": uid}})
    if updated is None:
        # not a collaborator: hand back the itinerary untouched
        return get(db, itinerary_id)
    return updated


@store_operation
def set_public(db: Database, itinerary_id: str) -> Optional[Dict[str, Any]]:
    # one-way, there is no unpublish
    oid = to_object_id(itinerary_id)
    if oid is None:
        return None
    return _update(db, {"_id": oid}, {"$set": {"public": True}})


@store_operation
def set_sync_state(db: Database, itinerary_id: str, provider: str) -> Tuple[Optional[Dict[str, Any]], bool]:
    """Record a calendar sync. Returns (itinerary, changed).

    Syncing again with the provider already on record changes nothing.
    """
    oid = to_object_id(itinerary_id)
    if oid is None:
        return None, False
    updated = _update(
        db,
        {"_id": oid, "$or": [{"is_synced": {"$ne": True}}, {"calendar_type": {"$ne": provider}}]},
        {"$set": {"is_synced": True, "calendar_type": provider}},
    )
    if updated is not None:
        logger.info("Itinerary %s synced to %s", itinerary_id, provider)
        return updated, True
    return get(db, itinerary_id), False


def view(itinerary: Dict[str, Any], people: Optional[Dict[str, Dict[str, Any]]] = None) -> Dict[str, Any]:
    """Caller-facing shape. `people` maps collaborator ids to user summaries."""
    collaborators = itinerary.get("collaborators", [])
    if people is not None:
        collaborators = [people.get(c, {"_id": c}) for c in collaborators]
    return serialize({
        "_id": itinerary["_id"],
        "userId": itinerary.get("user_id"),
        "name": itinerary.get("name"),
        "from": itinerary.get("from"),
        "to": itinerary.get("to"),
        "attractions": itinerary.get("attractions", []),
        "collaborators": collaborators,
        "public": itinerary.get("public", False),
        "isSynced": itinerary.get("is_synced", False),
        "calendarType": itinerary.get("calendar_type"),
        "createdAt": itinerary.get("created_at"),
        "updatedAt": itinerary.get("updated_at"),
    })
