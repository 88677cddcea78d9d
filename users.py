"""
User lookups. Accounts are created by the identity service; here we only
read them and edit the public profile fields.
"""
from typing import Any, Dict, Iterable, Optional

from pymongo import ReturnDocument
from pymongo.database import Database

from database import store_operation, to_object_id, utcnow
from errors import NotFound

USERS = "user"

# Never leave the service
_PRIVATE = {"password": 0}


@store_operation
def get_profile(db: Database, user_id: str) -> Dict[str, Any]:
    oid = to_object_id(user_id)
    user = db[USERS].find_one({"_id": oid}, _PRIVATE) if oid else None
    if not user:
        raise NotFound("User not found")
    return user


@store_operation
def get_by_username(db: Database, username: str) -> Dict[str, Any]:
    user = db[USERS].find_one({"userName": username}, _PRIVATE)
    if not user:
        raise NotFound("User not found")
    return user


@store_operation
def get_by_email(db: Database, email: str) -> Optional[Dict[str, Any]]:
    return db[USERS].find_one({"email": email.strip().lower()}, _PRIVATE)


@store_operation
def update_profile(db: Database, user_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
    oid = to_object_id(user_id)
    fields = {k: v for k, v in updates.items() if v is not None}
    user = None
    if oid:
        user = db[USERS].find_one_and_update(
            {"_id": oid},
            {"$set": {**fields, "updated_at": utcnow()}},
            projection=_PRIVATE,
            return_document=ReturnDocument.AFTER,
        )
    if not user:
        raise NotFound("User not found")
    return user


@store_operation
def summaries(db: Database, user_ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
    """Map user id -> {_id, userName, email} in one query."""
    oids = [oid for oid in (to_object_id(u) for u in set(user_ids)) if oid]
    if not oids:
        return {}
    cursor = db[USERS].find({"_id": {"$in": oids}}, {"userName": 1, "email": 1})
    return {str(u["_id"]): u for u in cursor}
