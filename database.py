"""
Database helpers

Thin layer over pymongo. Collections are named after the lowercased schema
class (Itinerary -> "itinerary"). Core modules receive a `Database` handle so
they can be exercised against any pymongo-compatible backend.
"""

import functools
import logging
import threading
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from bson import ObjectId
from bson.errors import InvalidId
from pydantic import BaseModel
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError

from config import DATABASE_NAME, DATABASE_URL
from errors import Unavailable

logger = logging.getLogger(__name__)

_client = None
db: Optional[Database] = None

_indexes_ready = False
_indexes_lock = threading.Lock()

if DATABASE_URL and DATABASE_NAME:
    _client = MongoClient(DATABASE_URL, serverSelectionTimeoutMS=5000)
    db = _client[DATABASE_NAME]


def get_db() -> Database:
    """FastAPI dependency returning the configured database."""
    if db is None:
        raise Unavailable("Database not available. Check DATABASE_URL and DATABASE_NAME.")
    prepare(db)
    return db


def prepare(database: Database) -> None:
    """Create the unique indexes once per process before the store is used.

    Review and catalog uniqueness rest on these indexes, so a failure raises
    Unavailable and the next request tries again.
    """
    global _indexes_ready
    if _indexes_ready:
        return
    with _indexes_lock:
        if not _indexes_ready:
            ensure_indexes(database)
            _indexes_ready = True


def store_operation(func):
    """Translate storage-layer failures into `Unavailable`."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except PyMongoError as e:
            logger.warning("Store failure in %s: %s", func.__name__, e)
            raise Unavailable("Storage temporarily unavailable") from e

    return wrapper


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_object_id(value: Any) -> Optional[ObjectId]:
    """Parse an id string; None when it is not a valid ObjectId."""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None


def create_document(database: Database, collection_name: str, data: Union[BaseModel, dict]) -> Dict[str, Any]:
    """Insert a document stamped with created_at/updated_at and return it with its _id."""
    if isinstance(data, BaseModel):
        data_dict = data.model_dump()
    else:
        data_dict = data.copy()
    now = utcnow()
    data_dict.setdefault("created_at", now)
    data_dict["updated_at"] = now
    result = database[collection_name].insert_one(data_dict)
    data_dict["_id"] = result.inserted_id
    return data_dict


def get_documents(database: Database, collection_name: str, filter_dict: Optional[dict] = None,
                  limit: Optional[int] = None, sort: Optional[list] = None) -> List[Dict[str, Any]]:
    cursor = database[collection_name].find(filter_dict or {})
    if sort:
        cursor = cursor.sort(sort)
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def serialize(value: Any) -> Any:
    """Make a Mongo document JSON friendly (ObjectId -> str, datetime -> ISO)."""
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: serialize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [serialize(v) for v in value]
    return value


@store_operation
def ensure_indexes(database: Database) -> None:
    """Create the unique indexes the core relies on for its invariants."""
    database["attraction"].create_index([("id", ASCENDING)], unique=True, name="uniq_external_id")
    database["review"].create_index(
        [("user_id", ASCENDING), ("attraction_id", ASCENDING)],
        unique=True,
        name="uniq_author_attraction",
    )
    database["review"].create_index([("user_id", ASCENDING), ("created_at", DESCENDING)])
    database["review"].create_index([("attraction_id", ASCENDING), ("created_at", DESCENDING)])
    database["itinerary"].create_index([("user_id", ASCENDING)])
    database["itinerary"].create_index([("collaborators", ASCENDING)])
    database["savedattraction"].create_index([("user_id", ASCENDING), ("id", ASCENDING)])
    database["user"].create_index([("email", ASCENDING)], unique=True)


@store_operation
def status(database: Database) -> Dict[str, Any]:
    return {
        "database": "connected",
        "indexes": _indexes_ready,
        "collections": sorted(database.list_collection_names())[:10],
    }
