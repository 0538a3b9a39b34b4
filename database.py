"""
Database Helper Functions

MongoDB helpers used by the API endpoints. The client is opened once at
startup and the database handle is handed to each route through the
`get_db` dependency; every helper takes that handle explicitly.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from bson import ObjectId
from fastapi import HTTPException, Request
from pydantic import BaseModel
from pymongo import ASCENDING, MongoClient, ReturnDocument
from pymongo.database import Database
from pymongo.errors import PyMongoError

from config import Settings

log = logging.getLogger("localchefbazar.db")

MEALS = "meals"
USERS = "users"
ROLES = "roles"
REVIEWS = "reviews"
FAVORITES = "favorites"
ORDERS = "orders"

COLLECTIONS = [MEALS, USERS, ROLES, REVIEWS, FAVORITES, ORDERS]

# Only created when ENFORCE_UNIQUE_INDEXES is on; the handlers still do
# their own find-then-insert checks, which race under concurrent requests.
UNIQUE_INDEXES = {
    USERS: [("email", ASCENDING)],
    ROLES: [("email", ASCENDING)],
    REVIEWS: [("reviewerEmail", ASCENDING), ("mealId", ASCENDING)],
    FAVORITES: [("userEmail", ASCENDING), ("mealId", ASCENDING)],
}


def connect(settings: Settings) -> Optional[MongoClient]:
    if not settings.mongodb_uri:
        log.warning("MONGODB_URI is not set, database disabled")
        return None
    return MongoClient(
        settings.mongodb_uri,
        serverSelectionTimeoutMS=settings.server_selection_timeout_ms,
    )


def ping(client: MongoClient) -> bool:
    try:
        client.admin.command("ping")
    except Exception:
        log.exception("MongoDB ping failed")
        return False
    log.info("Pinged your deployment. You successfully connected to MongoDB!")
    return True


def ensure_indexes(db: Database) -> bool:
    """Create the unique indexes; existing duplicates are logged, not fatal."""
    ok = True
    for name, keys in UNIQUE_INDEXES.items():
        fields = [k for k, _ in keys]
        try:
            db[name].create_index(keys, unique=True)
        except PyMongoError:
            log.exception("Unique index on %s %s could not be created", name, fields)
            ok = False
            continue
        log.info("Unique index on %s %s", name, fields)
    return ok


def get_db(request: Request) -> Database:
    db = getattr(request.app.state, "db", None)
    if db is None:
        raise HTTPException(
            status_code=503,
            detail="Database not available. Check MONGODB_URI and DATABASE_NAME environment variables.",
        )
    return db


def _to_dict(data: Union[BaseModel, dict]) -> dict:
    if isinstance(data, BaseModel):
        return data.model_dump(by_alias=True, exclude_none=True)
    return dict(data)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def to_object_id(_id: str) -> Optional[ObjectId]:
    if not ObjectId.is_valid(_id):
        return None
    return ObjectId(_id)


# CRUD helpers

def create_document(db: Database, collection_name: str, data: Union[BaseModel, dict]) -> Dict[str, Any]:
    payload = _to_dict(data)
    now = _now()
    payload.setdefault("createdAt", now)
    payload["updatedAt"] = now
    result = db[collection_name].insert_one(payload)
    return {"acknowledged": result.acknowledged, "insertedId": str(result.inserted_id)}


def get_documents(
    db: Database,
    collection_name: str,
    filter_dict: Optional[dict] = None,
    limit: Optional[int] = None,
    sort: Optional[list] = None,
    skip: int = 0,
) -> List[dict]:
    cursor = db[collection_name].find(filter_dict or {})
    if sort:
        cursor = cursor.sort(sort)
    if skip:
        cursor = cursor.skip(int(skip))
    if limit:
        cursor = cursor.limit(int(limit))
    return [serialize_doc(doc) for doc in cursor]


def count_documents(db: Database, collection_name: str, filter_dict: Optional[dict] = None) -> int:
    return db[collection_name].count_documents(filter_dict or {})


def find_document(db: Database, collection_name: str, filter_dict: dict) -> Optional[dict]:
    return serialize_doc(db[collection_name].find_one(filter_dict))


def get_document_by_id(db: Database, collection_name: str, _id: str) -> Optional[dict]:
    oid = to_object_id(_id)
    if oid is None:
        return None
    return find_document(db, collection_name, {"_id": oid})


def update_document(db: Database, collection_name: str, filter_dict: dict, update: Dict[str, Any]) -> Dict[str, int]:
    """Apply a raw update (`$set`/`$unset`) to one document, stamping `updatedAt`."""
    update = dict(update)
    update["$set"] = {**update.get("$set", {}), "updatedAt": _now()}
    result = db[collection_name].update_one(filter_dict, update)
    return {"matchedCount": result.matched_count, "modifiedCount": result.modified_count}


def find_and_update(db: Database, collection_name: str, filter_dict: dict, update: Dict[str, Any]) -> Optional[dict]:
    update = dict(update)
    update["$set"] = {**update.get("$set", {}), "updatedAt": _now()}
    doc = db[collection_name].find_one_and_update(filter_dict, update, return_document=ReturnDocument.AFTER)
    return serialize_doc(doc)


def delete_document(db: Database, collection_name: str, filter_dict: dict) -> Dict[str, Any]:
    result = db[collection_name].delete_one(filter_dict)
    return {"acknowledged": result.acknowledged, "deletedCount": result.deleted_count}


def delete_document_by_id(db: Database, collection_name: str, _id: str) -> Dict[str, Any]:
    oid = to_object_id(_id)
    if oid is None:
        return {"acknowledged": True, "deletedCount": 0}
    return delete_document(db, collection_name, {"_id": oid})


# Utility

def serialize_doc(doc: Optional[dict]) -> Optional[dict]:
    if not doc:
        return None
    d = dict(doc)
    if "_id" in d:
        d["_id"] = str(d["_id"])  # convert ObjectId to string
    return d
