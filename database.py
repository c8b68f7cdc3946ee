"""
MongoDB access for the Event Hub API.

The client is created once per process by ``connect`` and stored on the
FastAPI application; route handlers receive the database handle through the
``get_db`` dependency so tests can swap in a fake store.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from bson import ObjectId
from fastapi import HTTPException, Request
from pydantic import BaseModel
from pymongo import ASCENDING, MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError
from pymongo.server_api import ServerApi

logger = logging.getLogger(__name__)

USERS = "users"
EVENTS = "events"


def connect(url: Optional[str], name: str, timeout_ms: int = 5000) -> Optional[Database]:
    """Open the client and return the named database, or None without a URL.

    A failed ping is logged but the handle is still returned; pymongo will
    keep trying to reach the deployment on each request.
    """
    if not url:
        logger.warning("DATABASE_URL is not set; database routes will return 500")
        return None

    client = MongoClient(
        url,
        server_api=ServerApi("1", strict=True, deprecation_errors=True),
        serverSelectionTimeoutMS=timeout_ms,
    )
    db = client[name]
    try:
        client.admin.command("ping")
        logger.info("Pinged deployment, connected to MongoDB database %s", name)
    except PyMongoError:
        logger.exception("Could not reach MongoDB at startup")
        return db

    try:
        ensure_indexes(db)
    except PyMongoError:
        # e.g. duplicate emails already stored; registration falls back to the existence check
        logger.exception("Could not create unique index on %s.email", USERS)
    return db


def ensure_indexes(db: Database) -> None:
    db[USERS].create_index([("email", ASCENDING)], unique=True)


def get_db(request: Request) -> Database:
    db = getattr(request.app.state, "db", None)
    if db is None:
        raise HTTPException(status_code=500, detail="Database not configured")
    return db


def object_id(value: str) -> ObjectId:
    # raises bson.errors.InvalidId, translated to 400 by the app
    return ObjectId(value)


def parse_datetime(value: Any) -> Any:
    """Turn an ISO-8601 string into a datetime, leave anything else alone."""
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return value
    return value


def serialize_document(doc: Dict[str, Any]) -> Dict[str, Any]:
    data = dict(doc)
    if isinstance(data.get("_id"), ObjectId):
        data["_id"] = str(data["_id"])
    return data


def create_document(db: Database, collection: str, data: Union[BaseModel, dict]) -> Dict[str, Any]:
    doc = data.model_dump() if isinstance(data, BaseModel) else dict(data)
    result = db[collection].insert_one(doc)
    return insert_result(result)


def get_documents(db: Database, collection: str, filter_dict: Optional[dict] = None,
                  sort: Optional[List[tuple]] = None) -> List[Dict[str, Any]]:
    cursor = db[collection].find(filter_dict or {})
    if sort:
        cursor = cursor.sort(sort)
    return [serialize_document(doc) for doc in cursor]


def _id_or_none(value: Any) -> Optional[str]:
    return str(value) if value is not None else None


def insert_result(result) -> Dict[str, Any]:
    return {"acknowledged": result.acknowledged, "insertedId": _id_or_none(result.inserted_id)}


def update_result(result) -> Dict[str, Any]:
    return {
        "acknowledged": result.acknowledged,
        "matchedCount": result.matched_count,
        "modifiedCount": result.modified_count,
        "upsertedId": _id_or_none(result.upserted_id),
        "upsertedCount": 1 if result.upserted_id is not None else 0,
    }


def delete_result(result) -> Dict[str, Any]:
    return {"acknowledged": result.acknowledged, "deletedCount": result.deleted_count}
