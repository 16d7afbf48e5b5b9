"""
MongoDB access for Haritha Hub.

The connection is opened at import time from DATABASE_URL / DATABASE_NAME.
When either is missing `db` stays None and every store-backed route answers
with an InternalError.
"""

import os
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from bson import ObjectId
from fastapi import Depends
from pydantic import BaseModel
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database

from errors import InternalError

_client: Optional[MongoClient] = None
db: Optional[Database] = None

database_url = os.getenv("DATABASE_URL")
database_name = os.getenv("DATABASE_NAME")

if database_url and database_name:
    _client = MongoClient(database_url)
    db = _client[database_name]


def current_db() -> Optional[Database]:
    """The configured database or None. Tests override this with an in-memory one."""
    return db


def get_db(handle: Optional[Database] = Depends(current_db)) -> Database:
    if handle is None:
        raise InternalError("Database not configured")
    return handle


def ensure_indexes(database: Database) -> None:
    # one cart per user
    database["cart"].create_index([("user_id", ASCENDING)], unique=True)
    database["order"].create_index([("user_id", ASCENDING), ("created_at", DESCENDING)])
    database["user"].create_index([("email", ASCENDING)])


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def create_document(database: Database, collection_name: str, data: Union[BaseModel, Dict[str, Any]]) -> str:
    """Insert a document stamped with created_at/updated_at and return its id."""
    if isinstance(data, BaseModel):
        doc = data.model_dump()
    else:
        doc = dict(data)
    now = now_utc()
    if not doc.get("created_at"):
        doc["created_at"] = now
    doc["updated_at"] = now
    inserted_id = database[collection_name].insert_one(doc).inserted_id
    return str(inserted_id)


def get_documents(database: Database, collection_name: str, filter_dict: Optional[Dict[str, Any]] = None,
                  limit: Optional[int] = None) -> List[Dict[str, Any]]:
    cursor = database[collection_name].find(filter_dict or {})
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def is_valid_id(value: Any) -> bool:
    return value is not None and ObjectId.is_valid(str(value))


def find_by_id(database: Database, collection_name: str, doc_id: str) -> Optional[Dict[str, Any]]:
    if not is_valid_id(doc_id):
        return None
    return database[collection_name].find_one({"_id": ObjectId(doc_id)})
