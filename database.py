"""
MongoDB access for the storefront.

Collections are named after the lowercase record type:
user, product, order, discount.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

import structlog
from pydantic import BaseModel
from pymongo import ASCENDING, DESCENDING, MongoClient

from config import settings

logger = structlog.get_logger(__name__)

client = MongoClient(settings.database_url, serverSelectionTimeoutMS=settings.db_timeout_ms, tz_aware=True, connect=False)
db = client[settings.database_name]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def create_document(collection_name: str, data: Union[BaseModel, Dict[str, Any]]) -> str:
    """Insert a document stamped with created_at/updated_at and return its id as a string."""
    doc = data.model_dump() if isinstance(data, BaseModel) else dict(data)
    now = utcnow()
    doc.setdefault("created_at", now)
    doc["updated_at"] = now
    result = db[collection_name].insert_one(doc)
    return str(result.inserted_id)


def get_documents(collection_name: str, filter_dict: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
    """Newest first; _id breaks ties between documents created in the same millisecond."""
    cursor = db[collection_name].find(filter_dict or {})
    return list(cursor.sort([("created_at", DESCENDING), ("_id", DESCENDING)]))


def ensure_indexes() -> None:
    db["discount"].create_index([("code", ASCENDING)], unique=True)
    db["product"].create_index([("is_active", ASCENDING), ("created_at", DESCENDING)])
    db["order"].create_index([("user_id", ASCENDING), ("created_at", DESCENDING)])
    logger.info("indexes_ensured", database=settings.database_name)
