"""
MongoDB access helpers.

The database handle is created once by `get_database` and handed to the app;
nothing in this module holds a global connection.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from bson import ObjectId
from bson.errors import InvalidId
from pydantic import BaseModel
from pydantic.alias_generators import to_camel
from pymongo import MongoClient
from pymongo.database import Database

from config import Settings

log = logging.getLogger("egrocery.database")


def get_database(settings: Settings) -> Database:
    client = MongoClient(settings.database_url)
    log.info("Using database %s", settings.database_name)
    return client[settings.database_name]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_object_id(value: str) -> Optional[ObjectId]:
    """Parse a document id, returning None when it is not a valid ObjectId."""
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def create_document(db: Database, collection: str, data: Union[BaseModel, dict]) -> str:
    if isinstance(data, BaseModel):
        data = data.model_dump()
    now = utcnow()
    doc = {**data, "created_at": now, "updated_at": now}
    result = db[collection].insert_one(doc)
    return str(result.inserted_id)


def get_documents(
    db: Database,
    collection: str,
    filter_dict: Optional[dict] = None,
    sort: Optional[list] = None,
    limit: Optional[int] = None,
) -> List[dict]:
    cursor = db[collection].find(filter_dict or {})
    if sort:
        cursor = cursor.sort(sort)
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def _camel_key(key: str) -> str:
    return to_camel(key) if "_" in key else key


def _convert(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, dict):
        return {_camel_key(k): _convert(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_convert(v) for v in value]
    return value


def serialize_doc(doc: Optional[dict]) -> Optional[Dict[str, Any]]:
    """Turn a stored document into its JSON shape: `_id` becomes `id`, keys go camelCase."""
    if not doc:
        return doc
    doc = dict(doc)
    _id = doc.pop("_id", None)
    out = _convert(doc)
    if _id is not None:
        out = {"id": str(_id), **out}
    return out
