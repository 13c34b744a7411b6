# adapters/external/database/mongo_client.py

from __future__ import annotations

from typing import Optional

from pymongo import MongoClient
from pymongo.database import Database

from config import get_settings

_client: Optional[MongoClient] = None
_db: Optional[Database] = None


def get_mongo_client() -> MongoClient:
    """
    Process-wide MongoClient built from settings.MONGO_URI.

    Created lazily and cached at module level so every repository shares the
    same connection pool.
    """
    global _client
    if _client is None:
        uri = get_settings().MONGO_URI
        if not uri:
            raise RuntimeError(
                "MONGO_URI is not configured; the strategy factory state cannot be loaded."
            )
        _client = MongoClient(uri)
    return _client


def get_mongo_db() -> Database:
    """
    Database named by settings.MONGO_DB, cached like the client.
    """
    global _db
    if _db is None:
        db_name = get_settings().MONGO_DB
        if not db_name:
            raise RuntimeError("MONGO_DB is not configured.")
        _db = get_mongo_client()[db_name]
    return _db
