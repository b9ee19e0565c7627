# profast/repos/mongo.py
import logging
from functools import wraps
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo.errors import DuplicateKeyError, PyMongoError

from profast.core.errors import Conflict, StoreError
from profast.core.indexes import ensure_indexes
from profast.db import new_id
from profast.repos.base import Filter, Sort

logger = logging.getLogger(__name__)


def _translate_errors(fn):
    @wraps(fn)
    async def wrapper(*args, **kwargs):
        try:
            return await fn(*args, **kwargs)
        except DuplicateKeyError as exc:
            raise Conflict("Document already exists", details={"key": (exc.details or {}).get("keyValue")}) from exc
        except PyMongoError as exc:
            logger.error("Mongo %s failed: %s", fn.__name__, exc)
            raise StoreError() from exc
    return wrapper


class MongoRepo:
    """DocumentStore backed by a Motor database."""

    def __init__(self, client: AsyncIOMotorClient, db_name: str):
        self._client = client
        self._db = client[db_name]

    @_translate_errors
    async def find(self, collection: str, filter: Optional[Filter] = None,
                   sort: Optional[Sort] = None, limit: int = 0) -> List[dict]:
        cur = self._db[collection].find(filter or {})
        if sort:
            cur = cur.sort(list(sort))
        if limit:
            cur = cur.limit(limit)
        return [d async for d in cur]

    @_translate_errors
    async def find_one(self, collection: str, filter: Filter) -> Optional[dict]:
        return await self._db[collection].find_one(filter)

    @_translate_errors
    async def insert_one(self, collection: str, doc: dict) -> str:
        doc = dict(doc)
        doc.setdefault("_id", new_id())
        await self._db[collection].insert_one(doc)
        return doc["_id"]

    @_translate_errors
    async def update_one(self, collection: str, filter: Filter, update: dict) -> int:
        res = await self._db[collection].update_one(filter, update)
        return res.matched_count

    @_translate_errors
    async def delete_one(self, collection: str, filter: Filter) -> int:
        res = await self._db[collection].delete_one(filter)
        return res.deleted_count

    @_translate_errors
    async def aggregate(self, collection: str, pipeline: List[dict]) -> List[dict]:
        return [row async for row in self._db[collection].aggregate(pipeline)]

    @_translate_errors
    async def ensure_indexes(self) -> None:
        await ensure_indexes(self._db)

    async def close(self) -> None:
        self._client.close()
