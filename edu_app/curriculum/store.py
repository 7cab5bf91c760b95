"""
Curriculum persistence layer
Find / upsert / bulk-upsert over the flat curriculum collections, plus a
transaction scope. Everything above this module talks plain dicts.
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence, Tuple

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorClientSession, AsyncIOMotorDatabase
from pymongo import ReturnDocument, UpdateOne

# (natural-key filter, fields to set)
UpsertOp = Tuple[Dict[str, Any], Dict[str, Any]]


@dataclass
class BulkUpsertResult:
    created: int = 0
    matched: int = 0


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_object_id(value: Any) -> Optional[ObjectId]:
    """Parse an id string; None when it is not a valid ObjectId"""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None


def serialize_mongo(doc: dict) -> dict:
    """Stringify ObjectIds (top level and nested) so the doc is JSON-ready"""
    out = {}
    for key, value in doc.items():
        if isinstance(value, ObjectId):
            out[key] = str(value)
        elif isinstance(value, dict):
            out[key] = serialize_mongo(value)
        elif isinstance(value, list):
            out[key] = [serialize_mongo(v) if isinstance(v, dict) else
                        str(v) if isinstance(v, ObjectId) else v for v in value]
        else:
            out[key] = value
    return out


def serialize_many(docs: List[dict]) -> List[dict]:
    return [serialize_mongo(doc) for doc in docs]


class CurriculumStore:
    """Motor-backed store for the curriculum collections"""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db

    async def find(
        self,
        collection: str,
        query: Optional[dict] = None,
        projection: Optional[dict] = None,
        session: Optional[AsyncIOMotorClientSession] = None
    ) -> List[dict]:
        cursor = self.db[collection].find(query or {}, projection, session=session)
        return await cursor.to_list(length=None)

    async def find_one(
        self,
        collection: str,
        query: dict,
        session: Optional[AsyncIOMotorClientSession] = None
    ) -> Optional[dict]:
        return await self.db[collection].find_one(query, session=session)

    async def insert(
        self,
        collection: str,
        doc: dict,
        session: Optional[AsyncIOMotorClientSession] = None
    ) -> dict:
        doc = {**doc, "created_at": utcnow()}
        result = await self.db[collection].insert_one(doc, session=session)
        doc["_id"] = result.inserted_id
        return doc

    async def upsert(
        self,
        collection: str,
        query: dict,
        fields: dict,
        session: Optional[AsyncIOMotorClientSession] = None
    ) -> dict:
        """Insert-if-absent else update in place; returns the stored doc"""
        return await self.db[collection].find_one_and_update(
            query,
            {"$set": fields, "$setOnInsert": {"created_at": utcnow()}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
            session=session
        )

    async def bulk_upsert(
        self,
        collection: str,
        ops: Sequence[UpsertOp],
        session: Optional[AsyncIOMotorClientSession] = None
    ) -> BulkUpsertResult:
        if not ops:
            return BulkUpsertResult()

        now = utcnow()
        requests = [
            UpdateOne(query, {"$set": fields, "$setOnInsert": {"created_at": now}}, upsert=True)
            for query, fields in ops
        ]
        result = await self.db[collection].bulk_write(requests, ordered=True, session=session)
        return BulkUpsertResult(created=result.upserted_count, matched=result.matched_count)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncIOMotorClientSession]:
        """Commit on clean exit, abort on any exception"""
        async with await self.db.client.start_session() as session:
            async with session.start_transaction():
                yield session
