"""
Shared fixtures: an in-memory stand-in for CurriculumStore with
transactional rollback and call counters, a controllable clock for the
cache, and a TestClient wired to both.
"""

import copy
from collections import Counter
from contextlib import asynccontextmanager

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient
from pymongo.errors import PyMongoError

from edu_app.cache.manager import CacheManager
from edu_app.curriculum.dependencies import get_cache, get_current_learner, get_store
from edu_app.curriculum.models import LearnerIdentity
from edu_app.curriculum.service import CurriculumService
from edu_app.curriculum.store import BulkUpsertResult, utcnow
from edu_app.main import app


def _matches(doc: dict, query: dict) -> bool:
    for field, expected in query.items():
        if isinstance(expected, dict) and "$in" in expected:
            if doc.get(field) not in expected["$in"]:
                return False
        elif doc.get(field) != expected:
            return False
    return True


def _project(doc: dict, projection) -> dict:
    if not projection:
        return doc
    return {k: v for k, v in doc.items() if k == "_id" or projection.get(k)}


class InMemoryCurriculumStore:
    """Same surface as CurriculumStore, backed by dict lists"""

    def __init__(self):
        self.collections = {}
        self.calls = Counter()
        self.fail_on_bulk = set()
        self.commits = 0
        self.rollbacks = 0

    @property
    def reads(self) -> int:
        return self.calls["find"] + self.calls["find_one"]

    def docs(self, collection: str) -> list:
        return self.collections.setdefault(collection, [])

    def seed(self, collection: str, doc: dict) -> dict:
        doc = {"_id": ObjectId(), **doc}
        self.docs(collection).append(doc)
        return doc

    async def find(self, collection, query=None, projection=None, session=None):
        self.calls["find"] += 1
        return [
            _project(copy.deepcopy(d), projection)
            for d in self.docs(collection) if _matches(d, query or {})
        ]

    async def find_one(self, collection, query, session=None):
        self.calls["find_one"] += 1
        for d in self.docs(collection):
            if _matches(d, query):
                return copy.deepcopy(d)
        return None

    async def insert(self, collection, doc, session=None):
        self.calls["insert"] += 1
        doc = {"_id": ObjectId(), **doc, "created_at": utcnow()}
        self.docs(collection).append(doc)
        return copy.deepcopy(doc)

    def _upsert_one(self, collection, query, fields) -> bool:
        for d in self.docs(collection):
            if _matches(d, query):
                d.update(copy.deepcopy(fields))
                return False
        self.docs(collection).append(
            {"_id": ObjectId(), **copy.deepcopy(query), **copy.deepcopy(fields), "created_at": utcnow()}
        )
        return True

    async def upsert(self, collection, query, fields, session=None):
        self.calls["upsert"] += 1
        self._upsert_one(collection, query, fields)
        return await self.find_one(collection, query)

    async def bulk_upsert(self, collection, ops, session=None):
        self.calls["bulk_upsert"] += 1
        if collection in self.fail_on_bulk:
            raise PyMongoError(f"simulated failure writing {collection}")
        result = BulkUpsertResult()
        for query, fields in ops:
            if self._upsert_one(collection, query, fields):
                result.created += 1
            else:
                result.matched += 1
        return result

    @asynccontextmanager
    async def transaction(self):
        snapshot = copy.deepcopy(self.collections)
        try:
            yield object()
        except BaseException:
            self.collections = snapshot
            self.rollbacks += 1
            raise
        self.commits += 1


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def store():
    return InMemoryCurriculumStore()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def read_cache(clock):
    return CacheManager(ttl_seconds=300, clock=clock)


@pytest.fixture
def service(store, read_cache):
    return CurriculumService(store, read_cache)


@pytest.fixture
def learner():
    return LearnerIdentity(user_id="learner-1", board="CBSE", grade="10")


@pytest.fixture
def client(store, read_cache, learner):
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_cache] = lambda: read_cache
    app.dependency_overrides[get_current_learner] = lambda: learner
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def math_payload():
    return {
        "subjectName": "Math",
        "board": "CBSE",
        "grade": "10",
        "chapters": [
            {
                "chapterName": "Algebra",
                "topics": [
                    {
                        "topicName": "Linear Eq",
                        "subtopics": [
                            {
                                "subtopicName": "Solving",
                                "videos": [
                                    {
                                        "videoUrl": "https://x/1",
                                        "quiz": {
                                            "questions": [
                                                {
                                                    "que": "2x = 4, x = ?",
                                                    "opt": {"a": "1", "b": "2", "c": "3", "d": "4"},
                                                    "correctAnswer": "b",
                                                    "explanation": "divide by 2",
                                                },
                                                {"que": "", "correctAnswer": "a"},
                                            ]
                                        },
                                    },
                                    {"videoUrl": "https://x/2"},
                                ],
                            },
                            {"subtopicName": "Graphing", "videos": []},
                        ],
                    },
                    {"topicName": "Quadratics", "subtopics": []},
                ],
            },
            {
                "chapterName": "Geometry",
                "topics": [
                    {
                        "topicName": "Triangles",
                        "subtopics": [
                            {"subtopicName": "Congruence", "videos": [{"videoUrl": "https://x/3"}]}
                        ],
                    }
                ],
            },
        ],
    }
