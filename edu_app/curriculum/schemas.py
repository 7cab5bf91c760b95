"""
Curriculum MongoDB Collection Schemas
File: edu_app/curriculum/schemas.py

Flat collections joined by natural keys:
subjects -> chapters (by subject name) -> topics (by chapter id)
-> subtopics (by name path) -> videos (by name path) -> quizzes (by video url)
"""

import logging

from pymongo.errors import PyMongoError

from edu_app.curriculum.models import (
    SUBJECTS, CHAPTERS, TOPICS, SUBTOPICS, VIDEOS, QUIZZES
)

logger = logging.getLogger(__name__)

# ==================== SUBJECTS ====================

SUBJECTS_SCHEMA = {
    "validator": {
        "$jsonSchema": {
            "bsonType": "object",
            "required": ["subject", "board", "grade"],
            "properties": {
                "subject": {"bsonType": "string"},
                "board": {"enum": ["CBSE", "ICSE", "State"]},
                "grade": {"bsonType": "string"},
                "created_at": {"bsonType": "date"}
            }
        }
    }
}

# ==================== CHAPTERS ====================

CHAPTERS_SCHEMA = {
    "validator": {
        "$jsonSchema": {
            "bsonType": "object",
            "required": ["subject", "chapter_name"],
            "properties": {
                "subject": {"bsonType": "string"},  # subject name, not id
                "chapter_name": {"bsonType": "string"},
                "created_at": {"bsonType": "date"}
            }
        }
    }
}

# ==================== TOPICS ====================

TOPICS_SCHEMA = {
    "validator": {
        "$jsonSchema": {
            "bsonType": "object",
            "required": ["subject_id", "chapter_id", "topic_name"],
            "properties": {
                "subject_id": {"bsonType": "objectId"},
                "chapter_id": {"bsonType": "objectId"},
                "topic_name": {"bsonType": "string"},
                "created_at": {"bsonType": "date"}
            }
        }
    }
}

# ==================== SUBTOPICS ====================

SUBTOPICS_SCHEMA = {
    "validator": {
        "$jsonSchema": {
            "bsonType": "object",
            "required": ["sub_name", "chapter_name", "topic_name", "subtopic_name"],
            "properties": {
                "sub_name": {"bsonType": "string"},
                "chapter_name": {"bsonType": "string"},
                "topic_name": {"bsonType": "string"},
                "subtopic_name": {"bsonType": "string"},
                "created_at": {"bsonType": "date"}
            }
        }
    }
}

# ==================== VIDEOS ====================

VIDEOS_SCHEMA = {
    "validator": {
        "$jsonSchema": {
            "bsonType": "object",
            "required": ["sub_name", "chapter_name", "topic_name", "subtopic_name", "video_url"],
            "properties": {
                "sub_name": {"bsonType": "string"},
                "chapter_name": {"bsonType": "string"},
                "topic_name": {"bsonType": "string"},
                "subtopic_name": {"bsonType": "string"},
                "video_url": {"bsonType": "string"},
                "created_at": {"bsonType": "date"}
            }
        }
    }
}

# ==================== QUIZZES ====================

QUIZZES_SCHEMA = {
    "validator": {
        "$jsonSchema": {
            "bsonType": "object",
            "required": ["video_url", "questions"],
            "properties": {
                "video_id": {"bsonType": ["string", "null"]},
                "video_url": {"bsonType": "string"},
                "questions": {
                    "bsonType": "array",
                    "items": {
                        "bsonType": "object",
                        "required": ["que", "correct_answer"],
                        "properties": {
                            "question_id": {"bsonType": "string"},
                            "que": {"bsonType": "string"},
                            "opt": {"bsonType": "object"},
                            "correct_answer": {"bsonType": "string"},
                            "explanation": {"bsonType": "string"}
                        }
                    }
                },
                "created_at": {"bsonType": "date"}
            }
        }
    }
}

# ==================== INDEXES ====================

INDEXES = {
    SUBJECTS: [
        {"keys": [("board", 1), ("grade", 1)]},
        {"keys": [("subject", 1), ("board", 1), ("grade", 1)], "unique": True},
    ],
    CHAPTERS: [
        {"keys": [("subject", 1)]},
        {"keys": [("subject", 1), ("chapter_name", 1)], "unique": True},
    ],
    TOPICS: [
        {"keys": [("subject_id", 1), ("chapter_id", 1)]},
        {"keys": [("subject_id", 1), ("chapter_id", 1), ("topic_name", 1)], "unique": True},
    ],
    SUBTOPICS: [
        {"keys": [("sub_name", 1), ("chapter_name", 1), ("topic_name", 1)]},
        {"keys": [("sub_name", 1), ("chapter_name", 1), ("topic_name", 1), ("subtopic_name", 1)], "unique": True},
    ],
    VIDEOS: [
        {"keys": [("sub_name", 1), ("chapter_name", 1), ("topic_name", 1), ("subtopic_name", 1)]},
        {"keys": [("sub_name", 1), ("chapter_name", 1), ("topic_name", 1), ("subtopic_name", 1), ("video_url", 1)], "unique": True},
    ],
    QUIZZES: [
        {"keys": [("video_url", 1)], "unique": True},
        {"keys": [("video_id", 1)]},
    ],
}

# ==================== COLLECTION CREATION ====================

SCHEMAS = {
    SUBJECTS: SUBJECTS_SCHEMA,
    CHAPTERS: CHAPTERS_SCHEMA,
    TOPICS: TOPICS_SCHEMA,
    SUBTOPICS: SUBTOPICS_SCHEMA,
    VIDEOS: VIDEOS_SCHEMA,
    QUIZZES: QUIZZES_SCHEMA,
}


async def create_collections_with_validation(db):
    """Create all curriculum collections with schema validation"""
    existing_collections = await db.list_collection_names()

    for collection_name, schema in SCHEMAS.items():
        if collection_name not in existing_collections:
            await db.create_collection(collection_name, **schema)
            logger.info("Created collection: %s", collection_name)
        else:
            # Update validation rules
            try:
                await db.command({
                    "collMod": collection_name,
                    **schema
                })
                logger.info("Updated validation: %s", collection_name)
            except PyMongoError as e:
                logger.warning("Could not update %s: %s", collection_name, e)


async def create_all_indexes(db):
    """Create natural-key indexes"""
    for collection_name, indexes in INDEXES.items():
        collection = db[collection_name]
        for index in indexes:
            try:
                await collection.create_index(
                    index["keys"],
                    unique=index.get("unique", False)
                )
                logger.info("Created index on %s: %s", collection_name, index["keys"])
            except PyMongoError as e:
                logger.warning("Index creation failed for %s: %s", collection_name, e)
