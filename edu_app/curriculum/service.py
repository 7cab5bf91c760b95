"""
Curriculum read/write operations
Every read goes through the TTL cache; every successful write clears it.
"""

import asyncio
import logging
from typing import Optional

from fastapi import HTTPException
from pymongo.errors import DuplicateKeyError

from edu_app.cache.manager import CacheManager, cache_key
from edu_app.curriculum.assembler import assemble_subject
from edu_app.curriculum.indexer import build_index
from edu_app.curriculum.ingestion import CurriculumIngestion
from edu_app.curriculum.models import (
    SUBJECTS, CHAPTERS, TOPICS, SUBTOPICS, VIDEOS, QUIZZES,
    CurriculumSubmission, VideoCreate
)
from edu_app.curriculum.store import (
    CurriculumStore, serialize_mongo, serialize_many, to_object_id
)

logger = logging.getLogger(__name__)

ALL = "all"


def _not_found(message: str, **extra) -> HTTPException:
    return HTTPException(status_code=404, detail={"message": message, **extra})


class CurriculumService:
    """Curriculum operations over one store and the shared read cache"""

    def __init__(self, store: CurriculumStore, cache: CacheManager):
        self.store = store
        self.cache = cache

    # ==================== ASSEMBLED TREES ====================

    async def _assemble(self, subject: dict) -> dict:
        """Load the subject's scope in parallel, index it, build the tree"""
        subject_name = subject["subject"]
        chapters, topics, subtopics, videos = await asyncio.gather(
            self.store.find(CHAPTERS, {"subject": subject_name}),
            self.store.find(TOPICS, {"subject_id": subject["_id"]}),
            self.store.find(SUBTOPICS, {"sub_name": subject_name}),
            self.store.find(VIDEOS, {"sub_name": subject_name}),
        )

        video_urls = list({v["video_url"] for v in videos})
        quizzes = []
        if video_urls:
            quizzes = await self.store.find(QUIZZES, {"video_url": {"$in": video_urls}})

        index = build_index(chapters, topics, subtopics, videos, quizzes)
        return assemble_subject(subject, index)

    async def get_complete_content(self, board: Optional[str], grade: Optional[str],
                                   subject_name: Optional[str] = None) -> dict:
        """Tree for the learner's board/grade (first matching subject unless named)"""
        if not board or not grade:
            raise HTTPException(status_code=400, detail="Board and grade are required")

        key = cache_key("complete", board, grade, subject_name) if subject_name \
            else cache_key("complete", board, grade)
        cached = await self.cache.get(key)
        if cached is not None:
            return cached

        query = {"board": board, "grade": str(grade)}
        if subject_name:
            query["subject"] = subject_name
        subjects = await self.store.find(SUBJECTS, query)
        if not subjects:
            raise _not_found("Subject not found for this board and grade")

        content = await self._assemble(subjects[0])
        await self.cache.set(key, content)
        return content

    async def get_curriculum_by_subject_name(self, subject_name: str) -> dict:
        key = cache_key("curriculum", subject_name)
        cached = await self.cache.get(key)
        if cached is not None:
            return {"success": True, "data": cached}

        subject = await self.store.find_one(SUBJECTS, {"subject": subject_name})
        if not subject:
            raise _not_found("Subject not found")

        curriculum = await self._assemble(subject)
        await self.cache.set(key, curriculum)
        return {"success": True, "data": curriculum}

    # ==================== FLAT READS ====================

    async def get_subjects(self, board: Optional[str] = None, grade: Optional[str] = None) -> list:
        key = cache_key("subjects", board or ALL, grade or ALL)
        cached = await self.cache.get(key)
        if cached is not None:
            return cached

        query = {}
        if board:
            query["board"] = board
        if grade:
            query["grade"] = str(grade)

        subjects = await self.store.find(
            SUBJECTS, query, projection={"subject": 1, "board": 1, "grade": 1}
        )
        if not subjects:
            message = ("No subjects found for the specified board and grade"
                       if board or grade else "No subjects found in the database")
            raise _not_found(message, query={"board": board, "grade": grade})

        subjects = serialize_many(subjects)
        await self.cache.set(key, subjects)
        return subjects

    async def get_chapters(self, subject_name: str) -> list:
        key = cache_key("chapters", subject_name)
        cached = await self.cache.get(key)
        if cached is not None:
            return cached

        chapters = await self.store.find(
            CHAPTERS, {"subject": subject_name}, projection={"subject": 1, "chapter_name": 1}
        )
        if not chapters:
            raise _not_found("No chapters found for this subject")

        chapters = serialize_many(chapters)
        await self.cache.set(key, chapters)
        return chapters

    async def get_topics(self, chapter_id: str) -> list:
        key = cache_key("topics", chapter_id)
        cached = await self.cache.get(key)
        if cached is not None:
            return cached

        oid = to_object_id(chapter_id)
        chapter = await self.store.find_one(CHAPTERS, {"_id": oid}) if oid else None
        if not chapter:
            raise _not_found("Chapter not found")

        subject = await self.store.find_one(SUBJECTS, {"subject": chapter["subject"]})
        if not subject:
            raise _not_found("Subject not found")

        topics = await self.store.find(TOPICS, {"chapter_id": oid, "subject_id": subject["_id"]})
        if not topics:
            raise _not_found("No topics found for this chapter")

        topics = serialize_many(topics)
        await self.cache.set(key, topics)
        return topics

    async def get_subtopics(self, topic_id: str) -> list:
        key = cache_key("subtopics", topic_id)
        cached = await self.cache.get(key)
        if cached is not None:
            return cached

        oid = to_object_id(topic_id)
        topic = await self.store.find_one(TOPICS, {"_id": oid}) if oid else None
        if not topic:
            raise _not_found("Topic not found")

        chapter = await self.store.find_one(CHAPTERS, {"_id": topic["chapter_id"]})
        if not chapter:
            raise _not_found("Chapter not found")

        subtopics = await self.store.find(SUBTOPICS, {
            "sub_name": chapter["subject"],
            "chapter_name": chapter["chapter_name"],
            "topic_name": topic["topic_name"],
        })
        if not subtopics:
            raise _not_found("No subtopics found for this topic")

        subtopics = serialize_many(subtopics)
        await self.cache.set(key, subtopics)
        return subtopics

    async def get_videos(self, subtopic_id: str) -> list:
        key = cache_key("videos", subtopic_id)
        cached = await self.cache.get(key)
        if cached is not None:
            return cached

        oid = to_object_id(subtopic_id)
        subtopic = await self.store.find_one(SUBTOPICS, {"_id": oid}) if oid else None
        if not subtopic:
            raise _not_found("Subtopic not found")

        videos = await self.store.find(VIDEOS, {
            "sub_name": subtopic["sub_name"],
            "chapter_name": subtopic["chapter_name"],
            "topic_name": subtopic["topic_name"],
            "subtopic_name": subtopic["subtopic_name"],
        })
        if not videos:
            raise _not_found("No videos found for this subtopic")

        videos = serialize_many(videos)
        await self.cache.set(key, videos)
        return videos

    async def get_video_by_id(self, video_id: str) -> dict:
        key = cache_key("video", video_id)
        cached = await self.cache.get(key)
        if cached is not None:
            return {"success": True, "data": cached}

        oid = to_object_id(video_id)
        video = await self.store.find_one(VIDEOS, {"_id": oid}) if oid else None
        if not video:
            raise _not_found("Video not found")

        subject = await self.store.find_one(SUBJECTS, {"subject": video["sub_name"]})
        result = {
            "_id": str(video["_id"]),
            "video_url": video["video_url"],
            "sub_name": video["sub_name"],
            "chapter_name": video["chapter_name"],
            "topic_name": video["topic_name"],
            "subtopic_name": video["subtopic_name"],
            "subject": {
                "_id": str(subject["_id"]),
                "name": subject["subject"],
                "board": subject["board"],
                "grade": subject["grade"],
            } if subject else None,
        }

        await self.cache.set(key, result)
        return {"success": True, "data": result}

    async def get_quiz(self, video_id: Optional[str] = None, video_url: Optional[str] = None) -> dict:
        if not video_id and not video_url:
            raise HTTPException(status_code=400, detail="Please provide either video_id or video_url")

        key = cache_key("quiz", video_id or "", video_url or "")
        cached = await self.cache.get(key)
        if cached is not None:
            return cached

        query = {}
        if video_id:
            query["video_id"] = video_id
        if video_url:
            query["video_url"] = video_url

        quiz = await self.store.find_one(QUIZZES, query)
        if not quiz:
            raise _not_found("Quiz not found")

        quiz = serialize_mongo(quiz)
        await self.cache.set(key, quiz)
        return quiz

    # ==================== WRITES ====================

    async def post_curriculum_form(self, submission: CurriculumSubmission) -> dict:
        summary = await CurriculumIngestion(self.store, self.cache).ingest(submission)
        return {"success": True, "data": summary}

    async def add_video(self, payload: VideoCreate) -> dict:
        """Single video under an existing name path; duplicates are a conflict"""
        doc = {
            "sub_name": payload.sub_name,
            "chapter_name": payload.chapter_name,
            "topic_name": payload.topic_name,
            "subtopic_name": payload.subtopic_name,
            "video_url": payload.video_url,
        }

        existing = await self.store.find_one(VIDEOS, doc)
        if existing:
            raise HTTPException(
                status_code=409,
                detail={"success": False, "message": "Video already exists for this subtopic"}
            )

        try:
            video = await self.store.insert(VIDEOS, doc)
        except DuplicateKeyError:
            # lost a race with a concurrent insert of the same path
            raise HTTPException(
                status_code=409,
                detail={"success": False, "message": "Video already exists for this subtopic"}
            )

        await self.cache.clear()
        logger.info("Video added under %s/%s/%s/%s", payload.sub_name, payload.chapter_name,
                    payload.topic_name, payload.subtopic_name)
        return {
            "success": True,
            "message": "Video added successfully",
            "data": serialize_mongo(video),
        }
