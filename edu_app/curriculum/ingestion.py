"""
Bulk curriculum ingestion
One nested submission -> upserts across subjects, chapters, subtopics,
videos, topics and quizzes inside a single transaction.

Phase 1 upserts the name-keyed levels (chapters, subtopics, videos).
Phase 2 re-reads chapters and videos inside the same session and resolves
the id-keyed levels against them (topics need chapter ids, quizzes carry
the video id).
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from fastapi import HTTPException

from edu_app.cache.manager import CacheManager
from edu_app.config import config, error_detail
from edu_app.curriculum.models import (
    SUBJECTS, CHAPTERS, TOPICS, SUBTOPICS, VIDEOS, QUIZZES,
    OPTION_LABELS, CurriculumSubmission, QuestionIn
)
from edu_app.curriculum.store import CurriculumStore, UpsertOp

logger = logging.getLogger(__name__)

COLLECTIONS = (CHAPTERS, TOPICS, SUBTOPICS, VIDEOS, QUIZZES)


@dataclass
class _PendingTopic:
    chapter_name: str
    topic_name: str


@dataclass
class _PendingQuiz:
    video_url: str
    questions: List[dict]


@dataclass
class IngestionPlan:
    """Upsert operations accumulated from one walk of the submission"""
    chapter_ops: List[UpsertOp] = field(default_factory=list)
    subtopic_ops: List[UpsertOp] = field(default_factory=list)
    video_ops: List[UpsertOp] = field(default_factory=list)
    topics: List[_PendingTopic] = field(default_factory=list)
    quizzes: List[_PendingQuiz] = field(default_factory=list)
    questions: List[dict] = field(default_factory=list)
    first_video_url: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.chapter_ops


class IngestionResult:
    """Result of one ingestion"""

    def __init__(self, subject: dict, plan: IngestionPlan):
        self.subject = subject
        self.plan = plan
        self.first_video_id: Optional[str] = None
        self.created: Dict[str, int] = {name: 0 for name in COLLECTIONS}
        self.matched: Dict[str, int] = {name: 0 for name in COLLECTIONS}

    def record(self, collection: str, created: int, matched: int):
        self.created[collection] += created
        self.matched[collection] += matched

    def to_dict(self, question_sample: int = 10) -> dict:
        plan = self.plan
        subject_id = str(self.subject["_id"])
        return {
            "_id": subject_id,
            "video_url": plan.first_video_url or "Multiple videos processed",
            "video_id": self.first_video_id or subject_id,
            "questions": plan.questions[:question_sample],
            "total_questions": len(plan.questions),
            "total_videos": len(plan.video_ops),
            "chapters": len(plan.chapter_ops),
            "topics": len(plan.topics),
            "subtopics": len(plan.subtopic_ops),
            "quizzes": len(plan.quizzes),
            "created": dict(self.created),
            "matched": dict(self.matched),
        }


def _question_id(video_url: str, position: int, text: str) -> str:
    # stable across re-ingestion of the same payload
    return uuid.uuid5(uuid.NAMESPACE_URL, f"{video_url}#{position}:{text}").hex


def _clean_questions(video_url: str, questions: Optional[List[QuestionIn]]) -> List[dict]:
    """Drop questions without text or a correct-answer label"""
    cleaned = []
    for q in questions or []:
        if not q.is_valid():
            continue
        opt = q.opt.model_dump() if q.opt else {}
        cleaned.append({
            "question_id": _question_id(video_url, len(cleaned), q.que),
            "que": q.que,
            "opt": {label: opt.get(label) or "" for label in OPTION_LABELS},
            "correct_answer": q.correct_answer,
            "explanation": q.explanation or "",
        })
    return cleaned


def _blank(name: Optional[str]) -> bool:
    return not (name and name.strip())


def plan_ingestion(submission: CurriculumSubmission) -> IngestionPlan:
    """
    Walk the submission once. Nodes with a missing or blank name, or without
    a child list, are skipped and not counted.
    """
    plan = IngestionPlan()
    subject_name = submission.subject_name

    for chapter in submission.chapters:
        chapter_name = chapter.chapter_name
        if _blank(chapter_name) or chapter.topics is None:
            continue

        chapter_key = {"subject": subject_name, "chapter_name": chapter_name}
        plan.chapter_ops.append((chapter_key, dict(chapter_key)))

        for topic in chapter.topics:
            topic_name = topic.topic_name
            if _blank(topic_name) or topic.subtopics is None:
                continue

            plan.topics.append(_PendingTopic(chapter_name, topic_name))

            for subtopic in topic.subtopics:
                subtopic_name = subtopic.subtopic_name
                if _blank(subtopic_name) or subtopic.videos is None:
                    continue

                subtopic_key = {
                    "sub_name": subject_name,
                    "chapter_name": chapter_name,
                    "topic_name": topic_name,
                    "subtopic_name": subtopic_name,
                }
                plan.subtopic_ops.append((subtopic_key, dict(subtopic_key)))

                for video in subtopic.videos:
                    video_url = video.video_url
                    if _blank(video_url):
                        continue

                    video_key = {**subtopic_key, "video_url": video_url}
                    plan.video_ops.append((video_key, dict(video_key)))
                    if plan.first_video_url is None:
                        plan.first_video_url = video_url

                    questions = _clean_questions(video_url, video.quiz.questions if video.quiz else None)
                    if questions:
                        plan.quizzes.append(_PendingQuiz(video_url, questions))
                        plan.questions.extend(questions)

    return plan


class CurriculumIngestion:
    """All-or-nothing ingestion of one curriculum submission"""

    def __init__(self, store: CurriculumStore, cache: CacheManager):
        self.store = store
        self.cache = cache

    async def ingest(self, submission: CurriculumSubmission) -> dict:
        plan = plan_ingestion(submission)
        if plan.is_empty:
            raise HTTPException(
                status_code=400,
                detail={
                    "success": False,
                    "message": "Submission contains no chapter with a name and a topics list",
                }
            )

        try:
            async with self.store.transaction() as session:
                subject = await self.store.upsert(
                    SUBJECTS,
                    {"subject": submission.subject_name, "board": submission.board.value, "grade": submission.grade},
                    {"subject": submission.subject_name, "board": submission.board.value, "grade": submission.grade},
                    session=session
                )
                result = IngestionResult(subject, plan)
                await self._phase_one(plan, result, session)
                await self._phase_two(submission.subject_name, plan, result, session)
        except HTTPException:
            raise
        except Exception as e:
            logger.exception("Curriculum ingestion rolled back for %s", submission.subject_name)
            raise HTTPException(
                status_code=500,
                detail={
                    "success": False,
                    "message": "Failed to create curriculum",
                    "error": error_detail(e),
                }
            )

        await self.cache.clear()

        summary = result.to_dict(config.SUMMARY_QUESTION_SAMPLE)
        logger.info(
            "Ingested %s (%s/%s): %d chapters, %d topics, %d subtopics, %d videos, %d quizzes",
            submission.subject_name, submission.board.value, submission.grade,
            summary["chapters"], summary["topics"], summary["subtopics"],
            summary["total_videos"], summary["quizzes"]
        )
        return summary

    async def _phase_one(self, plan: IngestionPlan, result: IngestionResult, session):
        """Name-keyed levels: no ids needed"""
        for collection, ops in (
            (CHAPTERS, plan.chapter_ops),
            (SUBTOPICS, plan.subtopic_ops),
            (VIDEOS, plan.video_ops),
        ):
            outcome = await self.store.bulk_upsert(collection, ops, session=session)
            result.record(collection, outcome.created, outcome.matched)

    async def _phase_two(self, subject_name: str, plan: IngestionPlan, result: IngestionResult, session):
        """Resolve chapter ids for topics and video ids for quizzes"""
        chapters = await self.store.find(CHAPTERS, {"subject": subject_name}, session=session)
        chapter_ids = {c["chapter_name"]: c["_id"] for c in chapters}

        topic_ops: List[UpsertOp] = []
        for pending in plan.topics:
            key = {
                "subject_id": result.subject["_id"],
                "chapter_id": chapter_ids[pending.chapter_name],
                "topic_name": pending.topic_name,
            }
            topic_ops.append((key, dict(key)))

        outcome = await self.store.bulk_upsert(TOPICS, topic_ops, session=session)
        result.record(TOPICS, outcome.created, outcome.matched)

        video_ids = await self._video_ids(subject_name, session)
        if plan.first_video_url is not None:
            result.first_video_id = video_ids.get(plan.first_video_url)

        quiz_ops: List[UpsertOp] = [
            (
                {"video_url": pending.video_url},
                {
                    "video_url": pending.video_url,
                    "video_id": video_ids.get(pending.video_url),
                    "questions": pending.questions,
                },
            )
            for pending in plan.quizzes
        ]
        outcome = await self.store.bulk_upsert(QUIZZES, quiz_ops, session=session)
        result.record(QUIZZES, outcome.created, outcome.matched)

    async def _video_ids(self, subject_name: str, session) -> Dict[str, str]:
        videos = await self.store.find(VIDEOS, {"sub_name": subject_name}, session=session)
        ids: Dict[str, str] = {}
        for video in videos:
            # first stored video wins for a url shared across subtopics
            ids.setdefault(video["video_url"], str(video["_id"]))
        return ids
