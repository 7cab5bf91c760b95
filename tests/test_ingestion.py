"""Tests for bulk curriculum ingestion."""

import pytest
from fastapi import HTTPException

from edu_app.config import config
from edu_app.curriculum.ingestion import CurriculumIngestion, plan_ingestion
from edu_app.curriculum.models import (
    CHAPTERS, QUIZZES, SUBJECTS, SUBTOPICS, TOPICS, VIDEOS, CurriculumSubmission
)


def _submission(payload: dict) -> CurriculumSubmission:
    return CurriculumSubmission.model_validate(payload)


def _counts(store) -> dict:
    return {name: len(store.docs(name)) for name in (SUBJECTS, CHAPTERS, TOPICS, SUBTOPICS, VIDEOS, QUIZZES)}


class TestPlanning:
    """Walking the submission without touching storage"""

    def test_counts_every_named_node(self, math_payload):
        plan = plan_ingestion(_submission(math_payload))

        assert len(plan.chapter_ops) == 2
        assert len(plan.topics) == 3
        assert len(plan.subtopic_ops) == 3
        assert len(plan.video_ops) == 3
        assert len(plan.quizzes) == 1
        assert plan.first_video_url == "https://x/1"

    def test_invalid_questions_filtered(self, math_payload):
        plan = plan_ingestion(_submission(math_payload))

        assert [q["que"] for q in plan.questions] == ["2x = 4, x = ?"]
        assert plan.questions[0]["opt"] == {"a": "1", "b": "2", "c": "3", "d": "4"}
        assert plan.questions[0]["explanation"] == "divide by 2"

    def test_question_ids_are_stable(self, math_payload):
        first = plan_ingestion(_submission(math_payload)).questions
        second = plan_ingestion(_submission(math_payload)).questions

        assert [q["question_id"] for q in first] == [q["question_id"] for q in second]

    def test_nodes_without_names_are_skipped(self):
        plan = plan_ingestion(_submission({
            "subjectName": "Math", "board": "CBSE", "grade": 10,
            "chapters": [
                {"topics": []},
                {"chapterName": "Algebra", "topics": [
                    {"subtopics": []},
                    {"topicName": "Linear", "subtopics": [
                        {"videos": [{"videoUrl": "https://x/9"}]},
                        {"subtopicName": "Solving", "videos": [{"quiz": {"questions": []}}]},
                    ]},
                ]},
                {"chapterName": "NoTopics"},
            ],
        }))

        assert [op[0]["chapter_name"] for op in plan.chapter_ops] == ["Algebra"]
        assert [t.topic_name for t in plan.topics] == ["Linear"]
        assert [op[0]["subtopic_name"] for op in plan.subtopic_ops] == ["Solving"]
        assert plan.video_ops == []

    def test_blank_names_are_skipped(self):
        plan = plan_ingestion(_submission({
            "subjectName": "Math", "board": "CBSE", "grade": "10",
            "chapters": [
                {"chapterName": "Algebra", "topics": [
                    {"topicName": "  ", "subtopics": []},
                    {"topicName": "Linear", "subtopics": [
                        {"subtopicName": "\t", "videos": []},
                        {"subtopicName": "Solving", "videos": [{"videoUrl": " "}, {"videoUrl": "https://x/1"}]},
                    ]},
                ]},
                {"chapterName": "   ", "topics": []},
            ],
        }))

        assert [op[0]["chapter_name"] for op in plan.chapter_ops] == ["Algebra"]
        assert [t.topic_name for t in plan.topics] == ["Linear"]
        assert [op[0]["subtopic_name"] for op in plan.subtopic_ops] == ["Solving"]
        assert [op[0]["video_url"] for op in plan.video_ops] == ["https://x/1"]

    def test_grade_is_stringified(self):
        submission = _submission({"subjectName": "Math", "board": "ICSE", "grade": 9, "chapters": []})

        assert submission.grade == "9"


class TestIngestion:

    @pytest.mark.asyncio
    async def test_ingest_writes_every_level(self, store, read_cache, math_payload):
        summary = await CurriculumIngestion(store, read_cache).ingest(_submission(math_payload))

        assert _counts(store) == {SUBJECTS: 1, CHAPTERS: 2, TOPICS: 3, SUBTOPICS: 3, VIDEOS: 3, QUIZZES: 1}
        assert summary["chapters"] == 2
        assert summary["topics"] == 3
        assert summary["subtopics"] == 3
        assert summary["total_videos"] == 3
        assert summary["total_questions"] == 1
        assert summary["created"][CHAPTERS] == 2
        assert summary["video_url"] == "https://x/1"

    @pytest.mark.asyncio
    async def test_topics_resolve_chapter_ids(self, store, read_cache, math_payload):
        await CurriculumIngestion(store, read_cache).ingest(_submission(math_payload))

        subject = store.docs(SUBJECTS)[0]
        chapter_ids = {c["chapter_name"]: c["_id"] for c in store.docs(CHAPTERS)}
        by_topic = {t["topic_name"]: t for t in store.docs(TOPICS)}
        assert by_topic["Linear Eq"]["chapter_id"] == chapter_ids["Algebra"]
        assert by_topic["Triangles"]["chapter_id"] == chapter_ids["Geometry"]
        assert all(t["subject_id"] == subject["_id"] for t in by_topic.values())

    @pytest.mark.asyncio
    async def test_quiz_carries_video_id(self, store, read_cache, math_payload):
        summary = await CurriculumIngestion(store, read_cache).ingest(_submission(math_payload))

        video = next(v for v in store.docs(VIDEOS) if v["video_url"] == "https://x/1")
        quiz = store.docs(QUIZZES)[0]
        assert quiz["video_id"] == str(video["_id"])
        assert summary["video_id"] == str(video["_id"])

    @pytest.mark.asyncio
    async def test_reingest_is_a_noop(self, store, read_cache, math_payload):
        ingestion = CurriculumIngestion(store, read_cache)
        await ingestion.ingest(_submission(math_payload))
        before = _counts(store)

        summary = await ingestion.ingest(_submission(math_payload))

        assert _counts(store) == before
        assert all(count == 0 for count in summary["created"].values())
        assert summary["matched"][VIDEOS] == 3
        assert summary["matched"][TOPICS] == 3

    @pytest.mark.asyncio
    async def test_all_invalid_questions_skip_quiz_but_keep_video(self, store, read_cache):
        payload = {
            "subjectName": "Math", "board": "CBSE", "grade": "10",
            "chapters": [{"chapterName": "Algebra", "topics": [{"topicName": "Linear Eq", "subtopics": [
                {"subtopicName": "Solving", "videos": [
                    {"videoUrl": "https://x/1", "quiz": {"questions": [{"que": "", "correctAnswer": ""}]}}
                ]}
            ]}]}],
        }

        summary = await CurriculumIngestion(store, read_cache).ingest(_submission(payload))

        assert [v["video_url"] for v in store.docs(VIDEOS)] == ["https://x/1"]
        assert store.docs(QUIZZES) == []
        assert summary["total_questions"] == 0

    @pytest.mark.asyncio
    async def test_storage_failure_rolls_back_everything(self, store, read_cache, math_payload, monkeypatch):
        monkeypatch.setattr(config, "APP_ENV", "production")
        store.fail_on_bulk = {TOPICS}

        with pytest.raises(HTTPException) as exc:
            await CurriculumIngestion(store, read_cache).ingest(_submission(math_payload))

        assert exc.value.status_code == 500
        assert exc.value.detail["error"] == "Internal server error"
        assert all(count == 0 for count in _counts(store).values())
        assert store.rollbacks == 1

    @pytest.mark.asyncio
    async def test_failure_detail_exposed_in_development(self, store, read_cache, math_payload, monkeypatch):
        monkeypatch.setattr(config, "APP_ENV", "development")
        store.fail_on_bulk = {QUIZZES}

        with pytest.raises(HTTPException) as exc:
            await CurriculumIngestion(store, read_cache).ingest(_submission(math_payload))

        assert "simulated failure writing quizzes" in exc.value.detail["error"]

    @pytest.mark.asyncio
    async def test_success_clears_cache_failure_does_not(self, store, read_cache, math_payload):
        await read_cache.set("curriculum:Physics", {"cached": True})
        store.fail_on_bulk = {VIDEOS}
        with pytest.raises(HTTPException):
            await CurriculumIngestion(store, read_cache).ingest(_submission(math_payload))
        assert await read_cache.get("curriculum:Physics") == {"cached": True}

        store.fail_on_bulk = set()
        await CurriculumIngestion(store, read_cache).ingest(_submission(math_payload))

        assert len(read_cache) == 0

    @pytest.mark.asyncio
    async def test_empty_submission_rejected_before_writing(self, store, read_cache):
        submission = _submission({"subjectName": "Math", "board": "CBSE", "grade": "10",
                                  "chapters": [{"topics": []}]})

        with pytest.raises(HTTPException) as exc:
            await CurriculumIngestion(store, read_cache).ingest(submission)

        assert exc.value.status_code == 400
        assert store.docs(SUBJECTS) == []
