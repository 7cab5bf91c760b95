"""
Tree assembler
Builds the nested subject -> chapters -> topics -> subtopics -> videos view
from a root subject and a CurriculumIndex.
"""

from typing import List

from edu_app.curriculum.indexer import CurriculumIndex


def _id(doc: dict) -> str:
    return str(doc["_id"])


def _quiz_view(quiz: dict) -> dict:
    return {
        "_id": _id(quiz),
        "video_id": quiz.get("video_id"),
        "questions": [
            {
                "question_id": q.get("question_id"),
                "que": q["que"],
                "opt": q.get("opt", {}),
                "correct_answer": q["correct_answer"],
                "explanation": q.get("explanation", ""),
            }
            for q in quiz.get("questions", [])
        ],
    }


def _assemble_videos(videos: List[dict], index: CurriculumIndex, include_quizzes: bool) -> List[dict]:
    out = []
    for video in videos:
        node = {"_id": _id(video), "video_url": video["video_url"]}
        if include_quizzes:
            quiz = index.quiz_for(video["video_url"])
            if quiz is not None:
                node["quiz"] = _quiz_view(quiz)
        out.append(node)
    return out


def assemble_subject(subject: dict, index: CurriculumIndex, include_quizzes: bool = True) -> dict:
    """
    Attach children level by level. Child lookups use the parent's own
    identifying fields; missing children are empty lists, never errors.
    """
    subject_name = subject["subject"]
    chapters = []

    for chapter in index.chapters_for(subject_name):
        chapter_name = chapter["chapter_name"]
        topics = []

        for topic in index.topics_for(chapter["_id"]):
            topic_name = topic["topic_name"]
            subtopics = []

            for subtopic in index.subtopics_for(subject_name, chapter_name, topic_name):
                videos = index.videos_for(
                    subject_name, chapter_name, topic_name, subtopic["subtopic_name"]
                )
                subtopics.append({
                    "_id": _id(subtopic),
                    "subtopic_name": subtopic["subtopic_name"],
                    "videos": _assemble_videos(videos, index, include_quizzes),
                })

            topics.append({
                "_id": _id(topic),
                "topic_name": topic_name,
                "subtopics": subtopics,
            })

        chapters.append({
            "_id": _id(chapter),
            "chapter_name": chapter_name,
            "topics": topics,
        })

    return {
        "_id": _id(subject),
        "subject_name": subject_name,
        "board": subject["board"],
        "grade": subject["grade"],
        "chapters": chapters,
    }
