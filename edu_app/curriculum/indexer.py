"""
Composite-key indexer
Turns the flat curriculum collections into lookup maps keyed by the parent
path, so the tree can be assembled with O(1) lookups instead of a query per
node.

Keys are exact strings: no trimming, no case folding. Separators and
backslashes inside a name are escaped, so distinct paths never share a key.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

KEY_SEPARATOR = ":"


def _escape(name: str) -> str:
    return name.replace("\\", "\\\\").replace(KEY_SEPARATOR, "\\" + KEY_SEPARATOR)


def path_key(*names: str) -> str:
    return KEY_SEPARATOR.join(_escape(name) for name in names)


def subtopic_key(subject_name: str, chapter_name: str, topic_name: str) -> str:
    return path_key(subject_name, chapter_name, topic_name)


def video_key(subject_name: str, chapter_name: str, topic_name: str, subtopic_name: str) -> str:
    return path_key(subject_name, chapter_name, topic_name, subtopic_name)


@dataclass
class CurriculumIndex:
    """Lookup maps; each bucket keeps collection scan order"""
    chapters_by_subject: Dict[str, List[dict]] = field(default_factory=dict)
    topics_by_chapter: Dict[str, List[dict]] = field(default_factory=dict)
    subtopics_by_path: Dict[str, List[dict]] = field(default_factory=dict)
    videos_by_path: Dict[str, List[dict]] = field(default_factory=dict)
    quizzes_by_video_url: Dict[str, dict] = field(default_factory=dict)

    def chapters_for(self, subject_name: str) -> List[dict]:
        return self.chapters_by_subject.get(subject_name, [])

    def topics_for(self, chapter_id) -> List[dict]:
        return self.topics_by_chapter.get(str(chapter_id), [])

    def subtopics_for(self, subject_name: str, chapter_name: str, topic_name: str) -> List[dict]:
        return self.subtopics_by_path.get(subtopic_key(subject_name, chapter_name, topic_name), [])

    def videos_for(self, subject_name: str, chapter_name: str, topic_name: str, subtopic_name: str) -> List[dict]:
        return self.videos_by_path.get(
            video_key(subject_name, chapter_name, topic_name, subtopic_name), []
        )

    def quiz_for(self, video_url: str) -> Optional[dict]:
        return self.quizzes_by_video_url.get(video_url)


def _bucket(records: Iterable[dict], key_of) -> Dict[str, List[dict]]:
    buckets = defaultdict(list)
    for record in records:
        buckets[key_of(record)].append(record)
    return dict(buckets)


def build_index(
    chapters: Iterable[dict],
    topics: Iterable[dict],
    subtopics: Iterable[dict],
    videos: Iterable[dict],
    quizzes: Iterable[dict] = ()
) -> CurriculumIndex:
    """
    Single linear pass per collection.

    Records colliding on a key all land in the same bucket; nothing is
    deduplicated here.
    """
    return CurriculumIndex(
        chapters_by_subject=_bucket(chapters, lambda c: c["subject"]),
        topics_by_chapter=_bucket(topics, lambda t: str(t["chapter_id"])),
        subtopics_by_path=_bucket(
            subtopics,
            lambda s: subtopic_key(s["sub_name"], s["chapter_name"], s["topic_name"])
        ),
        videos_by_path=_bucket(
            videos,
            lambda v: video_key(v["sub_name"], v["chapter_name"], v["topic_name"], v["subtopic_name"])
        ),
        quizzes_by_video_url={q["video_url"]: q for q in quizzes},
    )
