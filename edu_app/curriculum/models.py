from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Optional
from enum import Enum

# ==================== ENUMS ====================

class Board(str, Enum):
    CBSE = "CBSE"
    ICSE = "ICSE"
    STATE = "State"

# ==================== COLLECTIONS ====================

SUBJECTS = "subjects"
CHAPTERS = "chapters"
TOPICS = "topics"
SUBTOPICS = "subtopics"
VIDEOS = "videos"
QUIZZES = "quizzes"
USERS = "users"

OPTION_LABELS = ("a", "b", "c", "d")

# ==================== INGESTION PAYLOAD ====================
# Nested names are optional: a node without its name is skipped, not rejected.

class _FormModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class QuestionOptions(_FormModel):
    a: Optional[str] = ""
    b: Optional[str] = ""
    c: Optional[str] = ""
    d: Optional[str] = ""


class QuestionIn(_FormModel):
    que: Optional[str] = None
    opt: Optional[QuestionOptions] = None
    correct_answer: Optional[str] = Field(default=None, alias="correctAnswer")
    explanation: Optional[str] = None

    def is_valid(self) -> bool:
        return bool(self.que and self.que.strip() and self.correct_answer)


class QuizIn(_FormModel):
    questions: Optional[List[QuestionIn]] = None


class VideoIn(_FormModel):
    video_url: Optional[str] = Field(default=None, alias="videoUrl")
    quiz: Optional[QuizIn] = None


class SubtopicIn(_FormModel):
    subtopic_name: Optional[str] = Field(default=None, alias="subtopicName")
    videos: Optional[List[VideoIn]] = None


class TopicIn(_FormModel):
    topic_name: Optional[str] = Field(default=None, alias="topicName")
    subtopics: Optional[List[SubtopicIn]] = None


class ChapterIn(_FormModel):
    chapter_name: Optional[str] = Field(default=None, alias="chapterName")
    topics: Optional[List[TopicIn]] = None


class CurriculumSubmission(_FormModel):
    subject_name: str = Field(..., alias="subjectName", min_length=1)
    board: Board
    grade: str = Field(..., min_length=1)
    chapters: List[ChapterIn]

    @field_validator("subject_name")
    @classmethod
    def strip_subject_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Subject name is required")
        return v

    @field_validator("grade", mode="before")
    @classmethod
    def stringify_grade(cls, v):
        if isinstance(v, int):
            v = str(v)
        if isinstance(v, str):
            v = v.strip()
        return v

# ==================== SINGLE VIDEO ====================

class VideoCreate(_FormModel):
    sub_name: str = Field(..., alias="subName", min_length=1)
    chapter_name: str = Field(..., alias="chapterName", min_length=1)
    topic_name: str = Field(..., alias="topicName", min_length=1)
    subtopic_name: str = Field(..., alias="subtopicName", min_length=1)
    video_url: str = Field(..., alias="videoUrl", min_length=1)

# ==================== IDENTITY ====================

class LearnerIdentity(BaseModel):
    user_id: str
    board: Optional[str] = None
    grade: Optional[str] = None
