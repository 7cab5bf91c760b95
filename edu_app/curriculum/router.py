import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Depends, Query

from edu_app.config import error_detail
from edu_app.curriculum.dependencies import get_curriculum_service, get_current_learner
from edu_app.curriculum.models import CurriculumSubmission, LearnerIdentity, VideoCreate
from edu_app.curriculum.service import CurriculumService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Curriculum"])


def _server_error(message: str, e: Exception) -> HTTPException:
    logger.exception(message)
    return HTTPException(
        status_code=500,
        detail={"success": False, "message": message, "error": error_detail(e)}
    )

# ==================== ASSEMBLED CONTENT ====================

@router.get("/content")
async def get_complete_content(
    subject: Optional[str] = None,
    learner: LearnerIdentity = Depends(get_current_learner),
    service: CurriculumService = Depends(get_curriculum_service)
):
    """Complete curriculum tree for the caller's board and grade"""
    try:
        return await service.get_complete_content(learner.board, learner.grade, subject)
    except HTTPException:
        raise
    except Exception as e:
        raise _server_error("Error fetching complete curriculum content", e)


@router.get("/subjects")
async def get_subjects(
    board: Optional[str] = None,
    grade: Optional[str] = None,
    service: CurriculumService = Depends(get_curriculum_service)
):
    try:
        return await service.get_subjects(board, grade)
    except HTTPException:
        raise
    except Exception as e:
        raise _server_error("Error fetching subjects", e)

# ==================== FLAT READS ====================

@router.get("/chapters/{subject_name}")
async def get_chapters(
    subject_name: str,
    learner: LearnerIdentity = Depends(get_current_learner),
    service: CurriculumService = Depends(get_curriculum_service)
):
    try:
        return await service.get_chapters(subject_name)
    except HTTPException:
        raise
    except Exception as e:
        raise _server_error("Error fetching chapters", e)


@router.get("/topics/{chapter_id}")
async def get_topics(
    chapter_id: str,
    learner: LearnerIdentity = Depends(get_current_learner),
    service: CurriculumService = Depends(get_curriculum_service)
):
    try:
        return await service.get_topics(chapter_id)
    except HTTPException:
        raise
    except Exception as e:
        raise _server_error("Error fetching topics", e)


@router.get("/subtopics/{topic_id}")
async def get_subtopics(
    topic_id: str,
    learner: LearnerIdentity = Depends(get_current_learner),
    service: CurriculumService = Depends(get_curriculum_service)
):
    try:
        return await service.get_subtopics(topic_id)
    except HTTPException:
        raise
    except Exception as e:
        raise _server_error("Error fetching subtopics", e)


@router.get("/videos/{subtopic_id}")
async def get_videos(
    subtopic_id: str,
    learner: LearnerIdentity = Depends(get_current_learner),
    service: CurriculumService = Depends(get_curriculum_service)
):
    try:
        return await service.get_videos(subtopic_id)
    except HTTPException:
        raise
    except Exception as e:
        raise _server_error("Error fetching videos", e)


@router.get("/video/{video_id}")
async def get_video_by_id(
    video_id: str,
    learner: LearnerIdentity = Depends(get_current_learner),
    service: CurriculumService = Depends(get_curriculum_service)
):
    try:
        return await service.get_video_by_id(video_id)
    except HTTPException:
        raise
    except Exception as e:
        raise _server_error("Error fetching video", e)


@router.get("/quiz")
@router.get("/quiz/{video_id}")
async def get_quiz(
    video_id: Optional[str] = None,
    video_url: Optional[str] = Query(None),
    learner: LearnerIdentity = Depends(get_current_learner),
    service: CurriculumService = Depends(get_curriculum_service)
):
    try:
        return await service.get_quiz(video_id, video_url)
    except HTTPException:
        raise
    except Exception as e:
        raise _server_error("Error fetching quiz", e)

# ==================== WRITES ====================

@router.post("/video", status_code=201)
async def add_video(
    payload: VideoCreate,
    learner: LearnerIdentity = Depends(get_current_learner),
    service: CurriculumService = Depends(get_curriculum_service)
):
    try:
        return await service.add_video(payload)
    except HTTPException:
        raise
    except Exception as e:
        raise _server_error("Failed to add video", e)


@router.post("/postCurriculumForm", status_code=201)
async def post_curriculum_form(
    payload: CurriculumSubmission,
    service: CurriculumService = Depends(get_curriculum_service)
):
    """Bulk, all-or-nothing curriculum ingestion"""
    return await service.post_curriculum_form(payload)


@router.get("/subject/{subject_name}")
async def get_curriculum_by_subject_name(
    subject_name: str,
    service: CurriculumService = Depends(get_curriculum_service)
):
    try:
        return await service.get_curriculum_by_subject_name(subject_name)
    except HTTPException:
        raise
    except Exception as e:
        raise _server_error("Failed to fetch curriculum", e)
