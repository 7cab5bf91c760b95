from fastapi import Depends, HTTPException
from motor.motor_asyncio import AsyncIOMotorDatabase

from edu_app.auth.auth_utils import verify_lum_token
from edu_app.cache.manager import CacheManager, cache
from edu_app.curriculum.models import USERS, LearnerIdentity
from edu_app.curriculum.service import CurriculumService
from edu_app.curriculum.store import CurriculumStore, to_object_id
from edu_app.db.session import get_db

# ==================== DEPENDENCY FUNCTIONS ====================

def get_store(db: AsyncIOMotorDatabase = Depends(get_db)) -> CurriculumStore:
    return CurriculumStore(db)


def get_cache() -> CacheManager:
    """Process-wide read cache"""
    return cache


def get_curriculum_service(
    store: CurriculumStore = Depends(get_store),
    read_cache: CacheManager = Depends(get_cache)
) -> CurriculumService:
    return CurriculumService(store, read_cache)


async def get_current_learner(
    token_payload: dict = Depends(verify_lum_token),
    store: CurriculumStore = Depends(get_store)
) -> LearnerIdentity:
    """
    Resolve the caller's board/grade.
    The user profile wins; token claims are the fallback.
    """
    user_id = token_payload.get("sub") or token_payload.get("id")
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid token.")

    profile = None
    oid = to_object_id(user_id)
    if oid is not None:
        profile = await store.find_one(USERS, {"_id": oid})
    if profile is None:
        profile = await store.find_one(USERS, {"user_id": str(user_id)})
    profile = profile or {}

    board = profile.get("board") or token_payload.get("board")
    grade = profile.get("grade") or token_payload.get("grade")
    return LearnerIdentity(
        user_id=str(user_id),
        board=board,
        grade=str(grade) if grade is not None else None
    )
