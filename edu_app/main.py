"""
Curriculum Service - Main Application
Curriculum delivery API: assembled subject trees, flat lookups, bulk authoring
"""

import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from edu_app.config import config
from edu_app.curriculum.router import router as curriculum_router
from edu_app.curriculum.schemas import create_collections_with_validation, create_all_indexes
from edu_app.db.session import db_manager

logging.basicConfig(
    level=logging.DEBUG if config.is_development else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Curriculum Content Engine")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ==================== STARTUP ====================

@app.on_event("startup")
async def startup_event():
    db_manager.connect()
    db = db_manager.get_database()
    await create_collections_with_validation(db)
    await create_all_indexes(db)
    logger.info("Curriculum system initialized")


@app.on_event("shutdown")
async def shutdown_event():
    db_manager.disconnect()

# ==================== ROUTER REGISTRATION ====================
app.include_router(curriculum_router, prefix="/api/curriculum")


@app.get("/")
def read_root():
    return {"message": "Curriculum API Running"}


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
