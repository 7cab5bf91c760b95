# ============================================================================
# db/session.py - Database Session Management
# ============================================================================

import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from edu_app.config import config

logger = logging.getLogger(__name__)


class DatabaseManager:
    """Manages MongoDB connection lifecycle"""

    def __init__(self):
        self.client: Optional[AsyncIOMotorClient] = None
        self.db: Optional[AsyncIOMotorDatabase] = None

    def connect(self, mongo_url: Optional[str] = None, db_name: Optional[str] = None):
        """Initialize MongoDB connection"""
        mongo_url = mongo_url or config.MONGO_URL
        if not mongo_url:
            raise RuntimeError("FATAL: MONGO_URL environment variable required")

        self.client = AsyncIOMotorClient(mongo_url)
        self.db = self.client[db_name or config.MONGO_DB_NAME]
        logger.info("MongoDB connected (db=%s)", self.db.name)

    def disconnect(self):
        """Close MongoDB connection"""
        if self.client:
            self.client.close()
            self.client = None
            self.db = None
            logger.info("MongoDB disconnected")

    def get_database(self) -> AsyncIOMotorDatabase:
        """Get database instance for dependency injection"""
        if self.db is None:
            raise RuntimeError("Database not initialized. Call connect() first.")
        return self.db


# Global database manager
db_manager = DatabaseManager()


def get_db() -> AsyncIOMotorDatabase:
    """FastAPI dependency for database access"""
    return db_manager.get_database()
