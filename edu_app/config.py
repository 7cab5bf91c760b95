"""
Curriculum Service Configuration
Database, auth and cache settings read from the environment
"""

import os
from typing import List


class Config:
    """Environment-backed settings - read once at import"""

    def __init__(self):
        self.MONGO_URL = os.getenv("MONGO_URL", "mongodb://localhost:27017")
        self.MONGO_DB_NAME = os.getenv("MONGO_DB_NAME", "edu_app_db")
        self.JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "")
        self.JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
        self.APP_ENV = os.getenv("APP_ENV", "production").lower()
        self.CACHE_TTL_SECONDS = int(os.getenv("CACHE_TTL_SECONDS", "300"))
        self.SUMMARY_QUESTION_SAMPLE = int(os.getenv("SUMMARY_QUESTION_SAMPLE", "10"))
        self.CORS_ORIGINS = self._parse_origins(os.getenv("CORS_ORIGINS", "*"))

    @property
    def is_development(self) -> bool:
        return self.APP_ENV == "development"

    @staticmethod
    def _parse_origins(origins_str: str) -> List[str]:
        """Parse comma-separated CORS origins"""
        origins = [origin.strip() for origin in origins_str.split(",") if origin.strip()]
        return origins or ["*"]


# Global config instance
config = Config()


def error_detail(exc: Exception) -> str:
    """Internal error text is only exposed in development"""
    return str(exc) if config.is_development else "Internal server error"
