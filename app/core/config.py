# app/core/config.py
import os
from pydantic_settings import BaseSettings
from pydantic import validator
from typing import List, Literal, Optional


class Settings(BaseSettings):
    """Application settings loaded from .env"""

    # === Database ===
    DATABASE_URL: str = "sqlite+aiosqlite:///./procurement.db"
    AUTO_CREATE_TABLES: bool = True

    @validator("DATABASE_URL")
    def validate_database_url(cls, v):
        """Ensure database URL is safe for current environment"""
        env = os.getenv("ENVIRONMENT", "development").lower()
        if env == "production" and "localhost" in v:
            raise ValueError("Production environment cannot use localhost database!")
        return v

    # === Redis / Celery ===
    REDIS_URL: str = "redis://localhost:6379/0"
    CELERY_BROKER_URL: Optional[str] = None
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/1"

    @property
    def celery_broker_url(self) -> str:
        """Broker for the notification worker, the shared Redis unless set"""
        return self.CELERY_BROKER_URL or self.REDIS_URL

    # === Principal tokens ===
    SECRET_KEY: str = "change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 1440
    ADMIN_IDS: List[str] = []

    # === CORS ===
    ALLOWED_ORIGINS: List[str] = ["*"]

    # === Notifications ===
    NOTIFICATIONS_ENABLED: bool = True
    NOTIFY_WEBHOOK_URL: Optional[str] = None
    NOTIFY_TIMEOUT_SECONDS: float = 10.0
    NOTIFY_MAX_RETRIES: int = 3

    # === System ===
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"

    # === Business Rules ===
    DEFAULT_PRODUCT_CATEGORY: str = "General"
    ACTIVE_ORDERS_SCOPE: Literal["global", "submitter"] = "global"
    REJECT_PENDING_REORDER: bool = True
    REQUISITION_LIST_LIMIT: int = 200

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


# Create a global settings instance
settings = Settings()
