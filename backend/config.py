# backend/config.py
from pydantic_settings import BaseSettings
from typing import ClassVar, Optional
from pathlib import Path

# Resolve absolute path to the .env file for reliable loading
env_path = Path(__file__).parent.parent / ".env"

class Settings(BaseSettings):
    SECRET_KEY: str = "dev-secret-change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    DATABASE_URL: str = "sqlite:///./shop.db"
    # Upper bound for waiting on a locked database / a pooled connection
    DB_TIMEOUT_SECONDS: int = 10

    FRONTEND_URL: str = "http://localhost:5173"

    # Order notifications are posted here; left empty they are only logged
    NOTIFY_WEBHOOK_URL: Optional[str] = None
    NOTIFY_TIMEOUT_SECONDS: float = 5.0
    ADMIN_NOTIFY_EMAIL: Optional[str] = None

    STORE_NAME: str = "N&Y Medical Equipment Store"
    CURRENCY: str = "EGP"

    LOG_LEVEL: str = "INFO"

    class Config:
        env_file: ClassVar[str] = str(env_path)
        extra: ClassVar[str] = "ignore"

settings = Settings()
