# backend/config.py
from pydantic_settings import BaseSettings
from typing import ClassVar, Optional
from pathlib import Path

# Resolve absolute path to the .env file for reliable loading
env_path = Path(__file__).parent.parent / ".env"

class Settings(BaseSettings):
    # Authoritative remote store (REST backend)
    REMOTE_API_URL: str = "http://localhost:3001/api"
    REMOTE_TIMEOUT_SECONDS: float = 5.0

    # Catalog reads are cached in memory for this long
    READ_CACHE_TTL_SECONDS: float = 30.0

    # Persistent local cache
    DATABASE_URL: str = "sqlite:///./storefront_cache.db"

    # Identity tokens issued by the storefront backend
    SECRET_KEY: str = "dev-secret-change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    FRONTEND_URL: Optional[str] = None
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file: ClassVar[str] = str(env_path)
        extra: ClassVar[str] = "ignore"

settings = Settings()
