import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

load_dotenv()


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    # REST backend
    api_base_url: str = Field(
        default=os.getenv("API_BASE_URL", "http://localhost:8000/api")
    )
    api_token: Optional[str] = Field(default=os.getenv("API_TOKEN"))
    api_timeout_seconds: float = Field(
        default=float(os.getenv("API_TIMEOUT_SECONDS", "30"))
    )

    # List view behaviour
    default_page_size: int = Field(default=int(os.getenv("LIST_VIEW_PAGE_SIZE", "50")))
    search_debounce_ms: int = Field(
        default=int(os.getenv("LIST_VIEW_SEARCH_DEBOUNCE_MS", "500"))
    )

    # Preference storage
    preference_backend: str = Field(default=os.getenv("PREFERENCE_BACKEND", "memory"))
    preference_namespace: str = Field(default=os.getenv("PREFERENCE_NAMESPACE", ""))
    redis_url: Optional[str] = Field(
        default=os.getenv("PREFERENCE_REDIS_URL") or os.getenv("REDIS_URL")
    )

    database_url: str = Field(
        default=os.getenv("DATABASE_URL", "sqlite:///./propdash.db")
    )
    db_pool_size: int = Field(default=int(os.getenv("DB_POOL_SIZE", "5")))
    db_max_overflow: int = Field(default=int(os.getenv("DB_MAX_OVERFLOW", "10")))
    db_pool_timeout: int = Field(default=int(os.getenv("DB_POOL_TIMEOUT", "30")))
    db_pool_recycle: int = Field(default=int(os.getenv("DB_POOL_RECYCLE", "1800")))

    log_level: str = Field(default=os.getenv("LOG_LEVEL", "INFO"))

    @field_validator("preference_backend", mode="after")
    @classmethod
    def validate_preference_backend(cls, v: str) -> str:
        value = v.strip().lower()
        if value not in {"memory", "database", "redis"}:
            raise ValueError("PREFERENCE_BACKEND must be memory, database or redis")
        return value

    @field_validator("search_debounce_ms", mode="after")
    @classmethod
    def validate_search_debounce(cls, v: int) -> int:
        return max(0, v)

    @property
    def search_debounce_seconds(self) -> float:
        return self.search_debounce_ms / 1000.0


settings = Settings()
