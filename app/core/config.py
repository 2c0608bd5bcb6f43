from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "postgresql://studycoach:studycoach@db:5432/studycoach"
    APP_ENV: str = "development"
    SECRET_KEY: str = "changeme-secret-key"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7

    # Comma-separated allowed origins, or "*" to allow all.
    CORS_ORIGINS: str = "*"

    LOG_LEVEL: str = "INFO"
    # "text" or "json"; production always logs JSON.
    LOG_FORMAT: str = "text"

    # Unset → chat and plan fall back to rule-based replies.
    ANTHROPIC_API_KEY: Optional[str] = None
    LLM_MODEL: str = "claude-sonnet-4-20250514"

    RATE_LIMIT_ENABLED: bool = True
    # Shared rate-limit store for multi-worker deployments, unset means per process.
    REDIS_URL: Optional[str] = None

    CHAT_MAX_HISTORY: int = 20
    CHAT_MAX_KEEP: int = 500

    @property
    def cors_origins_list(self) -> list[str]:
        if self.CORS_ORIGINS.strip() == "*":
            return ["*"]
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


settings = Settings()
