from typing import Any

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_ALLOWED_HOSTS = ["localhost", "127.0.0.1", "testserver"]
DEFAULT_SECRET_KEY = "change-this-secret-key-in-production"
MIN_PRODUCTION_SECRET_LENGTH = 32


def _split_hosts(value: Any) -> list[str]:
    """Turn ``"a.com, b.com"`` (or a list) into a clean host list."""
    if not value:
        return []
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, (list, tuple, set)):
        return []
    return [host for host in (str(item).strip() for item in value) if host]


class Settings(BaseSettings):
    """Runtime configuration, read from the environment and ``.env``."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Runtime
    ENV: str = "development"
    APP_NAME: str = "SubTracker"
    DEBUG: bool = False
    SECRET_KEY: str = DEFAULT_SECRET_KEY
    ALLOWED_HOSTS: list[str] = Field(default_factory=lambda: list(DEFAULT_ALLOWED_HOSTS))
    ENABLE_CSRF_JSON: bool = True

    # Storage
    DATABASE_URL: str = "sqlite+aiosqlite:///./subtracker.db"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"

    # Cancellation: delay before cancelled_at is written, and how long a
    # confirmation token stays valid
    CANCELLATION_GRACE_SECONDS: float = 10.0
    CANCELLATION_CONFIRM_MAX_AGE_SECONDS: int = 5 * 60

    # Failed logins allowed per client/username inside the window
    LOGIN_RATE_LIMIT_MAX: int = 5
    LOGIN_RATE_LIMIT_WINDOW_SECONDS: int = 15 * 60

    # Quote of the day
    LLM_PROVIDER: str = "gemini"
    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-2.5-flash"
    OPENAI_API_KEY: str = ""
    OPENAI_MODEL: str = "gpt-4.1-mini"
    OLLAMA_URL: str = "http://ollama:11434/api/generate"
    OLLAMA_MODEL: str = "phi3"

    @field_validator("ALLOWED_HOSTS", mode="before")
    @classmethod
    def parse_allowed_hosts(cls, value: Any) -> list[str]:
        return _split_hosts(value)

    @field_validator("CANCELLATION_GRACE_SECONDS")
    @classmethod
    def check_grace_period(cls, value: float) -> float:
        if value < 0:
            raise ValueError("CANCELLATION_GRACE_SECONDS must not be negative.")
        return value

    @property
    def is_production(self) -> bool:
        return self.ENV.strip().lower() == "production"

    @model_validator(mode="after")
    def refuse_insecure_production(self) -> "Settings":
        """Fail fast when production still runs on development defaults."""
        if not self.is_production:
            return self
        if self.SECRET_KEY == DEFAULT_SECRET_KEY or len(self.SECRET_KEY) < MIN_PRODUCTION_SECRET_LENGTH:
            raise ValueError("SECRET_KEY must be set to a strong value in production.")
        if not self.ALLOWED_HOSTS or self.ALLOWED_HOSTS == DEFAULT_ALLOWED_HOSTS:
            raise ValueError("ALLOWED_HOSTS must be configured explicitly in production.")
        if self.DATABASE_URL.startswith("sqlite"):
            raise ValueError("Use PostgreSQL in production; sqlite is only for local/dev.")
        return self


settings = Settings()
