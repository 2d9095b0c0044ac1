from pathlib import Path
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Read from OS env and optional .env file in project root.
    _project_root = Path(__file__).parent.parent

    model_config = SettingsConfigDict(
        env_file=str(_project_root / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Environment / mode
    environment: str = Field(
        "development",
        alias="APP_ENV",
        description="Current runtime environment, e.g. development / production",
    )
    api_docs_override: Optional[bool] = Field(
        default=None,
        alias="ENABLE_API_DOCS",
        description="Force the FastAPI docs routes on or off; defaults to off in production",
    )

    # HTTP server
    host: str = Field("0.0.0.0", alias="HOST", description="Interface uvicorn binds to")
    port: int = Field(8000, alias="PORT", description="Port uvicorn listens on", ge=1, le=65535)
    reload: bool = Field(
        False, alias="RELOAD", description="Restart the server on code changes (development only)"
    )

    # Redis connection string
    redis_url: str = Field(
        "redis://localhost:6379/0",
        alias="REDIS_URL",
        description="Redis connection URL, e.g. 'redis://redis:6379/0'",
    )
    redis_socket_timeout: float = Field(
        5.0,
        alias="REDIS_SOCKET_TIMEOUT",
        description="Upper bound in seconds for a single Redis command or connect attempt",
        gt=0,
    )

    # Chat session keyspace
    chat_session_ttl_seconds: Optional[int] = Field(
        default=None,
        alias="CHAT_SESSION_TTL_SECONDS",
        description="Optional TTL applied to chat records; unset means records never expire",
        ge=1,
    )
    chat_index_lock: Literal["local", "redis"] = Field(
        "local",
        alias="CHAT_INDEX_LOCK",
        description=(
            "Strategy guarding the per-user chat index: 'local' serialises updates "
            "within this process, 'redis' uses a distributed Redis lock"
        ),
    )
    chat_index_lock_timeout: float = Field(
        10.0,
        alias="CHAT_INDEX_LOCK_TIMEOUT",
        description="Lease of the distributed index lock in seconds",
        gt=0,
    )
    chat_index_lock_blocking_timeout: float = Field(
        5.0,
        alias="CHAT_INDEX_LOCK_BLOCKING_TIMEOUT",
        description="How long to wait for the distributed index lock before giving up",
        gt=0,
    )

    # Streaming aggregation
    default_message_role: str = Field(
        "assistant",
        alias="DEFAULT_MESSAGE_ROLE",
        description="Role assigned to aggregated messages when the stream never announced one",
        min_length=1,
    )

    # Application log level for our chat_runtime logger.
    # Can be overridden via LOG_LEVEL env var, e.g. "DEBUG" while debugging.
    log_level: str = Field(
        "INFO",
        alias="LOG_LEVEL",
        description="Application log level: DEBUG, INFO, WARNING, ERROR, CRITICAL",
    )
    log_timezone: Optional[str] = Field(
        default=None,
        alias="LOG_TIMEZONE",
        description="Timezone name for log timestamps, e.g. 'Europe/Berlin'. Defaults to system local time.",
    )
    log_dir: str = Field(
        "logs",
        alias="LOG_DIR",
        description="Directory receiving the daily application log files",
    )

    @property
    def enable_api_docs(self) -> bool:
        if self.api_docs_override is not None:
            return self.api_docs_override
        return self.environment.lower() != "production"


settings = Settings()  # Reads from environment if available
