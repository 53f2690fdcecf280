"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config() (CLI options)
2. Environment variables (BRIDGEPOOL__SECTION__KEY)
3. YAML config file (--config PATH, or ./bridgepool.yaml)
4. Built-in defaults (this file)

Environment Variable Format:
    BRIDGEPOOL__<SECTION>__<KEY>=<VALUE>

Examples:
    BRIDGEPOOL__LOGGING__LEVEL=DEBUG
    BRIDGEPOOL__COLLECTOR__BASE_URL=https://collector.torproject.org
    BRIDGEPOOL__FETCH__MAX_CONCURRENCY=20
    BRIDGEPOOL__DATABASE__URL=postgresql+psycopg://user:pw@localhost/tor
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from bridgepool.config.constants import (
    DEFAULT_BASE_URL,
    DEFAULT_BATCH_SIZE,
    DEFAULT_DATABASE_URL,
    DEFAULT_DIRECTORIES,
    DEFAULT_MAX_CONCURRENCY,
    DEFAULT_MAX_FILES_PER_DIRECTORY,
    DEFAULT_MAX_FILES_PER_RUN,
    MAX_BATCH_SIZE,
)

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LogOutputConfig(BaseModel):
    """Single logging output configuration.

    Env vars: Not directly configurable via env (use YAML for multi-output).
    """

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        BRIDGEPOOL__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="INFO",
        description="Root log level. DEBUG logs every skipped body line.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


def _split_directories(v: object) -> object:
    if isinstance(v, str):
        return [part.strip() for part in v.split(",") if part.strip()]
    return v


class CollectorConfig(BaseModel):
    """Remote CollecTor instance and discovery policy.

    Env vars:
        BRIDGEPOOL__COLLECTOR__BASE_URL: Base URL of the CollecTor instance
        BRIDGEPOOL__COLLECTOR__DIRECTORIES: JSON list of directories to walk
        BRIDGEPOOL__COLLECTOR__MIN_LAST_MODIFIED_MILLIS: Freshness floor (epoch ms)
    """

    base_url: str = Field(
        default=DEFAULT_BASE_URL,
        description="Base URL of the CollecTor instance. index/index.json is fetched below it.",
    )
    directories: list[str] = Field(
        default_factory=lambda: list(DEFAULT_DIRECTORIES),
        description="Slash-separated directories (relative to the index root) to collect files from.",
    )
    min_last_modified_millis: int = Field(
        default=0,
        description="Files last modified before this instant (epoch ms, UTC) are ignored. 0 keeps all.",
    )
    skip_missing_directories: bool = Field(
        default=False,
        description="Log and skip requested directories absent from the index instead of failing. "
        "RISK: A typo in a directory name silently yields fewer files.",
    )
    allow_empty: bool = Field(
        default=False,
        description="Treat an empty discovery result as a successful no-op run instead of an error.",
    )
    max_files_per_directory: int | None = Field(
        default=DEFAULT_MAX_FILES_PER_DIRECTORY,
        ge=0,
        description="Keep only the newest N files of each directory. None or 0 disables the cap. "
        "TRADEOFF: Higher values fetch more history per run at the cost of memory and time.",
    )

    @field_validator("directories", mode="before")
    @classmethod
    def split_directories(cls, v: object) -> object:
        return _split_directories(v)

    @field_validator("directories")
    @classmethod
    def validate_directories(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("At least one directory is required")
        return v

    @field_validator("min_last_modified_millis")
    @classmethod
    def validate_min_last_modified(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"min_last_modified_millis must be >= 0, got {v}")
        return v


class FetchConfig(BaseModel):
    """Snapshot retrieval configuration.

    Env vars:
        BRIDGEPOOL__FETCH__MAX_CONCURRENCY: Max in-flight file downloads
        BRIDGEPOOL__FETCH__TIMEOUT_SEC: Per-file deadline
    """

    max_concurrency: int = Field(
        default=DEFAULT_MAX_CONCURRENCY,
        description="Max simultaneous file downloads. "
        "RISK: High values may overwhelm the CollecTor mirror.",
    )
    timeout_sec: float = Field(
        default=30.0,
        description="Deadline for one file download (request and body). Expiry counts as a fetch failure.",
    )
    index_timeout_sec: float = Field(
        default=60.0,
        description="Deadline for downloading index/index.json, which can be several MB.",
    )

    @field_validator("max_concurrency")
    @classmethod
    def validate_max_concurrency(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"max_concurrency must be >= 1, got {v}")
        return v

    @field_validator("timeout_sec", "index_timeout_sec")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"Timeout must be positive, got {v}")
        return v


class DatabaseConfig(BaseModel):
    """Relational store configuration.

    Env vars:
        BRIDGEPOOL__DATABASE__URL: SQLAlchemy database URL
        BRIDGEPOOL__DATABASE__CLEAR: Truncate both tables before inserting
        BRIDGEPOOL__DATABASE__BATCH_SIZE: Entry rows per INSERT statement
    """

    url: str = Field(
        default=DEFAULT_DATABASE_URL,
        description="SQLAlchemy database URL, e.g. postgresql+psycopg://user:pw@host/db.",
    )
    clear: bool = Field(
        default=False,
        description="Empty both tables (cascading) before inserting, in the same transaction. "
        "RISK: Destroys all previously ingested history.",
    )
    batch_size: int = Field(
        default=DEFAULT_BATCH_SIZE,
        description="Entry rows per multi-row INSERT, at most 5000 (PostgreSQL bind-parameter limit). "
        "TRADEOFF: Larger batches mean fewer round trips but bigger statements.",
    )
    max_files_per_run: int | None = Field(
        default=DEFAULT_MAX_FILES_PER_RUN,
        ge=0,
        description="Export at most N snapshot files per run. None or 0 disables the cap. "
        "Files beyond the cap are logged and dropped.",
    )

    @field_validator("batch_size")
    @classmethod
    def validate_batch_size(cls, v: int) -> int:
        if not 1 <= v <= MAX_BATCH_SIZE:
            raise ValueError(f"batch_size must be between 1 and {MAX_BATCH_SIZE}, got {v}")
        return v


class BridgePoolConfig(BaseModel):
    """Root configuration for one ingestion run.

    All settings can be configured via:
    1. Environment variables: BRIDGEPOOL__SECTION__KEY
    2. A YAML config file
    3. Direct kwargs to load_config()
    """

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    collector: CollectorConfig = Field(default_factory=CollectorConfig)
    fetch: FetchConfig = Field(default_factory=FetchConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
