"""Bridgepool error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 3xxx: Discovery
- 4xxx: Fetch
- 5xxx: Parse
- 6xxx: Persistence
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002
    CONFIG_FILE_NOT_FOUND = 2004

    # Discovery (3xxx)
    INDEX_UNREACHABLE = 3001
    INDEX_INVALID = 3002
    DIRECTORY_NOT_FOUND = 3003
    NO_FILES_FOUND = 3004

    # Fetch (4xxx)
    FETCH_FAILED = 4001
    FETCH_TIMEOUT = 4002
    FETCH_DECODE_FAILED = 4003

    # Parse (5xxx)
    MISSING_HEADER = 5001
    MALFORMED_HEADER = 5002

    # Persistence (6xxx)
    CONNECTION_FAILED = 6001
    SCHEMA_FAILED = 6002
    WRITE_FAILED = 6003


@dataclass(frozen=True, slots=True)
class BridgePoolError(Exception):
    """Base error with structured context for CLI and log output."""

    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'MISSING_HEADER')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigError(BridgePoolError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )

    @classmethod
    def file_not_found(cls, path: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_FILE_NOT_FOUND,
            message=f"Config file not found: {path}",
            details={"path": path},
        )


class DiscoveryError(BridgePoolError):
    """Index retrieval and directory traversal errors. Always fatal."""

    @classmethod
    def index_unreachable(cls, url: str, reason: str) -> "DiscoveryError":
        return cls(
            code=ErrorCode.INDEX_UNREACHABLE,
            message=f"Failed to fetch index at {url}: {reason}",
            details={"url": url, "reason": reason},
        )

    @classmethod
    def index_invalid(cls, url: str, reason: str) -> "DiscoveryError":
        return cls(
            code=ErrorCode.INDEX_INVALID,
            message=f"Failed to parse index at {url}: {reason}",
            details={"url": url, "reason": reason},
        )

    @classmethod
    def directory_not_found(cls, directory: str, segment: str, walked: str) -> "DiscoveryError":
        return cls(
            code=ErrorCode.DIRECTORY_NOT_FOUND,
            message=f"Directory not found: '{segment}' in '{walked or '/'}' (requested {directory})",
            details={"directory": directory, "segment": segment, "walked": walked},
        )

    @classmethod
    def no_files_found(cls, directories: list[str]) -> "DiscoveryError":
        return cls(
            code=ErrorCode.NO_FILES_FOUND,
            message=f"No bridge pool assignment files found in directories: {directories}",
            details={"directories": list(directories)},
        )


class FetchError(BridgePoolError):
    """Per-file retrieval failure.

    Never raised out of the retriever; recorded, logged and counted.
    """

    @classmethod
    def failed(cls, path: str, reason: str) -> "FetchError":
        return cls(
            code=ErrorCode.FETCH_FAILED,
            message=f"Failed to fetch {path}: {reason}",
            retryable=True,
            details={"path": path, "reason": reason},
        )

    @classmethod
    def timeout(cls, path: str, timeout_sec: float) -> "FetchError":
        return cls(
            code=ErrorCode.FETCH_TIMEOUT,
            message=f"Timed out fetching {path} after {timeout_sec}s",
            retryable=True,
            details={"path": path, "timeout_sec": timeout_sec},
        )

    @classmethod
    def decode_failed(cls, path: str, reason: str) -> "FetchError":
        return cls(
            code=ErrorCode.FETCH_DECODE_FAILED,
            message=f"Response body of {path} is not valid UTF-8: {reason}",
            details={"path": path, "reason": reason},
        )


class ParseError(BridgePoolError):
    """Snapshot header errors. Fatal for the file and the run."""

    @classmethod
    def missing_header(cls, path: str, token: str) -> "ParseError":
        return cls(
            code=ErrorCode.MISSING_HEADER,
            message=f"No '{token}' line found in {path}",
            details={"path": path, "token": token},
        )

    @classmethod
    def malformed_header(cls, path: str, line: str, reason: str) -> "ParseError":
        return cls(
            code=ErrorCode.MALFORMED_HEADER,
            message=f"Invalid header line in {path}: {line!r} ({reason})",
            details={"path": path, "line": line, "reason": reason},
        )


class PersistenceError(BridgePoolError):
    """Database errors. The enclosing transaction is always rolled back."""

    @classmethod
    def connection_failed(cls, url: str, reason: str) -> "PersistenceError":
        return cls(
            code=ErrorCode.CONNECTION_FAILED,
            message=f"Failed to connect to database {url}: {reason}",
            retryable=True,
            details={"url": url, "reason": reason},
        )

    @classmethod
    def schema_failed(cls, reason: str) -> "PersistenceError":
        return cls(
            code=ErrorCode.SCHEMA_FAILED,
            message=f"Failed to prepare schema: {reason}",
            details={"reason": reason},
        )

    @classmethod
    def write_failed(cls, stage: str, reason: str, **details: Any) -> "PersistenceError":
        return cls(
            code=ErrorCode.WRITE_FAILED,
            message=f"Failed to {stage}: {reason}",
            details={"stage": stage, "reason": reason, **details},
        )
