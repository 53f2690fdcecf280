"""Core module exports."""

from bridgepool.core.errors import (
    BridgePoolError,
    ConfigError,
    DiscoveryError,
    ErrorCode,
    FetchError,
    ParseError,
    PersistenceError,
)
from bridgepool.core.logging import (
    clear_run_id,
    configure_logging,
    get_logger,
    get_run_id,
    set_run_id,
)
from bridgepool.core.progress import status, task

__all__ = [
    # Errors
    "BridgePoolError",
    "ConfigError",
    "DiscoveryError",
    "ErrorCode",
    "FetchError",
    "ParseError",
    "PersistenceError",
    # Logging
    "clear_run_id",
    "configure_logging",
    "get_logger",
    "get_run_id",
    "set_run_id",
    # Progress
    "status",
    "task",
]
