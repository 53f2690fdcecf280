"""Config module exports."""

from bridgepool.config.loader import load_config
from bridgepool.config.models import (
    BridgePoolConfig,
    CollectorConfig,
    DatabaseConfig,
    FetchConfig,
    LoggingConfig,
)

__all__ = [
    "load_config",
    "BridgePoolConfig",
    "CollectorConfig",
    "DatabaseConfig",
    "FetchConfig",
    "LoggingConfig",
]
