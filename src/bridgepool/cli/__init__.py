"""CLI module for bridgepool."""

from bridgepool.cli.main import cli

__all__ = ["cli"]
