"""End-to-end ingestion run.

discover → retrieve → parse → export. Discovery and retrieval share one
``httpx.AsyncClient`` inside a single event loop; parsing and export are
synchronous. Per-file fetch failures are counted; every other failure
aborts the run with a ``BridgePoolError``.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from contextlib import AbstractContextManager, nullcontext
from dataclasses import asdict, dataclass
from typing import Any

import httpx
import structlog

from bridgepool.config.models import BridgePoolConfig
from bridgepool.core.logging import clear_run_id, set_run_id
from bridgepool.export.ops import export_assignments
from bridgepool.export.store import Store
from bridgepool.fetch.index import discover
from bridgepool.fetch.models import FetchReport, IndexEntry
from bridgepool.fetch.retriever import Retriever
from bridgepool.parse.parser import parse_files

log = structlog.get_logger(__name__)

Stage = Callable[[str], AbstractContextManager[Any]]


@dataclass
class RunSummary:
    """Counts reported at the end of a successful run."""

    files_discovered: int = 0
    files_fetched: int = 0
    fetch_errors: int = 0
    files_parsed: int = 0
    files_exported: int = 0
    entries_exported: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


async def collect(
    config: BridgePoolConfig,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> tuple[list[IndexEntry], FetchReport]:
    """Discover and download snapshot files.

    ``transport`` replaces the network layer (tests use ``httpx.MockTransport``).
    """
    collector = config.collector
    async with httpx.AsyncClient(
        transport=transport,
        timeout=config.fetch.timeout_sec,
        follow_redirects=True,
    ) as client:
        entries = await discover(
            client,
            collector.base_url,
            collector.directories,
            collector.min_last_modified_millis,
            max_files_per_directory=collector.max_files_per_directory or None,
            skip_missing_directories=collector.skip_missing_directories,
            allow_empty=collector.allow_empty,
            timeout_sec=config.fetch.index_timeout_sec,
        )
        retriever = Retriever(
            client,
            max_concurrency=config.fetch.max_concurrency,
            timeout_sec=config.fetch.timeout_sec,
        )
        report = await retriever.fetch_all(collector.base_url, entries)
    return entries, report


def run_ingest(
    config: BridgePoolConfig,
    *,
    stage: Stage = nullcontext,
    transport: httpx.AsyncBaseTransport | None = None,
    store: Store | None = None,
) -> RunSummary:
    """Run one ingestion.

    Args:
        config: Resolved configuration.
        stage: Context manager factory wrapped around each stage, given the
            stage label (the CLI passes ``progress.task``).
        transport: Optional httpx transport override.
        store: Optional store; defaults to one built from ``config.database.url``.

    Raises:
        BridgePoolError: The first fatal failure (discovery, parse or persistence).
    """
    set_run_id()
    log.info("ingest_started", base_url=config.collector.base_url)
    summary = RunSummary()
    owns_store = store is None
    try:
        if store is None:
            # Engine creation opens no connection; a bad URL fails before any download
            store = Store(config.database.url)
        with stage("Fetching snapshots"):
            entries, report = asyncio.run(collect(config, transport=transport))
        summary.files_discovered = len(entries)
        summary.files_fetched = report.fetched_count
        summary.fetch_errors = report.error_count

        with stage("Parsing snapshots"):
            assignment_sets = parse_files(report.files)
        summary.files_parsed = len(assignment_sets)

        with stage("Exporting assignments"):
            exported = export_assignments(
                assignment_sets,
                store,
                clear=config.database.clear,
                batch_size=config.database.batch_size,
                max_files=config.database.max_files_per_run or None,
            )
        summary.files_exported = exported.files
        summary.entries_exported = exported.entries

        log.info("ingest_complete", **summary.to_dict())
        return summary
    finally:
        if owns_store and store is not None:
            store.dispose()
        clear_run_id()
