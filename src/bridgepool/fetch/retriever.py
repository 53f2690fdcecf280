"""Concurrent snapshot retrieval with a bounded admission gate.

Each entry is fetched by its own task. A task acquires a semaphore slot
before issuing its request and releases it once the body has been read
or the request failed, so at most ``max_concurrency`` requests are in
flight. Per-file failures are logged and counted, never raised.
"""

from __future__ import annotations

import asyncio

import httpx
import structlog

from bridgepool.config.constants import DEFAULT_MAX_CONCURRENCY
from bridgepool.core.errors import FetchError
from bridgepool.fetch.index import normalize_base_url
from bridgepool.fetch.models import FetchedFile, FetchReport, IndexEntry

log = structlog.get_logger(__name__)


class Retriever:
    """Fetch snapshot files for discovered index entries.

    Usage::

        async with httpx.AsyncClient() as client:
            retriever = Retriever(client, max_concurrency=20, timeout_sec=30.0)
            report = await retriever.fetch_all(base_url, entries)
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        timeout_sec: float = 30.0,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError(f"max_concurrency must be >= 1, got {max_concurrency}")
        self.client = client
        self.max_concurrency = max_concurrency
        self.timeout_sec = timeout_sec

    async def fetch_all(self, base_url: str, entries: list[IndexEntry]) -> FetchReport:
        """Fetch every entry; return the successes and the failure count.

        Results keep the order of ``entries``. Cancelling the caller cancels
        all outstanding fetches. An unexpected exception in one fetch cancels
        the others, and is re-raised once all of them have finished.
        """
        base = normalize_base_url(base_url)
        gate = asyncio.Semaphore(self.max_concurrency)
        log.info("fetch_started", files=len(entries), max_concurrency=self.max_concurrency)

        async def run(entry: IndexEntry) -> FetchedFile | FetchError:
            async with gate:
                return await self._fetch_one(base, entry)

        try:
            async with asyncio.TaskGroup() as group:
                tasks = [group.create_task(run(entry)) for entry in entries]
        except ExceptionGroup as eg:
            raise eg.exceptions[0]

        report = FetchReport()
        for task in tasks:
            result = task.result()
            if isinstance(result, FetchError):
                report.error_count += 1
            else:
                report.files.append(result)

        log.info("fetch_complete", fetched=report.fetched_count, errors=report.error_count)
        return report

    async def _fetch_one(self, base: str, entry: IndexEntry) -> FetchedFile | FetchError:
        url = base + entry.path
        try:
            async with asyncio.timeout(self.timeout_sec):
                response = await self.client.get(url)
                response.raise_for_status()
                raw_bytes = response.content
        except TimeoutError:
            return self._failed(FetchError.timeout(entry.path, self.timeout_sec))
        except httpx.HTTPError as e:
            return self._failed(FetchError.failed(entry.path, str(e) or type(e).__name__))

        try:
            text = raw_bytes.decode("utf-8")
        except UnicodeDecodeError as e:
            return self._failed(FetchError.decode_failed(entry.path, str(e)))

        log.debug("file_fetched", path=entry.path, bytes=len(raw_bytes))
        return FetchedFile(
            path=entry.path,
            last_modified_millis=entry.last_modified_millis,
            raw_bytes=raw_bytes,
            text=text,
        )

    @staticmethod
    def _failed(error: FetchError) -> FetchError:
        log.error("fetch_failed", error=error.error_name, **error.details)
        return error
