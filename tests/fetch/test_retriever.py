"""Tests for concurrent snapshot retrieval (fetch/retriever.py)."""

from __future__ import annotations

import asyncio
from unittest.mock import MagicMock

import httpx
import pytest

from bridgepool.fetch.models import IndexEntry
from bridgepool.fetch.retriever import Retriever

BASE = "https://collector.example"
SNAPSHOT = b"bridge-pool-assignment 2022-04-09 00:29:37\nabc email\n"


def _entries(count: int) -> list[IndexEntry]:
    return [
        IndexEntry(f"recent/bridge-pool-assignments/file-{i:02d}", 1649464320000 + i)
        for i in range(count)
    ]


class InFlightCounter:
    """Async handler that records the peak number of concurrent requests."""

    def __init__(self, delay: float = 0.01) -> None:
        self.delay = delay
        self.current = 0
        self.peak = 0
        self.requests = 0

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests += 1
        self.current += 1
        self.peak = max(self.peak, self.current)
        try:
            await asyncio.sleep(self.delay)
        finally:
            self.current -= 1
        return httpx.Response(200, content=SNAPSHOT)


class TestRetrieverInit:
    """Constructor validation."""

    def test_given_zero_concurrency_then_rejected(self) -> None:
        with pytest.raises(ValueError, match="max_concurrency"):
            Retriever(MagicMock(), max_concurrency=0)


class TestFetchAll:
    """Tests for Retriever.fetch_all."""

    @pytest.mark.asyncio
    async def test_given_many_entries_when_fetched_then_in_flight_never_exceeds_limit(self) -> None:
        """At most max_concurrency requests are outstanding at any time."""
        # Given
        handler = InFlightCounter()
        entries = _entries(12)

        # When
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            report = await Retriever(client, max_concurrency=3).fetch_all(BASE, entries)

        # Then
        assert handler.requests == 12
        assert handler.peak == 3
        assert report.fetched_count == 12
        assert report.error_count == 0

    @pytest.mark.asyncio
    async def test_given_limit_one_when_fetched_then_strictly_sequential(self) -> None:
        handler = InFlightCounter()

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            await Retriever(client, max_concurrency=1).fetch_all(BASE, _entries(4))

        assert handler.peak == 1

    @pytest.mark.asyncio
    async def test_given_success_when_fetched_then_bytes_and_text_match_body(self) -> None:
        """Digest bytes and parse text come from the same body."""
        # Given
        requested: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requested.append(str(request.url))
            return httpx.Response(200, content=SNAPSHOT)

        entry = _entries(1)[0]

        # When
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            report = await Retriever(client).fetch_all(BASE, [entry])

        # Then
        assert requested == [f"{BASE}/{entry.path}"]
        fetched = report.files[0]
        assert fetched.path == entry.path
        assert fetched.last_modified_millis == entry.last_modified_millis
        assert fetched.raw_bytes == SNAPSHOT
        assert fetched.text == SNAPSHOT.decode("utf-8")

    @pytest.mark.asyncio
    async def test_given_mixed_failures_when_fetched_then_counted_not_raised(self) -> None:
        """404, transport and decode failures are counted; the rest succeed in order."""

        # Given
        def handler(request: httpx.Request) -> httpx.Response:
            name = request.url.path.rsplit("/", 1)[1]
            if name == "file-01":
                return httpx.Response(404)
            if name == "file-03":
                raise httpx.ReadError("connection reset", request=request)
            if name == "file-04":
                return httpx.Response(200, content=b"\xff\xfe\xfa")
            return httpx.Response(200, content=name.encode())

        # When
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            report = await Retriever(client, max_concurrency=2).fetch_all(BASE, _entries(6))

        # Then
        assert report.error_count == 3
        assert [file.text for file in report.files] == ["file-00", "file-02", "file-05"]

    @pytest.mark.asyncio
    async def test_given_slow_response_when_deadline_passes_then_counted_as_failure(self) -> None:
        # Given
        async def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("file-00"):
                await asyncio.sleep(5)
            return httpx.Response(200, content=SNAPSHOT)

        # When
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            report = await Retriever(client, timeout_sec=0.05).fetch_all(BASE, _entries(2))

        # Then
        assert report.error_count == 1
        assert [file.path for file in report.files] == [_entries(2)[1].path]

    @pytest.mark.asyncio
    async def test_given_no_entries_when_fetched_then_empty_report(self) -> None:
        async with httpx.AsyncClient(transport=httpx.MockTransport(InFlightCounter())) as client:
            report = await Retriever(client).fetch_all(BASE, [])

        assert report.files == []
        assert report.error_count == 0

    @pytest.mark.asyncio
    async def test_given_unexpected_exception_when_fetched_then_siblings_cancelled_first(
        self,
    ) -> None:
        """A non-HTTP failure propagates only after the other fetches were cancelled."""
        # Given
        cancelled: list[str] = []

        async def handler(request: httpx.Request) -> httpx.Response:
            name = request.url.path.rsplit("/", 1)[1]
            if name == "file-00":
                await asyncio.sleep(0.01)
                raise RuntimeError("handler bug")
            try:
                await asyncio.sleep(5)
            except asyncio.CancelledError:
                cancelled.append(name)
                raise
            return httpx.Response(200, content=SNAPSHOT)

        # When
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(RuntimeError, match="handler bug"):
                await Retriever(client, max_concurrency=4).fetch_all(BASE, _entries(4))

            # Then
            assert sorted(cancelled) == ["file-01", "file-02", "file-03"]
