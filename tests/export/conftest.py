"""Fixtures for export tests: a temporary SQLite store and parsed snapshots."""

from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

from bridgepool.export.store import Store
from bridgepool.fetch.models import FetchedFile
from bridgepool.parse.models import AssignmentSet
from bridgepool.parse.parser import parse_file

_APR_09 = (
    "bridge-pool-assignment 2022-04-09 00:29:37\n"
    "005fd4d7decbb250055b861579e6fdc79ad17bee email transport=obfs4 ip=4 blocklist=ru\n"
    "01ea4fb2da2086e71e7ca84c683fcadd2aa9036b https transport=obfs4 distributed=true ratio=0.5\n"
    "0a3e5b7c9d1f2e4a6b8c0d2e4f6a8b0c2d4e6f8a moat state=functional bandwidth=high\n"
)

_APR_10 = (
    "bridge-pool-assignment 2022-04-10 00:29:37\n"
    "005fd4d7decbb250055b861579e6fdc79ad17bee email transport=obfs4 ip=4 blocklist=ru\n"
    "1111111111111111111111111111111111111111 settings\n"
)


SNAPSHOTS = {9: _APR_09, 10: _APR_10}


@pytest.fixture
def store(tmp_path: Path) -> Iterator[Store]:
    """File-backed SQLite store, disposed after the test."""
    s = Store(f"sqlite:///{tmp_path / 'bridge_pool.db'}")
    yield s
    s.dispose()


@pytest.fixture
def make_set() -> Callable[..., AssignmentSet]:
    """Parse the April 9 or April 10 snapshot (or custom text) into an AssignmentSet."""

    def _make(
        day: int = 9,
        *,
        text: str | None = None,
        path: str = "recent/bridge-pool-assignments/x",
    ) -> AssignmentSet:
        if text is None:
            text = SNAPSHOTS[day]
        raw = text.encode("utf-8")
        return parse_file(FetchedFile(path=path, last_modified_millis=0, raw_bytes=raw, text=text))

    return _make
