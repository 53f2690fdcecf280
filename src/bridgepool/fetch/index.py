"""Index discovery: fetch index/index.json and select snapshot files.

The walk is split in two so the selection logic can be tested without
a network:

- ``fetch_index``: GET + decode into ``IndexDocument``
- ``collect_entries``: traverse requested directories, apply the
  freshness floor and the per-directory cap
"""

from __future__ import annotations

from datetime import UTC, datetime

import httpx
import structlog
from pydantic import ValidationError

from bridgepool.config.constants import INDEX_PATH, INDEX_TIMESTAMP_FORMAT
from bridgepool.core.errors import DiscoveryError
from bridgepool.fetch.models import IndexDirectory, IndexDocument, IndexEntry

log = structlog.get_logger(__name__)


def normalize_base_url(url: str) -> str:
    """Ensure the base URL ends with exactly one trailing slash."""
    return url.rstrip("/") + "/"


def parse_index_timestamp(value: str) -> int:
    """Parse an index ``last_modified`` ("YYYY-MM-DD HH:MM", UTC) to epoch ms."""
    parsed = datetime.strptime(value, INDEX_TIMESTAMP_FORMAT).replace(tzinfo=UTC)
    return int(parsed.timestamp()) * 1000


async def fetch_index(
    client: httpx.AsyncClient,
    base_url: str,
    *,
    timeout_sec: float | None = None,
) -> IndexDocument:
    """Download and decode the index document.

    Raises:
        DiscoveryError: INDEX_UNREACHABLE on transport errors or non-2xx
            status, INDEX_INVALID on malformed JSON or unexpected shape.
    """
    url = normalize_base_url(base_url) + INDEX_PATH
    try:
        response = await client.get(url, timeout=timeout_sec)
        response.raise_for_status()
    except httpx.HTTPError as e:
        raise DiscoveryError.index_unreachable(url, str(e) or type(e).__name__) from e

    try:
        document = IndexDocument.model_validate_json(response.content)
    except ValidationError as e:
        raise DiscoveryError.index_invalid(url, str(e)) from e

    log.info("index_fetched", url=url, bytes=len(response.content))
    return document


def find_directory(index: IndexDocument, directory: str) -> IndexDirectory:
    """Walk ``directory`` (slash separated) segment by segment.

    Raises:
        DiscoveryError: DIRECTORY_NOT_FOUND naming the first missing segment.
    """
    node: IndexDirectory = index
    walked: list[str] = []
    for segment in directory.strip("/").split("/"):
        child = node.children.get(segment)
        if child is None:
            raise DiscoveryError.directory_not_found(directory, segment, "/".join(walked))
        walked.append(segment)
        node = child
    return node


def _select_files(
    node: IndexDirectory,
    directory: str,
    min_last_modified_millis: int,
    max_files: int | None,
) -> list[IndexEntry]:
    prefix = directory.strip("/")
    selected: list[IndexEntry] = []
    for file in node.files:
        try:
            last_modified = parse_index_timestamp(file.last_modified)
        except ValueError as e:
            raise DiscoveryError.index_invalid(
                f"{prefix}/{file.path}", f"invalid last_modified {file.last_modified!r}: {e}"
            ) from e
        if last_modified >= min_last_modified_millis:
            selected.append(IndexEntry(path=f"{prefix}/{file.path}", last_modified_millis=last_modified))

    if max_files and len(selected) > max_files:
        selected.sort(key=lambda entry: entry.last_modified_millis, reverse=True)
        log.info(
            "directory_capped",
            directory=directory,
            matched=len(selected),
            kept=max_files,
        )
        selected = selected[:max_files]
    return selected


def collect_entries(
    index: IndexDocument,
    directories: list[str],
    min_last_modified_millis: int,
    *,
    max_files_per_directory: int | None = None,
    skip_missing_directories: bool = False,
    allow_empty: bool = False,
) -> list[IndexEntry]:
    """Select snapshot files from ``directories`` newer than the floor.

    Args:
        index: Decoded index document.
        directories: Slash-separated directory paths relative to the index root.
        min_last_modified_millis: Files last modified before this are excluded.
        max_files_per_directory: Keep only the newest N per directory; None or 0 keeps all.
        skip_missing_directories: Log and skip absent directories instead of raising.
        allow_empty: Return an empty list instead of raising NO_FILES_FOUND.

    Returns:
        Union of the selected entries over all directories.

    Raises:
        DiscoveryError: DIRECTORY_NOT_FOUND, INDEX_INVALID, or NO_FILES_FOUND.
    """
    if max_files_per_directory is not None and max_files_per_directory < 0:
        raise ValueError(f"max_files_per_directory must be >= 0, got {max_files_per_directory}")

    entries: list[IndexEntry] = []
    for directory in directories:
        try:
            node = find_directory(index, directory)
        except DiscoveryError as e:
            if not skip_missing_directories:
                raise
            log.warning(
                "directory_not_found",
                directory=directory,
                segment=e.details["segment"],
                walked=e.details["walked"],
            )
            continue

        selected = _select_files(node, directory, min_last_modified_millis, max_files_per_directory)
        log.info(
            "directory_collected",
            directory=directory,
            listed=len(node.files),
            selected=len(selected),
        )
        entries.extend(selected)

    if not entries and not allow_empty:
        raise DiscoveryError.no_files_found(directories)
    return entries


async def discover(
    client: httpx.AsyncClient,
    base_url: str,
    directories: list[str],
    min_last_modified_millis: int,
    *,
    max_files_per_directory: int | None = None,
    skip_missing_directories: bool = False,
    allow_empty: bool = False,
    timeout_sec: float | None = None,
) -> list[IndexEntry]:
    """Fetch the index and select snapshot files (see ``collect_entries``)."""
    index = await fetch_index(client, base_url, timeout_sec=timeout_sec)
    entries = collect_entries(
        index,
        directories,
        min_last_modified_millis,
        max_files_per_directory=max_files_per_directory,
        skip_missing_directories=skip_missing_directories,
        allow_empty=allow_empty,
    )
    log.info("discovery_complete", directories=directories, files=len(entries))
    return entries
