"""Fetch module - discover and download snapshot files from CollecTor.

- ``discover``: index/index.json → list of ``IndexEntry``
- ``Retriever.fetch_all``: entries → ``FetchReport`` (files + failure count)
"""

from bridgepool.fetch.index import collect_entries, discover, fetch_index, normalize_base_url
from bridgepool.fetch.models import (
    FetchedFile,
    FetchReport,
    IndexDirectory,
    IndexDocument,
    IndexEntry,
    IndexFile,
)
from bridgepool.fetch.retriever import Retriever

__all__ = [
    "collect_entries",
    "discover",
    "fetch_index",
    "normalize_base_url",
    "FetchedFile",
    "FetchReport",
    "IndexDirectory",
    "IndexDocument",
    "IndexEntry",
    "IndexFile",
    "Retriever",
]
