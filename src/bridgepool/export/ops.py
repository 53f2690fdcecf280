"""Persist parsed assignment sets.

One call is one transaction: schema creation, the optional clear and
every insert either all commit or all roll back. Rows are keyed by
content digests and inserted with ON CONFLICT DO NOTHING, so exporting
the same snapshots again changes nothing.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

import structlog
from sqlalchemy.exc import SQLAlchemyError

from bridgepool.config.constants import DEFAULT_BATCH_SIZE, DEFAULT_MAX_FILES_PER_RUN, MAX_BATCH_SIZE
from bridgepool.core.errors import PersistenceError
from bridgepool.digest import entry_digest, file_digest
from bridgepool.export.models import Assignment, AssignmentFile
from bridgepool.export.store import Store, StoreWriter
from bridgepool.parse.models import AssignmentSet

log = structlog.get_logger(__name__)

_EPOCH = datetime(1970, 1, 1)


@dataclass
class ExportSummary:
    """Counts of one export.

    ``files``/``entries`` are rows submitted; ``*_inserted`` excludes rows
    that already existed.
    """

    files: int = 0
    entries: int = 0
    files_inserted: int = 0
    entries_inserted: int = 0
    files_dropped: int = 0


def published_datetime(published_millis: int) -> datetime:
    """Epoch milliseconds → naive UTC datetime."""
    return _EPOCH + timedelta(milliseconds=published_millis)


def _cap_files(assignment_sets: Sequence[AssignmentSet], max_files: int | None) -> Sequence[AssignmentSet]:
    if not max_files or len(assignment_sets) <= max_files:
        return assignment_sets
    dropped = assignment_sets[max_files:]
    log.warning(
        "export_files_capped",
        max_files=max_files,
        dropped=len(dropped),
        first_dropped=dropped[0].path,
    )
    return assignment_sets[:max_files]


def _entry_rows(assignment_set: AssignmentSet, digest: str, published: datetime) -> list[dict[str, Any]]:
    rows = []
    for fingerprint, descriptor in assignment_set.entries.items():
        raw_line = assignment_set.entry_raw_lines[fingerprint]
        rows.append(
            {
                "digest": entry_digest(raw_line, digest),
                "published": published,
                "fingerprint": fingerprint,
                "distribution_method": descriptor.distribution_method,
                "transport": descriptor.transport,
                "ip": descriptor.ip,
                "blocklist": descriptor.blocklist,
                "bridge_pool_assignments": digest,
                "distributed": bool(descriptor.distributed),
                "state": descriptor.state,
                "bandwidth": descriptor.bandwidth,
                "ratio": descriptor.ratio,
            }
        )
    return rows


def _export_one(
    writer: StoreWriter,
    assignment_set: AssignmentSet,
    batch_size: int,
    summary: ExportSummary,
) -> None:
    digest = file_digest(assignment_set.file_raw_bytes)
    published = published_datetime(assignment_set.published_millis)

    try:
        summary.files_inserted += writer.insert_ignore(
            AssignmentFile,
            [{"digest": digest, "published": published, "header": assignment_set.header}],
            "digest",
        )
    except SQLAlchemyError as e:
        raise PersistenceError.write_failed(
            "insert file row", str(e), path=assignment_set.path, digest=digest
        ) from e
    summary.files += 1

    rows = _entry_rows(assignment_set, digest, published)
    for start in range(0, len(rows), batch_size):
        batch = rows[start : start + batch_size]
        try:
            inserted = writer.insert_ignore(Assignment, batch, "digest")
        except SQLAlchemyError as e:
            raise PersistenceError.write_failed(
                "insert assignment batch",
                str(e),
                path=assignment_set.path,
                offset=start,
                rows=len(batch),
            ) from e
        summary.entries += len(batch)
        summary.entries_inserted += inserted
        log.debug(
            "export_batch_flushed",
            path=assignment_set.path,
            rows=len(batch),
            inserted=inserted,
        )


def export_assignments(
    assignment_sets: Sequence[AssignmentSet],
    store: Store,
    *,
    clear: bool = False,
    batch_size: int = DEFAULT_BATCH_SIZE,
    max_files: int | None = DEFAULT_MAX_FILES_PER_RUN,
) -> ExportSummary:
    """Write assignment sets to the store in one transaction.

    Args:
        assignment_sets: Parsed snapshots, in the order they should be written.
        store: Target database.
        clear: Empty both tables first (same transaction).
        batch_size: Entry rows per INSERT statement, 1 to MAX_BATCH_SIZE.
        max_files: Export at most this many files; None or 0 for no cap.

    Raises:
        PersistenceError: CONNECTION_FAILED, SCHEMA_FAILED or WRITE_FAILED.
            Nothing is committed when raised.
    """
    if not 1 <= batch_size <= MAX_BATCH_SIZE:
        raise ValueError(f"batch_size must be between 1 and {MAX_BATCH_SIZE}, got {batch_size}")
    if max_files is not None and max_files < 0:
        raise ValueError(f"max_files must be >= 0, got {max_files}")

    selected = _cap_files(assignment_sets, max_files)
    summary = ExportSummary(files_dropped=len(assignment_sets) - len(selected))

    try:
        with store.transaction() as writer:
            try:
                writer.create_schema()
            except SQLAlchemyError as e:
                raise PersistenceError.schema_failed(str(e)) from e

            if clear:
                try:
                    writer.clear()
                except SQLAlchemyError as e:
                    raise PersistenceError.write_failed("clear tables", str(e)) from e

            for assignment_set in selected:
                _export_one(writer, assignment_set, batch_size, summary)
    except SQLAlchemyError as e:
        raise PersistenceError.write_failed("commit transaction", str(e)) from e

    log.info(
        "export_complete",
        files=summary.files,
        files_inserted=summary.files_inserted,
        entries=summary.entries,
        entries_inserted=summary.entries_inserted,
    )
    return summary
