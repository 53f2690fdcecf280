"""Bridge pool assignment snapshot parser.

Format::

    bridge-pool-assignment 2022-04-09 00:29:37
    005fd4d7decbb250055b861579e6fdc79ad17bee email transport=obfs4
    01ea4fb2da2086e71e7ca84c683fcadd2aa9036b https ip=4 distributed=true

The header is strict: it must exist and be exactly ``token date time``.
Body lines are lenient: a line without an assignment payload is skipped.

Lines of the decoded text and of the raw bytes are split on the same
``\\n`` boundaries, so each entry keeps its original bytes for digesting.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from datetime import UTC, datetime
from enum import Enum

import structlog

from bridgepool.config.constants import (
    HEADER_FIELD_COUNT,
    HEADER_TIMESTAMP_FORMAT,
    HEADER_TOKEN,
)
from bridgepool.core.errors import ParseError
from bridgepool.fetch.models import FetchedFile
from bridgepool.parse.assignment import parse_assignment
from bridgepool.parse.models import AssignmentSet

log = structlog.get_logger(__name__)

# bytes.strip() default set; str.strip() would also remove Unicode spaces
_ASCII_WHITESPACE = " \t\n\r\x0b\x0c"


class ParserState(Enum):
    SEEK_HEADER = "seek_header"
    IN_BODY = "in_body"
    DONE = "done"


def parse_header_line(line: str, *, path: str = "<memory>") -> int:
    """Parse ``bridge-pool-assignment YYYY-MM-DD HH:MM:SS`` to epoch ms (UTC).

    Raises:
        ParseError: MALFORMED_HEADER on a wrong field count, token or timestamp.
    """
    parts = line.split()
    if len(parts) != HEADER_FIELD_COUNT or parts[0] != HEADER_TOKEN:
        raise ParseError.malformed_header(
            path, line, f"expected '{HEADER_TOKEN} YYYY-MM-DD HH:MM:SS'"
        )
    try:
        published = datetime.strptime(f"{parts[1]} {parts[2]}", HEADER_TIMESTAMP_FORMAT)
    except ValueError as e:
        raise ParseError.malformed_header(path, line, str(e)) from e
    return int(published.replace(tzinfo=UTC).timestamp()) * 1000


def split_entry_line(line: str) -> tuple[str, str] | None:
    """Split a trimmed body line into ``(fingerprint, assignment)``.

    Returns None when the line has no whitespace separator.
    """
    parts = line.split(None, 1)
    if len(parts) < 2:
        return None
    return parts[0], parts[1]


def _lines(file: FetchedFile) -> Iterator[tuple[str, bytes]]:
    """Pair each trimmed text line with its trimmed raw bytes.

    Both sides trim the same ASCII whitespace, so a raw line always decodes
    to its text line.
    """
    for text_line, raw_line in zip(
        file.text.split("\n"), file.raw_bytes.split(b"\n"), strict=True
    ):
        yield text_line.strip(_ASCII_WHITESPACE), raw_line.strip()


def parse_file(file: FetchedFile) -> AssignmentSet:
    """Parse one fetched snapshot.

    Raises:
        ParseError: MISSING_HEADER or MALFORMED_HEADER.
    """
    state = ParserState.SEEK_HEADER
    result: AssignmentSet | None = None
    skipped = 0

    for line, raw_line in _lines(file):
        if state is ParserState.SEEK_HEADER:
            if not line.startswith(HEADER_TOKEN):
                continue
            published = parse_header_line(line, path=file.path)
            result = AssignmentSet(
                path=file.path,
                header=HEADER_TOKEN,
                published_millis=published,
                file_raw_bytes=file.raw_bytes,
            )
            state = ParserState.IN_BODY
            continue

        if line.startswith(HEADER_TOKEN):
            continue
        split = split_entry_line(line)
        if split is None:
            if line:
                skipped += 1
                log.debug("body_line_skipped", path=file.path, line=line)
            continue
        fingerprint, assignment = split
        result.add(fingerprint, parse_assignment(assignment), raw_line)  # type: ignore[union-attr]

    state = ParserState.DONE
    if result is None:
        raise ParseError.missing_header(file.path, HEADER_TOKEN)

    log.debug(
        "file_parsed",
        path=file.path,
        published_millis=result.published_millis,
        entries=len(result),
        skipped=skipped,
        state=state.value,
    )
    return result


def parse_files(files: Iterable[FetchedFile]) -> list[AssignmentSet]:
    """Parse every file; the first header error aborts with that file's path."""
    parsed = [parse_file(file) for file in files]
    log.info(
        "files_parsed",
        files=len(parsed),
        entries=sum(len(assignment_set) for assignment_set in parsed),
    )
    return parsed
