"""Parsed representation of a bridge pool assignment snapshot."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class AssignmentDescriptor:
    """Decomposed assignment string of one bridge.

    ``text`` is the assignment string as it appeared after the fingerprint,
    e.g. ``"https transport=obfs4 ip=4 distributed=true"``. Absent keys are
    None.
    """

    text: str
    distribution_method: str
    transport: str | None = None
    ip: str | None = None
    blocklist: str | None = None
    distributed: bool | None = None
    state: str | None = None
    bandwidth: str | None = None
    ratio: float | None = None


@dataclass(slots=True)
class AssignmentSet:
    """All assignments of one snapshot file.

    ``entries`` and ``entry_raw_lines`` always share the same keys: the
    bridge fingerprints, in first-seen order.
    """

    path: str
    header: str
    published_millis: int
    file_raw_bytes: bytes = field(repr=False)
    entries: dict[str, AssignmentDescriptor] = field(default_factory=dict)
    entry_raw_lines: dict[str, bytes] = field(default_factory=dict, repr=False)

    def add(self, fingerprint: str, descriptor: AssignmentDescriptor, raw_line: bytes) -> None:
        """Record one entry. A repeated fingerprint replaces the earlier one."""
        self.entries[fingerprint] = descriptor
        self.entry_raw_lines[fingerprint] = raw_line

    def __len__(self) -> int:
        return len(self.entries)
