"""SQLModel definitions for the persisted assignment history.

Two tables, both keyed by content digests:

- bridge_pool_assignments_file: one row per distinct snapshot file
- bridge_pool_assignment: one row per (file, bridge) assignment line

Query indexes live in indexes.py.
"""

from datetime import datetime

from sqlalchemy import REAL, Boolean, Column, DateTime, ForeignKey, Text
from sqlmodel import Field, SQLModel


class AssignmentFile(SQLModel, table=True):
    """A snapshot file, identified by the SHA-256 of its bytes."""

    __tablename__ = "bridge_pool_assignments_file"

    digest: str = Field(sa_column=Column(Text, primary_key=True))
    published: datetime = Field(sa_column=Column(DateTime(timezone=False), nullable=False))
    header: str = Field(sa_column=Column(Text, nullable=False))


class Assignment(SQLModel, table=True):
    """One bridge's assignment within one snapshot file.

    ``digest`` is the entry digest (raw line + file digest);
    ``bridge_pool_assignments`` references the file row.
    """

    __tablename__ = "bridge_pool_assignment"

    digest: str = Field(sa_column=Column(Text, primary_key=True))
    published: datetime = Field(sa_column=Column(DateTime(timezone=False), nullable=False))
    fingerprint: str = Field(sa_column=Column(Text, nullable=False))
    distribution_method: str = Field(sa_column=Column(Text, nullable=False))
    transport: str | None = Field(default=None, sa_column=Column(Text))
    ip: str | None = Field(default=None, sa_column=Column(Text))
    blocklist: str | None = Field(default=None, sa_column=Column(Text))
    bridge_pool_assignments: str | None = Field(
        default=None,
        sa_column=Column(Text, ForeignKey("bridge_pool_assignments_file.digest")),
    )
    distributed: bool = Field(default=False, sa_column=Column(Boolean, default=False))
    state: str | None = Field(default=None, sa_column=Column(Text))
    bandwidth: str | None = Field(default=None, sa_column=Column(Text))
    ratio: float | None = Field(default=None, sa_column=Column(REAL))


EXPORT_TABLES = [AssignmentFile, Assignment]
"""Tables in dependency order (referenced first)."""
