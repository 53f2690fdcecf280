"""Query indexes for the assignment tables.

Kept as plain DDL so the names match existing deployments and the
``(fingerprint, published DESC)`` ordering is explicit. Every statement
is idempotent (IF NOT EXISTS) and valid on PostgreSQL and SQLite.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import text

if TYPE_CHECKING:
    from sqlalchemy import Connection


ADDITIONAL_INDEXES = [
    "CREATE INDEX IF NOT EXISTS bridge_pool_assignment_file_published "
    "ON bridge_pool_assignments_file (published)",
    "CREATE INDEX IF NOT EXISTS bridge_pool_assignment_published "
    "ON bridge_pool_assignment (published)",
    "CREATE INDEX IF NOT EXISTS bridge_pool_assignment_fingerprint "
    "ON bridge_pool_assignment (fingerprint)",
    # Latest assignment of a bridge
    "CREATE INDEX IF NOT EXISTS bridge_pool_assignment_fingerprint_published_desc_index "
    "ON bridge_pool_assignment (fingerprint, published DESC)",
]


def create_additional_indexes(conn: Connection) -> None:
    """Create the query indexes on an open connection (caller owns the transaction)."""
    for sql in ADDITIONAL_INDEXES:
        conn.execute(text(sql))
