"""Configuration constants.

Protocol constants of the CollecTor index and the bridge pool assignment
format, plus the defaults used by models.py. The format constants are NOT
user-configurable.
"""

# =============================================================================
# Remote index
# =============================================================================

INDEX_PATH = "index/index.json"
"""Location of the directory listing, relative to the base URL."""

INDEX_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M"
"""last_modified format of index file entries (UTC, no seconds)."""

# =============================================================================
# Snapshot format
# =============================================================================

HEADER_TOKEN = "bridge-pool-assignment"
"""Keyword opening the header line of a snapshot file."""

HEADER_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
"""Publication timestamp format of the header line (UTC)."""

HEADER_FIELD_COUNT = 3
"""token, date, time."""

# =============================================================================
# Defaults
# =============================================================================

DEFAULT_BASE_URL = "https://collector.torproject.org"

DEFAULT_DIRECTORIES = ("recent/bridge-pool-assignments",)

DEFAULT_DATABASE_URL = "postgresql+psycopg://postgres@localhost/bridge_pool"

DEFAULT_MAX_CONCURRENCY = 50
"""Simultaneous downloads against one mirror."""

DEFAULT_MAX_FILES_PER_DIRECTORY = 100
"""Newest files kept per directory at discovery time."""

DEFAULT_MAX_FILES_PER_RUN = 100
"""Snapshot files exported per run."""

DEFAULT_BATCH_SIZE = 1000
"""Entry rows per INSERT statement."""

MAX_BATCH_SIZE = 5000
"""Upper bound on entry rows per INSERT: 12 bound parameters per row must
stay under PostgreSQL's 65535-parameter statement limit."""
