"""Content digests used as primary keys.

Two levels, always composed in this order:

- file digest: SHA-256 of the exact file bytes
- entry digest: SHA-256 of the entry's raw line bytes followed by the
  UTF-8 bytes of the file digest

The same line in two different files therefore gets two different entry
digests, while re-ingesting an identical file reproduces identical keys.
"""

import hashlib


def file_digest(raw_bytes: bytes) -> str:
    """Hex SHA-256 of a whole snapshot file."""
    return hashlib.sha256(raw_bytes).hexdigest()


def entry_digest(raw_line: bytes, file_digest: str) -> str:
    """Hex SHA-256 of ``raw_line || file_digest``."""
    hasher = hashlib.sha256()
    hasher.update(raw_line)
    hasher.update(file_digest.encode("utf-8"))
    return hasher.hexdigest()
