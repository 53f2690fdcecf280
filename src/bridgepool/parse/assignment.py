"""Assignment string decomposition.

``<method> [key=value ...]`` → ``AssignmentDescriptor``. Only the keys in
``RECOGNIZED_KEYS`` are read; unknown keys and tokens without ``=`` are
ignored. A value that does not convert leaves its field unset.
"""

from __future__ import annotations

from typing import Any

from bridgepool.parse.models import AssignmentDescriptor

RECOGNIZED_KEYS = frozenset(
    {"transport", "ip", "blocklist", "distributed", "state", "bandwidth", "ratio"}
)


def _parse_bool(value: str) -> bool | None:
    lowered = value.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    return None


def _parse_ratio(value: str) -> float | None:
    try:
        return float(value)
    except ValueError:
        return None


def parse_assignment(text: str) -> AssignmentDescriptor:
    """Decompose an assignment string.

    Example::

        >>> d = parse_assignment("https transport=obfs4 distributed=true ratio=0.5")
        >>> d.distribution_method, d.transport, d.distributed, d.ratio
        ('https', 'obfs4', True, 0.5)
    """
    tokens = text.split()
    method = tokens[0] if tokens else ""
    fields: dict[str, Any] = {}

    for token in tokens[1:]:
        key, sep, value = token.partition("=")
        if not sep or key not in RECOGNIZED_KEYS:
            continue
        if key == "distributed":
            fields[key] = _parse_bool(value)
        elif key == "ratio":
            fields[key] = _parse_ratio(value)
        else:
            fields[key] = value

    return AssignmentDescriptor(text=text, distribution_method=method, **fields)
