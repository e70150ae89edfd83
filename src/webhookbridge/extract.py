"""Resolve dot/bracket path expressions against decoded JSON."""

import re
from typing import Any, Optional

_INDEXED_SEGMENT = re.compile(r"^([^\[]+)\[(\d+)\]$")


def _step(current: Any, key: str) -> Any:
    if isinstance(current, dict):
        return current.get(key)
    if isinstance(current, list) and key.isdigit():
        return _index(current, int(key))
    return None


def _index(current: Any, index: int) -> Any:
    if isinstance(current, list) and index < len(current):
        return current[index]
    return None


def extract_value(data: Any, path: Optional[str]) -> Any:
    """Extract a value from nested JSON using a path such as ``a.b[2].c``.

    Each dot-separated segment names a field; a ``[n]`` suffix then indexes
    into the list stored in that field. Traversal never raises: a missing key,
    an out-of-range index or a ``None`` along the way yields ``None``.

    Args:
        data: Decoded JSON value (dict, list or scalar)
        path: Path expression, e.g. ``'sensors.temperature'`` or ``'data.values[0].temp'``

    Returns:
        The value at the path, or None when it cannot be resolved
    """
    if not path or data is None:
        return None

    current = data
    for part in path.split("."):
        if current is None:
            return None

        indexed = _INDEXED_SEGMENT.match(part)
        if indexed:
            key, index = indexed.groups()
            current = _step(current, key)
            if current is None:
                return None
            current = _index(current, int(index))
        else:
            current = _step(current, part)

    return current
