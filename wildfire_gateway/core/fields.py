"""Tolerant readers for loosely-typed upstream mappings.

None of these raise: absent keys come back as ``MISSING`` and malformed
values collapse to the caller's default.
"""

from __future__ import annotations

import datetime
import math
from collections.abc import Callable, Mapping
from typing import Any

MISSING: Any = object()

Accessor = Callable[[Mapping[str, Any]], Any]


def path(*keys: str) -> Accessor:
    """Accessor for a nested key path; yields ``MISSING`` when any hop is absent."""

    def get(raw: Mapping[str, Any]) -> Any:
        node: Any = raw
        for key in keys:
            if not isinstance(node, Mapping) or key not in node:
                return MISSING
            node = node[key]
        return MISSING if node is None else node

    return get


def first_present(raw: Mapping[str, Any], accessors: tuple[Accessor, ...]) -> Any:
    for accessor in accessors:
        value = accessor(raw)
        if value is not MISSING:
            return value
    return MISSING


def as_number(value: Any, default: float = 0.0) -> float:
    if isinstance(value, bool):
        return default
    if isinstance(value, int | float):
        try:
            number = float(value)
        except OverflowError:
            return default
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return default
    else:
        return default
    return number if math.isfinite(number) else default


def as_flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes", "y")
    if isinstance(value, int | float):
        return value != 0
    return bool(value)


def as_epoch_seconds(value: Any, default: float) -> float:
    """Seconds, milliseconds or ISO-8601 → epoch seconds; anything else → *default*."""
    if isinstance(value, str):
        text = value.strip()
        try:
            value = float(text)
        except ValueError:
            try:
                parsed = datetime.datetime.fromisoformat(text)
            except ValueError:
                return default
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=datetime.UTC)
            return parsed.timestamp()
    number = as_number(value)
    if number <= 0:
        return default
    # Past year ~2286 in seconds means the producer sent milliseconds.
    return number / 1000.0 if number > 1e10 else number
