"""General utility helpers shared across modules."""

from __future__ import annotations

from dataclasses import asdict, is_dataclass
from enum import Enum
import json
from typing import Any


def _normalise_value(value: Any) -> Any:
    """Convert objects to JSON-friendly representations."""

    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return _normalise_value(to_dict())
    if isinstance(value, Enum):
        return value.value
    if is_dataclass(value) and not isinstance(value, type):
        return _normalise_value(asdict(value))
    if isinstance(value, set):
        return sorted(_normalise_value(item) for item in value)
    if isinstance(value, (list, tuple)):
        return [_normalise_value(item) for item in value]
    if isinstance(value, dict):
        return {str(key): _normalise_value(val) for key, val in value.items()}
    return value


def json_dumps_sorted(value: Any, *, indent: int | None = None) -> str:
    """Return canonical JSON with sorted keys."""

    normalised = _normalise_value(value)
    separators = (",", ":") if indent is None else (",", ": ")
    return json.dumps(normalised, sort_keys=True, indent=indent, separators=separators)


__all__ = ["json_dumps_sorted"]
