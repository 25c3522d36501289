"""Turn operation outputs into plain JSON-ready values."""

from __future__ import annotations

from dataclasses import fields, is_dataclass
from typing import Any, cast


def to_jsonable(value: Any) -> Any:
    """Dataclasses become dicts, tuples become lists, sets become sorted lists."""

    if is_dataclass(value) and not isinstance(value, type):
        return {item.name: to_jsonable(getattr(value, item.name)) for item in fields(value)}
    if isinstance(value, dict):
        typed_dict = cast("dict[object, object]", value)
        return {str(key): to_jsonable(item) for key, item in typed_dict.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in cast("list[object]", value)]
    if isinstance(value, (set, frozenset)):
        return sorted(to_jsonable(item) for item in cast("set[object]", value))
    return value
