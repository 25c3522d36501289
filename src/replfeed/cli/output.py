"""Writing operation outputs as text, JSON or porcelain lines."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Literal, cast

from replfeed.lib.formatting import FormatContext, TextFormattable
from replfeed.lib.serialization import to_jsonable

__all__ = ["FormatContext", "OutputConfig", "TextFormattable", "emit", "render_text"]

OutputFormat = Literal["text", "json", "porcelain"]
_FORMATS: frozenset[str] = frozenset({"text", "json", "porcelain"})


@dataclass(frozen=True, slots=True)
class OutputConfig:
    format: OutputFormat
    context: FormatContext = field(default_factory=FormatContext)


def normalize_output_format(*, requested: str | None, json_mode: bool) -> OutputFormat:
    """``--json`` wins over ``--format``; no flag means text."""

    if json_mode:
        return "json"
    normalized = (requested or "text").strip().lower()
    if normalized not in _FORMATS:
        raise SystemExit("--format must be one of: text, json, porcelain")
    return cast("OutputFormat", normalized)


def _porcelain_cell(value: Any) -> str:
    if isinstance(value, (dict, list)):
        return json.dumps(value, sort_keys=True)
    return str(value)


def porcelain_lines(value: Any) -> list[str]:
    """One tab-separated ``key=value`` line per record, keys sorted.

    A payload whose only field is a list (the mode listing) yields one line
    per list item.
    """

    payload = to_jsonable(value)
    if isinstance(payload, dict) and len(payload) == 1:
        (only,) = payload.values()
        if isinstance(only, list):
            payload = only
    records = payload if isinstance(payload, list) else [payload]
    lines: list[str] = []
    for record in records:
        if isinstance(record, dict):
            cells = (f"{key}={_porcelain_cell(record[key])}" for key in sorted(record))
            lines.append("\t".join(cells))
        else:
            lines.append(_porcelain_cell(record))
    return lines


def render_text(value: Any, ctx: FormatContext | None = None) -> str:
    """Text form of an output: ``format_text()`` when available, else indented JSON."""

    if isinstance(value, TextFormattable):
        return value.format_text(ctx or FormatContext())
    return json.dumps(to_jsonable(value), sort_keys=True, indent=2)


def emit(value: Any, config: OutputConfig) -> None:
    """Print one payload; empty text renderings print nothing."""

    if config.format == "json":
        print(json.dumps(to_jsonable(value), sort_keys=True))
    elif config.format == "porcelain":
        for line in porcelain_lines(value):
            print(line)
    elif text := render_text(value, config.context):
        print(text)
