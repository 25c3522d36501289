"""Selector expression parser.

A selector expression is a ``-`` separated list of groups; each group is a
``,`` separated list of selector names from one axis, for example
``class,method-added,modified-primary``. Axes without a group are left
unconstrained.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from replfeed.lib.feedback.axes import (
    CASE_AXIS,
    SELECTOR_TABLE,
    Axis,
    SelectorTable,
    SelectorValue,
)
from replfeed.lib.feedback.codec import Context, Filter
from replfeed.lib.feedback.errors import SelectorError

if TYPE_CHECKING:
    from collections.abc import Sequence


def _collect(text: str, table: SelectorTable) -> dict[str, list[SelectorValue]]:
    collected: dict[str, list[SelectorValue]] = {}
    for group in text.split("-"):
        group_axis: Axis | None = None
        for name in group.split(","):
            if not name:
                continue
            entry = table.resolve(name)
            if entry is None:
                raise SelectorError(f"Not a valid selector '{name}' in '{group}'.")
            if group_axis is None:
                if entry.axis.key in collected:
                    raise SelectorError(
                        f"Selector kind in multiple sections of selector list '{group}' "
                        f"('{name}' repeats the {entry.axis.title.lower()} axis)."
                    )
                group_axis = entry.axis
            elif entry.axis is not group_axis:
                raise SelectorError(
                    f"Different selector kinds in same section of selector list "
                    f"'{group}' ('{name}' is not a {group_axis.title.lower()} selector)."
                )
            values = collected.setdefault(entry.axis.key, [])
            if entry.value not in values:
                values.append(entry.value)
    return collected


def parse_selector(text: str, table: SelectorTable = SELECTOR_TABLE) -> Filter:
    """Parse one selector expression into a filter."""

    return Filter.from_values(_collect(text, table))


def parse_selectors(
    texts: Sequence[str],
    table: SelectorTable = SELECTOR_TABLE,
) -> tuple[Filter, ...]:
    """Parse every expression before returning; no expressions means "always"."""

    if not texts:
        return (Filter.universal(),)
    return tuple(parse_selector(text, table) for text in texts)


def parse_context(text: str, table: SelectorTable = SELECTOR_TABLE) -> Context:
    """Parse a selector expression naming one value per mentioned axis.

    The case axis is required; other axes default to an added, primary,
    resolved event without unresolved references or errors.
    """

    collected = _collect(text, table)
    chosen: dict[str, Any] = {}
    for key, values in collected.items():
        if len(values) != 1:
            names = ",".join(value.selector for value in values)
            raise SelectorError(f"An event context needs a single {key} value, got '{names}'.")
        chosen[key] = values[0]
    if CASE_AXIS.key not in chosen:
        options = ", ".join(value.selector for value in CASE_AXIS.values)
        raise SelectorError(f"An event context must name a case: one of {options}.")
    return Context(**chosen)
