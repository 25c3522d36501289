"""Template field expansion and positional substitution.

Templates reference other fields as ``{field}`` and positional values with
printf-style conversions: ``%3$s`` is the third value, ``%s`` the next one,
``%n`` a newline and ``%%`` a literal percent sign. ``-``, width and
``.precision`` are honoured for ``s``; ``S`` also upper-cases.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from replfeed.lib.feedback.errors import TemplateCycleError, TemplateError

if TYPE_CHECKING:
    from collections.abc import Callable

FIELD_PATTERN = re.compile(r"\{(.*?)\}")

_CONVERSION_PATTERN = re.compile(
    r"%(?:(?P<index>\d+)\$)?(?P<left>-?)(?P<width>\d+)?(?:\.(?P<precision>\d+))?"
    r"(?P<conversion>[a-zA-Z%]?)"
)


def expand_field(field: str, lookup: Callable[[str], str]) -> str:
    """Resolve ``field`` and recursively replace its ``{name}`` references."""

    return _expand(field, lookup, ())


def _expand(field: str, lookup: Callable[[str], str], chain: tuple[str, ...]) -> str:
    if field in chain:
        raise TemplateCycleError((*chain, field))
    template = lookup(field)
    if not template:
        return ""
    inner = (*chain, field)
    return FIELD_PATTERN.sub(lambda match: _expand(match.group(1), lookup, inner), template)


def substitute(template: str, *args: str) -> str:
    """Apply positional conversions to an already expanded template."""

    sequential = 0

    def _replace(match: re.Match[str]) -> str:
        nonlocal sequential
        conversion = match.group("conversion")
        if conversion == "%":
            return "%"
        if conversion == "n":
            return "\n"
        if conversion not in {"s", "S"}:
            shown = match.group(0) or "%"
            raise TemplateError(f"Unsupported conversion '{shown}' in format {template!r}.")

        raw_index = match.group("index")
        if raw_index is None:
            position = sequential
            sequential += 1
        else:
            position = int(raw_index) - 1
        if position < 0 or position >= len(args):
            raise TemplateError(
                f"Format {template!r} references value {position + 1} "
                f"but only {len(args)} are available."
            )

        value = args[position]
        if match.group("precision") is not None:
            value = value[: int(match.group("precision"))]
        if conversion == "S":
            value = value.upper()
        width = match.group("width")
        if width is not None:
            value = value.ljust(int(width)) if match.group("left") else value.rjust(int(width))
        return value

    return _CONVERSION_PATTERN.sub(_replace, template)
