"""Rendering knobs handed to every output dataclass's ``format_text``.

Kept in the lib layer so operation outputs can accept it without importing
anything from the CLI package.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True, slots=True)
class FormatContext:
    """How much detail a text rendering should carry.

    ``verbosity`` is -1 for ``--quiet``, 0 by default and grows with ``-v``.
    """

    verbosity: int = 0

    @property
    def terse(self) -> bool:
        return self.verbosity < 0


@runtime_checkable
class TextFormattable(Protocol):
    """An output that knows its own human-readable form."""

    def format_text(self, ctx: FormatContext | None = None) -> str: ...
