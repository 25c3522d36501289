"""Classification axes for feedback events.

Each axis is an enum whose member order is the ordinal used for bit packing
and whose lower-cased member name is the selector an operator types. The
selector table is derived from ``AXES`` once at import time, so ``AXES`` must
be fully defined before ``SELECTOR_TABLE`` is built below.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Self

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping


class SelectorValue(Enum):
    """Base for axis enums: value is the human description."""

    @property
    def selector(self) -> str:
        return self.name.lower()

    @property
    def doc(self) -> str:
        return str(self.value)


class FormatCase(SelectorValue):
    """Kind of snippet the event is about."""

    IMPORT = "import declaration"
    CLASS = "class declaration"
    INTERFACE = "interface declaration"
    ENUM = "enum declaration"
    ANNOTATION = "annotation interface declaration"
    METHOD = "method declaration -- note: {type}==parameter-types"
    VARDECL = "variable declaration without init"
    VARINIT = "variable declaration with init"
    EXPRESSION = "expression -- note: {name}==scratch-variable-name"
    VARVALUE = "variable value expression"
    ASSIGNMENT = "assign variable"
    STATEMENT = "statement"


class FormatAction(SelectorValue):
    """What happened to the snippet."""

    ADDED = "snippet has been added"
    MODIFIED = "an existing snippet has been modified"
    REPLACED = "an existing snippet has been replaced with a new snippet"
    OVERWROTE = "an existing snippet has been overwritten"
    DROPPED = "snippet has been dropped"
    USED = "snippet was used when it cannot be"


class FormatWhen(SelectorValue):
    """Whether the event is the entered snippet or a dependent update."""

    PRIMARY = "the entered snippet"
    UPDATE = "an update to a dependent snippet"


class FormatResolve(SelectorValue):
    """Resolution state of the snippet."""

    OK = "resolved correctly"
    DEFINED = "defined despite recoverably unresolved references"
    NOTDEFINED = "not defined because of recoverably unresolved references"


class _CountBucket(SelectorValue):
    @classmethod
    def from_count(cls, count: int) -> Self:
        """Bucket a raw count into zero, one, or two-or-more."""

        members = list(cls)
        if count < 0:
            raise ValueError(f"Count must not be negative, got {count}.")
        return members[min(count, len(members) - 1)]


class FormatUnresolved(_CountBucket):
    """Bucketed count of unresolved references."""

    UNRESOLVED0 = "no names are unresolved"
    UNRESOLVED1 = "one name is unresolved"
    UNRESOLVED2 = "two or more names are unresolved"


class FormatErrors(_CountBucket):
    """Bucketed count of errors."""

    ERROR0 = "no errors"
    ERROR1 = "one error"
    ERROR2 = "two or more errors"


@dataclass(frozen=True, slots=True)
class Axis:
    """One classification dimension with its ordered values."""

    key: str
    title: str
    values: tuple[SelectorValue, ...]

    @property
    def cardinality(self) -> int:
        return len(self.values)

    def ordinal(self, value: SelectorValue) -> int:
        try:
            return self.values.index(value)
        except ValueError:
            raise ValueError(f"{value!r} is not a value of axis '{self.key}'.") from None


def _axis(key: str, title: str, enum_type: type[SelectorValue]) -> Axis:
    return Axis(key=key, title=title, values=tuple(enum_type))


CASE_AXIS = _axis("case", "Case", FormatCase)
ACTION_AXIS = _axis("action", "Action", FormatAction)
WHEN_AXIS = _axis("when", "When", FormatWhen)
RESOLVE_AXIS = _axis("resolve", "Resolve", FormatResolve)
UNRESOLVED_AXIS = _axis("unresolved", "Unresolved count", FormatUnresolved)
ERRORS_AXIS = _axis("errors", "Error count", FormatErrors)

# Canonical order, most significant first.
AXES: tuple[Axis, ...] = (
    CASE_AXIS,
    ACTION_AXIS,
    WHEN_AXIS,
    RESOLVE_AXIS,
    UNRESOLVED_AXIS,
    ERRORS_AXIS,
)


@dataclass(frozen=True, slots=True)
class SelectorEntry:
    axis: Axis
    value: SelectorValue


@dataclass(frozen=True, slots=True, eq=False)
class SelectorTable:
    """Immutable selector-name lookup shared by every parser call."""

    entries: Mapping[str, SelectorEntry]

    def resolve(self, name: str) -> SelectorEntry | None:
        return self.entries.get(name.lower())

    def names(self) -> tuple[str, ...]:
        return tuple(self.entries)


def build_selector_table(axes: Iterable[Axis]) -> SelectorTable:
    """Index every axis value by its selector name."""

    entries: dict[str, SelectorEntry] = {}
    for axis in axes:
        for value in axis.values:
            existing = entries.get(value.selector)
            if existing is not None:
                raise ValueError(
                    f"Selector '{value.selector}' is defined by both "
                    f"'{existing.axis.key}' and '{axis.key}'."
                )
            entries[value.selector] = SelectorEntry(axis=axis, value=value)
    return SelectorTable(entries=MappingProxyType(entries))


SELECTOR_TABLE = build_selector_table(AXES)
