"""Pack event contexts and rule filters into a single integer.

Every axis owns a contiguous one-hot sub-field whose width equals the axis
cardinality. Sub-fields are laid out most-significant axis first with no
gaps, so the offset of an axis is the sum of the cardinalities of all axes
after it. A context sets exactly one bit per sub-field; a filter sets the
bits of every value it allows. ``(context & filter) == context`` is then a
per-axis membership test for all axes at once.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Self, cast

from replfeed.lib.feedback.axes import (
    AXES,
    Axis,
    FormatAction,
    FormatCase,
    FormatErrors,
    FormatResolve,
    FormatUnresolved,
    FormatWhen,
    SelectorValue,
)
from replfeed.lib.feedback.errors import LayoutError

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

# Persisted filters are decimal signed 64-bit values.
PACK_WIDTH = 63


@dataclass(frozen=True, slots=True)
class AxisSlot:
    """Bit range reserved for one axis."""

    axis: Axis
    offset: int

    @property
    def mask(self) -> int:
        return ((1 << self.axis.cardinality) - 1) << self.offset

    def bit(self, value: SelectorValue) -> int:
        return 1 << (self.offset + self.axis.ordinal(value))

    def values_in(self, bits: int) -> tuple[SelectorValue, ...]:
        return tuple(
            value
            for ordinal, value in enumerate(self.axis.values)
            if bits & (1 << (self.offset + ordinal))
        )


@dataclass(frozen=True, slots=True)
class PackedLayout:
    slots: tuple[AxisSlot, ...]
    width: int

    @property
    def mask(self) -> int:
        return (1 << self.width) - 1

    def slot(self, key: str) -> AxisSlot:
        for slot in self.slots:
            if slot.axis.key == key:
                return slot
        raise KeyError(f"Unknown axis '{key}'.")


def build_layout(axes: Sequence[Axis], width: int = PACK_WIDTH) -> PackedLayout:
    """Assign each axis its bit offset, failing when the axes do not fit."""

    total = sum(axis.cardinality for axis in axes)
    if total > width:
        raise LayoutError(
            f"Axes need {total} bits but the packed representation holds only {width}."
        )
    slots: list[AxisSlot] = []
    offset = total
    for axis in axes:
        offset -= axis.cardinality
        slots.append(AxisSlot(axis=axis, offset=offset))
    return PackedLayout(slots=tuple(slots), width=total)


LAYOUT = build_layout(AXES)

# The empty context has no bit set on any axis and satisfies every filter.
EMPTY_CONTEXT_BITS = 0


def matches_bits(context_bits: int, filter_bits: int) -> bool:
    return (context_bits & filter_bits) == context_bits


def _check_range(bits: int) -> None:
    if bits < 0 or bits & ~LAYOUT.mask:
        raise ValueError(f"Packed value {bits} is outside the {LAYOUT.width}-bit layout.")


@dataclass(frozen=True, slots=True)
class Context:
    """One concrete event: exactly one value per axis."""

    case: FormatCase
    action: FormatAction = FormatAction.ADDED
    when: FormatWhen = FormatWhen.PRIMARY
    resolve: FormatResolve = FormatResolve.OK
    unresolved: FormatUnresolved = FormatUnresolved.UNRESOLVED0
    errors: FormatErrors = FormatErrors.ERROR0

    @classmethod
    def of(
        cls,
        case: FormatCase,
        action: FormatAction = FormatAction.ADDED,
        when: FormatWhen = FormatWhen.PRIMARY,
        resolve: FormatResolve = FormatResolve.OK,
        *,
        unresolved_count: int = 0,
        error_count: int = 0,
    ) -> Self:
        """Build a context from raw unresolved/error counts."""

        return cls(
            case=case,
            action=action,
            when=when,
            resolve=resolve,
            unresolved=FormatUnresolved.from_count(unresolved_count),
            errors=FormatErrors.from_count(error_count),
        )

    def values(self) -> tuple[SelectorValue, ...]:
        return tuple(getattr(self, slot.axis.key) for slot in LAYOUT.slots)

    def pack(self) -> int:
        bits = 0
        for slot, value in zip(LAYOUT.slots, self.values(), strict=True):
            bits |= slot.bit(value)
        return bits

    @classmethod
    def unpack(cls, bits: int) -> Self:
        _check_range(bits)
        chosen: dict[str, Any] = {}
        for slot in LAYOUT.slots:
            values = slot.values_in(bits)
            if len(values) != 1:
                raise ValueError(
                    f"Packed value {bits} does not select exactly one '{slot.axis.key}'."
                )
            chosen[slot.axis.key] = values[0]
        return cls(**chosen)


@dataclass(frozen=True, slots=True)
class Filter:
    """A rule scope: the allowed values per axis, every value by default."""

    case: frozenset[FormatCase] = frozenset(FormatCase)
    action: frozenset[FormatAction] = frozenset(FormatAction)
    when: frozenset[FormatWhen] = frozenset(FormatWhen)
    resolve: frozenset[FormatResolve] = frozenset(FormatResolve)
    unresolved: frozenset[FormatUnresolved] = frozenset(FormatUnresolved)
    errors: frozenset[FormatErrors] = frozenset(FormatErrors)

    @classmethod
    def universal(cls) -> Self:
        return cls()

    @classmethod
    def from_values(cls, selected: Mapping[str, Iterable[SelectorValue]]) -> Self:
        """Build a filter; axes missing from ``selected`` stay unconstrained."""

        allowed: dict[str, Any] = {}
        for key, values in selected.items():
            slot = LAYOUT.slot(key)
            chosen = frozenset(values)
            for value in chosen:
                slot.axis.ordinal(value)
            allowed[key] = chosen
        return cls(**allowed)

    def allowed(self, key: str) -> frozenset[SelectorValue]:
        return cast("frozenset[SelectorValue]", getattr(self, key))

    def is_universal(self) -> bool:
        return self.pack() == LAYOUT.mask

    def matches_nothing(self) -> bool:
        """True when some axis allows no value, so no context can match."""

        return any(not self.allowed(slot.axis.key) for slot in LAYOUT.slots)

    def pack(self) -> int:
        bits = 0
        for slot in LAYOUT.slots:
            for value in self.allowed(slot.axis.key):
                bits |= slot.bit(value)
        return bits

    @classmethod
    def unpack(cls, bits: int) -> Self:
        """Rebuild a filter; an axis with no bits yields an empty set."""

        _check_range(bits)
        return cls.from_values(
            {slot.axis.key: slot.values_in(bits) for slot in LAYOUT.slots}
        )

    def matches(self, context: Context) -> bool:
        return matches_bits(context.pack(), self.pack())

    def describe(self) -> str:
        """Render as a selector expression; unconstrained axes are omitted."""

        groups: list[str] = []
        for slot in LAYOUT.slots:
            allowed = self.allowed(slot.axis.key)
            if len(allowed) == slot.axis.cardinality:
                continue
            ordered = [value.selector for value in slot.axis.values if value in allowed]
            groups.append(",".join(ordered) if ordered else "<none>")
        return "-".join(groups)


ALWAYS_BITS = Filter.universal().pack()
