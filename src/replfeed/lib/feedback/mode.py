"""Feedback modes: per-field rule lists and event rendering."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Self

from replfeed.lib.feedback.codec import (
    ALWAYS_BITS,
    EMPTY_CONTEXT_BITS,
    Filter,
    matches_bits,
)
from replfeed.lib.feedback.errors import ReadOnlyModeError
from replfeed.lib.feedback.template import expand_field, substitute

if TYPE_CHECKING:
    from collections.abc import Sequence

    from replfeed.lib.feedback.codec import Context

# Internal field holding the value truncation length; not an identifier, so
# operators cannot address it through the format command.
TRUNCATION_FIELD = "<truncation-length>"
ELLIPSIS = " ..."
_MIN_ELLIPSIS_LIMIT = 6

_NO_ERRORS_VALUE = "*cannot-use-errors-here*"
_NO_ERR_VALUE = "*cannot-use-err-here*"

DEFAULT_PROMPT = "\n-> "
DEFAULT_CONTINUATION_PROMPT = ">> "

SKELETON_RULES: tuple[tuple[str, str], ...] = (
    ("name", "%1$s"),
    ("type", "%2$s"),
    ("value", "%3$s"),
    ("unresolved", "%4$s"),
    ("errors", "%5$s"),
    ("err", "%6$s"),
    ("errorline", "    {err}%n"),
    ("pre", "|  "),
    ("post", "%n"),
    ("errorpre", "|  "),
    ("errorpost", "%n"),
)

DECORATION_FIELDS: tuple[str, ...] = ("pre", "post", "errorpre", "errorpost")


def is_valid_name(text: str) -> bool:
    """True for identifier-like names: letters, digits, ``_`` and ``$``."""

    return bool(text) and all(ch.isalnum() or ch in "_$" for ch in text)


@dataclass(frozen=True, slots=True)
class Rule:
    """One format rule: a packed filter and the template it selects."""

    bits: int
    template: str

    @property
    def filter(self) -> Filter:
        return Filter.unpack(self.bits)


class Mode:
    """A named set of field rules, prompts and the command-fluff flag."""

    def __init__(
        self,
        name: str,
        *,
        command_fluff: bool = True,
        prompt: str = DEFAULT_PROMPT,
        continuation_prompt: str = DEFAULT_CONTINUATION_PROMPT,
        fields: dict[str, list[Rule]] | None = None,
    ) -> None:
        self._name = name
        self._command_fluff = command_fluff
        self._prompt = prompt
        self._continuation_prompt = continuation_prompt
        self._fields: dict[str, list[Rule]] = fields if fields is not None else {}
        self._read_only = False

    @classmethod
    def fresh(cls, name: str) -> Self:
        """A mode holding only the always-matching skeleton rules."""

        mode = cls(name)
        for field, template in SKELETON_RULES:
            mode._append(field, Rule(bits=ALWAYS_BITS, template=template))
        return mode

    @classmethod
    def copy_of(cls, name: str, source: Mode) -> Self:
        """Deep copy of every rule list and attribute of ``source`` under ``name``."""

        return cls(
            name,
            command_fluff=source.command_fluff,
            prompt=source.prompt,
            continuation_prompt=source.continuation_prompt,
            fields={field: list(rules) for field, rules in source._fields.items()},
        )

    def __repr__(self) -> str:
        flag = " read-only" if self._read_only else ""
        return f"<Mode {self._name!r}{flag} fields={len(self._fields)}>"

    @property
    def name(self) -> str:
        return self._name

    @property
    def read_only(self) -> bool:
        return self._read_only

    @property
    def command_fluff(self) -> bool:
        return self._command_fluff

    @property
    def prompt(self) -> str:
        return self._prompt

    @property
    def continuation_prompt(self) -> str:
        return self._continuation_prompt

    def freeze(self) -> None:
        self._read_only = True

    def _check_writable(self) -> None:
        if self._read_only:
            raise ReadOnlyModeError(
                f"Not valid with a predefined mode: {self._name}"
            )

    def _append(self, field: str, rule: Rule) -> None:
        self._fields.setdefault(field, []).append(rule)

    def set(self, field: str, rule_filter: Filter, template: str) -> None:
        """Append a rule; later rules take precedence over earlier ones."""

        self._check_writable()
        self._append(field, Rule(bits=rule_filter.pack(), template=template))

    def set_command_fluff(self, fluff: bool) -> None:
        self._check_writable()
        self._command_fluff = fluff

    def set_prompts(self, prompt: str, continuation_prompt: str) -> None:
        self._check_writable()
        self._prompt = prompt
        self._continuation_prompt = continuation_prompt

    def field_names(self) -> tuple[str, ...]:
        return tuple(self._fields)

    def rules(self, field: str) -> tuple[Rule, ...]:
        return tuple(self._fields.get(field, ()))

    def resolve_template(self, field: str, context_bits: int) -> str:
        """Template of the newest rule whose filter admits the context, else ``""``."""

        for rule in reversed(self._fields.get(field, ())):
            if matches_bits(context_bits, rule.bits):
                return rule.template
        return ""

    def expand(self, field: str, context_bits: int) -> str:
        return expand_field(field, lambda name: self.resolve_template(name, context_bits))

    def truncate(self, value: str, context_bits: int) -> str:
        limit_text = self.resolve_template(TRUNCATION_FIELD, context_bits)
        if not limit_text:
            return value
        limit = int(limit_text)
        if len(value) <= limit:
            return value
        if limit < _MIN_ELLIPSIS_LIMIT:
            return value[:limit]
        return value[: limit - len(ELLIPSIS)] + ELLIPSIS

    def format(
        self,
        context: Context,
        name: str | None,
        type_: str | None,
        value: str | None,
        unresolved: str | None,
        error_lines: Sequence[str] = (),
    ) -> str:
        """Render the ``display`` field for one event."""

        bits = context.pack()
        fname = name or ""
        ftype = type_ or ""
        fvalue = self.truncate(value, bits) if value is not None else ""
        funresolved = unresolved or ""

        errorline = self.expand("errorline", bits)
        errors = "".join(
            substitute(errorline, fname, ftype, fvalue, funresolved, _NO_ERRORS_VALUE, line)
            for line in error_lines
        )
        return substitute(
            self.expand("display", bits),
            fname,
            ftype,
            fvalue,
            funresolved,
            errors,
            _NO_ERR_VALUE,
        )

    def decoration(self, field: str) -> str:
        """Expand a context-free field such as ``pre`` or ``errorpost``."""

        return substitute(self.expand(field, EMPTY_CONTEXT_BITS))

    def prompt_text(self, next_id: str) -> str:
        return substitute(self._prompt, next_id)

    def continuation_prompt_text(self, next_id: str) -> str:
        return substitute(self._continuation_prompt, next_id)
