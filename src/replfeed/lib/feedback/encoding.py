"""Flat text encoding of modes for the preferences store.

One mode encodes as separator-joined tokens::

    name, fluff, prompt, continuation-prompt,
    field, "(", bits, template, ..., ")",   (repeated per field)
    "***"

Several encodings joined by the same separator decode in one pass.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from replfeed.lib.feedback.codec import LAYOUT
from replfeed.lib.feedback.errors import CorruptEncodingError
from replfeed.lib.feedback.mode import TRUNCATION_FIELD, Mode, Rule, is_valid_name

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

RECORD_SEPARATOR = "\u241e"
END_MARKER = "***"
_OPEN = "("
_CLOSE = ")"


def encode_mode(mode: Mode) -> str:
    tokens = [
        mode.name,
        "true" if mode.command_fluff else "false",
        mode.prompt,
        mode.continuation_prompt,
    ]
    for field in mode.field_names():
        tokens.append(field)
        tokens.append(_OPEN)
        for rule in mode.rules(field):
            tokens.append(str(rule.bits))
            tokens.append(rule.template)
        tokens.append(_CLOSE)
    tokens.append(END_MARKER)
    return RECORD_SEPARATOR.join(tokens)


def encode_modes(encodings: Iterable[str]) -> str:
    return RECORD_SEPARATOR.join(encodings)


def decode_modes(blob: str) -> list[Mode]:
    """Decode every mode in ``blob``; any defect fails the whole blob."""

    if not blob:
        return []
    tokens = iter(blob.split(RECORD_SEPARATOR))
    modes: list[Mode] = []
    seen: set[str] = set()
    for name in tokens:
        mode = _decode_mode(name, tokens)
        if mode.name in seen:
            raise CorruptEncodingError(f"Mode '{mode.name}' is encoded more than once.")
        seen.add(mode.name)
        modes.append(mode)
    return modes


def _next(tokens: Iterator[str], expected: str) -> str:
    token = next(tokens, None)
    if token is None:
        raise CorruptEncodingError(f"Encoded mode ended early: expected {expected}.")
    return token


def _decode_bool(token: str) -> bool:
    if token == "true":
        return True
    if token == "false":
        return False
    raise CorruptEncodingError(f"Expected 'true' or 'false' for command fluff, got {token!r}.")


def _decode_bits(token: str) -> int:
    try:
        bits = int(token)
    except ValueError:
        raise CorruptEncodingError(f"Expected a packed selector value, got {token!r}.") from None
    if bits < 0 or bits & ~LAYOUT.mask:
        raise CorruptEncodingError(f"Packed selector value {bits} is out of range.")
    return bits


def _decode_rule(field: str, bits: int, template: str) -> Rule:
    if field == TRUNCATION_FIELD and not (template.isascii() and template.isdigit()):
        raise CorruptEncodingError(f"Truncation length {template!r} is not a number.")
    return Rule(bits=bits, template=template)


def _decode_mode(name: str, tokens: Iterator[str]) -> Mode:
    if not is_valid_name(name):
        raise CorruptEncodingError(f"Invalid encoded mode name {name!r}.")
    fluff = _decode_bool(_next(tokens, "command fluff"))
    prompt = _next(tokens, "prompt")
    continuation_prompt = _next(tokens, "continuation prompt")

    fields: dict[str, list[Rule]] = {}
    while (field := _next(tokens, f"field name or '{END_MARKER}'")) != END_MARKER:
        if field != TRUNCATION_FIELD and not is_valid_name(field):
            raise CorruptEncodingError(f"Invalid encoded field name {field!r} in mode '{name}'.")
        if field in fields:
            raise CorruptEncodingError(f"Field '{field}' is encoded twice in mode '{name}'.")
        if _next(tokens, f"'{_OPEN}'") != _OPEN:
            raise CorruptEncodingError(f"Expected '{_OPEN}' after field '{field}'.")
        rules: list[Rule] = []
        while (raw_bits := _next(tokens, f"selector value or '{_CLOSE}'")) != _CLOSE:
            bits = _decode_bits(raw_bits)
            rules.append(_decode_rule(field, bits, _next(tokens, "format")))
        fields[field] = rules

    return Mode(
        name,
        command_fluff=fluff,
        prompt=prompt,
        continuation_prompt=continuation_prompt,
        fields=fields,
    )
