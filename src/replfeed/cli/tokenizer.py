"""Split shell command lines into tokens that remember whether they were quoted."""

from __future__ import annotations

import re
import shlex
from dataclasses import dataclass

_QUOTES = "\"'"
_ESCAPES = {"n": "\n", "t": "\t", "\\": "\\", '"': '"', "'": "'"}
_ESCAPE_PATTERN = re.compile(r"\\(u[0-9a-fA-F]{4}|.)", re.DOTALL)


@dataclass(frozen=True, slots=True)
class ArgToken:
    text: str
    quoted: bool = False

    @property
    def is_option(self) -> bool:
        return not self.quoted and len(self.text) > 1 and self.text.startswith("-")


def _unescape(text: str) -> str:
    """Resolve ``\\n``, ``\\t``, ``\\\\``, escaped quotes and ``\\uXXXX``; others stay."""

    def _replace(match: re.Match[str]) -> str:
        code = match.group(1)
        if len(code) == 5:
            return chr(int(code[1:], 16))
        return _ESCAPES.get(code, match.group(0))

    return _ESCAPE_PATTERN.sub(_replace, text)


def tokenize(line: str) -> list[ArgToken]:
    """Split on whitespace; quoted tokens are unquoted and unescaped.

    Unbalanced quotes raise ``ValueError``.
    """

    lexer = shlex.shlex(line, posix=False)
    lexer.whitespace_split = True
    lexer.commenters = ""
    tokens: list[ArgToken] = []
    for raw in lexer:
        if len(raw) >= 2 and raw[0] in _QUOTES and raw[-1] == raw[0]:
            tokens.append(ArgToken(text=_unescape(raw[1:-1]), quoted=True))
        else:
            tokens.append(ArgToken(text=raw))
    return tokens
