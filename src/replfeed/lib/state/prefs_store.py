"""TOML-backed store for retained feedback preferences."""

from __future__ import annotations

import os
import tempfile
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import cast

import structlog

from replfeed.lib.types import EncodedModes, ModeName

logger = structlog.get_logger(__name__)

_MODES_KEY = "feedback_modes"
_FEEDBACK_KEY = "feedback"
_TOML_ESCAPES = {"\\": "\\\\", '"': '\\"', "\n": "\\n", "\t": "\\t", "\r": "\\r"}


@dataclass(frozen=True, slots=True)
class RetainedPrefs:
    """What a previous session asked to keep."""

    feedback_modes: EncodedModes = EncodedModes("")
    feedback: ModeName | None = None


def _toml_string(value: str) -> str:
    parts: list[str] = []
    for ch in value:
        escaped = _TOML_ESCAPES.get(ch)
        if escaped is not None:
            parts.append(escaped)
        elif ord(ch) < 0x20 or ord(ch) == 0x7F:
            parts.append(f"\\u{ord(ch):04X}")
        else:
            parts.append(ch)
    return '"' + "".join(parts) + '"'


def _atomic_write_text(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    tmp_path = Path(tmp_name)

    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, path)
    finally:
        if tmp_path.exists():
            tmp_path.unlink(missing_ok=True)


class PrefsStore:
    """Reads and atomically rewrites one preferences file."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def load(self) -> RetainedPrefs:
        if not self.path.is_file():
            return RetainedPrefs()
        payload = cast(
            "dict[str, object]",
            tomllib.loads(self.path.read_text(encoding="utf-8")),
        )
        modes = payload.get(_MODES_KEY, "")
        feedback = payload.get(_FEEDBACK_KEY)
        if not isinstance(modes, str):
            raise ValueError(f"Invalid value for '{_MODES_KEY}' in '{self.path}': expected str.")
        if feedback is not None and not isinstance(feedback, str):
            raise ValueError(
                f"Invalid value for '{_FEEDBACK_KEY}' in '{self.path}': expected str."
            )
        return RetainedPrefs(
            feedback_modes=EncodedModes(modes),
            feedback=ModeName(feedback) if feedback else None,
        )

    def _write(self, prefs: RetainedPrefs) -> None:
        lines = [f"{_MODES_KEY} = {_toml_string(prefs.feedback_modes)}"]
        if prefs.feedback is not None:
            lines.append(f"{_FEEDBACK_KEY} = {_toml_string(prefs.feedback)}")
        _atomic_write_text(self.path, "\n".join(lines) + "\n")
        logger.debug("preferences written", path=self.path.as_posix())

    def save_modes(self, encoded: str) -> None:
        current = self.load()
        self._write(RetainedPrefs(feedback_modes=EncodedModes(encoded), feedback=current.feedback))

    def save_feedback(self, mode: str) -> None:
        current = self.load()
        self._write(RetainedPrefs(feedback_modes=current.feedback_modes, feedback=ModeName(mode)))

    def clear_modes(self) -> None:
        """Forget every retained mode; used after a failed restore."""

        self.save_modes("")

    def reset(self) -> RetainedPrefs:
        """Replace an unreadable file with empty preferences."""

        prefs = RetainedPrefs()
        self._write(prefs)
        return prefs
