"""Filesystem path helpers for replfeed's per-user state."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

_REPLFEED_DIR = ".replfeed"
_CONFIG_FILE = "config.toml"


@dataclass(frozen=True, slots=True)
class StatePaths:
    """Resolved on-disk replfeed state paths."""

    root_dir: Path
    config_path: Path

    def prefs_path(self, prefs_file: str) -> Path:
        """Resolve the preferences file; relative names live under ``root_dir``."""

        candidate = Path(prefs_file).expanduser()
        if candidate.is_absolute():
            return candidate
        return self.root_dir / candidate


def resolve_home(explicit: Path | None = None) -> Path:
    """Resolve the state root.

    Precedence:
    1. Explicit function argument.
    2. `REPLFEED_HOME` environment variable.
    3. `~/.replfeed`.
    """

    if explicit is not None:
        return explicit.expanduser().resolve()

    override = os.getenv("REPLFEED_HOME", "").strip()
    if override:
        return Path(override).expanduser().resolve()
    return Path.home() / _REPLFEED_DIR


def resolve_state_paths(home: Path | None = None) -> StatePaths:
    root_dir = resolve_home(home)
    return StatePaths(root_dir=root_dir, config_path=root_dir / _CONFIG_FILE)
