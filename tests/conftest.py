"""Shared pytest fixtures for engine, shell and CLI checks."""

from __future__ import annotations

import os
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from replfeed.cli.session import FeedbackShell
from replfeed.lib.feedback.session import FeedbackSession
from replfeed.lib.state.prefs_store import PrefsStore

if TYPE_CHECKING:
    from collections.abc import Callable

PACKAGE_ROOT = Path(__file__).resolve().parents[1]


@dataclass(frozen=True, slots=True)
class CliResult:
    args: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str


@dataclass(slots=True)
class ShellHarness:
    shell: FeedbackShell
    store: PrefsStore
    written: list[str]

    def run(self, *lines: str) -> str:
        self.written.clear()
        self.shell.run(lines)
        return "".join(self.written)


@pytest.fixture
def package_root() -> Path:
    return PACKAGE_ROOT


@pytest.fixture
def replfeed_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    home = tmp_path / "replfeed-home"
    monkeypatch.setenv("REPLFEED_HOME", str(home))
    monkeypatch.delenv("REPLFEED_DEFAULT_MODE", raising=False)
    monkeypatch.delenv("REPLFEED_PREFS_FILE", raising=False)
    return home


@pytest.fixture
def session() -> FeedbackSession:
    return FeedbackSession.create()


@pytest.fixture
def prefs_store(tmp_path: Path) -> PrefsStore:
    return PrefsStore(tmp_path / "prefs.toml")


@pytest.fixture
def shell(session: FeedbackSession, prefs_store: PrefsStore) -> ShellHarness:
    written: list[str] = []
    runner = FeedbackShell(session, prefs_store, write=written.append)
    return ShellHarness(shell=runner, store=prefs_store, written=written)


@pytest.fixture
def cli_env(package_root: Path, tmp_path: Path) -> dict[str, str]:
    env = os.environ.copy()
    existing = env.get("PYTHONPATH", "")
    root = str(package_root / "src")
    env["PYTHONPATH"] = root if not existing else f"{root}:{existing}"
    env["REPLFEED_HOME"] = str(tmp_path / "cli-home")
    env.pop("REPLFEED_DEFAULT_MODE", None)
    env.pop("REPLFEED_PREFS_FILE", None)
    return env


@pytest.fixture
def run_replfeed(package_root: Path, cli_env: dict[str, str]) -> Callable[..., CliResult]:
    def _run(args: list[str], timeout: float = 15.0, stdin: str | None = None) -> CliResult:
        completed = subprocess.run(
            [sys.executable, "-m", "replfeed", *args],
            cwd=package_root,
            env=cli_env,
            input=stdin,
            capture_output=True,
            text=True,
            check=False,
            timeout=timeout,
        )
        return CliResult(
            args=tuple(args),
            returncode=completed.returncode,
            stdout=completed.stdout,
            stderr=completed.stderr,
        )

    return _run
