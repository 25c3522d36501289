"""Smoke tests for the CLI entry point."""

from __future__ import annotations

import json
from pathlib import Path

from replfeed import __version__


def test_help_lists_commands(run_replfeed) -> None:
    result = run_replfeed(["--help"])
    assert result.returncode == 0
    for expected in ["shell", "modes", "show", "render"]:
        assert expected in result.stdout


def test_version(run_replfeed) -> None:
    result = run_replfeed(["--version"])
    assert result.returncode == 0
    assert result.stdout.strip() == __version__


def test_render_with_the_default_mode(run_replfeed) -> None:
    result = run_replfeed(["render", "varinit", "--name", "x", "--type", "int", "--value", "42"])
    assert result.returncode == 0, result.stderr
    assert result.stdout == "x ==> 42\n"


def test_render_with_verbose_mode_and_json(run_replfeed) -> None:
    result = run_replfeed(
        ["--json", "render", "method-added", "--mode", "verb", "--name", "f", "--type", "int"]
    )
    assert result.returncode == 0, result.stderr
    payload = json.loads(result.stdout)
    assert payload == {
        "mode": "verbose",
        "context": "method-added-primary-ok-unresolved0-error0",
        "text": "|  created method f(int)\n",
    }


def test_render_bad_context_exits_nonzero(run_replfeed) -> None:
    result = run_replfeed(["render", "nonsense"])
    assert result.returncode == 1
    assert "error: Not a valid selector" in result.stderr
    assert "see /help /event" in result.stderr


def test_modes_json(run_replfeed) -> None:
    result = run_replfeed(["--json", "modes"])
    assert result.returncode == 0, result.stderr
    modes = json.loads(result.stdout)["modes"]
    assert [mode["name"] for mode in modes] == ["verbose", "normal", "concise", "silent"]
    assert [mode["name"] for mode in modes if mode["active"]] == ["normal"]


def test_show_prints_replay_commands(run_replfeed) -> None:
    result = run_replfeed(["show", "concise"])
    assert result.returncode == 0, result.stderr
    assert result.stdout.splitlines()[0] == "/set mode concise -quiet"


def test_unknown_mode_reports_known_modes(run_replfeed) -> None:
    result = run_replfeed(["show", "zz"])
    assert result.returncode == 1
    assert "error: Does not match any current feedback mode: zz" in result.stderr
    assert "known modes: verbose, normal, concise, silent" in result.stderr


def test_shell_script(run_replfeed, tmp_path: Path) -> None:
    script = tmp_path / "commands.txt"
    script.write_text(
        "/set feedback verbose\n/event varinit -name x -type int -value 42\n",
        encoding="utf-8",
    )

    result = run_replfeed(["shell", "--script", str(script)])

    assert result.returncode == 0, result.stderr
    assert result.stdout == (
        "|  Feedback mode: verbose\n"
        "x ==> 42\n"
        "|  created variable x : int\n"
    )


def test_retained_modes_persist_between_runs(run_replfeed, tmp_path: Path) -> None:
    script = tmp_path / "retain.txt"
    script.write_text(
        "/set mode mine concise -retain\n/retain feedback mine\n",
        encoding="utf-8",
    )
    assert run_replfeed(["shell", "--script", str(script)]).returncode == 0

    result = run_replfeed(["--json", "modes"])

    assert result.returncode == 0, result.stderr
    modes = {mode["name"]: mode for mode in json.loads(result.stdout)["modes"]}
    assert modes["mine"]["retained"]
    assert modes["mine"]["active"]
    assert not modes["mine"]["command_fluff"]


def test_interactive_shell_reads_stdin(run_replfeed) -> None:
    result = run_replfeed(["shell"], stdin="/set feedback concise\n/exit\n")
    assert result.returncode == 0, result.stderr
    assert "Welcome to replfeed" in result.stdout
    assert "Feedback mode: concise" not in result.stdout
