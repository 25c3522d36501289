"""Cyclopts CLI entry point for replfeed."""

from __future__ import annotations

import sys
from contextvars import ContextVar
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Annotated

from cyclopts import App, Parameter

from replfeed import __version__
from replfeed.cli.feedback_cmd import register_feedback_commands
from replfeed.cli.output import FormatContext, OutputConfig, normalize_output_format
from replfeed.cli.output import emit as emit_output
from replfeed.cli.session import FeedbackShell, start_session
from replfeed.lib.config.settings import load_config
from replfeed.lib.ops.feedback import CommandDeclined
from replfeed.lib.state.paths import resolve_state_paths
from replfeed.lib.state.prefs_store import PrefsStore

if TYPE_CHECKING:
    from collections.abc import Sequence

    from replfeed.lib.config.settings import ReplfeedConfig
    from replfeed.lib.feedback.session import FeedbackSession


@dataclass(frozen=True, slots=True)
class GlobalOptions:
    """Top-level options that apply to all commands."""

    output: OutputConfig


_GLOBAL_OPTIONS: ContextVar[GlobalOptions | None] = ContextVar("_GLOBAL_OPTIONS", default=None)


def get_global_options() -> GlobalOptions:
    """Return parsed global options for current command."""

    default = GlobalOptions(output=OutputConfig(format="text"))
    return _GLOBAL_OPTIONS.get() or default


def emit(payload: object) -> None:
    """Write command output using current output format settings."""

    emit_output(payload, get_global_options().output)


def _extract_global_options(argv: Sequence[str]) -> tuple[list[str], GlobalOptions]:
    """Strip output and verbosity flags, which may appear anywhere on the line."""

    json_mode = False
    output_format: str | None = None
    verbosity = 0
    cleaned: list[str] = []

    args = iter(argv)
    for arg in args:
        if arg == "--json":
            json_mode = True
        elif arg == "--format":
            output_format = next(args, None)
            if output_format is None:
                raise SystemExit("--format requires a value")
        elif arg.startswith("--format="):
            output_format = arg.partition("=")[2]
        elif arg in {"-v", "--verbose"}:
            verbosity += 1
        elif arg in {"-q", "--quiet"}:
            verbosity = -1
        else:
            cleaned.append(arg)

    resolved = normalize_output_format(requested=output_format, json_mode=json_mode)
    context = FormatContext(verbosity=verbosity)
    return cleaned, GlobalOptions(output=OutputConfig(format=resolved, context=context))


def _open_store(config: ReplfeedConfig) -> PrefsStore:
    return PrefsStore(resolve_state_paths().prefs_path(config.prefs_file))


def _warn(notices: list[str]) -> None:
    for notice in notices:
        print(f"warning: {notice}", file=sys.stderr)


def open_session() -> FeedbackSession:
    """Session with retained preferences applied, for one-shot commands."""

    config = load_config()
    session, notices = start_session(config, _open_store(config))
    _warn(notices)
    return session


app = App(
    name="replfeed",
    help="Customizable feedback modes for interactive tools",
    version=__version__,
    help_formatter="plain",
)


@app.default
def root(
    json_mode: Annotated[
        bool,
        Parameter(name="--json", help="Emit command output as JSON."),
    ] = False,
    output_format: Annotated[
        str | None,
        Parameter(name="--format", help="Set output format: text, json, or porcelain."),
    ] = None,
    quiet: Annotated[
        bool,
        Parameter(name=["--quiet", "-q"], help="Terse text output."),
    ] = False,
) -> None:
    """replfeed root command with global options."""

    _ = (json_mode, output_format, quiet)
    app.help_print()


@app.command(name="shell")
def shell(
    feedback: Annotated[
        str | None,
        Parameter(name="--feedback", help="Feedback mode for this session only."),
    ] = None,
    script: Annotated[
        str | None,
        Parameter(name="--script", help="Run commands from a file instead of the terminal."),
    ] = None,
) -> None:
    """Start the interactive feedback shell."""

    config = load_config()
    store = _open_store(config)
    session, notices = start_session(config, store, feedback=feedback)
    runner = FeedbackShell(session, store)
    for notice in notices:
        runner.error(notice)

    if script is not None:
        lines = Path(script).expanduser().read_text(encoding="utf-8").splitlines()
        runner.run(lines)
        return

    if config.show_fluff:
        runner.fluff(f"Welcome to replfeed {__version__}\nFor an introduction type: /help")
    runner.interact()
    if config.show_fluff:
        runner.fluff("Goodbye")


_REGISTERED_CLI_COMMANDS: set[str] = set()
_REGISTERED_CLI_DESCRIPTIONS: dict[str, str] = {}


def _register_group_commands() -> None:
    modules = (register_feedback_commands(app, emit, open_session),)
    for commands, descriptions in modules:
        _REGISTERED_CLI_COMMANDS.update(commands)
        _REGISTERED_CLI_DESCRIPTIONS.update(descriptions)


def get_registered_cli_commands() -> set[str]:
    """Expose CLI operation command names for parity tests."""

    return set(_REGISTERED_CLI_COMMANDS)


def get_registered_cli_descriptions() -> dict[str, str]:
    """Expose CLI descriptions for parity tests."""

    return dict(_REGISTERED_CLI_DESCRIPTIONS)


def _operation_error_message(exc: Exception) -> str:
    if isinstance(exc, KeyError) and exc.args:
        return str(exc.args[0])
    message = str(exc).strip()
    if message:
        return message
    return exc.__class__.__name__


def main(argv: Sequence[str] | None = None) -> None:
    """CLI entry point used by `replfeed` and `python -m replfeed`."""

    from replfeed.lib.logging import configure_logging

    args = list(sys.argv[1:] if argv is None else argv)
    cleaned_args, options = _extract_global_options(args)
    configure_logging(
        json_mode=options.output.format != "text",
        verbosity=options.output.context.verbosity,
    )

    token = _GLOBAL_OPTIONS.set(options)
    try:
        try:
            app(cleaned_args)
        except CommandDeclined as exc:
            print(f"error: {exc.message}", file=sys.stderr)
            if exc.known_modes:
                print(f"known modes: {', '.join(exc.known_modes)}", file=sys.stderr)
            if exc.help_topic:
                print(f"see /help {exc.help_topic}", file=sys.stderr)
            raise SystemExit(1) from None
        except (KeyError, ValueError, OSError) as exc:
            print(f"error: {_operation_error_message(exc)}", file=sys.stderr)
            raise SystemExit(1) from None
    finally:
        _GLOBAL_OPTIONS.reset(token)


_register_group_commands()
