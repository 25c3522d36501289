"""Interactive slash-command shell over the feedback operations.

The shell owns tokenizing, option matching and preference writes; every
validation of command content happens in the operations themselves.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import structlog

from replfeed.cli.output import render_text
from replfeed.cli.tokenizer import ArgToken, tokenize
from replfeed.lib.feedback.errors import FeedbackError, ModeLookupError
from replfeed.lib.feedback.mode import DEFAULT_PROMPT
from replfeed.lib.feedback.session import FeedbackSession
from replfeed.lib.logging import bind_feedback_mode
from replfeed.lib.ops.feedback import (
    HELP_EVENT,
    HELP_FEEDBACK,
    HELP_FORMAT,
    HELP_LIST,
    HELP_MODE,
    HELP_PROMPT,
    HELP_RETAIN,
    HELP_TRUNCATION,
    CommandDeclined,
    FeedbackFormatInput,
    FeedbackListInput,
    FeedbackModeInput,
    FeedbackPromptInput,
    FeedbackRenderInput,
    FeedbackRestoreInput,
    FeedbackRetainFeedbackInput,
    FeedbackRetainFeedbackOutput,
    FeedbackRetainModeInput,
    FeedbackRetainModeOutput,
    FeedbackSelectInput,
    FeedbackShowInput,
    FeedbackTruncationInput,
    feedback_restore_sync,
    feedback_retain_feedback_sync,
)
from replfeed.lib.ops.registry import get_operation, get_shell_commands

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence

    from replfeed.lib.config.settings import ReplfeedConfig
    from replfeed.lib.state.prefs_store import PrefsStore

logger = structlog.get_logger(__name__)

HELP_TEXT: dict[str, str] = {
    HELP_FEEDBACK: (
        "/set feedback [-retain] <mode>\n"
        "Select the feedback mode by name or unique prefix. With -retain the\n"
        "choice is also kept for future sessions."
    ),
    HELP_FORMAT: (
        "/set format <mode> <field> \"<format>\" [<selector>...]\n"
        "Add a format for a field. Formats may reference other fields as {field}\n"
        "and values positionally: %1$s name, %2$s type, %3$s value,\n"
        "%4$s unresolved, %5$s errors, %6$s one error line. A selector is a\n"
        "'-' separated list of ',' separated values from one kind, for example\n"
        "class,method-added,modified-primary. Newer formats take precedence."
    ),
    HELP_TRUNCATION: (
        "/set truncation <mode> <length> [<selector>...]\n"
        "Limit the length of displayed values."
    ),
    HELP_MODE: (
        "/set mode <mode> [<old-mode>] [-command|-quiet|-delete] [-retain]\n"
        "Create a mode, optionally copying an existing one. -command shows\n"
        "informative command messages, -quiet hides them, -delete removes the mode."
    ),
    HELP_PROMPT: (
        "/set prompt <mode> \"<prompt>\" \"<continuation-prompt>\"\n"
        "Set the prompts; %s is replaced by the next input number."
    ),
    HELP_RETAIN: (
        "/retain feedback [<mode>]\n"
        "/retain mode <mode> [-delete]\n"
        "Keep the feedback mode choice or a user-defined mode for future sessions."
    ),
    HELP_LIST: (
        "/list\n"
        "/show [<mode>]\n"
        "List the modes, or show the commands that rebuild one."
    ),
    HELP_EVENT: (
        "/event <context> [-name N] [-type T] [-value V] [-unresolved U] [-error E]... "
        "[-mode M]\n"
        "Render an event, e.g. /event varinit-added -name x -type int -value 42"
    ),
}


@dataclass(frozen=True, slots=True)
class _OptionSpec:
    takes_value: bool = False
    repeatable: bool = False


@dataclass(slots=True)
class _Parsed:
    positional: list[ArgToken] = field(default_factory=list)
    flags: set[str] = field(default_factory=set)
    values: dict[str, list[ArgToken]] = field(default_factory=dict)

    def value(self, name: str) -> str | None:
        found = self.values.get(name)
        return found[-1].text if found else None


def _match_option(text: str, options: dict[str, _OptionSpec], help_topic: str) -> str:
    name = text[1:]
    if name in options:
        return name
    matches = [option for option in options if option.startswith(name)]
    if len(matches) == 1:
        return matches[0]
    if matches:
        raise CommandDeclined(f"Ambiguous option: {text}", help_topic=help_topic)
    raise CommandDeclined(f"Unknown option: {text}", help_topic=help_topic)


def _parse_args(
    tokens: Sequence[ArgToken],
    options: dict[str, _OptionSpec],
    help_topic: str,
) -> _Parsed:
    parsed = _Parsed()
    index = 0
    while index < len(tokens):
        token = tokens[index]
        index += 1
        if not token.is_option:
            parsed.positional.append(token)
            continue
        name = _match_option(token.text, options, help_topic)
        spec = options[name]
        if not spec.takes_value:
            parsed.flags.add(name)
            continue
        if index >= len(tokens):
            raise CommandDeclined(f"Option -{name} requires a value.", help_topic=help_topic)
        if name in parsed.values and not spec.repeatable:
            raise CommandDeclined(f"Option -{name} given more than once.", help_topic=help_topic)
        parsed.values.setdefault(name, []).append(tokens[index])
        index += 1
    return parsed


def _at(tokens: Sequence[ArgToken], index: int) -> ArgToken | None:
    return tokens[index] if index < len(tokens) else None


def _check_max(tokens: Sequence[ArgToken], count: int, help_topic: str) -> None:
    if len(tokens) > count:
        extra = " ".join(token.text for token in tokens[count:])
        raise CommandDeclined(f"Unexpected arguments: {extra}", help_topic=help_topic)


def start_session(
    config: ReplfeedConfig,
    store: PrefsStore,
    *,
    feedback: str | None = None,
) -> tuple[FeedbackSession, list[str]]:
    """Build a session with retained preferences applied.

    Returns the session and the notices worth telling the operator about.
    Failures in stored preferences never stop the session from starting.
    """

    notices: list[str] = []
    try:
        session = FeedbackSession.create(config.default_mode)
    except ModeLookupError as exc:
        notices.append(f"Ignoring configured default mode: {exc}")
        session = FeedbackSession.create()

    try:
        prefs = store.load()
    except ValueError as exc:
        notices.append(f"Stored preferences were unreadable and have been reset: {exc}")
        prefs = store.reset()
    if prefs.feedback_modes:
        try:
            feedback_restore_sync(session, FeedbackRestoreInput(encoded=prefs.feedback_modes))
        except CommandDeclined as exc:
            notices.append(f"Retained feedback modes were corrupted and discarded: {exc}")
            store.clear_modes()
    if prefs.feedback:
        try:
            feedback_retain_feedback_sync(
                session, FeedbackRetainFeedbackInput(mode=prefs.feedback)
            )
        except CommandDeclined as exc:
            notices.append(f"Retained feedback mode ignored: {exc}")

    if feedback:
        try:
            session.registry.select(session.registry.lookup(feedback))
        except ModeLookupError as exc:
            notices.append(f"Ignoring requested feedback mode: {exc}")
    bind_feedback_mode(session.mode.name)
    logger.debug("session started", notices=len(notices))
    return session, notices


class FeedbackShell:
    """Dispatches slash commands and writes decorated replies."""

    def __init__(
        self,
        session: FeedbackSession,
        store: PrefsStore,
        *,
        write: Callable[[str], Any] | None = None,
    ) -> None:
        self.session = session
        self.store = store
        self._write = write or sys.stdout.write
        self.next_id = 1
        self._handlers: dict[str, Callable[[list[ArgToken]], None]] = {
            "set feedback": self._set_feedback,
            "set format": self._set_format,
            "set truncation": self._set_truncation,
            "set mode": self._set_mode,
            "set prompt": self._set_prompt,
            "retain feedback": self._retain_feedback,
            "retain mode": self._retain_mode,
            "list": self._list,
            "show": self._show,
            "event": self._event,
        }

    def fluff(self, text: str) -> None:
        """Informative message, shown only when the mode wants command fluff."""

        if text and self.session.should_display_fluff():
            self._decorated(text)

    def hard(self, text: str) -> None:
        """Message that is always shown, decorated like fluff."""

        if text:
            self._decorated(text)

    def error(self, text: str) -> None:
        self._decorated(text, error=True)

    def _decorations(self, *, error: bool) -> tuple[str, str]:
        try:
            if error:
                return self.session.error_pre(), self.session.error_post()
            return self.session.pre(), self.session.post()
        except FeedbackError as exc:
            logger.warning(
                "decoration not expandable, writing plain lines",
                mode=self.session.mode.name,
                error=str(exc),
            )
            return "", "\n"

    def _decorated(self, text: str, *, error: bool = False) -> None:
        pre, post = self._decorations(error=error)
        for line in text.split("\n"):
            self._write(f"{pre}{line}{post}")

    def prompt(self) -> str:
        try:
            return self.session.prompt(str(self.next_id))
        except FeedbackError as exc:
            logger.warning(
                "prompt not expandable, using the default",
                mode=self.session.mode.name,
                error=str(exc),
            )
            return DEFAULT_PROMPT

    def declined(self, exc: CommandDeclined) -> None:
        self.error(exc.message)
        if exc.known_modes:
            self.error("Known feedback modes: " + ", ".join(exc.known_modes))
        if exc.help_topic:
            self.error(f"See /help {exc.help_topic}")

    def execute(self, line: str) -> bool:
        """Run one input line; returns False when the shell should stop."""

        self.next_id += 1
        stripped = line.strip()
        if not stripped:
            return True
        try:
            tokens = tokenize(stripped)
        except ValueError as exc:
            self.error(f"Could not parse command: {exc}")
            return True
        head = tokens[0].text
        if head == "/exit":
            return False
        try:
            if head == "/help":
                self._help(tokens[1:])
            elif head in {"/set", "/retain"} and len(tokens) > 1:
                self._dispatch(f"{head[1:]} {tokens[1].text}", tokens[2:])
            elif head.startswith("/"):
                self._dispatch(head[1:], tokens[1:])
            else:
                raise CommandDeclined(
                    "Only commands are accepted here; they start with '/'.",
                    help_topic="",
                )
        except CommandDeclined as exc:
            self.declined(exc)
        bind_feedback_mode(self.session.mode.name)
        return True

    def _dispatch(self, command: str, args: list[ArgToken]) -> None:
        handler = self._handlers.get(command)
        if handler is None:
            candidates = [name for name in self._handlers if name.startswith(command)]
            if len(candidates) != 1:
                raise CommandDeclined(f"Unknown command: /{command}", help_topic="")
            handler = self._handlers[candidates[0]]
        handler(args)

    def run(self, lines: Iterable[str]) -> None:
        for line in lines:
            if not self.execute(line):
                break

    def interact(self) -> None:
        """Read commands from the terminal until /exit or end of input."""

        while True:
            try:
                line = input(self.prompt())
            except EOFError:
                self._write("\n")
                return
            if not self.execute(line):
                return

    def _call(self, name: str, payload: object) -> Any:
        spec = get_operation(name)
        return spec.handler(self.session, payload)

    def _set_feedback(self, args: list[ArgToken]) -> None:
        parsed = _parse_args(args, {"retain": _OptionSpec()}, HELP_FEEDBACK)
        _check_max(parsed.positional, 1, HELP_FEEDBACK)
        mode = _at(parsed.positional, 0)
        if "retain" in parsed.flags:
            self._retain_feedback_named(mode)
            return
        output = self._call(
            "feedback.select", FeedbackSelectInput(mode=mode.text if mode is not None else "")
        )
        self.fluff(render_text(output))

    def _set_format(self, args: list[ArgToken]) -> None:
        parsed = _parse_args(args, {}, HELP_FORMAT)
        tokens = parsed.positional
        mode, field_token, template = _at(tokens, 0), _at(tokens, 1), _at(tokens, 2)
        self._call(
            "feedback.format",
            FeedbackFormatInput(
                mode=mode.text if mode is not None else "",
                field=field_token.text if field_token is not None else "",
                template=template.text if template is not None else None,
                selectors=tuple(token.text for token in tokens[3:]),
                mode_quoted=mode is not None and mode.quoted,
                field_quoted=field_token is not None and field_token.quoted,
                template_quoted=template is not None and template.quoted,
            ),
        )

    def _set_truncation(self, args: list[ArgToken]) -> None:
        parsed = _parse_args(args, {}, HELP_TRUNCATION)
        tokens = parsed.positional
        mode, length = _at(tokens, 0), _at(tokens, 1)
        self._call(
            "feedback.truncation",
            FeedbackTruncationInput(
                mode=mode.text if mode is not None else "",
                length=length.text if length is not None else "",
                selectors=tuple(token.text for token in tokens[2:]),
                mode_quoted=mode is not None and mode.quoted,
            ),
        )

    def _set_mode(self, args: list[ArgToken]) -> None:
        options = {
            "command": _OptionSpec(),
            "quiet": _OptionSpec(),
            "delete": _OptionSpec(),
            "retain": _OptionSpec(),
        }
        parsed = _parse_args(args, options, HELP_MODE)
        _check_max(parsed.positional, 2, HELP_MODE)
        name, source = _at(parsed.positional, 0), _at(parsed.positional, 1)
        delete = "delete" in parsed.flags
        if delete and "retain" in parsed.flags:
            if parsed.flags & {"command", "quiet"} or source is not None:
                raise CommandDeclined(
                    "Conflicting options: -delete cannot be combined with -command, "
                    "-quiet or a mode to copy.",
                    help_topic=HELP_MODE,
                )
            # unretain drops the local mode and the retained copy together.
            self._retain_mode_named(name, delete=True)
            return
        output = self._call(
            "feedback.mode",
            FeedbackModeInput(
                name=name.text if name is not None else "",
                copy_from=source.text if source is not None else None,
                command="command" in parsed.flags,
                quiet="quiet" in parsed.flags,
                delete=delete,
                name_quoted=name is not None and name.quoted,
                copy_from_quoted=source is not None and source.quoted,
            ),
        )
        self.fluff(render_text(output))
        if "retain" in parsed.flags:
            self._retain_mode_named(name, delete=False)

    def _set_prompt(self, args: list[ArgToken]) -> None:
        parsed = _parse_args(args, {}, HELP_PROMPT)
        _check_max(parsed.positional, 3, HELP_PROMPT)
        mode, prompt, continuation = (_at(parsed.positional, index) for index in range(3))
        self._call(
            "feedback.prompt",
            FeedbackPromptInput(
                mode=mode.text if mode is not None else "",
                prompt=prompt.text if prompt is not None else None,
                continuation_prompt=continuation.text if continuation is not None else None,
                mode_quoted=mode is not None and mode.quoted,
                prompt_quoted=prompt is not None and prompt.quoted,
                continuation_prompt_quoted=continuation is not None and continuation.quoted,
            ),
        )

    def _retain_feedback(self, args: list[ArgToken]) -> None:
        parsed = _parse_args(args, {}, HELP_RETAIN)
        _check_max(parsed.positional, 1, HELP_RETAIN)
        mode = _at(parsed.positional, 0)
        self._retain_feedback_named(mode)

    def _retain_feedback_named(self, mode: ArgToken | None) -> None:
        output: FeedbackRetainFeedbackOutput = self._call(
            "feedback.retain_feedback",
            FeedbackRetainFeedbackInput(
                mode=mode.text if mode is not None else None,
                mode_quoted=mode is not None and mode.quoted,
            ),
        )
        self.store.save_feedback(output.mode)
        self.fluff(render_text(output))

    def _retain_mode(self, args: list[ArgToken]) -> None:
        parsed = _parse_args(args, {"delete": _OptionSpec()}, HELP_RETAIN)
        _check_max(parsed.positional, 1, HELP_RETAIN)
        self._retain_mode_named(_at(parsed.positional, 0), delete="delete" in parsed.flags)

    def _retain_mode_named(self, name: ArgToken | None, *, delete: bool) -> None:
        output: FeedbackRetainModeOutput = self._call(
            "feedback.retain_mode",
            FeedbackRetainModeInput(
                name=name.text if name is not None else "",
                delete=delete,
                name_quoted=name is not None and name.quoted,
            ),
        )
        self.store.save_modes(output.encoded)

    def _list(self, args: list[ArgToken]) -> None:
        _check_max(args, 0, HELP_LIST)
        self.hard(render_text(self._call("feedback.list", FeedbackListInput())))

    def _show(self, args: list[ArgToken]) -> None:
        _check_max(args, 1, HELP_LIST)
        mode = _at(args, 0)
        output = self._call(
            "feedback.show", FeedbackShowInput(mode=mode.text if mode is not None else "")
        )
        self.hard(render_text(output))

    def _event(self, args: list[ArgToken]) -> None:
        options = {
            "name": _OptionSpec(takes_value=True),
            "type": _OptionSpec(takes_value=True),
            "value": _OptionSpec(takes_value=True),
            "unresolved": _OptionSpec(takes_value=True),
            "error": _OptionSpec(takes_value=True, repeatable=True),
            "mode": _OptionSpec(takes_value=True),
        }
        parsed = _parse_args(args, options, HELP_EVENT)
        _check_max(parsed.positional, 1, HELP_EVENT)
        context = _at(parsed.positional, 0)
        output = self._call(
            "feedback.render",
            FeedbackRenderInput(
                context=context.text if context is not None else "",
                mode=parsed.value("mode"),
                name=parsed.value("name"),
                type_=parsed.value("type"),
                value=parsed.value("value"),
                unresolved=parsed.value("unresolved"),
                errors=tuple(token.text for token in parsed.values.get("error", [])),
            ),
        )
        self._write(output.text)

    def _help(self, args: list[ArgToken]) -> None:
        topic = " ".join(token.text for token in args)
        if not topic:
            commands = get_shell_commands()
            lines = [
                f"/{command:<18}{commands[command].description}" for command in sorted(commands)
            ]
            lines.append(f"/{'help [topic]':<18}Show help for a command.")
            lines.append(f"/{'exit':<18}Leave the shell.")
            self.hard("\n".join(lines))
            return
        if not topic.startswith("/"):
            topic = "/" + topic
        text = HELP_TEXT.get(topic)
        if text is None:
            matches = [key for key in HELP_TEXT if key.startswith(topic)]
            if len(matches) != 1:
                raise CommandDeclined(f"No help for: {topic}", help_topic="")
            text = HELP_TEXT[matches[0]]
        self.hard(text)
