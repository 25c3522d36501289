"""Feedback-mode operations: the commands that configure how events are shown.

Every handler validates its whole payload before touching the registry, so a
declined command never leaves a mode half-updated.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

import structlog

from replfeed.lib.feedback.encoding import RECORD_SEPARATOR
from replfeed.lib.feedback.errors import FeedbackError, ModeLookupError
from replfeed.lib.feedback.mode import DECORATION_FIELDS, TRUNCATION_FIELD, Mode, is_valid_name
from replfeed.lib.feedback.selectors import parse_context, parse_selectors
from replfeed.lib.feedback.template import substitute
from replfeed.lib.ops.registry import OperationSpec, operation

if TYPE_CHECKING:
    from collections.abc import Iterator

    from replfeed.lib.feedback.session import FeedbackSession
    from replfeed.lib.formatting import FormatContext

logger = structlog.get_logger(__name__)

HELP_FEEDBACK = "/set feedback"
HELP_FORMAT = "/set format"
HELP_TRUNCATION = "/set truncation"
HELP_MODE = "/set mode"
HELP_PROMPT = "/set prompt"
HELP_RETAIN = "/retain"
HELP_LIST = "/list"
HELP_EVENT = "/event"


class CommandDeclined(ValueError):
    """A command was refused; nothing was changed."""

    def __init__(
        self,
        message: str,
        *,
        help_topic: str,
        known_modes: tuple[str, ...] = (),
    ) -> None:
        super().__init__(message)
        self.message = message
        self.help_topic = help_topic
        self.known_modes = known_modes


@contextmanager
def _declining(help_topic: str, session: FeedbackSession | None = None) -> Iterator[None]:
    try:
        yield
    except ModeLookupError as exc:
        known = session.registry.names() if session is not None else ()
        raise CommandDeclined(str(exc), help_topic=help_topic, known_modes=known) from exc
    except FeedbackError as exc:
        raise CommandDeclined(str(exc), help_topic=help_topic) from exc


def _require_name(text: str, *, quoted: bool, what: str, help_topic: str) -> str:
    if not text:
        raise CommandDeclined(f"Expected a {what}.", help_topic=help_topic)
    if quoted:
        raise CommandDeclined(
            f"The {what} should not be quoted: {text}", help_topic=help_topic
        )
    if not is_valid_name(text):
        raise CommandDeclined(f"Invalid {what}: {text}", help_topic=help_topic)
    return text


def _require_template(text: str | None, *, quoted: bool, what: str, help_topic: str) -> str:
    if text is None:
        raise CommandDeclined(f"Expected a {what}.", help_topic=help_topic)
    if not quoted:
        raise CommandDeclined(f"The {what} must be quoted: {text}", help_topic=help_topic)
    _check_reserved(text, what=what, help_topic=help_topic)
    return text


def _check_reserved(text: str, *, what: str, help_topic: str) -> None:
    if RECORD_SEPARATOR in text:
        raise CommandDeclined(
            f"The {what} may not contain the reserved character U+241E.",
            help_topic=help_topic,
        )


def _writable_mode(session: FeedbackSession, name: str, help_topic: str) -> Mode:
    with _declining(help_topic, session):
        mode = session.registry.lookup(name)
    if mode.read_only:
        raise CommandDeclined(
            f"Not valid with a predefined mode: {mode.name}", help_topic=help_topic
        )
    return mode


@dataclass(frozen=True, slots=True)
class FeedbackSelectInput:
    mode: str = ""


@dataclass(frozen=True, slots=True)
class FeedbackSelectOutput:
    mode: str
    fluff: bool

    def format_text(self, ctx: FormatContext | None = None) -> str:
        _ = ctx
        return f"Feedback mode: {self.mode}" if self.fluff else ""


def feedback_select_sync(
    session: FeedbackSession, payload: FeedbackSelectInput
) -> FeedbackSelectOutput:
    if not payload.mode:
        raise CommandDeclined(
            "Missing the feedback mode.",
            help_topic=HELP_FEEDBACK,
            known_modes=session.registry.names(),
        )
    with _declining(HELP_FEEDBACK, session):
        mode = session.registry.lookup(payload.mode)
    session.registry.select(mode)
    return FeedbackSelectOutput(mode=mode.name, fluff=mode.command_fluff)


@dataclass(frozen=True, slots=True)
class FeedbackFormatInput:
    mode: str = ""
    field: str = ""
    template: str | None = None
    selectors: tuple[str, ...] = ()
    mode_quoted: bool = False
    field_quoted: bool = False
    template_quoted: bool = True


@dataclass(frozen=True, slots=True)
class FeedbackFormatOutput:
    mode: str
    field: str
    rules_added: int

    def format_text(self, ctx: FormatContext | None = None) -> str:
        _ = ctx
        return ""


def feedback_format_sync(
    session: FeedbackSession, payload: FeedbackFormatInput
) -> FeedbackFormatOutput:
    mode_name = _require_name(
        payload.mode, quoted=payload.mode_quoted, what="feedback mode name", help_topic=HELP_FORMAT
    )
    field = _require_name(
        payload.field, quoted=payload.field_quoted, what="field name", help_topic=HELP_FORMAT
    )
    template = _require_template(
        payload.template, quoted=payload.template_quoted, what="format", help_topic=HELP_FORMAT
    )
    mode = _writable_mode(session, mode_name, HELP_FORMAT)
    with _declining(HELP_FORMAT, session):
        filters = parse_selectors(payload.selectors)
        # Decorations must still expand; try the rules on a scratch copy first.
        trial = Mode.copy_of(mode.name, mode)
        for rule_filter in filters:
            trial.set(field, rule_filter, template)
        for decoration in DECORATION_FIELDS:
            trial.decoration(decoration)
        for rule_filter in filters:
            mode.set(field, rule_filter, template)
    return FeedbackFormatOutput(mode=mode.name, field=field, rules_added=len(filters))


@dataclass(frozen=True, slots=True)
class FeedbackTruncationInput:
    mode: str = ""
    length: str = ""
    selectors: tuple[str, ...] = ()
    mode_quoted: bool = False


@dataclass(frozen=True, slots=True)
class FeedbackTruncationOutput:
    mode: str
    length: int
    rules_added: int

    def format_text(self, ctx: FormatContext | None = None) -> str:
        _ = ctx
        return ""


def feedback_truncation_sync(
    session: FeedbackSession, payload: FeedbackTruncationInput
) -> FeedbackTruncationOutput:
    mode_name = _require_name(
        payload.mode,
        quoted=payload.mode_quoted,
        what="feedback mode name",
        help_topic=HELP_TRUNCATION,
    )
    length = payload.length.strip()
    if not (length.isascii() and length.isdigit()):
        raise CommandDeclined(
            f"Truncation length must be an unsigned integer: {payload.length}",
            help_topic=HELP_TRUNCATION,
        )
    mode = _writable_mode(session, mode_name, HELP_TRUNCATION)
    with _declining(HELP_TRUNCATION, session):
        filters = parse_selectors(payload.selectors)
        for rule_filter in filters:
            mode.set(TRUNCATION_FIELD, rule_filter, length)
    return FeedbackTruncationOutput(mode=mode.name, length=int(length), rules_added=len(filters))


@dataclass(frozen=True, slots=True)
class FeedbackModeInput:
    name: str = ""
    copy_from: str | None = None
    command: bool = False
    quiet: bool = False
    delete: bool = False
    name_quoted: bool = False
    copy_from_quoted: bool = False


@dataclass(frozen=True, slots=True)
class FeedbackModeOutput:
    mode: str
    action: Literal["created", "updated", "deleted"]
    fluff: bool

    def format_text(self, ctx: FormatContext | None = None) -> str:
        _ = ctx
        if not self.fluff:
            return ""
        if self.action == "created":
            return f"Created new feedback mode: {self.mode}"
        if self.action == "deleted":
            return f"Deleted feedback mode: {self.mode}"
        return f"Updated feedback mode: {self.mode}"


def feedback_mode_sync(session: FeedbackSession, payload: FeedbackModeInput) -> FeedbackModeOutput:
    registry = session.registry
    options = (
        ("-command", payload.command),
        ("-quiet", payload.quiet),
        ("-delete", payload.delete),
    )
    chosen = [flag for flag, enabled in options if enabled]
    if len(chosen) > 1:
        raise CommandDeclined(
            f"Conflicting options: {' '.join(chosen)}", help_topic=HELP_MODE
        )
    name = _require_name(
        payload.name, quoted=payload.name_quoted, what="feedback mode name", help_topic=HELP_MODE
    )
    fluff_now = session.should_display_fluff()
    existing = registry.get(name)
    if existing is not None and existing.read_only:
        raise CommandDeclined(f"Not valid with a predefined mode: {name}", help_topic=HELP_MODE)

    if payload.delete:
        if payload.copy_from is not None:
            raise CommandDeclined(
                "A mode to copy from cannot be given with -delete.", help_topic=HELP_MODE
            )
        with _declining(HELP_MODE, session):
            registry.delete(name)
        return FeedbackModeOutput(mode=name, action="deleted", fluff=fluff_now)

    source: Mode | None = None
    if payload.copy_from is not None:
        copy_from = _require_name(
            payload.copy_from,
            quoted=payload.copy_from_quoted,
            what="feedback mode to copy",
            help_topic=HELP_MODE,
        )
        with _declining(HELP_MODE, session):
            source = registry.lookup(copy_from)

    if source is not None or existing is None:
        with _declining(HELP_MODE, session):
            mode = registry.create(name, source)
        action: Literal["created", "updated"] = "created"
    else:
        mode = existing
        action = "updated"
    if payload.command or payload.quiet or source is None:
        mode.set_command_fluff(not payload.quiet)
    return FeedbackModeOutput(mode=name, action=action, fluff=fluff_now)


@dataclass(frozen=True, slots=True)
class FeedbackPromptInput:
    mode: str = ""
    prompt: str | None = None
    continuation_prompt: str | None = None
    mode_quoted: bool = False
    prompt_quoted: bool = True
    continuation_prompt_quoted: bool = True


@dataclass(frozen=True, slots=True)
class FeedbackPromptOutput:
    mode: str

    def format_text(self, ctx: FormatContext | None = None) -> str:
        _ = ctx
        return ""


def feedback_prompt_sync(
    session: FeedbackSession, payload: FeedbackPromptInput
) -> FeedbackPromptOutput:
    mode_name = _require_name(
        payload.mode, quoted=payload.mode_quoted, what="feedback mode name", help_topic=HELP_PROMPT
    )
    prompt = _require_template(
        payload.prompt, quoted=payload.prompt_quoted, what="prompt", help_topic=HELP_PROMPT
    )
    continuation = _require_template(
        payload.continuation_prompt,
        quoted=payload.continuation_prompt_quoted,
        what="continuation prompt",
        help_topic=HELP_PROMPT,
    )
    mode = _writable_mode(session, mode_name, HELP_PROMPT)
    with _declining(HELP_PROMPT, session):
        substitute(prompt, "1")
        substitute(continuation, "1")
    mode.set_prompts(prompt, continuation)
    return FeedbackPromptOutput(mode=mode.name)


@dataclass(frozen=True, slots=True)
class FeedbackRetainFeedbackInput:
    mode: str | None = None
    mode_quoted: bool = False


@dataclass(frozen=True, slots=True)
class FeedbackRetainFeedbackOutput:
    mode: str
    fluff: bool

    def format_text(self, ctx: FormatContext | None = None) -> str:
        _ = ctx
        return f"Feedback mode: {self.mode}" if self.fluff else ""


def feedback_retain_feedback_sync(
    session: FeedbackSession, payload: FeedbackRetainFeedbackInput
) -> FeedbackRetainFeedbackOutput:
    requested = None
    if payload.mode:
        requested = _require_name(
            payload.mode,
            quoted=payload.mode_quoted,
            what="feedback mode name",
            help_topic=HELP_RETAIN,
        )
    with _declining(HELP_RETAIN, session):
        name = session.registry.retain_feedback(requested)
    return FeedbackRetainFeedbackOutput(mode=name, fluff=session.should_display_fluff())


@dataclass(frozen=True, slots=True)
class FeedbackRetainModeInput:
    name: str = ""
    delete: bool = False
    name_quoted: bool = False


@dataclass(frozen=True, slots=True)
class FeedbackRetainModeOutput:
    mode: str
    deleted: bool
    encoded: str

    def format_text(self, ctx: FormatContext | None = None) -> str:
        _ = ctx
        return ""


def feedback_retain_mode_sync(
    session: FeedbackSession, payload: FeedbackRetainModeInput
) -> FeedbackRetainModeOutput:
    name = _require_name(
        payload.name, quoted=payload.name_quoted, what="feedback mode name", help_topic=HELP_RETAIN
    )
    registry = session.registry
    with _declining(HELP_RETAIN, session):
        if payload.delete:
            encoded = registry.unretain(name)
        else:
            mode = registry.lookup(name)
            name = mode.name
            encoded = registry.retain(mode)
    return FeedbackRetainModeOutput(mode=name, deleted=payload.delete, encoded=encoded)


@dataclass(frozen=True, slots=True)
class FeedbackRestoreInput:
    encoded: str = ""


@dataclass(frozen=True, slots=True)
class FeedbackRestoreOutput:
    modes: tuple[str, ...]

    def format_text(self, ctx: FormatContext | None = None) -> str:
        _ = ctx
        return ""


def feedback_restore_sync(
    session: FeedbackSession, payload: FeedbackRestoreInput
) -> FeedbackRestoreOutput:
    with _declining(HELP_RETAIN, session):
        restored = session.registry.restore(payload.encoded)
    return FeedbackRestoreOutput(modes=restored)


@dataclass(frozen=True, slots=True)
class ModeSummary:
    name: str
    read_only: bool
    active: bool
    retained: bool
    command_fluff: bool


@dataclass(frozen=True, slots=True)
class FeedbackListInput:
    pass


@dataclass(frozen=True, slots=True)
class FeedbackListOutput:
    modes: tuple[ModeSummary, ...]

    def format_text(self, ctx: FormatContext | None = None) -> str:
        """One row per mode: active marker, name, flags. Terse output lists names."""

        from replfeed.cli.format_helpers import flag_list, tabular

        if ctx is not None and ctx.terse:
            return "\n".join(summary.name for summary in self.modes)
        rows = [
            [
                "*" if summary.active else "",
                summary.name,
                flag_list(
                    {
                        "predefined": summary.read_only,
                        "retained": summary.retained,
                        "quiet": not summary.command_fluff,
                    }
                ),
            ]
            for summary in self.modes
        ]
        return tabular(rows)


def feedback_list_sync(session: FeedbackSession, payload: FeedbackListInput) -> FeedbackListOutput:
    _ = payload
    registry = session.registry
    active = registry.active.name
    return FeedbackListOutput(
        modes=tuple(
            ModeSummary(
                name=mode.name,
                read_only=mode.read_only,
                active=mode.name == active,
                retained=registry.is_retained(mode.name),
                command_fluff=mode.command_fluff,
            )
            for mode in registry.modes()
        )
    )


@dataclass(frozen=True, slots=True)
class RuleView:
    field: str
    selector: str
    template: str


@dataclass(frozen=True, slots=True)
class FeedbackShowInput:
    mode: str = ""


def _quote(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace("\n", "\\n").replace("\t", "\\t")
    if '"' not in escaped:
        return f'"{escaped}"'
    if "'" not in escaped:
        return f"'{escaped}'"
    # Neither quote can be escaped inside itself; spell the double quote out.
    return '"' + escaped.replace('"', "\\u0022") + '"'


@dataclass(frozen=True, slots=True)
class FeedbackShowOutput:
    mode: str
    read_only: bool
    command_fluff: bool
    prompt: str
    continuation_prompt: str
    rules: tuple[RuleView, ...]

    def format_text(self, ctx: FormatContext | None = None) -> str:
        """Render as the commands that would rebuild the mode."""

        _ = ctx
        option = "-command" if self.command_fluff else "-quiet"
        lines = [
            f"/set mode {self.mode} {option}",
            f"/set prompt {self.mode} {_quote(self.prompt)} {_quote(self.continuation_prompt)}",
        ]
        for rule in self.rules:
            selector = f" {rule.selector}" if rule.selector else ""
            if rule.field == TRUNCATION_FIELD:
                lines.append(f"/set truncation {self.mode} {rule.template}{selector}")
            else:
                lines.append(
                    f"/set format {self.mode} {rule.field} {_quote(rule.template)}{selector}"
                )
        return "\n".join(lines)


def feedback_show_sync(session: FeedbackSession, payload: FeedbackShowInput) -> FeedbackShowOutput:
    registry = session.registry
    with _declining(HELP_LIST, session):
        mode = registry.lookup(payload.mode) if payload.mode else registry.active
    rules = tuple(
        RuleView(field=field, selector=rule.filter.describe(), template=rule.template)
        for field in mode.field_names()
        for rule in mode.rules(field)
        if not rule.filter.matches_nothing()
    )
    return FeedbackShowOutput(
        mode=mode.name,
        read_only=mode.read_only,
        command_fluff=mode.command_fluff,
        prompt=mode.prompt,
        continuation_prompt=mode.continuation_prompt,
        rules=rules,
    )


@dataclass(frozen=True, slots=True)
class FeedbackRenderInput:
    context: str = ""
    mode: str | None = None
    name: str | None = None
    type_: str | None = None
    value: str | None = None
    unresolved: str | None = None
    errors: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class FeedbackRenderOutput:
    mode: str
    context: str
    text: str

    def format_text(self, ctx: FormatContext | None = None) -> str:
        _ = ctx
        return self.text.removesuffix("\n")


def feedback_render_sync(
    session: FeedbackSession, payload: FeedbackRenderInput
) -> FeedbackRenderOutput:
    with _declining(HELP_EVENT, session):
        context = parse_context(payload.context)
        mode = session.registry.lookup(payload.mode) if payload.mode else session.mode
        text = mode.format(
            context,
            payload.name,
            payload.type_,
            payload.value,
            payload.unresolved,
            payload.errors,
        )
    logger.debug("event rendered", mode=mode.name, context=payload.context)
    return FeedbackRenderOutput(
        mode=mode.name,
        context="-".join(value.selector for value in context.values()),
        text=text,
    )


operation(
    OperationSpec(
        name="feedback.select",
        handler=feedback_select_sync,
        input_type=FeedbackSelectInput,
        output_type=FeedbackSelectOutput,
        help_topic=HELP_FEEDBACK,
        shell_command="set feedback",
        description="Select the active feedback mode by name or unique prefix.",
    )
)

operation(
    OperationSpec(
        name="feedback.format",
        handler=feedback_format_sync,
        input_type=FeedbackFormatInput,
        output_type=FeedbackFormatOutput,
        help_topic=HELP_FORMAT,
        shell_command="set format",
        description="Add a format rule for a field of a user-defined mode.",
    )
)

operation(
    OperationSpec(
        name="feedback.truncation",
        handler=feedback_truncation_sync,
        input_type=FeedbackTruncationInput,
        output_type=FeedbackTruncationOutput,
        help_topic=HELP_TRUNCATION,
        shell_command="set truncation",
        description="Set the maximum length of displayed values.",
    )
)

operation(
    OperationSpec(
        name="feedback.mode",
        handler=feedback_mode_sync,
        input_type=FeedbackModeInput,
        output_type=FeedbackModeOutput,
        help_topic=HELP_MODE,
        shell_command="set mode",
        description="Create, copy, configure or delete a user-defined feedback mode.",
    )
)

operation(
    OperationSpec(
        name="feedback.prompt",
        handler=feedback_prompt_sync,
        input_type=FeedbackPromptInput,
        output_type=FeedbackPromptOutput,
        help_topic=HELP_PROMPT,
        shell_command="set prompt",
        description="Set the normal and continuation prompts of a mode.",
    )
)

operation(
    OperationSpec(
        name="feedback.retain_feedback",
        handler=feedback_retain_feedback_sync,
        input_type=FeedbackRetainFeedbackInput,
        output_type=FeedbackRetainFeedbackOutput,
        help_topic=HELP_RETAIN,
        shell_command="retain feedback",
        description="Keep the chosen feedback mode for future sessions.",
    )
)

operation(
    OperationSpec(
        name="feedback.retain_mode",
        handler=feedback_retain_mode_sync,
        input_type=FeedbackRetainModeInput,
        output_type=FeedbackRetainModeOutput,
        help_topic=HELP_RETAIN,
        shell_command="retain mode",
        description="Keep a user-defined mode for future sessions, or forget it.",
    )
)

operation(
    OperationSpec(
        name="feedback.restore",
        handler=feedback_restore_sync,
        input_type=FeedbackRestoreInput,
        output_type=FeedbackRestoreOutput,
        help_topic=HELP_RETAIN,
        description="Restore retained modes from their encoded form.",
    )
)

operation(
    OperationSpec(
        name="feedback.list",
        handler=feedback_list_sync,
        input_type=FeedbackListInput,
        output_type=FeedbackListOutput,
        help_topic=HELP_LIST,
        shell_command="list",
        cli_name="modes",
        description="List feedback modes.",
    )
)

operation(
    OperationSpec(
        name="feedback.show",
        handler=feedback_show_sync,
        input_type=FeedbackShowInput,
        output_type=FeedbackShowOutput,
        help_topic=HELP_LIST,
        shell_command="show",
        cli_name="show",
        description="Show the settings of a feedback mode as commands.",
    )
)

operation(
    OperationSpec(
        name="feedback.render",
        handler=feedback_render_sync,
        input_type=FeedbackRenderInput,
        output_type=FeedbackRenderOutput,
        help_topic=HELP_EVENT,
        shell_command="event",
        cli_name="render",
        description="Render one event with a feedback mode.",
    )
)
