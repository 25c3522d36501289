"""CLI command handlers for feedback.* operations."""

from __future__ import annotations

from collections.abc import Callable
from functools import partial
from typing import Annotated, Any

from cyclopts import Parameter

from replfeed.lib.feedback.session import FeedbackSession
from replfeed.lib.ops.feedback import (
    FeedbackListInput,
    FeedbackRenderInput,
    FeedbackShowInput,
    feedback_list_sync,
    feedback_render_sync,
    feedback_show_sync,
)
from replfeed.lib.ops.registry import get_all_operations

Emitter = Callable[[Any], None]
SessionFactory = Callable[[], FeedbackSession]


def _feedback_modes(emit: Emitter, open_session: SessionFactory) -> None:
    emit(feedback_list_sync(open_session(), FeedbackListInput()))


def _feedback_show(emit: Emitter, open_session: SessionFactory, mode: str = "") -> None:
    emit(feedback_show_sync(open_session(), FeedbackShowInput(mode=mode)))


def _feedback_render(
    emit: Emitter,
    open_session: SessionFactory,
    context: str,
    mode: Annotated[
        str | None,
        Parameter(name="--mode", help="Mode to render with (default: the active mode)."),
    ] = None,
    name: Annotated[str | None, Parameter(name="--name", help="Name of the snippet.")] = None,
    type_: Annotated[str | None, Parameter(name="--type", help="Type of the snippet.")] = None,
    value: Annotated[str | None, Parameter(name="--value", help="Value to display.")] = None,
    unresolved: Annotated[
        str | None,
        Parameter(name="--unresolved", help="Unresolved references, already joined."),
    ] = None,
    errors: Annotated[
        tuple[str, ...],
        Parameter(name="--error", help="Error line (repeatable).", negative_iterable=()),
    ] = (),
) -> None:
    emit(
        feedback_render_sync(
            open_session(),
            FeedbackRenderInput(
                context=context,
                mode=mode,
                name=name,
                type_=type_,
                value=value,
                unresolved=unresolved,
                errors=errors,
            ),
        )
    )


def register_feedback_commands(
    app: Any,
    emit: Emitter,
    open_session: SessionFactory,
) -> tuple[set[str], dict[str, str]]:
    handlers: dict[str, Callable[[], Callable[..., None]]] = {
        "feedback.list": lambda: partial(_feedback_modes, emit, open_session),
        "feedback.show": lambda: partial(_feedback_show, emit, open_session),
        "feedback.render": lambda: partial(_feedback_render, emit, open_session),
    }

    registered: set[str] = set()
    descriptions: dict[str, str] = {}

    for op in get_all_operations():
        if op.cli_name is None:
            continue
        handler_factory = handlers.get(op.name)
        if handler_factory is None:
            raise ValueError(f"No CLI handler registered for operation '{op.name}'")
        handler = handler_factory()
        handler.__name__ = f"cmd_{op.cli_name}"
        app.command(handler, name=op.cli_name, help=op.description)
        registered.add(op.cli_name)
        descriptions[op.name] = op.description

    return registered, descriptions
