"""Operation registry shared by the CLI and the interactive shell."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, TypeVar

if TYPE_CHECKING:
    from collections.abc import Callable

    from replfeed.lib.feedback.session import FeedbackSession

InputT = TypeVar("InputT")
OutputT = TypeVar("OutputT")


@dataclass(frozen=True, slots=True)
class OperationSpec(Generic[InputT, OutputT]):
    """Single source of truth for an operation exposed on both surfaces."""

    name: str
    handler: Callable[[FeedbackSession, InputT], OutputT]
    input_type: type[InputT]
    output_type: type[OutputT]
    help_topic: str
    description: str
    shell_command: str | None = None
    cli_name: str | None = None
    version: str = "1"


_REGISTRY: dict[str, OperationSpec[Any, Any]] = {}
_bootstrapped = False


def operation(spec: OperationSpec[InputT, OutputT]) -> OperationSpec[InputT, OutputT]:
    """Register an operation and guard against duplicates."""

    if spec.name in _REGISTRY:
        raise ValueError(
            f"Duplicate operation name '{spec.name}': already registered by "
            f"{_REGISTRY[spec.name].handler}"
        )
    _REGISTRY[spec.name] = spec
    return spec


def get_all_operations() -> list[OperationSpec[Any, Any]]:
    """Return all registered operations sorted by canonical name."""

    _ensure_bootstrapped()
    return [_REGISTRY[name] for name in sorted(_REGISTRY)]


def get_operation(name: str) -> OperationSpec[Any, Any]:
    """Fetch one operation spec by canonical name."""

    _ensure_bootstrapped()
    return _REGISTRY[name]


def get_shell_commands() -> dict[str, OperationSpec[Any, Any]]:
    """Map shell command words (``"set format"``) to their operations."""

    _ensure_bootstrapped()
    return {
        spec.shell_command: spec
        for spec in _REGISTRY.values()
        if spec.shell_command is not None
    }


def _bootstrap_operation_modules() -> None:
    # Imported lazily so operation modules can self-register via `operation(...)`.
    import replfeed.lib.ops.feedback as feedback_ops

    _ = (feedback_ops,)


def _ensure_bootstrapped() -> None:
    global _bootstrapped
    if _bootstrapped:
        return
    # Only mark bootstrapped after a successful import sequence so failures retry.
    _bootstrap_operation_modules()
    _bootstrapped = True
