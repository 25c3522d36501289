"""Event-reporter facade over the mode registry."""

from __future__ import annotations

from typing import TYPE_CHECKING, Self

from replfeed.lib.feedback.builtin import DEFAULT_MODE, install_builtin_modes
from replfeed.lib.feedback.registry import ModeRegistry

if TYPE_CHECKING:
    from collections.abc import Sequence

    from replfeed.lib.feedback.codec import Context
    from replfeed.lib.feedback.mode import Mode


class FeedbackSession:
    """Formats events with whichever mode is currently active."""

    def __init__(self, registry: ModeRegistry) -> None:
        self.registry = registry

    @classmethod
    def create(cls, default_mode: str = DEFAULT_MODE) -> Self:
        """Build the predefined modes and select ``default_mode`` (prefix allowed)."""

        registry = ModeRegistry()
        install_builtin_modes(registry)
        registry.select(registry.lookup(default_mode))
        return cls(registry)

    @property
    def mode(self) -> Mode:
        return self.registry.active

    def format_event(
        self,
        context: Context,
        *,
        name: str | None = None,
        type_: str | None = None,
        value: str | None = None,
        unresolved: str | None = None,
        error_lines: Sequence[str] = (),
    ) -> str:
        return self.mode.format(context, name, type_, value, unresolved, error_lines)

    def pre(self) -> str:
        return self.mode.decoration("pre")

    def post(self) -> str:
        return self.mode.decoration("post")

    def error_pre(self) -> str:
        return self.mode.decoration("errorpre")

    def error_post(self) -> str:
        return self.mode.decoration("errorpost")

    def prompt(self, next_id: str) -> str:
        return self.mode.prompt_text(next_id)

    def continuation_prompt(self, next_id: str) -> str:
        return self.mode.continuation_prompt_text(next_id)

    def should_display_fluff(self) -> bool:
        return self.mode.command_fluff
