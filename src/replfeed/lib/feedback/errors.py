"""Error taxonomy for the feedback engine.

Every engine failure is a ``ValueError`` so callers that already treat
``ValueError`` as "declined input" (the CLI entry point does) keep working.
"""

from __future__ import annotations


class FeedbackError(ValueError):
    """Base class for feedback engine failures."""


class LayoutError(FeedbackError):
    """Axis cardinalities do not fit the packed integer width."""


class SelectorError(FeedbackError):
    """A selector expression could not be parsed."""


class ModeLookupError(FeedbackError):
    """A mode name did not resolve to exactly one mode."""

    def __init__(self, message: str, *, name: str) -> None:
        super().__init__(message)
        self.name = name


class UnknownModeError(ModeLookupError):
    """No mode matches the given name or prefix."""


class AmbiguousModeError(ModeLookupError):
    """More than one mode starts with the given prefix."""


class ReadOnlyModeError(FeedbackError):
    """A built-in mode was targeted by a mutation."""


class ModeInUseError(FeedbackError):
    """The mode is active or retained as the startup mode."""


class TemplateError(FeedbackError):
    """A template could not be substituted."""


class TemplateCycleError(TemplateError):
    """A field reference expands back into itself."""

    def __init__(self, chain: tuple[str, ...]) -> None:
        super().__init__(
            "Format field references form a cycle: " + " -> ".join(chain)
        )
        self.chain = chain


class CorruptEncodingError(FeedbackError):
    """A persisted mode blob is malformed."""
