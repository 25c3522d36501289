"""Feedback-mode engine: selectors, modes, templates and persistence."""

from replfeed.lib.feedback.axes import AXES, SELECTOR_TABLE
from replfeed.lib.feedback.codec import Context, Filter
from replfeed.lib.feedback.errors import (
    AmbiguousModeError,
    CorruptEncodingError,
    FeedbackError,
    LayoutError,
    ModeInUseError,
    ModeLookupError,
    ReadOnlyModeError,
    SelectorError,
    TemplateCycleError,
    TemplateError,
    UnknownModeError,
)
from replfeed.lib.feedback.mode import Mode, Rule
from replfeed.lib.feedback.registry import ModeRegistry
from replfeed.lib.feedback.selectors import parse_context, parse_selector, parse_selectors
from replfeed.lib.feedback.session import FeedbackSession

__all__ = [
    "AXES",
    "SELECTOR_TABLE",
    "AmbiguousModeError",
    "Context",
    "CorruptEncodingError",
    "FeedbackError",
    "FeedbackSession",
    "Filter",
    "LayoutError",
    "Mode",
    "ModeInUseError",
    "ModeLookupError",
    "ModeRegistry",
    "ReadOnlyModeError",
    "Rule",
    "SelectorError",
    "TemplateCycleError",
    "TemplateError",
    "UnknownModeError",
    "parse_context",
    "parse_selector",
    "parse_selectors",
]
