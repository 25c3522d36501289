"""Core replfeed library exports."""

from replfeed.lib.feedback import FeedbackSession, Mode, ModeRegistry
from replfeed.lib.types import EncodedModes, ModeName

__all__ = ["EncodedModes", "FeedbackSession", "Mode", "ModeName", "ModeRegistry"]
