"""Structlog setup shared by the one-shot CLI commands and the shell."""

from __future__ import annotations

import logging as std_logging
import sys

import structlog

_LEVELS = (std_logging.WARNING, std_logging.INFO, std_logging.DEBUG)


def level_for(verbosity: int) -> int:
    """``-v`` raises the level to INFO, ``-vv`` and beyond to DEBUG."""

    return _LEVELS[min(max(verbosity, 0), len(_LEVELS) - 1)]


def configure_logging(json_mode: bool = False, verbosity: int = 0) -> None:
    """Route structlog and stdlib records to stderr at the requested level.

    Stdout carries rendered feedback and command output only, so shell
    transcripts and ``--json`` payloads stay clean.
    """

    level = level_for(verbosity)
    handler = std_logging.StreamHandler(sys.stderr)
    handler.setFormatter(std_logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    std_logging.basicConfig(level=level, handlers=[handler], force=True)

    renderer: structlog.typing.Processor
    if json_mode:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def bind_feedback_mode(mode: str) -> None:
    """Tag every later log event with the mode the session is rendering with."""

    structlog.contextvars.bind_contextvars(feedback_mode=mode)
