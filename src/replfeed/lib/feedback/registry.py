"""Registry of named feedback modes and their retained encodings."""

from __future__ import annotations

import structlog

from replfeed.lib.feedback.encoding import decode_modes, encode_mode, encode_modes
from replfeed.lib.feedback.errors import (
    AmbiguousModeError,
    CorruptEncodingError,
    ModeInUseError,
    ReadOnlyModeError,
    UnknownModeError,
)
from replfeed.lib.feedback.mode import Mode

logger = structlog.get_logger(__name__)


def _read_only_error(name: str) -> ReadOnlyModeError:
    return ReadOnlyModeError(f"Not valid with a predefined mode: {name}")


class ModeRegistry:
    """Modes by name, the active mode, and what was last persisted.

    ``retained`` maps a mode name to the encoding written by the most recent
    retain of that mode, so later retains and deletes work against what the
    preferences store actually holds.
    """

    def __init__(self) -> None:
        self._modes: dict[str, Mode] = {}
        self._retained: dict[str, str] = {}
        self._active: Mode | None = None
        self._retained_current: Mode | None = None

    def __contains__(self, name: object) -> bool:
        return name in self._modes

    @property
    def active(self) -> Mode:
        if self._active is None:
            raise LookupError("No feedback mode has been selected.")
        return self._active

    @property
    def retained_current(self) -> Mode | None:
        return self._retained_current

    def names(self) -> tuple[str, ...]:
        return tuple(self._modes)

    def modes(self) -> tuple[Mode, ...]:
        return tuple(self._modes.values())

    def retained_names(self) -> tuple[str, ...]:
        return tuple(self._retained)

    def is_retained(self, name: str) -> bool:
        return name in self._retained

    def get(self, name: str) -> Mode | None:
        return self._modes.get(name)

    def lookup(self, name: str) -> Mode:
        """Resolve an exact name or a unique case-sensitive prefix."""

        exact = self._modes.get(name)
        if exact is not None:
            return exact
        matches = [mode for key, mode in self._modes.items() if key.startswith(name)]
        if len(matches) == 1:
            return matches[0]
        if not matches:
            raise UnknownModeError(
                f"Does not match any current feedback mode: {name}", name=name
            )
        raise AmbiguousModeError(
            f"Matches more than one current feedback mode: {name}", name=name
        )

    def add(self, mode: Mode) -> None:
        self._modes[mode.name] = mode

    def select(self, mode: Mode) -> None:
        self._active = mode

    def mark_read_only(self) -> None:
        for mode in self._modes.values():
            mode.freeze()

    def create(self, name: str, source: Mode | None = None) -> Mode:
        """Create (or replace) ``name`` as a copy of ``source`` or a fresh skeleton."""

        existing = self._modes.get(name)
        if existing is not None and existing.read_only:
            raise _read_only_error(name)
        mode = Mode.copy_of(name, source) if source is not None else Mode.fresh(name)
        self._modes[name] = mode
        if self._active is not None and self._active.name == name:
            self._active = mode
        logger.debug(
            "feedback mode created",
            mode=name,
            copied_from=source.name if source is not None else None,
        )
        return mode

    def _check_removable(self, name: str) -> None:
        if self._active is not None and self._active.name == name:
            raise ModeInUseError(f"The current feedback mode '{name}' cannot be deleted.")
        if self._retained_current is not None and self._retained_current.name == name:
            raise ModeInUseError(
                f"The retained feedback mode '{name}' cannot be deleted; "
                "retain a different feedback mode first."
            )

    def delete(self, name: str) -> None:
        mode = self._modes.get(name)
        if mode is None:
            raise UnknownModeError(f"Does not match any current feedback mode: {name}", name=name)
        if mode.read_only:
            raise _read_only_error(name)
        self._check_removable(name)
        del self._modes[name]
        logger.debug("feedback mode deleted", mode=name)

    def retain(self, mode: Mode) -> str:
        """Snapshot ``mode`` for persistence; returns every retained encoding."""

        if mode.read_only:
            raise _read_only_error(mode.name)
        self._retained[mode.name] = encode_mode(mode)
        logger.debug("feedback mode retained", mode=mode.name)
        return self.retained_blob()

    def unretain(self, name: str) -> str:
        """Drop ``name`` locally and from retention; it may exist in only one."""

        mode = self._modes.get(name)
        if mode is None and name not in self._retained:
            raise UnknownModeError(f"Does not match any current feedback mode: {name}", name=name)
        if mode is not None and mode.read_only:
            raise _read_only_error(name)
        self._check_removable(name)
        self._modes.pop(name, None)
        self._retained.pop(name, None)
        logger.debug("feedback mode unretained", mode=name)
        return self.retained_blob()

    def retained_blob(self) -> str:
        return encode_modes(self._retained.values())

    def retain_feedback(self, name: str | None = None) -> str:
        """Make ``name`` the active and retained-current mode; returns the active name.

        Only built-in or retained modes qualify, since anything else would not
        exist when the next session starts. Without a name the active mode is
        reported unchanged.
        """

        if name is not None:
            mode = self.lookup(name)
            if not mode.read_only and mode.name not in self._retained:
                raise ModeInUseError(
                    f"Mode '{mode.name}' must be retained or predefined "
                    "before it can be the retained feedback mode."
                )
            self._active = mode
            self._retained_current = mode
        return self.active.name

    def restore(self, blob: str) -> tuple[str, ...]:
        """Install every mode encoded in ``blob``, or none of them.

        On a corrupt blob the retained snapshot is discarded and the error
        propagates; modes already in the registry are left alone.
        """

        try:
            modes = decode_modes(blob)
            for mode in modes:
                existing = self._modes.get(mode.name)
                if existing is not None and existing.read_only:
                    raise CorruptEncodingError(
                        f"Encoded mode '{mode.name}' collides with a predefined mode."
                    )
        except CorruptEncodingError:
            self._retained.clear()
            logger.error("retained feedback modes discarded", exc_info=True)
            raise

        for mode in modes:
            self._modes[mode.name] = mode
            self._retained[mode.name] = encode_mode(mode)
        logger.debug("feedback modes restored", modes=[mode.name for mode in modes])
        return tuple(mode.name for mode in modes)
