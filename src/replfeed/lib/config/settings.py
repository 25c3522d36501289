"""User-level operational config loader."""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, fields
from pathlib import Path
from typing import cast

from replfeed.lib.state.paths import resolve_state_paths

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ReplfeedConfig:
    """Resolved operational configuration for replfeed."""

    default_mode: str = "normal"
    prefs_file: str = "prefs.toml"
    # Welcome and goodbye banner of the interactive shell.
    show_fluff: bool = True


_SECTION_KEY_MAP: dict[str, dict[str, str]] = {
    "session": {
        "default_mode": "default_mode",
        "feedback": "default_mode",
        "show_fluff": "show_fluff",
    },
    "storage": {
        "prefs_file": "prefs_file",
    },
}

_TOP_LEVEL_KEY_MAP: dict[str, str] = {
    "default_mode": "default_mode",
    "prefs_file": "prefs_file",
    "show_fluff": "show_fluff",
}

_ENV_OVERRIDE_MAP: dict[str, str] = {
    "REPLFEED_DEFAULT_MODE": "default_mode",
    "REPLFEED_PREFS_FILE": "prefs_file",
}


def _expected_type_name(field_name: str) -> str:
    if field_name == "show_fluff":
        return "bool"
    return "str"


def _coerce_file_value(*, field_name: str, raw_value: object, source: str) -> object:
    expected = _expected_type_name(field_name)
    if expected == "bool":
        if not isinstance(raw_value, bool):
            raise ValueError(
                f"Invalid value for '{source}': expected bool, got "
                f"{type(raw_value).__name__} ({raw_value!r})."
            )
        return raw_value

    if not isinstance(raw_value, str):
        raise ValueError(
            f"Invalid value for '{source}': expected str, got "
            f"{type(raw_value).__name__} ({raw_value!r})."
        )
    normalized = raw_value.strip()
    if not normalized:
        raise ValueError(f"Invalid value for '{source}': expected non-empty string.")
    return normalized


def _coerce_env_value(*, field_name: str, raw_value: str, env_name: str) -> object:
    _ = field_name
    normalized = raw_value.strip()
    if not normalized:
        raise ValueError(
            f"Invalid environment override '{env_name}': expected non-empty string."
        )
    return normalized


def _default_values() -> dict[str, object]:
    defaults = ReplfeedConfig()
    return {field.name: getattr(defaults, field.name) for field in fields(ReplfeedConfig)}


def _apply_toml_payload(
    *,
    values: dict[str, object],
    payload: dict[str, object],
    path: Path,
) -> None:
    for key, raw_value in payload.items():
        section_map = _SECTION_KEY_MAP.get(key)
        if section_map is not None:
            if not isinstance(raw_value, dict):
                raise ValueError(f"Invalid value for '{key}' in '{path}': expected table.")
            for section_key, section_value in cast("dict[str, object]", raw_value).items():
                field_name = section_map.get(section_key)
                if field_name is None:
                    logger.warning(
                        "Ignoring unknown replfeed config key '%s.%s'.",
                        key,
                        section_key,
                    )
                    continue
                values[field_name] = _coerce_file_value(
                    field_name=field_name,
                    raw_value=section_value,
                    source=f"{key}.{section_key}",
                )
            continue

        field_name = _TOP_LEVEL_KEY_MAP.get(key)
        if field_name is None:
            logger.warning("Ignoring unknown replfeed config key '%s'.", key)
            continue
        values[field_name] = _coerce_file_value(
            field_name=field_name,
            raw_value=raw_value,
            source=key,
        )


def _apply_env_overrides(values: dict[str, object]) -> None:
    for env_name, field_name in _ENV_OVERRIDE_MAP.items():
        raw_value = os.getenv(env_name)
        if raw_value is None:
            continue
        values[field_name] = _coerce_env_value(
            field_name=field_name,
            raw_value=raw_value,
            env_name=env_name,
        )


def _build_config(values: dict[str, object]) -> ReplfeedConfig:
    return ReplfeedConfig(
        default_mode=cast("str", values["default_mode"]),
        prefs_file=cast("str", values["prefs_file"]),
        show_fluff=cast("bool", values["show_fluff"]),
    )


def load_config(home: Path | None = None) -> ReplfeedConfig:
    """Load `<home>/config.toml` and apply environment overrides."""

    values = _default_values()
    path = resolve_state_paths(home).config_path
    if path.is_file():
        payload_obj = tomllib.loads(path.read_text(encoding="utf-8"))
        payload = cast("dict[str, object]", payload_obj)
        _apply_toml_payload(values=values, payload=payload, path=path)

    _apply_env_overrides(values)
    return _build_config(values)
