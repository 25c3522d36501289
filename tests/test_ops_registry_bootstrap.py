"""Registry bootstrap regression coverage."""

from __future__ import annotations

import pytest

from replfeed.lib.ops.feedback import feedback_select_sync
from replfeed.lib.ops.registry import (
    OperationSpec,
    get_all_operations,
    get_operation,
    get_shell_commands,
    operation,
)


def test_get_all_operations_bootstraps_registry() -> None:
    operations = get_all_operations()
    assert operations, "Expected operation registry to bootstrap and register operations"
    assert [spec.name for spec in operations] == sorted(spec.name for spec in operations)


def test_shell_commands_map_to_operations() -> None:
    commands = get_shell_commands()

    assert set(commands) == {
        "set feedback",
        "set format",
        "set truncation",
        "set mode",
        "set prompt",
        "retain feedback",
        "retain mode",
        "list",
        "show",
        "event",
    }
    assert commands["set feedback"].handler is feedback_select_sync


def test_cli_names_are_unique() -> None:
    names = [spec.cli_name for spec in get_all_operations() if spec.cli_name is not None]
    assert sorted(names) == ["modes", "render", "show"]


def test_duplicate_operation_names_are_rejected() -> None:
    existing = get_operation("feedback.select")
    with pytest.raises(ValueError, match="Duplicate operation name 'feedback.select'"):
        operation(
            OperationSpec(
                name=existing.name,
                handler=existing.handler,
                input_type=existing.input_type,
                output_type=existing.output_type,
                help_topic=existing.help_topic,
                description=existing.description,
            )
        )
