"""Operations shared by the one-shot CLI commands and the interactive shell."""

from replfeed.lib.ops.registry import (
    OperationSpec,
    get_all_operations,
    get_operation,
    get_shell_commands,
    operation,
)

__all__ = [
    "OperationSpec",
    "get_all_operations",
    "get_operation",
    "get_shell_commands",
    "operation",
]
