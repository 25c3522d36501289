"""Column layout for the mode listing and other tabular replies."""

from __future__ import annotations

from itertools import zip_longest


def tabular(rows: list[list[str]], sep: str = "  ") -> str:
    """Pad every column to its widest cell; trailing blanks are dropped.

    >>> tabular([["*", "normal", "predefined"], ["", "mine", ""]])
    '*  normal  predefined\\n   mine'
    """
    if not rows:
        return ""
    columns = list(zip_longest(*rows, fillvalue=""))
    widths = [max(len(cell) for cell in column) for column in columns]
    return "\n".join(
        sep.join(cell.ljust(width) for cell, width in zip(padded, widths, strict=True)).rstrip()
        for padded in zip(*columns, strict=True)
    )


def flag_list(flags: dict[str, bool]) -> str:
    """Comma-joined names of the enabled flags, in insertion order.

    >>> flag_list({"predefined": True, "retained": False, "quiet": True})
    'predefined,quiet'
    """
    return ",".join(name for name, enabled in flags.items() if enabled)
