"""Rule precedence, truncation and event rendering on a single mode."""

from __future__ import annotations

import pytest

from replfeed.lib.feedback.axes import FormatAction, FormatCase, FormatErrors, FormatWhen
from replfeed.lib.feedback.codec import Context, Filter
from replfeed.lib.feedback.errors import ReadOnlyModeError
from replfeed.lib.feedback.mode import (
    DEFAULT_CONTINUATION_PROMPT,
    DEFAULT_PROMPT,
    TRUNCATION_FIELD,
    Mode,
    is_valid_name,
)
from replfeed.lib.feedback.selectors import parse_selector


def _mode_with_truncation(limit: int) -> Mode:
    mode = Mode.fresh("t")
    mode.set(TRUNCATION_FIELD, Filter.universal(), str(limit))
    return mode


def test_fresh_mode_has_skeleton_rules() -> None:
    mode = Mode.fresh("m")
    assert mode.command_fluff
    assert mode.prompt == DEFAULT_PROMPT
    assert mode.continuation_prompt == DEFAULT_CONTINUATION_PROMPT
    assert mode.resolve_template("name", 0) == "%1$s"
    assert mode.resolve_template("errorline", 0) == "    {err}%n"
    assert mode.decoration("pre") == "|  "
    assert mode.decoration("post") == "\n"


def test_newer_narrower_rule_wins() -> None:
    mode = Mode.fresh("m")
    mode.set("display", Filter.universal(), "general")
    mode.set("display", parse_selector("class"), "class only")

    class_bits = Context(FormatCase.CLASS).pack()
    method_bits = Context(FormatCase.METHOD).pack()
    assert mode.resolve_template("display", class_bits) == "class only"
    assert mode.resolve_template("display", method_bits) == "general"


def test_newer_broader_rule_shadows_older_narrow_rule() -> None:
    mode = Mode.fresh("m")
    mode.set("display", parse_selector("class"), "class only")
    mode.set("display", Filter.universal(), "general")

    assert mode.resolve_template("display", Context(FormatCase.CLASS).pack()) == "general"


def test_unmatched_field_resolves_to_empty() -> None:
    mode = Mode.fresh("m")
    mode.set("display", parse_selector("update"), "only updates")
    assert mode.resolve_template("display", Context(FormatCase.CLASS).pack()) == ""
    assert mode.resolve_template("nosuchfield", Context(FormatCase.CLASS).pack()) == ""


@pytest.mark.parametrize(
    ("limit", "expected"),
    [
        (5, "abcde"),
        (8, "abcd ..."),
        (20, "abcdefghij"),
        (10, "abcdefghij"),
    ],
)
def test_truncation(limit: int, expected: str) -> None:
    mode = _mode_with_truncation(limit)
    assert mode.truncate("abcdefghij", 0) == expected
    assert len(expected) <= limit


def test_no_truncation_rule_leaves_value_alone() -> None:
    assert Mode.fresh("m").truncate("x" * 500, 0) == "x" * 500


def test_format_substitutes_recursively() -> None:
    mode = Mode.fresh("m")
    mode.set("display", Filter.universal(), "{name}: {value}")

    rendered = mode.format(Context(FormatCase.VARINIT), "x", "int", "42", None)

    assert rendered == "x: 42"


def test_format_truncates_value_before_rendering() -> None:
    mode = _mode_with_truncation(8)
    mode.set("display", Filter.universal(), "{value}")
    assert mode.format(Context(FormatCase.EXPRESSION), "$1", "String", "abcdefghij", None) == (
        "abcd ..."
    )


def test_format_renders_each_error_line() -> None:
    mode = Mode.fresh("m")
    mode.set("errorline", Filter.universal(), "<{err}>")
    mode.set("display", Filter.universal(), "{name}{errors}")
    context = Context(FormatCase.METHOD, errors=FormatErrors.ERROR2)

    rendered = mode.format(context, "f", "()", None, None, ["bad", "worse"])

    assert rendered == "f<bad><worse>"


def test_error_placeholders_are_scoped() -> None:
    mode = Mode.fresh("m")
    mode.set("errorline", Filter.universal(), "{errors}")
    mode.set("display", Filter.universal(), "{err}|{errors}")

    rendered = mode.format(Context(FormatCase.METHOD), "f", "", None, None, ["e"])

    assert rendered == "*cannot-use-err-here*|*cannot-use-errors-here*"


def test_rules_selected_by_action_and_when() -> None:
    mode = Mode.fresh("m")
    mode.set("action", parse_selector("added-primary"), "created")
    mode.set("action", parse_selector("added-update"), "update created")
    mode.set("display", Filter.universal(), "{action} {name}")

    primary = Context(FormatCase.CLASS, FormatAction.ADDED, FormatWhen.PRIMARY)
    update = Context(FormatCase.CLASS, FormatAction.ADDED, FormatWhen.UPDATE)
    assert mode.format(primary, "A", "", None, None) == "created A"
    assert mode.format(update, "A", "", None, None) == "update created A"


def test_copy_is_deep() -> None:
    source = Mode.fresh("src")
    source.set("display", Filter.universal(), "original")
    copy = Mode.copy_of("dst", source)
    copy.set("display", Filter.universal(), "changed")

    assert source.resolve_template("display", 0) == "original"
    assert copy.resolve_template("display", 0) == "changed"
    assert copy.name == "dst"


def test_frozen_mode_refuses_every_mutation() -> None:
    mode = Mode.fresh("builtin")
    mode.freeze()

    with pytest.raises(ReadOnlyModeError):
        mode.set("display", Filter.universal(), "x")
    with pytest.raises(ReadOnlyModeError):
        mode.set_command_fluff(False)
    with pytest.raises(ReadOnlyModeError):
        mode.set_prompts("a", "b")
    assert mode.command_fluff


def test_prompts_receive_the_next_id() -> None:
    mode = Mode.fresh("m")
    mode.set_prompts("[%s]> ", "%s.. ")
    assert mode.prompt_text("3") == "[3]> "
    assert mode.continuation_prompt_text("3") == "3.. "


def test_valid_names() -> None:
    assert is_valid_name("my_mode$2")
    assert not is_valid_name("")
    assert not is_valid_name("my-mode")
    assert not is_valid_name(TRUNCATION_FIELD)
