"""Feedback operations called directly with their input payloads."""

from __future__ import annotations

import pytest

from replfeed.cli.tokenizer import tokenize
from replfeed.lib.feedback.codec import Filter
from replfeed.lib.feedback.encoding import RECORD_SEPARATOR
from replfeed.lib.feedback.session import FeedbackSession
from replfeed.lib.ops.feedback import (
    HELP_FEEDBACK,
    HELP_FORMAT,
    HELP_MODE,
    HELP_PROMPT,
    HELP_TRUNCATION,
    CommandDeclined,
    FeedbackFormatInput,
    FeedbackListInput,
    FeedbackModeInput,
    FeedbackPromptInput,
    FeedbackRenderInput,
    FeedbackRestoreInput,
    FeedbackRetainFeedbackInput,
    FeedbackRetainModeInput,
    FeedbackSelectInput,
    FeedbackShowInput,
    FeedbackTruncationInput,
    feedback_format_sync,
    feedback_list_sync,
    feedback_mode_sync,
    feedback_prompt_sync,
    feedback_render_sync,
    feedback_restore_sync,
    feedback_retain_feedback_sync,
    feedback_retain_mode_sync,
    feedback_select_sync,
    feedback_show_sync,
    feedback_truncation_sync,
)


def _create(session: FeedbackSession, name: str, copy_from: str | None = None, **flags: bool):
    return feedback_mode_sync(session, FeedbackModeInput(name=name, copy_from=copy_from, **flags))


def test_select_by_prefix(session: FeedbackSession) -> None:
    result = feedback_select_sync(session, FeedbackSelectInput(mode="verb"))

    assert result.mode == "verbose"
    assert result.format_text() == "Feedback mode: verbose"
    assert session.mode.name == "verbose"


def test_select_unknown_mode_lists_known_modes(session: FeedbackSession) -> None:
    with pytest.raises(CommandDeclined) as excinfo:
        feedback_select_sync(session, FeedbackSelectInput(mode="zzz"))

    assert excinfo.value.help_topic == HELP_FEEDBACK
    assert "verbose" in excinfo.value.known_modes
    assert session.mode.name == "normal"


def test_select_quiet_mode_has_no_fluff(session: FeedbackSession) -> None:
    assert feedback_select_sync(session, FeedbackSelectInput(mode="concise")).format_text() == ""


def test_create_fresh_mode(session: FeedbackSession) -> None:
    result = _create(session, "mine")

    assert result.action == "created"
    assert result.format_text() == "Created new feedback mode: mine"
    assert session.registry.lookup("mine").command_fluff


def test_copy_keeps_source_fluff_unless_overridden(session: FeedbackSession) -> None:
    _create(session, "calm", "concise")
    _create(session, "loud", "concise", command=True)

    assert not session.registry.lookup("calm").command_fluff
    assert session.registry.lookup("loud").command_fluff


def test_update_existing_mode(session: FeedbackSession) -> None:
    _create(session, "mine")
    result = _create(session, "mine", quiet=True)

    assert result.action == "updated"
    assert result.format_text() == "Updated feedback mode: mine"
    assert not session.registry.lookup("mine").command_fluff


def test_conflicting_mode_options(session: FeedbackSession) -> None:
    with pytest.raises(CommandDeclined, match="Conflicting options: -command -quiet"):
        _create(session, "mine", command=True, quiet=True)
    assert "mine" not in session.registry


def test_predefined_modes_cannot_be_changed(session: FeedbackSession) -> None:
    with pytest.raises(CommandDeclined, match="predefined mode: normal") as excinfo:
        _create(session, "normal", quiet=True)
    assert excinfo.value.help_topic == HELP_MODE

    with pytest.raises(CommandDeclined, match="predefined mode"):
        feedback_format_sync(
            session,
            FeedbackFormatInput(mode="verbose", field="display", template="x"),
        )


def test_delete_mode(session: FeedbackSession) -> None:
    _create(session, "gone")
    result = _create(session, "gone", delete=True)

    assert result.format_text() == "Deleted feedback mode: gone"
    assert "gone" not in session.registry
    with pytest.raises(CommandDeclined, match="Does not match any current feedback mode"):
        _create(session, "gone", delete=True)


def test_invalid_or_quoted_names_are_declined(session: FeedbackSession) -> None:
    with pytest.raises(CommandDeclined, match="Invalid feedback mode name"):
        _create(session, "not-a-name")
    with pytest.raises(CommandDeclined, match="should not be quoted"):
        feedback_mode_sync(session, FeedbackModeInput(name="mine", name_quoted=True))
    with pytest.raises(CommandDeclined, match="Expected a feedback mode name"):
        _create(session, "")


def test_format_appends_a_rule_per_selector(session: FeedbackSession) -> None:
    _create(session, "mine", "normal")
    result = feedback_format_sync(
        session,
        FeedbackFormatInput(
            mode="mine",
            field="display",
            template="{name} is new",
            selectors=("class", "method-added"),
        ),
    )

    assert result.rules_added == 2
    rendered = feedback_render_sync(
        session, FeedbackRenderInput(context="class", mode="mine", name="A")
    )
    assert rendered.text == "A is new"


def test_format_requires_a_quoted_template(session: FeedbackSession) -> None:
    _create(session, "mine")
    with pytest.raises(CommandDeclined, match="must be quoted") as excinfo:
        feedback_format_sync(
            session,
            FeedbackFormatInput(
                mode="mine", field="display", template="x", template_quoted=False
            ),
        )
    assert excinfo.value.help_topic == HELP_FORMAT


def test_format_rejects_the_record_separator(session: FeedbackSession) -> None:
    _create(session, "mine")
    with pytest.raises(CommandDeclined, match="U\\+241E"):
        feedback_format_sync(
            session,
            FeedbackFormatInput(mode="mine", field="display", template=f"a{RECORD_SEPARATOR}b"),
        )


def test_format_with_a_bad_selector_changes_nothing(session: FeedbackSession) -> None:
    _create(session, "mine")
    before = session.registry.lookup("mine").rules("display")

    with pytest.raises(CommandDeclined, match="Not a valid selector"):
        feedback_format_sync(
            session,
            FeedbackFormatInput(
                mode="mine", field="display", template="x", selectors=("class", "bogus")
            ),
        )

    assert session.registry.lookup("mine").rules("display") == before


def test_truncation(session: FeedbackSession) -> None:
    _create(session, "mine", "normal")
    feedback_truncation_sync(
        session, FeedbackTruncationInput(mode="mine", length="8", selectors=("varinit",))
    )

    rendered = feedback_render_sync(
        session,
        FeedbackRenderInput(context="varinit", mode="mine", name="s", value="abcdefghij"),
    )
    assert rendered.text == "s ==> abcd ...\n"

    with pytest.raises(CommandDeclined, match="unsigned integer: -3") as excinfo:
        feedback_truncation_sync(session, FeedbackTruncationInput(mode="mine", length="-3"))
    assert excinfo.value.help_topic == HELP_TRUNCATION


def test_prompt(session: FeedbackSession) -> None:
    _create(session, "mine")
    feedback_prompt_sync(
        session, FeedbackPromptInput(mode="mine", prompt="%s> ", continuation_prompt="%s| ")
    )
    feedback_select_sync(session, FeedbackSelectInput(mode="mine"))

    assert session.prompt("4") == "4> "
    assert session.continuation_prompt("4") == "4| "

    with pytest.raises(CommandDeclined, match="Expected a continuation prompt"):
        feedback_prompt_sync(session, FeedbackPromptInput(mode="mine", prompt="> "))


def test_retain_mode_and_restore_into_a_new_session(session: FeedbackSession) -> None:
    _create(session, "mine", "verbose")
    result = feedback_retain_mode_sync(session, FeedbackRetainModeInput(name="mine"))

    fresh = FeedbackSession.create()
    restored = feedback_restore_sync(fresh, FeedbackRestoreInput(encoded=result.encoded))

    assert restored.modes == ("mine",)
    assert fresh.registry.is_retained("mine")


def test_retain_mode_delete(session: FeedbackSession) -> None:
    _create(session, "mine")
    feedback_retain_mode_sync(session, FeedbackRetainModeInput(name="mine"))

    result = feedback_retain_mode_sync(session, FeedbackRetainModeInput(name="mine", delete=True))

    assert result.deleted
    assert result.encoded == ""
    assert "mine" not in session.registry


def test_restore_corrupt_blob_is_declined(session: FeedbackSession) -> None:
    with pytest.raises(CommandDeclined, match="ended early"):
        feedback_restore_sync(session, FeedbackRestoreInput(encoded="mine"))


def test_retain_feedback(session: FeedbackSession) -> None:
    result = feedback_retain_feedback_sync(session, FeedbackRetainFeedbackInput(mode="silent"))

    assert result.mode == "silent"
    assert result.format_text() == ""
    assert session.registry.retained_current is session.mode

    _create(session, "mine")
    with pytest.raises(CommandDeclined, match="must be retained or predefined"):
        feedback_retain_feedback_sync(session, FeedbackRetainFeedbackInput(mode="mine"))


def test_list_marks_the_active_mode(session: FeedbackSession) -> None:
    _create(session, "mine", quiet=True)
    listing = feedback_list_sync(session, FeedbackListInput())

    names = [summary.name for summary in listing.modes]
    assert names == ["verbose", "normal", "concise", "silent", "mine"]
    active = [summary.name for summary in listing.modes if summary.active]
    assert active == ["normal"]

    lines = listing.format_text().splitlines()
    assert lines[1].split() == ["*", "normal", "predefined"]
    assert lines[4].split() == ["mine", "quiet"]


def test_show_renders_replayable_commands(session: FeedbackSession) -> None:
    _create(session, "mine", quiet=True)
    feedback_truncation_sync(
        session, FeedbackTruncationInput(mode="mine", length="12", selectors=("expression",))
    )
    feedback_format_sync(
        session,
        FeedbackFormatInput(mode="mine", field="display", template='say "{name}"'),
    )

    text = feedback_show_sync(session, FeedbackShowInput(mode="mine")).format_text()
    lines = text.splitlines()

    assert lines[0] == "/set mode mine -quiet"
    assert lines[1] == '/set prompt mine "\\n-> " ">> "'
    assert "/set format mine post \"%n\"" in lines
    assert "/set truncation mine 12 expression" in lines
    assert lines[-1] == "/set format mine display 'say \"{name}\"'"


def test_render_uses_the_active_mode(session: FeedbackSession) -> None:
    result = feedback_render_sync(
        session,
        FeedbackRenderInput(context="varinit", name="x", type_="int", value="42"),
    )

    assert result.mode == "normal"
    assert result.context == "varinit-added-primary-ok-unresolved0-error0"
    assert result.text == "x ==> 42\n"
    assert result.format_text() == "x ==> 42"


def test_render_bad_context_is_declined(session: FeedbackSession) -> None:
    with pytest.raises(CommandDeclined, match="must name a case"):
        feedback_render_sync(session, FeedbackRenderInput(context="added"))


def test_show_quotes_texts_holding_both_quote_kinds(session: FeedbackSession) -> None:
    _create(session, "mine")
    template = "it's \"{name}\"\tdone\\"
    feedback_format_sync(
        session, FeedbackFormatInput(mode="mine", field="display", template=template)
    )

    shown = feedback_show_sync(session, FeedbackShowInput(mode="mine"))
    line = shown.format_text().splitlines()[-1]

    assert line == '/set format mine display "it\'s \\u0022{name}\\u0022\\tdone\\\\"'
    tokens = tokenize(line)
    assert tokens[4].quoted
    assert tokens[4].text == template


def test_show_leaves_out_rules_that_match_nothing(session: FeedbackSession) -> None:
    _create(session, "mine")
    session.registry.lookup("mine").set("display", Filter(case=frozenset()), "never shown")

    result = feedback_show_sync(session, FeedbackShowInput(mode="mine"))

    assert all(rule.template != "never shown" for rule in result.rules)
    assert "<none>" not in result.format_text()


def test_format_refusing_a_broken_decoration_changes_nothing(session: FeedbackSession) -> None:
    _create(session, "mine")
    before = session.registry.lookup("mine").rules("post")

    with pytest.raises(CommandDeclined, match="cycle: post -> post") as excinfo:
        feedback_format_sync(
            session, FeedbackFormatInput(mode="mine", field="post", template="{post}")
        )

    assert excinfo.value.help_topic == HELP_FORMAT
    assert session.registry.lookup("mine").rules("post") == before


def test_prompt_must_expand(session: FeedbackSession) -> None:
    _create(session, "mine")
    with pytest.raises(CommandDeclined, match="references value 2") as excinfo:
        feedback_prompt_sync(
            session, FeedbackPromptInput(mode="mine", prompt="%2$s> ", continuation_prompt=">> ")
        )
    assert excinfo.value.help_topic == HELP_PROMPT
    assert session.registry.lookup("mine").prompt == "\n-> "


def test_retain_feedback_validates_the_name(session: FeedbackSession) -> None:
    with pytest.raises(CommandDeclined, match="should not be quoted: silent"):
        feedback_retain_feedback_sync(
            session, FeedbackRetainFeedbackInput(mode="silent", mode_quoted=True)
        )
    with pytest.raises(CommandDeclined, match="Invalid feedback mode name: a b"):
        feedback_retain_feedback_sync(session, FeedbackRetainFeedbackInput(mode="a b"))
    assert session.registry.retained_current is None
