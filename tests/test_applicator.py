"""
Tests for applying actions to editor callbacks.
"""

from unittest.mock import Mock

from editor_assist.core.actions import (
    AppendBody,
    ApplyAbstract,
    ApplyTags,
    ApplyTitle,
    Confirm,
    ReplaceBody,
)
from editor_assist.core.applicator import EditorCallbacks, apply_actions


def full_callbacks():
    return EditorCallbacks(
        on_apply_title=Mock(),
        on_apply_abstract=Mock(),
        on_replace_body=Mock(),
        on_append_body=Mock(),
        on_apply_tags=Mock(),
    )


class TestApplyActions:
    """Test action application rules."""

    def test_each_action_reaches_its_callback(self):
        """Every variant calls the matching hook with its payload."""
        callbacks = full_callbacks()

        report = apply_actions([
            ApplyTitle("Title"),
            ApplyAbstract("Abstract"),
            ReplaceBody("# Body"),
            AppendBody("More"),
        ], callbacks)

        callbacks.on_apply_title.assert_called_once_with("Title")
        callbacks.on_apply_abstract.assert_called_once_with("Abstract")
        callbacks.on_replace_body.assert_called_once_with("# Body")
        callbacks.on_append_body.assert_called_once_with("More")
        assert len(report.applied) == 4
        assert report.failed == []

    def test_actions_applied_in_order(self):
        """Actions run in the order they were extracted."""
        calls = []
        callbacks = EditorCallbacks(
            on_replace_body=lambda body: calls.append(("replace", body)),
            on_append_body=lambda body: calls.append(("append", body)),
        )

        apply_actions([AppendBody("a"), ReplaceBody("b"), AppendBody("c")], callbacks)

        assert calls == [("append", "a"), ("replace", "b"), ("append", "c")]

    def test_missing_callback_skips_action(self):
        """Actions without a hook are skipped, not errors."""
        callbacks = EditorCallbacks(on_apply_title=Mock())

        report = apply_actions([ReplaceBody("x"), ApplyTitle("T")], callbacks)

        callbacks.on_apply_title.assert_called_once_with("T")
        assert report.skipped == [ReplaceBody("x")]
        assert report.applied == [ApplyTitle("T")]

    def test_tags_merged_with_current_tags(self):
        """Tag callbacks get the normalized union with current tags."""
        callbacks = full_callbacks()

        apply_actions([ApplyTags(("node", "vue"))], callbacks, current_tags=["React", "node"])

        callbacks.on_apply_tags.assert_called_once_with(["react", "node", "vue"])

    def test_multiple_tag_actions_accumulate(self):
        """A later tag action keeps the tags an earlier one added."""
        callbacks = full_callbacks()

        report = apply_actions([ApplyTags(("react",)), ApplyTags(("node",))], callbacks, current_tags=["python"])

        assert callbacks.on_apply_tags.call_args_list[-1].args == (["python", "react", "node"],)
        assert report.tags == ["python", "react", "node"]

    def test_failed_tag_action_not_accumulated(self):
        """Tags from a failing callback are not carried into later actions."""
        callbacks = full_callbacks()
        callbacks.on_apply_tags.side_effect = [RuntimeError("editor closed"), None]

        report = apply_actions([ApplyTags(("react",)), ApplyTags(("node",))], callbacks, current_tags=["python"])

        callbacks.on_apply_tags.assert_called_with(["python", "node"])
        assert report.tags == ["python", "node"]

    def test_confirm_has_no_effect(self):
        """Confirm never touches the editor."""
        callbacks = full_callbacks()

        report = apply_actions([Confirm("Replace the whole body?")], callbacks)

        for hook in (callbacks.on_apply_title, callbacks.on_apply_abstract, callbacks.on_replace_body,
                     callbacks.on_append_body, callbacks.on_apply_tags):
            hook.assert_not_called()
        assert report.skipped == [Confirm("Replace the whole body?")]

    def test_failing_callback_does_not_stop_others(self):
        """One failing hook only loses its own action."""
        callbacks = full_callbacks()
        callbacks.on_apply_title.side_effect = RuntimeError("editor closed")

        report = apply_actions([ApplyTitle("T"), AppendBody("More")], callbacks)

        callbacks.on_append_body.assert_called_once_with("More")
        assert report.applied == [AppendBody("More")]
        assert len(report.failed) == 1
        action, error = report.failed[0]
        assert action == ApplyTitle("T")
        assert str(error) == "editor closed"

    def test_empty_list(self):
        """Nothing to apply gives an empty report."""
        report = apply_actions([], full_callbacks())

        assert (report.applied, report.skipped, report.failed) == ([], [], [])
