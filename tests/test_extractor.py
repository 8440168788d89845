"""
Tests for action and section extraction from model replies.
"""

from editor_assist.core.actions import AppendBody, ApplyTags, ApplyTitle, Confirm, ReplaceBody
from editor_assist.core.extractor import (
    Sections,
    extract_action_block,
    extract_actions,
    extract_sections,
    parse_tags,
    section_grab,
)

TWO_BLOCKS = """Here is a first take.

```json
{"actions":[{"type":"APPLY_TITLE","title":"First"}],"confidence":0.4}
```

Actually, a better version:

```json
{"actions":[{"type":"REPLACE_BODY","body_md":"# Better"},{"type":"APPLY_TITLE","title":"Second"}],"confidence":0.9}
```
"""


class TestExtractActions:
    """Test structured action extraction."""

    def test_no_block_gives_no_actions(self):
        """Plain replies carry no actions."""
        assert extract_actions("Looks good to me!") == []
        assert extract_actions("") == []
        assert extract_actions(None) == []

    def test_single_block(self):
        """A single block yields its actions in order."""
        text = 'Sure.\n```json\n{"actions":[{"type":"APPEND_BODY","body_md":"More"},{"type":"CONFIRM","question":"Also tags?"}]}\n```'

        assert extract_actions(text) == [AppendBody("More"), Confirm("Also tags?")]

    def test_last_block_wins(self):
        """With two blocks only the second one counts."""
        assert extract_actions(TWO_BLOCKS) == [ReplaceBody("# Better"), ApplyTitle("Second")]

    def test_malformed_block_gives_no_actions(self):
        """Invalid JSON degrades to an empty list."""
        text = 'Done.\n```json\n{"actions":[{"type":"REPLACE_BODY","body_md":"oops"}\n```'

        assert extract_actions(text) == []

    def test_malformed_last_block_does_not_fall_back_to_earlier(self):
        """A broken last block is not replaced by an earlier valid one."""
        text = TWO_BLOCKS + '\n```json\n{not json}\n```'

        assert extract_actions(text) == []

    def test_non_object_payloads_give_no_actions(self):
        """Lists, scalars and missing actions lists give nothing."""
        assert extract_actions('```json\n[1, 2]\n```') == []
        assert extract_actions('```json\n{"actions": "REPLACE_BODY"}\n```') == []
        assert extract_actions('```json\n{"confidence": 1}\n```') == []

    def test_unknown_entries_skipped(self):
        """Unknown variants are skipped, the rest kept."""
        text = '```json\n{"actions":[{"type":"DELETE_ALL"},{"type":"APPLY_TAGS","tags":["React"]}]}\n```'

        assert extract_actions(text) == [ApplyTags(("react",))]

    def test_fence_tag_case_insensitive(self):
        """The json fence tag matches regardless of case."""
        assert extract_actions('```JSON\n{"actions":[{"type":"APPLY_TITLE","title":"T"}]}\n```') == [ApplyTitle("T")]

    def test_other_fences_ignored(self):
        """Code fences in other languages are not action blocks."""
        assert extract_actions('```python\n{"actions": []}\n```') == []

    def test_extraction_is_repeatable(self):
        """Extracting twice from the same text gives the same result."""
        assert extract_actions(TWO_BLOCKS) == extract_actions(TWO_BLOCKS)

    def test_confidence_parsed_and_clamped(self):
        """Confidence is read from the block and clamped to [0, 1]."""
        assert extract_action_block(TWO_BLOCKS).confidence == 0.9
        block = extract_action_block('```json\n{"actions":[],"confidence":7}\n```')
        assert block.confidence == 1.0
        assert block.actions == ()

    def test_missing_confidence_is_none(self):
        """Blocks without a numeric confidence report None."""
        block = extract_action_block('```json\n{"actions":[],"confidence":"high"}\n```')

        assert block.confidence is None


class TestParseTags:
    """Test free-form tag parsing."""

    def test_round_trip_tags_section(self):
        """A tags section is normalized and de-duplicated."""
        assert extract_sections("#TAGS\nreact, node, node").tags == ("react", "node")

    def test_mixed_case_duplicates_and_symbols(self):
        """Case, duplicates and blanks are removed; + and - survive."""
        assert parse_tags("  C++ , React React, ") == ["c++", "react"]

    def test_label_and_bullets_stripped(self):
        """A leading label and list bullets are removed."""
        assert parse_tags("Tags: \n- Python\n- Web Dev\n* APIs") == ["python", "web-dev", "apis"]

    def test_other_separators(self):
        """Pipes, semicolons and slashes separate tags."""
        assert parse_tags("go | rust; zig / c") == ["go", "rust", "zig", "c"]

    def test_whitespace_fallback_for_single_token(self):
        """A single token is split on whitespace."""
        assert parse_tags("react node vue") == ["react", "node", "vue"]

    def test_empty(self):
        """Empty input gives no tags."""
        assert parse_tags("") == []
        assert parse_tags(None) == []


class TestExtractSections:
    """Test labeled section extraction."""

    def test_all_sections(self):
        """Each header runs to the next header."""
        text = (
            "Here you go.\n"
            "#TITLE\nHooks in Practice\n"
            "#ABSTRACT\nA short tour of React hooks.\n"
            "#BODY_MD\n## Intro\n\nHooks let you...\n"
            "#TAGS\nreact, hooks"
        )

        sections = extract_sections(text)

        assert sections.title == "Hooks in Practice"
        assert sections.abstract == "A short tour of React hooks."
        assert sections.body == "## Intro\n\nHooks let you..."
        assert sections.tags == ("react", "hooks")

    def test_absent_headers_are_absent(self):
        """Missing headers leave their fields empty."""
        sections = extract_sections("#TITLE\nOnly a title")

        assert sections == Sections(title="Only a title")
        assert not sections.is_empty
        assert extract_sections("no headers at all").is_empty

    def test_body_falls_back_to_body_header(self):
        """#BODY is used when #BODY_MD is absent."""
        assert extract_sections("#BODY\nPlain body").body == "Plain body"

    def test_body_md_preferred(self):
        """#BODY_MD wins over #BODY."""
        assert extract_sections("#BODY\nold\n#BODY_MD\nnew").body == "new"

    def test_headers_case_insensitive(self):
        """Headers match regardless of case."""
        assert section_grab("#title\nLower", "TITLE") == "Lower"

    def test_action_block_not_part_of_section(self):
        """A trailing action block does not leak into the last section."""
        text = '#TAGS\nreact, node\n\n```json\n{"actions":[{"type":"APPLY_TAGS","tags":["react"]}]}\n```'

        assert extract_sections(text).tags == ("react", "node")

    def test_code_fences_kept_in_body(self):
        """Non-action fences inside the body are kept."""
        text = "#BODY_MD\nExample:\n```python\nprint('hi')\n```"

        assert "```python" in extract_sections(text).body
