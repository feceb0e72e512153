"""Tests for file_change block extraction."""

import json

from theme_editor.changes import ChangeStore
from theme_editor.extractor import ExtractedChange, extract, strip_blocks
from theme_editor.models import ChatMessage


def _block(payload) -> str:
    body = payload if isinstance(payload, str) else json.dumps(payload)
    return f"<file_change>\n{body}\n</file_change>"


class TestExtract:
    def test_single_inline_block(self):
        text = 'intro text <file_change>{"filename":"a.liquid","content":"hi"}</file_change> outro'
        assert extract(text) == [ExtractedChange("a.liquid", "hi")]
        assert strip_blocks(text) == "intro text  outro"

    def test_multiple_files_in_order(self):
        text = "\n".join([
            "Here are the changes.",
            _block({"filename": "sections/header.liquid", "content": "<header></header>"}),
            "And the stylesheet:",
            _block({"filename": "assets/base.css", "content": ".a { color: red; }\n"}),
        ])
        changes = extract(text)
        assert [c.filename for c in changes] == ["sections/header.liquid", "assets/base.css"]
        assert changes[1].content == ".a { color: red; }\n"

    def test_duplicate_filename_last_wins_in_store(self):
        text = _block({"filename": "f", "content": "first"}) + _block({"filename": "f", "content": "second"})
        changes = extract(text)
        assert len(changes) == 2

        store = ChangeStore()
        for change in changes:
            store.propose(change.filename, "", change.content)
        assert store.pending_count() == 1
        assert store.get("f").proposed == "second"

    def test_invalid_json_is_skipped(self):
        text = _block('{"filename": "bad", "content": ') + _block({"filename": "good", "content": "ok"})
        assert extract(text) == [ExtractedChange("good", "ok")]

    def test_missing_fields_are_skipped(self):
        text = (_block({"filename": "no-content"})
                + _block({"content": "no filename"})
                + _block({"filename": "", "content": "empty name"})
                + _block({"filename": "x", "content": "ok"}))
        assert extract(text) == [ExtractedChange("x", "ok")]

    def test_wrong_types_are_skipped(self):
        text = (_block({"filename": 42, "content": "x"})
                + _block({"filename": "f", "content": None})
                + _block(["not", "an", "object"]))
        assert extract(text) == []

    def test_empty_content_is_allowed(self):
        assert extract(_block({"filename": "f", "content": ""})) == [ExtractedChange("f", "")]

    def test_extra_fields_are_ignored(self):
        changes = extract(_block({"filename": "f", "content": "c", "reason": "because"}))
        assert changes == [ExtractedChange("f", "c")]

    def test_unterminated_block_is_ignored(self):
        text = 'before <file_change>{"filename": "f", "content": "partial'
        assert extract(text) == []

    def test_content_with_liquid_and_escapes(self):
        content = '{% if x %}\n  <div class="a">{{ "hi" | upcase }}</div>\n{% endif %}\n'
        changes = extract(_block({"filename": "snippets/x.liquid", "content": content}))
        assert changes[0].content == content

    def test_no_blocks(self):
        assert extract("Just an explanation, no edits.") == []


class TestStripBlocks:
    def test_removes_all_blocks(self):
        text = "A" + _block({"filename": "f", "content": "x"}) + "B" + _block("garbage") + "C"
        assert strip_blocks(text) == "ABC"

    def test_trims_surrounding_whitespace(self):
        text = "Done.\n\n" + _block({"filename": "f", "content": "x"}) + "\n"
        assert strip_blocks(text) == "Done."

    def test_display_text_on_messages(self):
        body = "Updated.\n" + _block({"filename": "f", "content": "x"})
        assert ChatMessage(role="assistant", content=body).display_text == "Updated."
        user = ChatMessage(role="user", content="<file_change>literal</file_change>")
        assert user.display_text == user.content
