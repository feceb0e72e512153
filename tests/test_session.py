"""Tests for EditorSession: chat, extraction, review and apply."""

import json
from unittest.mock import MagicMock

import pytest

from theme_editor.changes import FileContent
from theme_editor.errors import ChatError, NotAuthenticatedError, PreconditionError, ThemeStoreError
from theme_editor.llm.base import StreamCancelled
from theme_editor.models import Theme, ThemeFile
from theme_editor.session import EditorSession
from theme_editor.store import ShopCredentials, ShopifyThemeStore, WriteResult

THEME = Theme(id="gid://shopify/OnlineStoreTheme/7", name="Dawn", role="main")
OTHER = Theme(id="gid://shopify/OnlineStoreTheme/8", name="Sense", role="unpublished")

FILES = {
    "layout/theme.liquid": "<html>{{ content_for_layout }}</html>",
    "sections/header.liquid": "<header>\n  <h1>Shop</h1>\n</header>",
    "assets/base.css": "body { margin: 0; }",
}


def _block(filename, content):
    return "<file_change>" + json.dumps({"filename": filename, "content": content}) + "</file_change>"


class FakeTransport:
    """Yields canned fragments; optionally raises after them."""

    def __init__(self, fragments, error=None):
        self.fragments = list(fragments)
        self.error = error
        self.calls = []

    def stream_chat(self, system_prompt, messages, model=None, cancel=None):
        self.calls.append({"system": system_prompt, "messages": messages, "model": model})
        for fragment in self.fragments:
            if cancel is not None and cancel.is_set():
                raise StreamCancelled()
            yield fragment
        if self.error is not None:
            raise self.error


def _store(authenticated=True):
    store = MagicMock()
    store.credentials = ShopCredentials("demo.myshopify.com", "tok" if authenticated else None)
    store.list_themes.return_value = [THEME, OTHER]
    store.list_files.return_value = [
        ThemeFile(name, "TEXT", len(body)) for name, body in FILES.items()
    ]
    store.get_file_contents.side_effect = lambda theme_id, names: [
        FileContent(n, FILES[n]) for n in names if n in FILES
    ]
    store.put_file.return_value = WriteResult(True)
    return store


def _session(transport=None, store=None):
    session = EditorSession(store or _store(), transport, sleep=MagicMock())
    session.load_themes()
    session.select_theme(THEME)
    return session


class TestPreconditions:
    def test_unauthenticated_cannot_load_themes(self):
        session = EditorSession(_store(authenticated=False))
        with pytest.raises(NotAuthenticatedError):
            session.load_themes()

    def test_send_requires_theme(self):
        session = EditorSession(_store(), FakeTransport(["hi"]))
        with pytest.raises(PreconditionError, match="No theme selected"):
            session.send_message("hello")

    def test_send_rejects_empty_message(self):
        session = _session(FakeTransport(["hi"]))
        with pytest.raises(PreconditionError):
            session.send_message("   ")
        assert session.messages == []

    def test_send_requires_transport(self):
        with pytest.raises(PreconditionError):
            _session(transport=None).send_message("hello")

    def test_apply_requires_approved_changes(self):
        session = _session()
        session.propose("a", "", "b")
        with pytest.raises(PreconditionError):
            session.apply_approved()


class TestThemes:
    def test_find_theme_by_name_or_id(self):
        session = _session()
        assert session.find_theme("dawn") is THEME
        assert session.find_theme("8") is OTHER
        assert session.find_theme(THEME.id) is THEME
        assert session.find_theme("missing") is None

    def test_switching_theme_resets_state(self):
        session = _session()
        session.open_file("layout/theme.liquid")
        session.propose("a", "", "b")

        session.select_theme(OTHER)

        assert session.pending_count() == 0
        assert session.open_files == []
        assert "layout/theme.liquid" not in session.cache

    def test_open_file_uses_cache(self):
        store = _store()
        session = _session(store=store)
        assert session.open_file("sections/header.liquid") == FILES["sections/header.liquid"]
        session.open_file("sections/header.liquid")
        assert store.get_file_contents.call_count == 1
        assert session.open_files == ["sections/header.liquid"]
        assert session.active_file == "sections/header.liquid"

    def test_open_missing_file(self):
        session = _session()
        assert session.open_file("nope.liquid") is None
        assert session.open_files == []

    def test_close_file_moves_active_tab(self):
        session = _session()
        session.open_file("layout/theme.liquid")
        session.open_file("assets/base.css")
        session.close_file("assets/base.css")
        assert session.active_file == "layout/theme.liquid"

    def test_fetch_failure_degrades_to_empty(self):
        store = _store()
        store.get_file_contents.side_effect = ThemeStoreError("boom", 500)
        session = _session(store=store)
        assert session.fetch_contents(["layout/theme.liquid"]) == []

    def test_malformed_store_response_degrades_to_empty(self):
        http = MagicMock()
        response = MagicMock(status_code=200, ok=True)
        response.json.side_effect = ValueError("not json")
        http.post.return_value = response
        store = ShopifyThemeStore(ShopCredentials("demo.myshopify.com", "tok"), http=http)
        session = EditorSession(store)
        session.selected_theme = THEME
        assert session.fetch_contents(["layout/theme.liquid"]) == []


class TestSendMessage:
    def test_extracts_changes_after_completion(self):
        reply = ["I'll darken the header.\n",
                 _block("sections/header.liquid", "<header class=\"navy\"></header>")]
        session = _session(FakeTransport(reply))
        session.open_file("sections/header.liquid")
        updates = []

        message = session.send_message("Make the header navy", on_update=updates.append)

        assert not message.is_streaming
        assert message.display_text == "I'll darken the header."
        assert [c.filename for c in message.file_changes] == ["sections/header.liquid"]
        change = session.changes.get("sections/header.liquid")
        assert change.original == FILES["sections/header.liquid"]
        assert change.proposed == "<header class=\"navy\"></header>"
        assert not change.approved
        assert len(updates) == 2
        assert session.in_progress is None

    def test_new_file_has_empty_original(self):
        session = _session(FakeTransport([_block("snippets/badge.liquid", "<span></span>")]))
        session.send_message("Add a badge snippet")
        assert session.changes.get("snippets/badge.liquid").original == ""
        assert session.get_stats("snippets/badge.liquid").added == 1

    def test_history_and_context_are_sent(self):
        transport = FakeTransport(["ok"])
        session = _session(transport)
        session.send_message("first")
        session.send_message("change the header")

        second = transport.calls[1]
        assert [m["role"] for m in second["messages"]] == ["user", "assistant", "user"]
        assert second["messages"][-1]["content"] == "change the header"
        assert "### sections/header.liquid" in second["system"]
        assert "## All Theme Files" in second["system"]

    def test_cancel_leaves_store_untouched(self):
        reply = ["Working on it ", _block("sections/header.liquid", "x"), " more"]
        transport = FakeTransport(reply)
        session = _session(transport)

        def cancel_on_first(_message):
            session.cancel_stream()

        message = session.send_message("header", on_update=cancel_on_first)

        assert session.pending_count() == 0
        assert message.file_changes is None
        assert message.content == "Working on it "
        assert not message.is_streaming

    def test_cancel_before_first_fragment_drops_exchange(self):
        transport = FakeTransport([], error=StreamCancelled())
        session = _session(transport)

        session.send_message("first")
        assert session.messages == []

        transport.error = None
        transport.fragments = ["ok"]
        session.send_message("second")

        sent = transport.calls[1]["messages"]
        assert sent == [{"role": "user", "content": "second"}]
        assert all(m["content"] for m in sent)

    def test_partial_cancelled_reply_stays_in_history(self):
        transport = FakeTransport(["half"], error=StreamCancelled())
        session = _session(transport)
        session.send_message("first")

        transport.error = None
        transport.fragments = ["ok"]
        session.send_message("second")

        sent = transport.calls[1]["messages"]
        assert [m["content"] for m in sent] == ["first", "half", "second"]

    def test_cancel_flag_resets_for_next_message(self):
        session = _session(FakeTransport([_block("a.liquid", "A")]))
        session.cancel_stream()
        session.send_message("go")
        assert session.pending_count() == 1

    def test_chat_error_is_shown_in_message(self):
        transport = FakeTransport(["partial"], error=ChatError("Rate limit exceeded."))
        session = _session(transport)
        message = session.send_message("header")
        assert message.content == "Error: Rate limit exceeded."
        assert session.pending_count() == 0

    def test_duplicate_blocks_last_wins(self):
        reply = [_block("a.liquid", "first"), _block("a.liquid", "second")]
        session = _session(FakeTransport(reply))
        session.send_message("edit a")
        assert session.pending_count() == 1
        assert session.changes.get("a.liquid").proposed == "second"


class TestReviewAndApply:
    def test_diff_views(self):
        session = _session()
        session.propose("f", "a\nb\nc", "a\nx\nc")
        assert len(session.get_diff("f")) == 4
        assert session.get_stats("f").added == 1
        assert len(session.get_context_diff("f", context_radius=0)) == 2
        assert session.get_diff("unknown") == []

    def test_apply_keeps_only_failed_entries(self):
        store = _store()
        store.put_file.side_effect = [WriteResult(True), WriteResult(False, "Invalid"),
                                      WriteResult(True)]
        session = _session(store=store)
        for name in ("a", "b", "c"):
            session.propose(name, "", name.upper())
            session.approve(name)
        session.propose("d", "", "D")

        outcome = session.apply_approved()

        assert outcome.succeeded == ["a", "c"]
        assert session.changes.filenames() == ["b", "d"]
        assert session.cache.get("a") == "A"
        assert session.cache.get("b") is None
        assert session.coordinator._sleep.call_count == 2

    def test_applied_text_becomes_new_baseline(self):
        transport = FakeTransport([_block("layout/theme.liquid", "<html>v2</html>")])
        session = _session(transport)
        session.open_file("layout/theme.liquid")
        session.send_message("update layout")
        session.approve("layout/theme.liquid")
        session.apply_approved()

        transport.fragments = [_block("layout/theme.liquid", "<html>v3</html>")]
        session.send_message("again")
        assert session.changes.get("layout/theme.liquid").original == "<html>v2</html>"

    def test_reject_discards(self):
        session = _session()
        session.propose("f", "o", "p")
        session.approve("f")
        session.reject("f")
        assert session.pending_count() == 0
        assert session.approved_count() == 0
