"""
Change review — walks the user through each pending change with its
context-filtered diff and records approve/reject decisions.

Uses a Textual screen when available and falls back to console prompts.
"""

from __future__ import annotations

from .cli_display import log, rule
from .diff_engine import format_colored_diff, format_rich_diff
from .session import EditorSession


def review_changes(session: EditorSession, use_tui: bool = True) -> None:
    """Review every pending change in *session*; decisions apply immediately."""
    if session.pending_count() == 0:
        print("  No pending changes.")
        return

    if use_tui:
        try:
            _textual_review(session)
            return
        except ImportError:
            log.warning("Textual not installed — falling back to console review.")
        except Exception as e:
            log.warning(f"Textual review failed: {e}")

    _console_review(session)


def _stats_label(session: EditorSession, filename: str) -> str:
    stats = session.get_stats(filename)
    return f"+{stats.added} -{stats.removed}"


# ══════════════════════════════════════════════════════════════════
#  Textual screen
# ══════════════════════════════════════════════════════════════════

def _textual_review(session: EditorSession) -> None:
    from textual.app import App, ComposeResult
    from textual.binding import Binding
    from textual.containers import Horizontal, VerticalScroll
    from textual.widgets import Button, Footer, Static

    class ChangeReviewApp(App):
        """Per-file diff viewer with approve/reject."""

        CSS = """
        Screen {
            background: $surface;
        }
        #title-bar {
            dock: top;
            height: 3;
            background: #1a1a2e;
            color: #e94560;
            text-align: center;
            padding: 1;
            text-style: bold;
        }
        #diff-scroll {
            height: 1fr;
            margin: 1 2;
            border: round #444;
            padding: 1;
        }
        .file-header {
            color: #e9c46a;
            text-style: bold;
            margin: 1 0 0 0;
        }
        .diff-content {
            margin: 0 0 1 0;
        }
        .file-actions {
            height: 3;
        }
        .file-actions Button {
            margin: 0 2 0 0;
            min-width: 14;
        }
        #summary {
            dock: bottom;
            height: 1;
            text-align: center;
            color: #888;
        }
        """

        BINDINGS = [
            Binding("A", "approve_all", "Approve all"),
            Binding("q", "quit", "Done"),
            Binding("escape", "quit", "Done"),
        ]

        def __init__(self, session: EditorSession) -> None:
            super().__init__()
            self._session = session
            self._filenames = session.changes.filenames()

        def _summary_text(self) -> str:
            pending = self._session.pending_count()
            approved = self._session.approved_count()
            return (f"  {approved} approved | {pending - approved} pending review  —  "
                    f"Shift+A approves all, Q when done")

        def _header_text(self, filename: str) -> str:
            change = self._session.changes.get(filename)
            if change is None:
                state = "[red]rejected[/red]"
            elif change.approved:
                state = "[green]approved[/green]"
            else:
                state = "[#e9c46a]pending[/#e9c46a]"
            new_file = " (new file)" if change is not None and not change.original else ""
            return (f"[bold yellow]{'─' * 58}[/bold yellow]\n"
                    f"[bold yellow]  {filename}{new_file}[/bold yellow]  "
                    f"{_stats_label(self._session, filename) if change else ''}  {state}")

        def compose(self) -> ComposeResult:
            yield Static(
                f" ━━  Change Review — {len(self._filenames)} file(s)  ━━ ",
                id="title-bar",
            )
            with VerticalScroll(id="diff-scroll"):
                for index, filename in enumerate(self._filenames):
                    yield Static(self._header_text(filename),
                                 classes="file-header", id=f"header-{index}")
                    yield Static(
                        format_rich_diff(self._session.get_context_diff(filename)),
                        classes="diff-content",
                    )
                    with Horizontal(classes="file-actions"):
                        yield Button("✔ Approve", id=f"approve-{index}", variant="success")
                        yield Button("✕ Reject", id=f"reject-{index}", variant="error")
            yield Static(self._summary_text(), id="summary")
            yield Footer()

        def _refresh(self) -> None:
            for index, filename in enumerate(self._filenames):
                self.query_one(f"#header-{index}", Static).update(
                    self._header_text(filename))
            self.query_one("#summary", Static).update(self._summary_text())

        def on_button_pressed(self, event: Button.Pressed) -> None:
            action, _, index = (event.button.id or "").partition("-")
            if not index.isdigit():
                return
            filename = self._filenames[int(index)]
            if action == "approve":
                self._session.approve(filename)
            elif action == "reject":
                self._session.reject(filename)
            self._refresh()

        def action_approve_all(self) -> None:
            self._session.changes.approve_all()
            self._refresh()

    ChangeReviewApp(session).run()


# ══════════════════════════════════════════════════════════════════
#  Console fallback
# ══════════════════════════════════════════════════════════════════

def _console_review(session: EditorSession) -> None:
    print("\n" + "=" * 60)
    print("  CHANGE REVIEW")
    print("=" * 60)

    for change in list(session.changes):
        filename = change.filename
        print(f"\n{rule()}")
        print(f"  {filename}  ({_stats_label(session, filename)})"
              f"{'  [approved]' if change.approved else ''}")
        print(format_colored_diff(session.get_context_diff(filename)))
        print("\n  [A]pprove  |  [R]eject  |  [S]kip")

        while True:
            try:
                choice = input("  Your choice: ").strip().lower()
            except (EOFError, KeyboardInterrupt):
                return
            if choice in ("a", "approve"):
                session.approve(filename)
                break
            elif choice in ("r", "reject"):
                session.reject(filename)
                break
            elif choice in ("s", "skip", ""):
                break
            else:
                print("  Invalid choice. Use A, R or S.")

    print(f"\n  {session.approved_count()} approved, "
          f"{session.pending_count()} pending in total.")
