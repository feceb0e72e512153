"""
theme_editor — chat with a language model about a Shopify theme, review its
proposed file edits as diffs, and push the approved ones back to the store.

Public API for library usage::

    from theme_editor import Config, EditorSession, create_transport

    cfg = Config.load()
    session = EditorSession.from_config(cfg, transport=create_transport(cfg))
    session.select_theme(session.load_themes()[0])
    session.send_message("Make the header background dark navy")
    for change in session.changes:
        session.approve(change.filename)
    print(session.apply_approved().summary())
"""

from .apply import ApplyCoordinator, ApplyOutcome, ApplyResult, OverallStatus
from .changes import ChangeStore, ContentCache, FileContent, PendingChange
from .config import Config
from .diff_engine import DiffKind, DiffLine, compute_diff, diff_stats, select_context
from .extractor import ExtractedChange, extract, strip_blocks
from .llm import create_transport
from .models import ChatMessage, Theme, ThemeFile
from .relevance import select_relevant_files
from .session import EditorSession

__all__ = [
    "ApplyCoordinator", "ApplyOutcome", "ApplyResult", "OverallStatus",
    "ChangeStore", "ContentCache", "FileContent", "PendingChange",
    "Config",
    "DiffKind", "DiffLine", "compute_diff", "diff_stats", "select_context",
    "ExtractedChange", "extract", "strip_blocks",
    "create_transport",
    "ChatMessage", "Theme", "ThemeFile",
    "select_relevant_files",
    "EditorSession",
]
