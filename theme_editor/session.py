"""
Editor session — all per-user state and the operations the UI drives.

One ``EditorSession`` exists per connected user.  It owns the content cache,
the change store, open files and the chat history; nothing here is shared
across sessions.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from .apply import ApplyCoordinator, ApplyOutcome, PUSH_DELAY_SECONDS
from .changes import ChangeStore, ContentCache, FileContent, PendingChange
from .diff_engine import (
    DEFAULT_CONTEXT_RADIUS, LCS_LINE_LIMIT, DiffLine, DiffRow, DiffStats,
    compute_diff, diff_stats, select_context,
)
from .errors import ChatError, NotAuthenticatedError, PreconditionError, ThemeStoreError
from .extractor import ExtractedChange, extract
from .llm.base import ChatTransport, StreamCancelled
from .models import ChatMessage, Theme, ThemeFile
from .prompts import assemble_context, build_system_prompt
from .relevance import MAX_RELEVANT_FILES, SIZE_CEILING, select_relevant_files
from .store import ShopifyThemeStore

logger = logging.getLogger(__name__)

UpdateCallback = Callable[[ChatMessage], None]


class EditorSession:
    """Session-scoped state plus the review/apply workflow."""

    def __init__(
        self,
        store: ShopifyThemeStore,
        transport: Optional[ChatTransport] = None,
        *,
        model: Optional[str] = None,
        diff_threshold: int = LCS_LINE_LIMIT,
        context_radius: int = DEFAULT_CONTEXT_RADIUS,
        push_delay: float = PUSH_DELAY_SECONDS,
        max_context_files: int = MAX_RELEVANT_FILES,
        size_ceiling: int = SIZE_CEILING,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        self.store = store
        self.transport = transport
        self.model = model
        self.diff_threshold = diff_threshold
        self.context_radius = context_radius
        self.max_context_files = max_context_files
        self.size_ceiling = size_ceiling

        coordinator_kwargs = {"delay": push_delay}
        if sleep is not None:
            coordinator_kwargs["sleep"] = sleep
        self.coordinator = ApplyCoordinator(store, **coordinator_kwargs)

        self.themes: list[Theme] = []
        self.selected_theme: Optional[Theme] = None
        self.theme_files: list[ThemeFile] = []
        self.open_files: list[str] = []
        self.active_file: Optional[str] = None
        self.attached_files: list[str] = []

        self.cache = ContentCache()
        self.changes = ChangeStore()
        self.messages: list[ChatMessage] = []
        self.in_progress: Optional[ChatMessage] = None
        self._cancel = threading.Event()

    @classmethod
    def from_config(cls, cfg, transport: Optional[ChatTransport] = None,
                    model: Optional[str] = None) -> "EditorSession":
        store = ShopifyThemeStore(cfg.credentials, api_version=cfg.API_VERSION)
        return cls(
            store, transport, model=model,
            diff_threshold=cfg.DIFF_THRESHOLD,
            context_radius=cfg.CONTEXT_RADIUS,
            push_delay=cfg.PUSH_DELAY,
            max_context_files=cfg.MAX_CONTEXT_FILES,
            size_ceiling=cfg.SIZE_CEILING,
        )

    # ── Preconditions ──

    @property
    def is_authenticated(self) -> bool:
        return self.store.credentials.is_authenticated

    def _require_auth(self) -> None:
        if not self.is_authenticated:
            raise NotAuthenticatedError("Not authenticated")

    def _require_theme(self) -> Theme:
        self._require_auth()
        if self.selected_theme is None:
            raise PreconditionError("No theme selected")
        return self.selected_theme

    # ── Themes and files ──

    def load_themes(self) -> list[Theme]:
        self._require_auth()
        self.themes = self.store.list_themes()
        return self.themes

    def find_theme(self, key: str) -> Optional[Theme]:
        """Match a theme by GID, numeric id or case-insensitive name."""
        lowered = key.lower()
        for theme in self.themes:
            if key in (theme.id, theme.numeric_id) or theme.name.lower() == lowered:
                return theme
        return None

    def select_theme(self, theme: Theme) -> list[ThemeFile]:
        """Switch themes.  Session state tied to the previous theme is reset."""
        self._require_auth()
        files = self.store.list_files(theme.id)
        if self.selected_theme is not None and self.selected_theme.id != theme.id:
            self.cache = ContentCache()
            self.changes = ChangeStore()
            self.open_files = []
            self.attached_files = []
            self.active_file = None
        self.selected_theme = theme
        self.theme_files = files
        return files

    def _fetch(self, filenames: list[str]) -> list[FileContent]:
        theme = self._require_theme()
        try:
            return self.store.get_file_contents(theme.id, filenames)
        except ThemeStoreError as e:
            logger.warning("[Session] Could not fetch %s: %s", ", ".join(filenames), e)
            return []

    def fetch_contents(self, filenames: list[str]) -> list[FileContent]:
        """Read-through fetch; unavailable files are left out."""
        self._require_theme()
        return self.cache.get_or_fetch(filenames, self._fetch)

    def open_file(self, filename: str) -> Optional[str]:
        """Load a file into the cache and make it the active tab."""
        fetched = self.fetch_contents([filename])
        if not fetched:
            return None
        if filename not in self.open_files:
            self.open_files.append(filename)
        self.active_file = filename
        return self.cache.get(filename)

    def close_file(self, filename: str) -> None:
        if filename in self.open_files:
            self.open_files.remove(filename)
        if self.active_file == filename:
            self.active_file = self.open_files[-1] if self.open_files else None

    def attach_file(self, filename: str) -> None:
        """Always include *filename* as context, regardless of relevance."""
        if filename not in self.attached_files:
            self.attached_files.append(filename)

    # ── Chat ──

    def cancel_stream(self) -> None:
        self._cancel.set()

    def _context_for(self, prompt: str) -> list[FileContent]:
        manual = list(dict.fromkeys(self.open_files + self.attached_files))
        open_contents = self.fetch_contents(manual) if manual else []
        relevant = select_relevant_files(prompt, self.theme_files,
                                         limit=self.max_context_files,
                                         size_ceiling=self.size_ceiling)
        to_fetch = [f for f in relevant if f not in manual]
        fetched = self.fetch_contents(to_fetch) if to_fetch else []
        return assemble_context(open_contents, fetched)

    def send_message(self, text: str,
                     on_update: Optional[UpdateCallback] = None) -> ChatMessage:
        """Send *text* to the model and stream the reply.

        File changes are extracted only after the stream completes normally;
        a cancelled stream leaves the change store untouched.
        """
        text = text.strip()
        if not text:
            raise PreconditionError("Message is empty")
        self._require_theme()
        if self.transport is None:
            raise PreconditionError("No AI provider configured")

        user_msg = ChatMessage(role="user", content=text)
        # Providers reject empty assistant turns in history
        history = [m.to_api() for m in self.messages if m.content] + [user_msg.to_api()]
        assistant_msg = ChatMessage(role="assistant", is_streaming=True)
        self.messages.extend([user_msg, assistant_msg])
        self.in_progress = assistant_msg
        self._cancel.clear()

        context = self._context_for(text)
        theme_filenames = [
            f.filename for f in self.theme_files
            if not f.is_bulk_asset or f.extension in (".css", ".js")
        ]
        system_prompt = build_system_prompt(context, theme_filenames)
        logger.info("[Session] Sending message with %d context file(s)", len(context))

        parts: list[str] = []
        try:
            for fragment in self.transport.stream_chat(
                    system_prompt, history, model=self.model, cancel=self._cancel):
                parts.append(fragment)
                assistant_msg.content = "".join(parts)
                if on_update is not None:
                    on_update(assistant_msg)
        except StreamCancelled:
            assistant_msg.is_streaming = False
            self.in_progress = None
            if not parts:
                # Nothing arrived; forget the exchange entirely
                self.messages = [m for m in self.messages
                                 if m is not user_msg and m is not assistant_msg]
            logger.info("[Session] Response cancelled; no changes extracted")
            return assistant_msg
        except ChatError as e:
            assistant_msg.content = f"Error: {e}"
            assistant_msg.is_streaming = False
            self.in_progress = None
            return assistant_msg

        assistant_msg.content = "".join(parts)
        extracted = extract(assistant_msg.content)
        self._propose_extracted(extracted)
        assistant_msg.file_changes = extracted or None
        assistant_msg.is_streaming = False
        self.in_progress = None
        return assistant_msg

    def _propose_extracted(self, extracted: list[ExtractedChange]) -> None:
        for change in extracted:
            original = self.cache.get(change.filename, "")
            self.changes.propose(change.filename, original, change.content)
        if extracted:
            logger.info("[Session] %d pending change(s) after response",
                        self.changes.pending_count())

    # ── Review ──

    def propose(self, filename: str, original: str, proposed: str) -> PendingChange:
        return self.changes.propose(filename, original, proposed)

    def approve(self, filename: str) -> None:
        self.changes.approve(filename)

    def reject(self, filename: str) -> None:
        self.changes.reject(filename)

    def pending_count(self) -> int:
        return self.changes.pending_count()

    def approved_count(self) -> int:
        return self.changes.approved_count()

    def get_diff(self, filename: str) -> list[DiffLine]:
        change = self.changes.get(filename)
        if change is None:
            return []
        return compute_diff(change.original, change.proposed,
                            line_limit=self.diff_threshold)

    def get_context_diff(self, filename: str,
                         context_radius: Optional[int] = None) -> list[DiffRow]:
        radius = self.context_radius if context_radius is None else context_radius
        return select_context(self.get_diff(filename), radius)

    def get_stats(self, filename: str) -> DiffStats:
        return diff_stats(self.get_diff(filename))

    # ── Apply ──

    def apply_approved(self) -> ApplyOutcome:
        """Push approved changes.  Only succeeded files leave the change store."""
        theme = self._require_theme()
        approved = self.changes.approved()
        if not approved:
            raise PreconditionError("No approved changes to push")

        outcome = self.coordinator.apply_approved(theme.id, approved)
        for filename in outcome.succeeded:
            self.changes.mark_applied(filename, self.cache)
        return outcome
