"""
Shared data types for themes, theme files and chat messages.
"""

from __future__ import annotations

import itertools
import os
import time
from dataclasses import dataclass, field
from typing import Optional

from .extractor import ExtractedChange, strip_blocks

# Bulk binary/static uploads as reported by the theme store
ASSET_CONTENT_TYPE = "ASSET"

_ROLE_LABELS = {
    "main": "(Live)",
    "development": "(Dev)",
    "demo": "(Demo)",
    "unpublished": "(Draft)",
    "archived": "(Archived)",
    "locked": "(Locked)",
}


def theme_gid_to_id(gid: str) -> str:
    """``"gid://shopify/OnlineStoreTheme/123456"`` → ``"123456"``."""
    return gid.rsplit("/", 1)[-1] or gid


@dataclass(frozen=True)
class Theme:
    id: str
    name: str
    role: str = "unpublished"

    @property
    def numeric_id(self) -> str:
        return theme_gid_to_id(self.id)

    @property
    def role_label(self) -> str:
        return _ROLE_LABELS.get(self.role, "")

    def display_name(self) -> str:
        label = self.role_label
        return f"{self.name} {label}" if label else self.name


@dataclass(frozen=True)
class ThemeFile:
    """Metadata snapshot of one file in a theme."""
    filename: str
    content_type: str = ""
    size: int = 0
    updated_at: str = ""

    @property
    def basename(self) -> str:
        return self.filename.rsplit("/", 1)[-1]

    @property
    def extension(self) -> str:
        return os.path.splitext(self.filename)[1].lower()

    @property
    def is_bulk_asset(self) -> bool:
        return self.content_type == ASSET_CONTENT_TYPE


_message_ids = itertools.count(1)


def _next_message_id() -> str:
    return f"{int(time.time() * 1000)}-{next(_message_ids)}"


@dataclass
class ChatMessage:
    role: str  # "user" or "assistant"
    content: str = ""
    id: str = field(default_factory=_next_message_id)
    timestamp: float = field(default_factory=time.time)
    file_changes: Optional[list[ExtractedChange]] = None
    is_streaming: bool = False

    @property
    def display_text(self) -> str:
        """Message text with ``<file_change>`` blocks removed."""
        if self.role != "assistant":
            return self.content
        return strip_blocks(self.content)

    def to_api(self) -> dict:
        return {"role": self.role, "content": self.content}
