"""
Change store — pending AI-proposed edits keyed by filename, and the
session's read-through cache of file contents.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Callable, Iterable, Iterator, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileContent:
    filename: str
    content: str


@dataclass(frozen=True)
class PendingChange:
    """A proposed but not-yet-applied edit to a single file.

    ``original`` is captured once when the change is proposed and is never
    refreshed if the remote file changes afterwards.
    """
    filename: str
    original: str
    proposed: str
    approved: bool = False


class ContentCache:
    """Filename → text, populated lazily and never evicted within a session."""

    def __init__(self) -> None:
        self._contents: dict[str, str] = {}

    def __contains__(self, filename: str) -> bool:
        return filename in self._contents

    def __len__(self) -> int:
        return len(self._contents)

    def get(self, filename: str, default: Optional[str] = None) -> Optional[str]:
        return self._contents.get(filename, default)

    def put(self, filename: str, content: str) -> None:
        self._contents[filename] = content

    def get_or_fetch(
        self,
        filenames: Iterable[str],
        fetch: Callable[[list[str]], Iterable[FileContent]],
    ) -> list[FileContent]:
        """Return contents for *filenames*, fetching only the uncached ones.

        Cached entries come first, followed by whatever *fetch* returned.
        Files the fetch could not supply are simply absent from the result.
        """
        wanted = list(dict.fromkeys(filenames))
        cached = [FileContent(f, self._contents[f]) for f in wanted if f in self._contents]
        needed = [f for f in wanted if f not in self._contents]
        if not needed:
            return cached

        fetched = list(fetch(needed))
        for item in fetched:
            self._contents[item.filename] = item.content
        missing = set(needed) - {item.filename for item in fetched}
        if missing:
            logger.debug("[Cache] %d file(s) unavailable: %s",
                         len(missing), ", ".join(sorted(missing)))
        return cached + fetched


class ChangeStore:
    """Ordered mapping of filename → :class:`PendingChange`.

    At most one pending change exists per file.  ``propose`` on a filename
    that already has an entry replaces the whole record (last propose wins,
    approval is reset) while keeping its slot in the iteration order.
    """

    def __init__(self) -> None:
        self._changes: dict[str, PendingChange] = {}

    def __contains__(self, filename: str) -> bool:
        return filename in self._changes

    def __iter__(self) -> Iterator[PendingChange]:
        return iter(list(self._changes.values()))

    def __len__(self) -> int:
        return len(self._changes)

    def get(self, filename: str) -> Optional[PendingChange]:
        return self._changes.get(filename)

    def filenames(self) -> list[str]:
        return list(self._changes)

    def propose(self, filename: str, original: str, proposed: str) -> PendingChange:
        """Insert or overwrite the pending change for *filename*.

        An empty *original* is a valid baseline and diffs as a new file.
        """
        change = PendingChange(filename=filename, original=original,
                               proposed=proposed, approved=False)
        if filename in self._changes:
            logger.debug("[Changes] Replacing pending change for %s", filename)
        self._changes[filename] = change
        return change

    def approve(self, filename: str) -> None:
        change = self._changes.get(filename)
        if change is None:
            return
        self._changes[filename] = replace(change, approved=True)

    def approve_all(self) -> None:
        for filename in list(self._changes):
            self.approve(filename)

    def reject(self, filename: str) -> None:
        """Discard the change, approved or not.  Doubles as undo-approve."""
        self._changes.pop(filename, None)

    def clear(self) -> None:
        self._changes.clear()

    def pending_count(self) -> int:
        return len(self._changes)

    def approved_count(self) -> int:
        return sum(1 for change in self._changes.values() if change.approved)

    def approved(self) -> list[PendingChange]:
        return [change for change in self._changes.values() if change.approved]

    def mark_applied(self, filename: str, cache: ContentCache) -> None:
        """Drop a successfully pushed change and make its text the new baseline."""
        change = self._changes.pop(filename, None)
        if change is None:
            return
        cache.put(filename, change.proposed)
