"""
Diff engine — line-level comparison between a file's current text and an
AI-proposed replacement, plus the context-windowed view used for review.

Small inputs get an exact LCS alignment.  Inputs over ``LCS_LINE_LIMIT``
lines fall back to a positional comparison that runs in linear time but does
not produce a minimal diff.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Iterable, Optional, Union

LCS_LINE_LIMIT = 500
DEFAULT_CONTEXT_RADIUS = 4
PREVIEW_LINES = 5


class DiffKind(str, enum.Enum):
    ADDED = "added"
    REMOVED = "removed"
    UNCHANGED = "unchanged"


@dataclass(frozen=True)
class DiffLine:
    """One line of a diff.

    ``old_line`` is set for REMOVED and UNCHANGED lines, ``new_line`` for
    ADDED and UNCHANGED lines.  Both are 1-based.
    """
    kind: DiffKind
    text: str
    old_line: Optional[int] = None
    new_line: Optional[int] = None

    @classmethod
    def added(cls, text: str, new_line: int) -> "DiffLine":
        return cls(DiffKind.ADDED, text, new_line=new_line)

    @classmethod
    def removed(cls, text: str, old_line: int) -> "DiffLine":
        return cls(DiffKind.REMOVED, text, old_line=old_line)

    @classmethod
    def unchanged(cls, text: str, old_line: int, new_line: int) -> "DiffLine":
        return cls(DiffKind.UNCHANGED, text, old_line=old_line, new_line=new_line)

    @property
    def is_change(self) -> bool:
        return self.kind is not DiffKind.UNCHANGED


@dataclass(frozen=True)
class Separator:
    """Marks a run of hidden unchanged lines in a context-filtered diff."""


SEPARATOR = Separator()

DiffRow = Union[DiffLine, Separator]


@dataclass(frozen=True)
class DiffStats:
    added: int = 0
    removed: int = 0

    @property
    def changed(self) -> bool:
        return bool(self.added or self.removed)


# ══════════════════════════════════════════════════════════════════
#  Computation
# ══════════════════════════════════════════════════════════════════

def split_lines(text: str) -> list[str]:
    return text.split("\n") if text else []


def compute_diff(original: str, proposed: str,
                 line_limit: int = LCS_LINE_LIMIT) -> list[DiffLine]:
    """Return the line-level diff turning *original* into *proposed*.

    Lines are split on ``"\\n"`` with no further normalisation, so a
    trailing newline shows up as a trailing empty line.  An empty string
    has no lines: a new file diffs as all ADDED, an emptied one as all
    REMOVED.
    """
    old_lines = split_lines(original)
    new_lines = split_lines(proposed)

    if len(old_lines) > line_limit or len(new_lines) > line_limit:
        return _positional_diff(old_lines, new_lines)
    return _lcs_diff(old_lines, new_lines)


def _positional_diff(old_lines: list[str], new_lines: list[str]) -> list[DiffLine]:
    """Compare index by index.  O(max(m, n)), not minimal."""
    result: list[DiffLine] = []
    old_no = 1
    new_no = 1
    m, n = len(old_lines), len(new_lines)

    for i in range(max(m, n)):
        if i < m and i < n:
            if old_lines[i] == new_lines[i]:
                result.append(DiffLine.unchanged(old_lines[i], old_no, new_no))
            else:
                result.append(DiffLine.removed(old_lines[i], old_no))
                result.append(DiffLine.added(new_lines[i], new_no))
            old_no += 1
            new_no += 1
        elif i < m:
            result.append(DiffLine.removed(old_lines[i], old_no))
            old_no += 1
        else:
            result.append(DiffLine.added(new_lines[i], new_no))
            new_no += 1

    return result


def _lcs_diff(old_lines: list[str], new_lines: list[str]) -> list[DiffLine]:
    """Exact longest-common-subsequence alignment, O(m*n) time and space."""
    m, n = len(old_lines), len(new_lines)

    dp = [[0] * (n + 1) for _ in range(m + 1)]
    for i in range(1, m + 1):
        row, prev = dp[i], dp[i - 1]
        old = old_lines[i - 1]
        for j in range(1, n + 1):
            if old == new_lines[j - 1]:
                row[j] = prev[j - 1] + 1
            else:
                row[j] = max(prev[j], row[j - 1])

    # Backtrack from (m, n); ties go to insertions.
    ops: list[tuple[DiffKind, str]] = []
    i, j = m, n
    while i > 0 or j > 0:
        if i > 0 and j > 0 and old_lines[i - 1] == new_lines[j - 1]:
            ops.append((DiffKind.UNCHANGED, old_lines[i - 1]))
            i -= 1
            j -= 1
        elif j > 0 and (i == 0 or dp[i][j - 1] >= dp[i - 1][j]):
            ops.append((DiffKind.ADDED, new_lines[j - 1]))
            j -= 1
        else:
            ops.append((DiffKind.REMOVED, old_lines[i - 1]))
            i -= 1
    ops.reverse()

    result: list[DiffLine] = []
    old_no = 1
    new_no = 1
    for kind, text in ops:
        if kind is DiffKind.UNCHANGED:
            result.append(DiffLine.unchanged(text, old_no, new_no))
            old_no += 1
            new_no += 1
        elif kind is DiffKind.REMOVED:
            result.append(DiffLine.removed(text, old_no))
            old_no += 1
        else:
            result.append(DiffLine.added(text, new_no))
            new_no += 1
    return result


def diff_stats(diff_lines: Iterable[DiffLine]) -> DiffStats:
    """Count added and removed lines.  Always pass the unfiltered diff."""
    added = removed = 0
    for line in diff_lines:
        if line.kind is DiffKind.ADDED:
            added += 1
        elif line.kind is DiffKind.REMOVED:
            removed += 1
    return DiffStats(added=added, removed=removed)


def reconstruct(diff_lines: Iterable[DiffLine], side: str = "new") -> str:
    """Rebuild one side of the comparison from its diff.

    ``side="old"`` replays REMOVED + UNCHANGED lines, ``side="new"`` replays
    ADDED + UNCHANGED lines.
    """
    if side not in ("old", "new"):
        raise ValueError(f"side must be 'old' or 'new', got {side!r}")
    skip = DiffKind.ADDED if side == "old" else DiffKind.REMOVED
    return "\n".join(line.text for line in diff_lines if line.kind is not skip)


# ══════════════════════════════════════════════════════════════════
#  Context filtering
# ══════════════════════════════════════════════════════════════════

def select_context(diff_lines: list[DiffLine],
                   context_radius: int = DEFAULT_CONTEXT_RADIUS) -> list[DiffRow]:
    """Keep only lines within *context_radius* of a change.

    Hidden runs between two visible lines collapse into a single
    ``SEPARATOR``.  When nothing changed, the first few lines are returned
    as a preview.
    """
    total = len(diff_lines)
    visible: set[int] = set()
    for idx, line in enumerate(diff_lines):
        if line.is_change:
            lo = max(0, idx - context_radius)
            hi = min(total - 1, idx + context_radius)
            visible.update(range(lo, hi + 1))

    if not visible:
        return list(diff_lines[:PREVIEW_LINES])

    rows: list[DiffRow] = []
    last_included = -1
    for idx, line in enumerate(diff_lines):
        if idx not in visible:
            continue
        if last_included >= 0 and idx > last_included + 1:
            rows.append(SEPARATOR)
        rows.append(line)
        last_included = idx
    return rows


# ══════════════════════════════════════════════════════════════════
#  Rendering
# ══════════════════════════════════════════════════════════════════

_MARKERS = {
    DiffKind.ADDED: "+",
    DiffKind.REMOVED: "-",
    DiffKind.UNCHANGED: " ",
}


def _gutter(value: Optional[int], width: int) -> str:
    return str(value).rjust(width) if value is not None else " " * width


def format_diff_lines(rows: Iterable[DiffRow]) -> list[str]:
    """Render rows as ``old new marker text`` lines with a numbered gutter."""
    rows = list(rows)
    width = 1
    for row in rows:
        if isinstance(row, DiffLine):
            for value in (row.old_line, row.new_line):
                if value is not None:
                    width = max(width, len(str(value)))

    out: list[str] = []
    for row in rows:
        if isinstance(row, Separator):
            out.append(f"{' ' * width} {' ' * width}   …")
            continue
        out.append(
            f"{_gutter(row.old_line, width)} {_gutter(row.new_line, width)} "
            f"{_MARKERS[row.kind]} {row.text}"
        )
    return out


def format_colored_diff(rows: Iterable[DiffRow]) -> str:
    """Add ANSI colours: green for additions, red for removals, cyan gaps."""
    rows = list(rows)
    colored: list[str] = []
    for row, rendered in zip(rows, format_diff_lines(rows)):
        if isinstance(row, Separator):
            colored.append(f"\033[36m{rendered}\033[0m")  # cyan
        elif row.kind is DiffKind.ADDED:
            colored.append(f"\033[32m{rendered}\033[0m")  # green
        elif row.kind is DiffKind.REMOVED:
            colored.append(f"\033[31m{rendered}\033[0m")  # red
        else:
            colored.append(rendered)
    return "\n".join(colored)


def format_rich_diff(rows: Iterable[DiffRow]) -> str:
    """Convert rows to Rich markup for Textual display."""
    rows = list(rows)
    markup_lines: list[str] = []
    for row, rendered in zip(rows, format_diff_lines(rows)):
        # Escape Rich markup characters in the line content
        escaped = rendered.replace("[", "\\[")
        if isinstance(row, Separator):
            markup_lines.append(f"[cyan]{escaped}[/cyan]")
        elif row.kind is DiffKind.ADDED:
            markup_lines.append(f"[green]{escaped}[/green]")
        elif row.kind is DiffKind.REMOVED:
            markup_lines.append(f"[red]{escaped}[/red]")
        else:
            markup_lines.append(escaped)
    return "\n".join(markup_lines)
