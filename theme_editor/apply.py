"""
Apply coordinator — pushes approved changes to the theme store one file at a
time and reports per-file outcomes.

Files are independent: a failed write is recorded and the batch moves on.
There is no rollback and no automatic retry.
"""

from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional, Protocol

import requests

from .changes import PendingChange

logger = logging.getLogger(__name__)

PUSH_DELAY_SECONDS = 0.25
NETWORK_ERROR = "Network error"


class FileWriter(Protocol):
    def put_file(self, theme_id: str, filename: str, content: str): ...


class OverallStatus(str, enum.Enum):
    ALL_SUCCEEDED = "all_succeeded"
    PARTIAL_SUCCESS = "partial_success"
    ALL_FAILED = "all_failed"


@dataclass(frozen=True)
class FileUpdate:
    filename: str
    content: str

    @classmethod
    def from_change(cls, change: PendingChange) -> "FileUpdate":
        return cls(filename=change.filename, content=change.proposed)


@dataclass(frozen=True)
class ApplyResult:
    """Outcome of writing a single file."""
    filename: str
    success: bool
    error: Optional[str] = None


@dataclass
class ApplyOutcome:
    """Summary of an apply batch."""
    results: list[ApplyResult] = field(default_factory=list)

    @property
    def overall_status(self) -> OverallStatus:
        if all(r.success for r in self.results):
            return OverallStatus.ALL_SUCCEEDED
        if any(r.success for r in self.results):
            return OverallStatus.PARTIAL_SUCCESS
        return OverallStatus.ALL_FAILED

    @property
    def succeeded(self) -> list[str]:
        return [r.filename for r in self.results if r.success]

    @property
    def failed(self) -> list[ApplyResult]:
        return [r for r in self.results if not r.success]

    def summary(self) -> str:
        status = self.overall_status
        if status is OverallStatus.ALL_SUCCEEDED:
            return f"Pushed {len(self.results)} file(s)."
        if status is OverallStatus.PARTIAL_SUCCESS:
            lines = [f"Pushed {len(self.succeeded)} of {len(self.results)} file(s). Failed:"]
            lines.extend(f"  {r.filename}: {r.error}" for r in self.failed)
            return "\n".join(lines)
        return "Failed to push changes."


class ApplyCoordinator:
    """Sequentially writes file updates through a :class:`FileWriter`."""

    def __init__(self, writer: FileWriter,
                 delay: float = PUSH_DELAY_SECONDS,
                 sleep: Callable[[float], None] = time.sleep) -> None:
        self._writer = writer
        self._delay = delay
        self._sleep = sleep

    def apply_approved(self, theme_id: str,
                       changes: Iterable[FileUpdate | PendingChange]) -> ApplyOutcome:
        updates = [
            FileUpdate.from_change(c) if isinstance(c, PendingChange) else c
            for c in changes
        ]
        outcome = ApplyOutcome()
        pace = len(updates) > 1

        for index, update in enumerate(updates):
            outcome.results.append(self._write_one(theme_id, update))
            # Courtesy pause for the remote rate limiter
            if pace and index < len(updates) - 1 and self._delay > 0:
                self._sleep(self._delay)

        logger.info(
            "[Apply] %s: %d succeeded, %d failed",
            outcome.overall_status.value, len(outcome.succeeded), len(outcome.failed),
        )
        return outcome

    def _write_one(self, theme_id: str, update: FileUpdate) -> ApplyResult:
        try:
            result = self._writer.put_file(theme_id, update.filename, update.content)
        except requests.RequestException as exc:
            logger.warning("[Apply] Transport error for %s: %s", update.filename, exc)
            return ApplyResult(update.filename, success=False, error=NETWORK_ERROR)

        if result.success:
            logger.debug("[Apply] Pushed %s", update.filename)
            return ApplyResult(update.filename, success=True)
        return ApplyResult(update.filename, success=False,
                           error=result.error or NETWORK_ERROR)
