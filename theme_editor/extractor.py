"""
Response extractor — pulls structured file edits out of a completed
assistant response.

The model is asked to wrap each full-file replacement as::

    <file_change>
    {"filename": "sections/header.liquid", "content": "..."}
    </file_change>

Blocks whose payload is not valid JSON, or does not match the schema, are
skipped without affecting the blocks around them.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field, StrictStr, ValidationError

logger = logging.getLogger(__name__)

# Markers
BLOCK_OPEN = "<file_change>"
BLOCK_CLOSE = "</file_change>"

# Patterns
_BLOCK_PATTERN = re.compile(
    re.escape(BLOCK_OPEN) + r"\s*(.*?)\s*" + re.escape(BLOCK_CLOSE),
    re.DOTALL,
)


class FileChangePayload(BaseModel):
    """Schema for the JSON object inside a ``<file_change>`` block."""

    model_config = ConfigDict(extra="ignore")

    filename: StrictStr = Field(min_length=1)
    content: StrictStr  # may be empty: the file is emptied


@dataclass(frozen=True)
class ExtractedChange:
    filename: str
    content: str


def _parse_block(payload: str) -> ExtractedChange | None:
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as exc:
        logger.debug("[Extract] Skipping block with invalid JSON: %s", exc)
        return None
    try:
        parsed = FileChangePayload.model_validate(data)
    except ValidationError as exc:
        logger.debug("[Extract] Skipping block failing schema: %s",
                     exc.errors(include_url=False))
        return None
    return ExtractedChange(filename=parsed.filename, content=parsed.content)


def extract(full_text: str) -> list[ExtractedChange]:
    """Return every valid file edit in *full_text*, in order of appearance.

    Run this once over the complete response, never on a partial stream.
    Duplicates for the same filename are all returned; proposing them in
    order leaves the last one pending.
    """
    changes: list[ExtractedChange] = []
    skipped = 0
    for match in _BLOCK_PATTERN.finditer(full_text):
        change = _parse_block(match.group(1))
        if change is None:
            skipped += 1
            continue
        changes.append(change)

    if changes or skipped:
        logger.info("[Extract] %d file change(s) extracted, %d block(s) skipped",
                    len(changes), skipped)
    return changes


def strip_blocks(text: str) -> str:
    """Remove all complete ``<file_change>`` blocks, leaving the prose."""
    return _BLOCK_PATTERN.sub("", text).strip()
