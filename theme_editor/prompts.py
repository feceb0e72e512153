"""
Prompt assembly — the system prompt sent with every chat request and the
selection of file contents embedded in it.
"""

from __future__ import annotations

from typing import Iterable

from .changes import FileContent
from .extractor import BLOCK_CLOSE, BLOCK_OPEN

PROMPT_FILE_CHARS = 6000
CONTEXT_FILE_CHARS = 8000
MAX_CONTEXT_FILES = 12
MAX_OPEN_FILES = 5

_ROLE = """You are an expert Shopify theme developer with deep knowledge of Liquid templating, CSS, JavaScript, and Shopify's theme architecture.

You help users modify their Shopify theme files through natural language conversation. You understand all aspects of:
- Shopify Liquid templating language
- Dawn theme structure and sections
- Theme customization best practices
- CSS/SCSS for Shopify themes
- JavaScript (vanilla, Alpine.js, custom elements)
- Schema JSON for section settings
- Theme locales and translations"""

_PROTOCOL = f"""## How to respond

When the user asks for theme changes:

1. **Explain** what you're going to do and why
2. **Provide the complete modified file** in a structured block:

{BLOCK_OPEN}
{{"filename": "sections/header.liquid", "content": "...COMPLETE FILE CONTENT HERE..."}}
{BLOCK_CLOSE}

**CRITICAL RULES:**
- Always include the COMPLETE file content — never partial snippets with "..." placeholders
- You can include multiple {BLOCK_OPEN} blocks if modifying multiple files
- If you need to see a file's content that hasn't been shared, ask the user to open it first
- Preserve all existing functionality unless explicitly asked to change it
- Include helpful inline comments explaining significant changes

## When NOT to provide {BLOCK_OPEN} blocks
- Explaining concepts or architecture
- Answering questions that don't require file edits
- Asking for clarification before proceeding"""

_NO_FILES_NOTE = """## Note
No theme files are currently open. Ask the user to open files so you can make targeted edits."""


def _truncate(content: str, limit: int) -> str:
    if len(content) <= limit:
        return content
    return content[:limit] + "\n... (truncated)"


def build_system_prompt(context_files: Iterable[FileContent],
                        theme_filenames: Iterable[str] | None = None) -> str:
    """Compose the system prompt with the edit protocol and file contents."""
    parts = [_ROLE, _PROTOCOL]

    files = list(context_files)
    if files:
        section = ["## Currently Open Files", "",
                   "The user has these theme files open:", ""]
        for f in files:
            section.append(f"### {f.filename}\n```\n"
                           f"{_truncate(f.content, PROMPT_FILE_CHARS)}\n```\n")
        parts.append("\n".join(section))
    else:
        parts.append(_NO_FILES_NOTE)

    names = list(theme_filenames or [])
    if names:
        parts.append("## All Theme Files\n\n" + "\n".join(names))

    return "\n\n".join(parts)


def assemble_context(open_files: Iterable[FileContent],
                     fetched: Iterable[FileContent],
                     limit: int = MAX_CONTEXT_FILES) -> list[FileContent]:
    """Merge manually opened and auto-selected files for the prompt.

    Open files come first (at most ``MAX_OPEN_FILES``), duplicates and empty
    files are dropped, and each body is clipped to ``CONTEXT_FILE_CHARS``.
    """
    merged: list[FileContent] = []
    seen: set[str] = set()

    for f in list(open_files)[:MAX_OPEN_FILES] + list(fetched):
        if f.filename in seen or not f.content:
            continue
        seen.add(f.filename)
        merged.append(FileContent(f.filename, f.content[:CONTEXT_FILE_CHARS]))
        if len(merged) >= limit:
            break
    return merged
