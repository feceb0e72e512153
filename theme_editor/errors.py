"""
Exception hierarchy for the theme editor.
"""


class ThemeEditorError(Exception):
    """Base exception for all theme editor operations."""


class PreconditionError(ThemeEditorError):
    """Raised when an operation is attempted without its inputs in place
    (empty message, no theme selected, nothing approved)."""


class NotAuthenticatedError(PreconditionError):
    """Raised when a remote operation is attempted without store credentials."""


class ThemeStoreError(ThemeEditorError):
    """Raised when a read from the remote theme store fails."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ChatError(ThemeEditorError):
    """Raised when the chat transport cannot produce a response."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ConfigError(ThemeEditorError):
    """Raised when configuration values cannot be used."""
