"""Exception hierarchy for aiderlink.

All errors surface to the caller as a single descriptive message; nothing
structured crosses the transport boundary.
"""

from __future__ import annotations


class AiderLinkError(Exception):
    """Base class for all aiderlink errors."""


class ConfigurationError(AiderLinkError):
    """The requested operation cannot run with the given environment.

    Raised when no scope root can be resolved, or when a file-only
    operation is invoked without a file.
    """


class TooManyFilesError(ConfigurationError):
    """A directory add matched more files than the configured limit."""

    def __init__(self, directory: str, count: int, limit: int) -> None:
        super().__init__(
            f"Refusing to add {count} files from {directory} (limit is {limit})"
        )
        self.directory = directory
        self.count = count
        self.limit = limit


class SessionUnavailableError(AiderLinkError):
    """The assistant process failed to start or has exited."""


class CommandInFlightError(AiderLinkError):
    """A command was sent while the previous one is still awaiting output."""


class PromptNotFoundError(AiderLinkError):
    """No prompt draft exists for the given id."""
