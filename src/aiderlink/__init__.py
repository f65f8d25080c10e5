"""aiderlink: multiplex aider sessions across project scopes."""

__version__ = "0.1.0"

# Public API
from aiderlink.commands import ChatMode, CommandFormatter, Directive, PendingCommand
from aiderlink.config import Config, get_config, load_config
from aiderlink.errors import (
    AiderLinkError,
    CommandInFlightError,
    ConfigurationError,
    PromptNotFoundError,
    SessionUnavailableError,
    TooManyFilesError,
)
from aiderlink.session import (
    FileTracker,
    OutputCorrelator,
    Session,
    SessionRegistry,
    SessionState,
    TrackedFile,
    parse_listing,
)
from aiderlink.terminal import SubprocessTransport, Transport, TransportHandle

__all__ = [
    # Sessions
    "Session",
    "SessionRegistry",
    "SessionState",
    "OutputCorrelator",
    "FileTracker",
    "TrackedFile",
    "parse_listing",
    # Commands
    "ChatMode",
    "CommandFormatter",
    "Directive",
    "PendingCommand",
    # Transport
    "SubprocessTransport",
    "Transport",
    "TransportHandle",
    # Config
    "Config",
    "load_config",
    "get_config",
    # Errors
    "AiderLinkError",
    "CommandInFlightError",
    "ConfigurationError",
    "PromptNotFoundError",
    "SessionUnavailableError",
    "TooManyFilesError",
]
