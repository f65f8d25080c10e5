"""Configuration schema dataclasses for aiderlink.

All fields have defaults so partial configs merge together cleanly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

# Matches the assistant's input prompt ("> ", "ask> ", "architect> ", ...)
# at the very end of the output seen so far.
DEFAULT_PROMPT_PATTERN = r"(?:^|\n)[\w-]*> ?$"


@dataclass
class AiderConfig:
    """How to launch the assistant process."""

    program: str = "aider"
    args: list[str] = field(default_factory=lambda: ["--no-pretty", "--no-fancy-input"])


@dataclass
class TransportConfig:
    """Subprocess transport configuration.

    Example config.yaml:
        transport:
          prompt_pattern: '(?:^|\\n)[\\w-]*> ?$'
          echoes_input: false
    """

    prompt_pattern: str = DEFAULT_PROMPT_PATTERN
    echoes_input: bool = False  # True when the child echoes stdin back (pty)
    read_size: int = 4096
    encoding: str = "utf-8"


@dataclass
class SessionConfig:
    """Session defaults configuration."""

    subtree_only: bool = False
    default_mode: str | None = None  # code, ask, architect, help
    add_directory_max_files: int = 40
    startup_timeout: float = 30.0  # Seconds to wait for the first prompt; 0 disables
    refresh_after_add: bool = True  # Re-read /ls after /add instead of trusting the request
    ignore_dirs: list[str] = field(
        default_factory=lambda: [
            ".git",
            "__pycache__",
            "node_modules",
            ".venv",
            ".mypy_cache",
            ".pytest_cache",
        ]
    )


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str | None = None  # DEBUG, INFO, WARNING, ERROR
    verbose: int | None = None  # 0-4, overrides level
    file: str | None = None  # Log file path


@dataclass
class Config:
    """Root configuration object."""

    aider: AiderConfig = field(default_factory=AiderConfig)
    transport: TransportConfig = field(default_factory=TransportConfig)
    session: SessionConfig = field(default_factory=SessionConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Unknown top-level sections, kept for forward compatibility
    extra: dict[str, Any] = field(default_factory=dict)
