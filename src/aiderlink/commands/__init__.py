"""Command formatting: directives, chat modes and prompt builders."""

from aiderlink.commands.formatter import (
    DEFAULT_MODE,
    MODE_RULES,
    MULTILINE_END,
    MULTILINE_START,
    ChatMode,
    CommandFormatter,
    Directive,
    ModeRule,
    PendingCommand,
    unwrap,
    wrap_multiline,
)

__all__ = [
    "ChatMode",
    "CommandFormatter",
    "DEFAULT_MODE",
    "Directive",
    "MODE_RULES",
    "MULTILINE_END",
    "MULTILINE_START",
    "ModeRule",
    "PendingCommand",
    "unwrap",
    "wrap_multiline",
]
