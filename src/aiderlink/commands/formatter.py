"""Turn logical operations into the text payloads the assistant reads.

Every payload is either a single line or one block framed by the
multi-line markers, so the process sees it as one logical input.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from aiderlink.filesystem import localize

MULTILINE_START = "{aider"
MULTILINE_END = "aider}"


class Directive(Enum):
    """Slash commands understood by the assistant (exact, case-sensitive)."""

    ADD = "/add"
    READ_ONLY = "/read-only"
    DROP = "/drop"
    LS = "/ls"
    CHAT_MODE = "/chat-mode"
    CLEAR = "/clear"
    RESET = "/reset"
    EXIT = "/exit"
    UNDO = "/undo"
    MAP_REFRESH = "/map-refresh"
    # One-shot prompt prefixes
    CODE = "/code"
    ASK = "/ask"
    ARCHITECT = "/architect"
    HELP = "/help"


class ChatMode(Enum):
    """Assistant behavior mode."""

    CODE = "code"
    ASK = "ask"
    ARCHITECT = "architect"
    HELP = "help"

    @classmethod
    def parse(cls, name: str) -> ChatMode:
        """Parse a mode name, raising ValueError for unknown names."""
        try:
            return cls(name.strip().lower())
        except ValueError:
            valid = ", ".join(m.value for m in cls)
            raise ValueError(f"Unknown chat mode {name!r} (expected one of: {valid})") from None


@dataclass(frozen=True)
class ModeRule:
    """How a chat mode treats unprefixed prompt text."""

    edits_files: bool
    prefix: Directive


MODE_RULES: dict[ChatMode, ModeRule] = {
    ChatMode.CODE: ModeRule(edits_files=True, prefix=Directive.CODE),
    ChatMode.ASK: ModeRule(edits_files=False, prefix=Directive.ASK),
    ChatMode.ARCHITECT: ModeRule(edits_files=True, prefix=Directive.ARCHITECT),
    ChatMode.HELP: ModeRule(edits_files=False, prefix=Directive.HELP),
}

# The assistant starts in code mode
DEFAULT_MODE = ChatMode.CODE

EDIT_DIRECTIVES = frozenset(
    rule.prefix.value for rule in MODE_RULES.values() if rule.edits_files
)

PATH_DIRECTIVES = frozenset({Directive.ADD, Directive.READ_ONLY, Directive.DROP})


@dataclass(frozen=True)
class PendingCommand:
    """A logical command and the mode it was issued in."""

    raw_text: str
    mode: ChatMode | None = None

    @property
    def body(self) -> str:
        """The text with any multi-line framing removed."""
        return unwrap(self.raw_text).strip()

    @property
    def directive(self) -> str | None:
        """Leading slash token, if the text starts with one."""
        body = self.body
        if not body.startswith("/"):
            return None
        return body.split(maxsplit=1)[0]

    @property
    def argument(self) -> str | None:
        """Text after the directive, e.g. ``ask`` in ``/chat-mode ask``."""
        if self.directive is None:
            return None
        parts = self.body.split(maxsplit=1)
        return parts[1] if len(parts) > 1 else None

    @property
    def may_edit_files(self) -> bool:
        """Whether sending this command can change files on disk."""
        directive = self.directive
        if directive is None:
            return MODE_RULES[self.mode or DEFAULT_MODE].edits_files
        return directive in EDIT_DIRECTIVES


def is_wrapped(text: str) -> bool:
    """True when ``text`` is already one framed multi-line block."""
    lines = text.split("\n")
    return len(lines) >= 2 and lines[0] == MULTILINE_START and lines[-1] == MULTILINE_END


def wrap_multiline(text: str) -> str:
    """Frame text containing line breaks; single lines pass through."""
    if "\n" not in text or is_wrapped(text):
        return text
    return f"{MULTILINE_START}\n{text}\n{MULTILINE_END}"


def unwrap(text: str) -> str:
    """Inverse of ``wrap_multiline``; unframed text passes through."""
    if not is_wrapped(text):
        return text
    return "\n".join(text.split("\n")[1:-1])


def quote_path(path: str) -> str:
    return f'"{path}"'


class CommandFormatter:
    """Builds payload text for each kind of operation."""

    def prefixed(self, text: str, mode: ChatMode | None = None) -> str:
        """Prompt text with a one-shot mode prefix, not yet framed."""
        if mode is None:
            return text
        prefix = MODE_RULES[mode].prefix.value
        return f"{prefix} {text}" if text else prefix

    def prompt(self, text: str, mode: ChatMode | None = None) -> str:
        """Free-text prompt, optionally with a one-shot mode prefix."""
        return wrap_multiline(self.prefixed(text, mode))

    def files(self, directive: Directive, paths: Iterable[str | None]) -> str:
        """Path directive with every path localized and quoted.

        Empty or missing entries are skipped; with nothing left the bare
        directive is returned.
        """
        if directive not in PATH_DIRECTIVES:
            raise ValueError(f"{directive.value} does not take file arguments")
        quoted = [quote_path(localize(p)) for p in paths if p]
        return " ".join([directive.value, *quoted])

    def chat_mode(self, mode: ChatMode) -> str:
        return f"{Directive.CHAT_MODE.value} {mode.value}"

    def directive(self, directive: Directive) -> str:
        """A directive that takes no arguments."""
        return directive.value

    def format(self, directive: Directive | None, *args: object) -> str:
        """Single dispatch over all operations.

        ``None`` means a free-text prompt (``args[0]`` is the text).
        Prompt prefixes take the text as ``args[0]``, path directives take
        the paths, ``CHAT_MODE`` takes a ChatMode or mode name.
        """
        if directive is None:
            return self.prompt(str(args[0]) if args else "")
        if directive in PATH_DIRECTIVES:
            paths: list[str | None] = []
            for arg in args:
                if isinstance(arg, (list, tuple)):
                    paths.extend(arg)
                else:
                    paths.append(arg)  # type: ignore[arg-type]
            return self.files(directive, paths)
        if directive is Directive.CHAT_MODE:
            if not args:
                raise ValueError("/chat-mode needs a mode")
            mode = args[0] if isinstance(args[0], ChatMode) else ChatMode.parse(str(args[0]))
            return self.chat_mode(mode)
        for mode, rule in MODE_RULES.items():
            if rule.prefix is directive:
                return self.prompt(str(args[0]) if args else "", mode)
        return self.directive(directive)

    def classify(self, raw_text: str, mode: ChatMode | None) -> PendingCommand:
        return PendingCommand(raw_text=raw_text, mode=mode)
