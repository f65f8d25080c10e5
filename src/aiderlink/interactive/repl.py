"""Interactive REPL that routes input to the session for the current path."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

from prompt_toolkit import PromptSession
from prompt_toolkit.auto_suggest import AutoSuggestFromHistory
from prompt_toolkit.history import FileHistory
from rich.console import Console
from rich.text import Text

from aiderlink import __version__
from aiderlink.errors import AiderLinkError
from aiderlink.interactive.commands import CommandHandler

if TYPE_CHECKING:
    from pathlib import Path

    from aiderlink.commands.formatter import ChatMode
    from aiderlink.session.registry import SessionRegistry
    from aiderlink.session.session import Session

console = Console()


class InteractiveRepl:
    """Line-oriented front end standing in for an editor."""

    def __init__(
        self,
        registry: SessionRegistry,
        path: str,
        *,
        subtree_only: bool | None = None,
        history_file: Path | None = None,
    ) -> None:
        self.registry = registry
        self.path = os.path.abspath(path)
        self.subtree_only = subtree_only
        self.active_file: str | None = None if os.path.isdir(self.path) else self.path
        self.commands = CommandHandler(self)
        self._running = False

        history = FileHistory(str(history_file)) if history_file else None
        self.prompt_session: PromptSession[str] = PromptSession(
            history=history,
            auto_suggest=AutoSuggestFromHistory(),
        )

    async def current_session(self) -> Session:
        return await self.registry.open(self.path, self.subtree_only)

    async def switch(self, path: str) -> Session:
        """Make ``path`` the current location and return its session."""
        self.path = os.path.abspath(path)
        if not os.path.isdir(self.path):
            self.active_file = self.path
        return await self.current_session()

    async def show(self, output: str) -> None:
        console.print(Text(output.rstrip()))

    async def send_template(
        self,
        template: tuple[ChatMode, str],
        *,
        active_file: str | None = None,
    ) -> None:
        mode, text = template
        session = await self.current_session()
        await self.show(await session.request_prompt(text, mode, active_file=active_file))

    async def read_multiline(self, default: str = "") -> str:
        """Read a multi-line prompt (finish with Esc+Enter)."""
        console.print("[dim]Compose prompt; Esc+Enter to send, empty to cancel.[/dim]")
        return await self.prompt_session.prompt_async(
            "... ", default=default, multiline=True
        )

    def _prompt_text(self) -> str:
        session = self.registry.get(self.registry.resolve(self.path, self.subtree_only))
        mode = session.mode.value if session and session.mode else "code"
        return f"{mode}> "

    async def run(self) -> None:
        """Run the REPL until :quit or EOF."""
        self._running = True

        console.print(f"[bold]aiderlink[/bold] v{__version__}")
        console.print("Type [bold]:help[/bold] for local commands, [bold]:quit[/bold] to exit.\n")

        while self._running:
            try:
                line = await self.prompt_session.prompt_async(self._prompt_text())
            except KeyboardInterrupt:
                continue
            except EOFError:
                break
            except AiderLinkError as e:
                console.print(f"[red]{e}[/red]")
                break

            line = line.strip()
            if not line:
                continue

            if line.startswith(":"):
                await self.commands.handle(line)
                continue

            try:
                session = await self.current_session()
                output = await session.request(line, active_file=self.active_file)
            except (AiderLinkError, ValueError) as e:
                console.print(f"[red]{e}[/red]")
                continue
            await self.show(output)

        self._running = False

    def stop(self) -> None:
        self._running = False
