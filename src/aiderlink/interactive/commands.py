"""Local ``:`` commands for the interactive front end."""

from __future__ import annotations

import os
import shlex
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import TYPE_CHECKING

from rich.console import Console
from rich.table import Table

from aiderlink.commands import templates
from aiderlink.commands.formatter import ChatMode
from aiderlink.errors import AiderLinkError

if TYPE_CHECKING:
    from aiderlink.interactive.repl import InteractiveRepl

console = Console()

Handler = Callable[[list[str]], Awaitable[None]]


class CommandHandler:
    """Handles ``:`` commands; everything else goes to the assistant."""

    def __init__(self, repl: InteractiveRepl) -> None:
        self.repl = repl
        self._handlers: dict[str, Handler] = {
            ":help": self._cmd_help,
            ":sessions": self._cmd_sessions,
            ":cd": self._cmd_cd,
            ":file": self._cmd_file,
            ":mode": self._cmd_mode,
            ":add": self._cmd_add,
            ":read": self._cmd_read,
            ":drop": self._cmd_drop,
            ":adddir": self._cmd_adddir,
            ":ls": self._cmd_ls,
            ":files": self._cmd_files,
            ":edit": self._cmd_edit,
            ":explain": self._cmd_explain,
            ":tests": self._cmd_tests,
            ":exit": self._cmd_exit,
            ":quit": self._cmd_quit,
        }

    async def handle(self, line: str) -> None:
        """Handle a ``:`` command line."""
        try:
            parts = shlex.split(line)
        except ValueError as e:
            console.print(f"[red]{e}[/red]")
            return
        if not parts:
            return

        cmd, args = parts[0].lower(), parts[1:]
        handler = self._handlers.get(cmd)
        if handler is None:
            console.print(f"[red]Unknown command: {cmd}[/red]")
            console.print("Type [bold]:help[/bold] for available commands.")
            return

        try:
            await handler(args)
        except (AiderLinkError, ValueError, OSError) as e:
            console.print(f"[red]{e}[/red]")

    async def _cmd_help(self, args: list[str]) -> None:
        table = Table(title="Local Commands")
        table.add_column("Command", style="bold")
        table.add_column("Description")

        commands = [
            (":help", "Show this help message"),
            (":sessions", "List live sessions"),
            (":cd <path>", "Switch to the session for a file or directory"),
            (":file <path>", "Set the active file (added before editing prompts)"),
            (":mode <code|ask|architect|help>", "Switch chat mode"),
            (":add <files...>", "Add files to the chat"),
            (":read <files...>", "Add files read-only"),
            (":drop [files...]", "Drop files (all when none given)"),
            (":adddir <dir> [suffix]", "Add every file under a directory"),
            (":ls", "Refresh tracked files from the assistant"),
            (":files", "Show tracked files"),
            (":edit", "Compose a multi-line prompt"),
            (":explain <file>", "Ask for an explanation of a file"),
            (":tests <file> [function]", "Ask for unit tests"),
            (":exit", "Exit the current session"),
            (":quit", "Exit every session and quit"),
        ]
        for cmd, desc in commands:
            table.add_row(cmd, desc)
        console.print(table)
        console.print("Any other input, including [bold]/[/bold] directives, goes to the assistant.")

    async def _cmd_sessions(self, args: list[str]) -> None:
        sessions = self.repl.registry.sessions()
        if not sessions:
            console.print("[dim]No live sessions[/dim]")
            return

        table = Table(title="Sessions")
        table.add_column("Scope")
        table.add_column("State")
        table.add_column("Mode")
        table.add_column("Files", justify="right")
        for session in sessions:
            table.add_row(
                session.display_name,
                session.state.value,
                session.mode.value if session.mode else "-",
                str(len(session.tracker)),
            )
        console.print(table)

    async def _cmd_cd(self, args: list[str]) -> None:
        if not args:
            console.print("[red]Usage: :cd <path>[/red]")
            return
        session = await self.repl.switch(args[0])
        console.print(f"Now using {session.display_name}")

    async def _cmd_file(self, args: list[str]) -> None:
        if not args:
            self.repl.active_file = None
            console.print("[dim]No active file[/dim]")
            return
        self.repl.active_file = os.path.abspath(args[0])
        console.print(f"Active file: {self.repl.active_file}")

    async def _cmd_mode(self, args: list[str]) -> None:
        if not args:
            session = await self.repl.current_session()
            console.print(f"Mode: {session.mode.value if session.mode else 'code (default)'}")
            return
        session = await self.repl.current_session()
        await self.repl.show(await session.set_mode(ChatMode.parse(args[0])))

    async def _cmd_add(self, args: list[str]) -> None:
        session = await self.repl.current_session()
        await self.repl.show(await session.add_files(args or [self.repl.active_file]))

    async def _cmd_read(self, args: list[str]) -> None:
        session = await self.repl.current_session()
        await self.repl.show(
            await session.add_files(args or [self.repl.active_file], read_only=True)
        )

    async def _cmd_drop(self, args: list[str]) -> None:
        session = await self.repl.current_session()
        await self.repl.show(await session.drop_files(args))

    async def _cmd_adddir(self, args: list[str]) -> None:
        if not args:
            console.print("[red]Usage: :adddir <dir> [suffix][/red]")
            return
        session = await self.repl.current_session()
        suffix = args[1] if len(args) > 1 else None
        files = await session.add_directory(args[0], suffix=suffix)
        console.print(f"Added {len(files)} files")

    async def _cmd_ls(self, args: list[str]) -> None:
        session = await self.repl.current_session()
        await session.list_files()
        await self._cmd_files(args)

    async def _cmd_files(self, args: list[str]) -> None:
        session = await self.repl.current_session()
        if not session.tracked_files:
            console.print("[dim]No tracked files[/dim]")
            return
        for path in session.tracked_files:
            console.print(f"  {path}")

    async def _cmd_edit(self, args: list[str]) -> None:
        session = await self.repl.current_session()
        prompt_id = session.begin_prompt(" ".join(args))
        text = await self.repl.read_multiline(session.draft(prompt_id))
        if not text.strip():
            session.cancel_prompt(prompt_id)
            console.print("[dim]Prompt discarded[/dim]")
            return
        output = await session.request_draft(prompt_id, text, active_file=self.repl.active_file)
        await self.repl.show(output)

    async def _cmd_explain(self, args: list[str]) -> None:
        path = args[0] if args else self.repl.active_file
        if not path:
            console.print("[red]Usage: :explain <file>[/red]")
            return
        code = Path(path).read_text(encoding="utf-8", errors="replace")
        await self.repl.send_template(templates.explain_code(path, code))

    async def _cmd_tests(self, args: list[str]) -> None:
        path = args[0] if args else self.repl.active_file
        if not path:
            console.print("[red]Usage: :tests <file> [function][/red]")
            return
        function = args[1] if len(args) > 1 else None
        await self.repl.send_template(templates.write_unit_tests(path, function), active_file=path)

    async def _cmd_exit(self, args: list[str]) -> None:
        session = await self.repl.current_session()
        await self.repl.registry.exit(session.scope_path)
        console.print(f"Closed {session.display_name}")

    async def _cmd_quit(self, args: list[str]) -> None:
        self.repl.stop()
