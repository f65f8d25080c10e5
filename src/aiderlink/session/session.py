"""A live assistant session bound to one scope directory."""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Awaitable, Callable, Iterable
from enum import Enum
from typing import TYPE_CHECKING

from aiderlink.commands.formatter import (
    ChatMode,
    CommandFormatter,
    Directive,
    PendingCommand,
)
from aiderlink.config.schema import Config
from aiderlink.errors import (
    ConfigurationError,
    PromptNotFoundError,
    SessionUnavailableError,
)
from aiderlink.filesystem import collect_directory_files, is_remote, localize
from aiderlink.logging import VERBOSE, get_logger
from aiderlink.session.correlator import OutputCorrelator, ResponseCallback
from aiderlink.session.tracking import FileTracker

if TYPE_CHECKING:
    from aiderlink.terminal.handle import TransportHandle
    from aiderlink.terminal.protocol import Transport

log = get_logger("session")


def _resolver(future: asyncio.Future[str]) -> ResponseCallback:
    """Response callback that completes ``future`` once."""

    def resolve(output: str) -> None:
        if not future.done():
            future.set_result(output)

    return resolve


def _drop_future(waiters: set[asyncio.Future[str]], future: asyncio.Future[str]) -> None:
    """Forget ``future``, marking any exception it already holds as seen."""
    waiters.discard(future)
    if not future.done():
        future.cancel()
    elif not future.cancelled():
        future.exception()


class SessionState(Enum):
    """Lifecycle state of a session."""

    NEW = "new"  # Created, process not started yet
    RUNNING = "running"  # Process started
    CLOSED = "closed"  # Explicitly exited
    DEAD = "dead"  # Process failed to start or died


class Session:
    """One assistant process bound to a scope directory.

    The session owns its transport handle, the set of tracked files, the
    current chat mode and the capture slot for the command in flight.
    Commands go out one at a time; the response callback fires once the
    transport signals the assistant is waiting for input again.
    """

    def __init__(
        self,
        scope_path: str,
        transport: Transport,
        *,
        config: Config | None = None,
        subtree_only: bool = False,
        formatter: CommandFormatter | None = None,
    ) -> None:
        """Initialize the session (the process starts on first send).

        Args:
            scope_path: Normalized absolute directory this session serves.
            transport: Transport used to run the assistant process.
            config: Configuration; defaults are used when None.
            subtree_only: Scope is exactly ``scope_path``, not the project root.
            formatter: Command formatter; a default one when None.
        """
        self._scope_path = scope_path
        self._transport = transport
        self._config = config or Config()
        self._subtree_only = subtree_only
        self._formatter = formatter or CommandFormatter()

        self._mode: ChatMode | None = None
        if self._config.session.default_mode:
            self._mode = ChatMode.parse(self._config.session.default_mode)

        self._tracker = FileTracker(scope_path)
        self._correlator = OutputCorrelator()
        self._handle: TransportHandle | None = None
        self._state = SessionState.NEW
        self._start_lock = asyncio.Lock()

        # Futures from request() that must fail if the process dies
        self._waiters: set[asyncio.Future[str]] = set()

        # Prompt drafts being edited by the front end, keyed by prompt id
        self._drafts: dict[str, str] = {}

    @property
    def scope_path(self) -> str:
        return self._scope_path

    @property
    def display_name(self) -> str:
        """Conventional buffer name for this session."""
        return f"*aider:{self._scope_path}*"

    @property
    def subtree_only(self) -> bool:
        return self._subtree_only

    @property
    def remote(self) -> bool:
        return is_remote(self._scope_path)

    @property
    def mode(self) -> ChatMode | None:
        return self._mode

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def terminated(self) -> bool:
        """True once the session can no longer be used."""
        return self._state in (SessionState.CLOSED, SessionState.DEAD)

    @property
    def busy(self) -> bool:
        """True while a command is awaiting its response."""
        return self._correlator.awaiting

    @property
    def tracked_files(self) -> list[str]:
        return self._tracker.paths

    @property
    def tracker(self) -> FileTracker:
        return self._tracker

    @property
    def pending_output(self) -> str:
        return self._correlator.pending_output

    @property
    def handle(self) -> TransportHandle | None:
        return self._handle

    def is_alive(self) -> bool:
        return self._handle is not None and self._transport.is_alive(self._handle)

    # ------------------------------------------------------------------
    # Process lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start the assistant process if it is not running yet.

        Raises:
            SessionUnavailableError: If the session is terminated or the
                process cannot be started.
        """
        async with self._start_lock:
            if self.terminated:
                raise SessionUnavailableError(f"Session {self.display_name} is {self._state.value}")
            if self._handle is not None:
                return

            # The startup banner is captured like a response so its prompt
            # cannot complete the first real command.
            timeout = self._config.session.startup_timeout
            ready: asyncio.Future[str] | None = None
            if timeout:
                ready = asyncio.get_running_loop().create_future()
                self._waiters.add(ready)
                self._correlator.arm(_resolver(ready))

            aider = self._config.aider
            try:
                handle = await self._transport.start(
                    aider.program,
                    aider.args,
                    cwd=None if self.remote else self._scope_path,
                    on_output=self._correlator.feed,
                    on_completion=self._correlator.complete,
                    on_exit=self._on_exit,
                )
            except SessionUnavailableError:
                self._correlator.discard()
                self._state = SessionState.DEAD
                if ready is not None:
                    _drop_future(self._waiters, ready)
                raise
            self._handle = handle
            if self._state is SessionState.CLOSED:
                # exit() ran during startup, before there was a process to stop
                if ready is not None:
                    _drop_future(self._waiters, ready)
                await self._transport.terminate(handle)
                log.info("Session %s closed during startup", self.display_name)
                raise SessionUnavailableError(f"Session {self.display_name} was closed")
            if self._state is SessionState.NEW:
                self._state = SessionState.RUNNING
            log.info("Session %s started", self.display_name)

            if ready is not None:
                await self._wait_ready(ready, timeout)

    async def _wait_ready(self, ready: asyncio.Future[str], timeout: float) -> None:
        try:
            banner = await asyncio.wait_for(ready, timeout)
        except asyncio.TimeoutError:
            log.warning("Session %s: no prompt within %ss of startup", self.display_name, timeout)
            self._correlator.discard()
        else:
            log.debug("Session %s ready: %r", self.display_name, banner)
        finally:
            self._waiters.discard(ready)

    def _on_exit(self, exit_code: int | None) -> None:
        if self._state is SessionState.CLOSED:
            return
        self._state = SessionState.DEAD
        dropped = self._correlator.awaiting
        self._correlator.discard()
        log.warning(
            "Session %s: process exited with %s%s",
            self.display_name,
            exit_code,
            " while a command was in flight" if dropped else "",
        )
        self._fail_waiters(
            SessionUnavailableError(f"Assistant process for {self.display_name} exited ({exit_code})")
        )

    def _fail_waiters(self, error: BaseException) -> None:
        for future in list(self._waiters):
            if not future.done():
                future.set_exception(error)
        self._waiters.clear()

    async def exit(self) -> None:
        """End the session unconditionally.

        Any pending callback is discarded without being invoked.
        """
        if self._state is SessionState.CLOSED:
            return
        was_alive = self.is_alive()
        self._state = SessionState.CLOSED
        self._correlator.discard()
        self._fail_waiters(SessionUnavailableError(f"Session {self.display_name} was closed"))
        self._drafts.clear()

        if self._handle is not None:
            if was_alive:
                try:
                    await self._transport.write(self._handle, self._formatter.directive(Directive.EXIT))
                except SessionUnavailableError:
                    log.debug("Session %s: process gone before /exit", self.display_name)
            await self._transport.terminate(self._handle)
        log.info("Session %s closed", self.display_name)

    # ------------------------------------------------------------------
    # Command dispatch
    # ------------------------------------------------------------------

    async def send(
        self,
        text: str,
        callback: ResponseCallback | None = None,
        *,
        active_file: str | None = None,
    ) -> PendingCommand:
        """Send a command or prompt and register its response callback.

        Returns as soon as the payload is written; ``callback`` receives
        the complete response later.

        Args:
            text: Directive or free-text prompt, before formatting.
            callback: Called once with the full response text.
            active_file: File currently being edited. For commands that may
                edit files it is added to the chat first if not tracked.

        Returns:
            The classified command.

        Raises:
            CommandInFlightError: If the previous command has not completed.
            SessionUnavailableError: If the process is not usable.
        """
        command = self._formatter.classify(text, self._mode)
        new_mode = None
        if command.directive == Directive.CHAT_MODE.value and command.argument:
            new_mode = ChatMode.parse(command.argument.split()[0])

        if command.may_edit_files and active_file:
            await self._ensure_tracked(active_file)
        await self._dispatch(self._formatter.prompt(text), callback)

        if new_mode is not None:
            self._mode = new_mode
        return command

    async def send_prompt(
        self,
        text: str,
        mode: ChatMode | None = None,
        callback: ResponseCallback | None = None,
        *,
        active_file: str | None = None,
    ) -> PendingCommand:
        """Send a prompt, optionally with a one-shot mode prefix."""
        return await self.send(self._formatter.prefixed(text, mode), callback, active_file=active_file)

    async def request(self, text: str, *, active_file: str | None = None) -> str:
        """Send a command and wait for its full response.

        Raises:
            SessionUnavailableError: If the process exits or the session is
                closed before the response arrives.
        """
        return await self._await_response(
            lambda callback: self.send(text, callback, active_file=active_file)
        )

    async def request_prompt(
        self,
        text: str,
        mode: ChatMode | None = None,
        *,
        active_file: str | None = None,
    ) -> str:
        """Like send_prompt, but wait for the response."""
        return await self._await_response(
            lambda callback: self.send_prompt(text, mode, callback, active_file=active_file)
        )

    async def _await_response(
        self, send: Callable[[ResponseCallback], Awaitable[PendingCommand]]
    ) -> str:
        loop = asyncio.get_running_loop()
        future: asyncio.Future[str] = loop.create_future()

        await send(_resolver(future))
        if not future.done() and self.terminated:
            raise SessionUnavailableError(f"Session {self.display_name} is {self._state.value}")

        self._waiters.add(future)
        try:
            return await future
        finally:
            self._waiters.discard(future)

    async def _dispatch(self, payload: str, callback: ResponseCallback | None) -> None:
        await self.start()
        assert self._handle is not None
        if not self._transport.is_alive(self._handle):
            self._on_exit(self._handle.exit_code)
            raise SessionUnavailableError(f"Assistant process for {self.display_name} is not running")

        echo = payload if self._transport.echoes_input else None
        self._correlator.arm(callback, echo=echo)
        log.log(VERBOSE, "Session %s <- %r", self.display_name, payload)
        try:
            await self._transport.write(self._handle, payload)
        except SessionUnavailableError:
            self._correlator.discard()
            self._on_exit(self._handle.exit_code)
            raise

    async def _ensure_tracked(self, path: str) -> None:
        if self._tracker.contains(path):
            return
        log.debug("Session %s: adding active file %s", self.display_name, path)
        await self.request(self._formatter.files(Directive.ADD, [path]))
        await self._record_added([path])

    async def _record_added(self, paths: list[str], *, read_only: bool = False) -> None:
        """Update tracking after an add request.

        The add response does not reliably say which paths matched, so the
        tracked set is re-read from ``/ls``. With ``refresh_after_add``
        turned off the requested paths are recorded as given.
        """
        if self._config.session.refresh_after_add:
            await self.list_files()
        else:
            self._tracker.add(paths, read_only=read_only)

    # ------------------------------------------------------------------
    # File operations
    # ------------------------------------------------------------------

    async def add_files(self, paths: Iterable[str | None], *, read_only: bool = False) -> str:
        """Add files to the chat and update the tracked set.

        Returns:
            The response to the add directive.
        """
        files = [p for p in paths if p]
        if not files:
            raise ConfigurationError("No file to add")
        directive = Directive.READ_ONLY if read_only else Directive.ADD
        output = await self.request(self._formatter.files(directive, files))
        await self._record_added(files, read_only=read_only)
        return output

    async def drop_files(self, paths: Iterable[str | None] = ()) -> str:
        """Drop files from the chat; with no paths, drop everything."""
        files = [p for p in paths if p]
        output = await self.request(self._formatter.files(Directive.DROP, files))
        if files:
            self._tracker.discard(files)
        else:
            self._tracker.clear()
        return output

    async def add_directory(
        self,
        directory: str,
        *,
        suffix: str | None = None,
        read_only: bool = False,
    ) -> list[str]:
        """Add every file under ``directory`` (optionally one suffix only).

        Raises:
            TooManyFilesError: If more files match than the configured limit.
        """
        session_config = self._config.session
        files = collect_directory_files(
            localize(directory),
            suffix=suffix,
            max_files=session_config.add_directory_max_files,
            ignore_dirs=session_config.ignore_dirs,
        )
        if not files:
            raise ConfigurationError(f"No files found under {directory}")
        await self.add_files(files, read_only=read_only)
        return files

    async def list_files(self) -> list[str]:
        """Ask for the file listing and refresh the tracked set from it."""
        output = await self.request(self._formatter.directive(Directive.LS))
        return self._tracker.refresh_from_listing(output)

    # ------------------------------------------------------------------
    # Simple directives
    # ------------------------------------------------------------------

    async def set_mode(self, mode: ChatMode) -> str:
        output = await self.request(self._formatter.chat_mode(mode))
        self._mode = mode
        return output

    async def clear(self) -> str:
        """Clear the chat history (files stay in context)."""
        return await self.request(self._formatter.directive(Directive.CLEAR))

    async def reset(self) -> str:
        """Drop all files and clear the chat history."""
        output = await self.request(self._formatter.directive(Directive.RESET))
        self._tracker.clear()
        return output

    async def undo(self) -> str:
        return await self.request(self._formatter.directive(Directive.UNDO))

    async def map_refresh(self) -> str:
        return await self.request(self._formatter.directive(Directive.MAP_REFRESH))

    # ------------------------------------------------------------------
    # Prompt drafts
    # ------------------------------------------------------------------

    def begin_prompt(self, initial_text: str = "") -> str:
        """Open a prompt draft for the front end to edit.

        Returns:
            The draft's prompt id.
        """
        prompt_id = uuid.uuid4().hex[:8]
        self._drafts[prompt_id] = initial_text
        return prompt_id

    def draft(self, prompt_id: str) -> str:
        try:
            return self._drafts[prompt_id]
        except KeyError:
            raise PromptNotFoundError(f"No prompt draft {prompt_id!r}") from None

    def cancel_prompt(self, prompt_id: str) -> None:
        if self._drafts.pop(prompt_id, None) is None:
            raise PromptNotFoundError(f"No prompt draft {prompt_id!r}")

    async def submit_prompt(
        self,
        prompt_id: str,
        final_text: str,
        callback: ResponseCallback | None = None,
        *,
        active_file: str | None = None,
    ) -> PendingCommand:
        """Send the committed text of a draft and close the draft."""
        self.draft(prompt_id)
        command = await self.send(final_text, callback, active_file=active_file)
        self._drafts.pop(prompt_id, None)
        return command

    async def request_draft(
        self,
        prompt_id: str,
        final_text: str,
        *,
        active_file: str | None = None,
    ) -> str:
        """Submit a draft and wait for the response."""
        return await self._await_response(
            lambda callback: self.submit_prompt(
                prompt_id, final_text, callback, active_file=active_file
            )
        )

    def __repr__(self) -> str:
        mode = self._mode.value if self._mode else "-"
        return f"<Session {self._scope_path} {self._state.value} mode={mode} files={len(self._tracker)}>"
