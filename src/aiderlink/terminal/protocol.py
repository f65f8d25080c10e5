"""Transport protocol for the assistant subprocess boundary."""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol

from aiderlink.terminal.handle import TransportHandle

OutputCallback = Callable[[str], None]
CompletionCallback = Callable[[], None]
ExitCallback = Callable[[int | None], None]


class Transport(Protocol):
    """Protocol for driving a long-lived interactive process.

    The transport only moves text: it starts the process, writes input,
    and reports output chunks, end-of-response and process exit through
    the callbacks given to ``start``.

    Implementations:
    - SubprocessTransport: local asyncio subprocess with pipes
    """

    echoes_input: bool

    async def start(
        self,
        command: str,
        args: list[str] | None = None,
        *,
        cwd: str | None = None,
        on_output: OutputCallback,
        on_completion: CompletionCallback,
        on_exit: ExitCallback | None = None,
    ) -> TransportHandle:
        """Start the process.

        Args:
            command: Executable to run (e.g., "aider").
            args: Optional argument list.
            cwd: Working directory for the process.
            on_output: Called with every decoded chunk of output.
            on_completion: Called when the process signals end-of-response.
            on_exit: Called once with the exit code when the process ends.

        Returns:
            Handle identifying the running process.

        Raises:
            SessionUnavailableError: If the process could not be started.
        """
        ...

    async def write(self, handle: TransportHandle, text: str) -> None:
        """Feed one payload (a line or a framed block) to the process."""
        ...

    def is_alive(self, handle: TransportHandle) -> bool:
        """True while the process has not exited."""
        ...

    async def terminate(self, handle: TransportHandle) -> None:
        """Stop the process and release its resources."""
        ...
