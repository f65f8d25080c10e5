"""Handle for a running transport process."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field


@dataclass
class TransportHandle:
    """A started assistant process.

    Attributes:
        command: The command line that was launched (including args).
        cwd: Working directory of the process.
        pid: Process id, if the transport has one.
        exit_code: Exit code once the process has ended, else None.
        started_at: Wall-clock start time (time.time()).
    """

    command: str
    cwd: str | None
    pid: int | None = None
    exit_code: int | None = None
    started_at: float = field(default_factory=time.time)
    process: asyncio.subprocess.Process | None = field(default=None, repr=False)
    reader_task: asyncio.Task[None] | None = field(default=None, repr=False)

    @property
    def exited(self) -> bool:
        """True once the process has reported an exit code."""
        return self.exit_code is not None

    def __repr__(self) -> str:
        """Concise repr for display in the REPL."""
        if self.exited:
            return f"<TransportHandle {self.command!r} exited={self.exit_code}>"
        return f"<TransportHandle {self.command!r} pid={self.pid}>"
