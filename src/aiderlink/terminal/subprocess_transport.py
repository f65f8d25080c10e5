"""Subprocess-based transport for a local assistant process."""

from __future__ import annotations

import asyncio
import codecs
import contextlib
import os
import re
from typing import TYPE_CHECKING

from aiderlink.errors import SessionUnavailableError
from aiderlink.logging import TRACE, get_logger
from aiderlink.terminal.handle import TransportHandle
from aiderlink.terminal.protocol import CompletionCallback, ExitCallback, OutputCallback

if TYPE_CHECKING:
    from aiderlink.config.schema import TransportConfig

log = get_logger("terminal")

_ANSI_RE = re.compile(r"\x1b\[[0-9;?]*[ -/]*[@-~]|\x1b\][^\x07]*\x07")

# Enough trailing output to see a whole prompt line
_TAIL_SIZE = 512


def strip_ansi(text: str) -> str:
    """Remove terminal escape sequences from ``text``."""
    return _ANSI_RE.sub("", text)


class SubprocessTransport:
    """Drive an interactive process through asyncio stdin/stdout pipes.

    Output is decoded incrementally, stripped of escape sequences and
    handed to ``on_output`` chunk by chunk. When the tail of the output
    matches ``prompt_pattern`` the process is waiting for input again and
    ``on_completion`` fires.
    """

    def __init__(
        self,
        prompt_pattern: str,
        *,
        echoes_input: bool = False,
        read_size: int = 4096,
        encoding: str = "utf-8",
        env: dict[str, str] | None = None,
        terminate_timeout: float = 5.0,
    ) -> None:
        """Initialize the transport.

        Args:
            prompt_pattern: Regex matched against the output tail to detect
                that the process is waiting for input.
            echoes_input: Whether the process echoes what is written to it.
            read_size: Maximum bytes per read from stdout.
            encoding: Encoding of the process's stdin/stdout.
            env: Additional environment variables for the process.
            terminate_timeout: Seconds to wait after SIGTERM before SIGKILL.
        """
        self._prompt_re = re.compile(prompt_pattern)
        self.echoes_input = echoes_input
        self._read_size = read_size
        self._encoding = encoding
        self._env = env
        self._terminate_timeout = terminate_timeout

    @classmethod
    def from_config(cls, config: TransportConfig) -> SubprocessTransport:
        """Build a transport from a TransportConfig."""
        return cls(
            config.prompt_pattern,
            echoes_input=config.echoes_input,
            read_size=config.read_size,
            encoding=config.encoding,
        )

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
        cmd_list = [command]
        if args:
            cmd_list.extend(args)
        full_command = " ".join(cmd_list)

        process_env = os.environ.copy()
        if self._env:
            process_env.update(self._env)

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd_list,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,  # Merge stderr into stdout
                cwd=cwd,
                env=process_env,
            )
        except FileNotFoundError as e:
            raise SessionUnavailableError(f"Command not found: {command}") from e
        except PermissionError as e:
            raise SessionUnavailableError(f"Permission denied: {command}") from e
        except OSError as e:
            raise SessionUnavailableError(f"Failed to start {command}: {e}") from e

        handle = TransportHandle(command=full_command, cwd=cwd, pid=process.pid, process=process)
        handle.reader_task = asyncio.create_task(
            self._read_loop(handle, on_output, on_completion, on_exit)
        )
        log.info("Started %s (pid %s) in %s", full_command, process.pid, cwd)
        return handle

    async def _read_loop(
        self,
        handle: TransportHandle,
        on_output: OutputCallback,
        on_completion: CompletionCallback,
        on_exit: ExitCallback | None,
    ) -> None:
        process = handle.process
        assert process is not None and process.stdout is not None

        decoder = codecs.getincrementaldecoder(self._encoding)(errors="replace")
        tail = ""

        while True:
            data = await process.stdout.read(self._read_size)
            text = decoder.decode(data, final=not data)
            if text:
                text = strip_ansi(text)
                log.log(TRACE, "pid %s output: %r", handle.pid, text)
                on_output(text)
                tail = (tail + text)[-_TAIL_SIZE:]
                if self._prompt_re.search(tail):
                    tail = ""
                    on_completion()
            if not data:
                break

        handle.exit_code = await process.wait()
        log.info("Process %s exited with %s", handle.pid, handle.exit_code)
        if on_exit is not None:
            on_exit(handle.exit_code)

    async def write(self, handle: TransportHandle, text: str) -> None:
        process = handle.process
        if process is None or process.stdin is None or not self.is_alive(handle):
            raise SessionUnavailableError(f"Process is not running: {handle.command}")

        if not text.endswith("\n"):
            text += "\n"
        log.log(TRACE, "pid %s input: %r", handle.pid, text)

        try:
            process.stdin.write(text.encode(self._encoding))
            await process.stdin.drain()
        except (BrokenPipeError, ConnectionResetError) as e:
            raise SessionUnavailableError(f"Process stopped accepting input: {handle.command}") from e

    def is_alive(self, handle: TransportHandle) -> bool:
        process = handle.process
        return process is not None and process.returncode is None and not handle.exited

    async def terminate(self, handle: TransportHandle) -> None:
        process = handle.process
        if process is None:
            return

        if process.returncode is None:
            try:
                process.terminate()
                try:
                    await asyncio.wait_for(process.wait(), timeout=self._terminate_timeout)
                except asyncio.TimeoutError:
                    process.kill()
                    await process.wait()
            except ProcessLookupError:
                pass  # Process already gone

        if handle.reader_task is not None and not handle.reader_task.done():
            handle.reader_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await handle.reader_task

        handle.exit_code = process.returncode
        log.info("Terminated %s", handle.command)
