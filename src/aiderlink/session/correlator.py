"""Output capture for the command currently in flight on a session."""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum

from aiderlink.errors import CommandInFlightError
from aiderlink.logging import TRACE, get_logger

log = get_logger("correlator")

ResponseCallback = Callable[[str], None]


class CaptureState(Enum):
    IDLE = "idle"
    AWAITING = "awaiting"


class OutputCorrelator:
    """Correlates raw transport output with the command that caused it.

    ``arm`` starts a capture, ``feed`` accumulates chunks and ``complete``
    hands the accumulated text to the stored callback exactly once. Only
    one command may be captured at a time.
    """

    def __init__(self) -> None:
        self._state = CaptureState.IDLE
        self._chunks: list[str] = []
        self._callback: ResponseCallback | None = None
        self._echo: str | None = None
        self._completed = 0

    @property
    def state(self) -> CaptureState:
        return self._state

    @property
    def awaiting(self) -> bool:
        return self._state is CaptureState.AWAITING

    @property
    def pending_output(self) -> str:
        """Output captured for the current (or last) command."""
        return "".join(self._chunks)

    @property
    def pending_callback(self) -> ResponseCallback | None:
        return self._callback

    @property
    def completed_count(self) -> int:
        """Number of commands whose callback has fired."""
        return self._completed

    def arm(self, callback: ResponseCallback | None = None, *, echo: str | None = None) -> None:
        """Start capturing for a newly sent command.

        Args:
            callback: Called with the full response once it is complete.
            echo: Payload text the transport will echo back; it is stripped
                from the start of the captured output.

        Raises:
            CommandInFlightError: If a previous command has not completed.
        """
        if self._state is CaptureState.AWAITING:
            raise CommandInFlightError("A command is already awaiting output on this session")
        self._chunks = []
        self._callback = callback
        self._echo = echo.replace("\r\n", "\n") if echo else None
        self._state = CaptureState.AWAITING

    def feed(self, chunk: str) -> None:
        """Append a chunk of raw output."""
        if self._state is CaptureState.IDLE:
            log.log(TRACE, "Dropping unsolicited output: %r", chunk)
            return
        self._chunks.append(chunk)
        if self._echo is not None:
            self._strip_echo()

    def _strip_echo(self) -> None:
        text = self.pending_output.replace("\r\n", "\n")
        echo = self._echo
        assert echo is not None
        if text.startswith(echo):
            rest = text[len(echo):]
            if rest.startswith("\n"):
                rest = rest[1:]
            elif not rest:
                # Newline after the echo may still be in the next chunk
                return
            self._chunks = [rest] if rest else []
            self._echo = None
        elif not echo.startswith(text):
            # Not an echo after all; keep the output as is
            self._echo = None

    def complete(self) -> bool:
        """Handle the transport's end-of-response signal.

        Returns:
            True if a pending command was completed, False when idle.
        """
        if self._state is CaptureState.IDLE:
            return False

        callback = self._callback
        self._callback = None
        self._echo = None
        self._state = CaptureState.IDLE
        self._completed += 1

        if callback is not None:
            output = self.pending_output
            try:
                callback(output)
            except Exception as e:
                log.warning("Response callback error: %s", e)
        return True

    def discard(self) -> ResponseCallback | None:
        """Abandon the in-flight command without invoking its callback.

        Returns:
            The dropped callback, if there was one.
        """
        callback = self._callback
        self._callback = None
        self._echo = None
        self._state = CaptureState.IDLE
        return callback
