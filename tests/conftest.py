"""Root pytest configuration for all tests."""

from __future__ import annotations

import asyncio

import pytest

from aiderlink.config import Config
from aiderlink.config.loader import reset_config
from aiderlink.errors import SessionUnavailableError
from aiderlink.terminal.handle import TransportHandle

pytest_plugins = ("pytest_asyncio",)


class FakeTransport:
    """In-memory transport; tests play the assistant's side by hand.

    ``start`` emits ``banner`` followed by a completion, like the assistant
    printing its first prompt. Every payload written is recorded in
    ``writes``.
    """

    def __init__(self, *, banner: str | None = "aider v0.0.0\n> ", echoes_input: bool = False) -> None:
        self.banner = banner
        self.echoes_input = echoes_input
        self.writes: list[str] = []
        self.started: list[tuple[str, list[str] | None, str | None]] = []
        self.terminated = False
        self.fail_start = False
        self.gate: asyncio.Event | None = None  # start() waits on it if given
        self.handle: TransportHandle | None = None
        self._on_output = None
        self._on_completion = None
        self._on_exit = None

    async def start(
        self,
        command,
        args=None,
        *,
        cwd=None,
        on_output,
        on_completion,
        on_exit=None,
    ) -> TransportHandle:
        if self.fail_start:
            raise SessionUnavailableError(f"Command not found: {command}")
        self.started.append((command, args, cwd))
        if self.gate is not None:
            await self.gate.wait()
        self._on_output = on_output
        self._on_completion = on_completion
        self._on_exit = on_exit
        self.handle = TransportHandle(command=command, cwd=cwd, pid=4242)
        if self.banner is not None:
            self.emit(self.banner)
            self.complete()
        return self.handle

    async def write(self, handle: TransportHandle, text: str) -> None:
        if not self.is_alive(handle):
            raise SessionUnavailableError("Process is not running")
        self.writes.append(text)

    def is_alive(self, handle: TransportHandle) -> bool:
        return not handle.exited and not self.terminated

    async def terminate(self, handle: TransportHandle) -> None:
        self.terminated = True
        if handle.exit_code is None:
            handle.exit_code = -15

    # Assistant side

    def emit(self, text: str) -> None:
        assert self._on_output is not None
        self._on_output(text)

    def complete(self) -> None:
        assert self._on_completion is not None
        self._on_completion()

    def respond(self, text: str) -> None:
        """Emit a full response followed by the prompt."""
        self.emit(text)
        self.complete()

    def die(self, exit_code: int = 1) -> None:
        assert self.handle is not None
        self.handle.exit_code = exit_code
        if self._on_exit is not None:
            self._on_exit(exit_code)


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def config() -> Config:
    return Config()


@pytest.fixture(autouse=True)
def _isolate_config(monkeypatch: pytest.MonkeyPatch, tmp_path_factory: pytest.TempPathFactory) -> None:
    """Keep the developer's own config and env out of tests."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path_factory.mktemp("xdg")))
    monkeypatch.delenv("AIDERLINK_LOG", raising=False)
    monkeypatch.delenv("AIDERLINK_PROGRAM", raising=False)
    reset_config()


@pytest.fixture
def transport_factory():
    """Factory building a fresh FakeTransport per session; keeps them all."""

    def factory() -> FakeTransport:
        transport = FakeTransport()
        factory.created.append(transport)
        return transport

    factory.created = []
    return factory
