"""Registry of live sessions keyed by scope directory."""

from __future__ import annotations

import asyncio
from collections.abc import Callable

from aiderlink.config.schema import Config
from aiderlink.errors import ConfigurationError
from aiderlink.filesystem import (
    find_project_root,
    is_ancestor_or_equal,
    normalize_dir,
    scope_exists,
    working_directory,
)
from aiderlink.logging import get_logger
from aiderlink.session.session import Session
from aiderlink.terminal.protocol import Transport

log = get_logger("registry")

RootFinder = Callable[[str], "str | None"]
TransportFactory = Callable[[], Transport]


class SessionRegistry:
    """Tracks live sessions and decides which one serves a given path.

    The entry point builds one registry and passes it to everything that
    needs a session. At most one session exists per scope key.
    """

    def __init__(
        self,
        transport_factory: TransportFactory,
        *,
        config: Config | None = None,
        root_finder: RootFinder | None = None,
    ) -> None:
        """Initialize the registry.

        Args:
            transport_factory: Builds a transport for each new session.
            config: Configuration handed to new sessions.
            root_finder: Maps a directory to its natural root (VCS root or
                the directory itself); None means no usable root.
        """
        self._transport_factory = transport_factory
        self._config = config or Config()
        self._root_finder = root_finder or find_project_root
        self._sessions: dict[str, Session] = {}
        self._lock = asyncio.Lock()

    def resolve(self, path: str, subtree_only: bool | None = None) -> str:
        """Return the scope key a file or directory belongs to.

        The deepest live session scope enclosing the working directory wins
        when it is at least as deep as the natural root. With
        ``subtree_only`` the working directory itself is the scope unless a
        session deeper than the natural root already covers it.

        Raises:
            ConfigurationError: If no root can be determined for ``path``.
        """
        if subtree_only is None:
            subtree_only = self._config.session.subtree_only
        if not path:
            raise ConfigurationError("No file or directory to resolve a session for")

        directory = working_directory(path)
        root = self._root_finder(directory)
        if not root:
            raise ConfigurationError(f"Cannot determine a project root for {path}")
        root = normalize_dir(root)

        candidates = [
            key
            for key in self._sessions
            if is_ancestor_or_equal(key, directory) and scope_exists(key)
        ]
        deepest = max(candidates, key=len) if candidates else None

        if subtree_only:
            if deepest is not None and len(deepest) > len(root):
                return deepest
            return directory
        # An ancestor of equal length is the root itself, so ties go to the root
        if deepest is not None and len(deepest) >= len(root):
            return deepest
        return root

    def get(self, scope_key: str) -> Session | None:
        return self._sessions.get(scope_key)

    def sessions(self) -> list[Session]:
        return list(self._sessions.values())

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, scope_key: object) -> bool:
        return scope_key in self._sessions

    def _create(self, scope_key: str, subtree_only: bool) -> Session:
        existing = self._sessions.get(scope_key)
        if existing is not None and not existing.terminated:
            return existing
        if existing is not None:
            log.info("Replacing %s session for %s", existing.state.value, scope_key)

        session = Session(
            scope_key,
            self._transport_factory(),
            config=self._config,
            subtree_only=subtree_only,
        )
        self._sessions[scope_key] = session
        log.info("Created session %s", session.display_name)
        return session

    async def get_or_create(self, scope_key: str, subtree_only: bool = False) -> Session:
        """Return the live session for ``scope_key``, creating it if needed.

        Terminated sessions are replaced by a fresh one.
        """
        async with self._lock:
            return self._create(normalize_dir(scope_key), subtree_only)

    async def open(self, path: str, subtree_only: bool | None = None) -> Session:
        """Resolve ``path`` and return its session in one atomic step."""
        if subtree_only is None:
            subtree_only = self._config.session.subtree_only
        async with self._lock:
            return self._create(self.resolve(path, subtree_only), subtree_only)

    async def remove(self, scope_key: str) -> Session | None:
        """Forget a session (after an explicit exit)."""
        async with self._lock:
            return self._sessions.pop(normalize_dir(scope_key), None)

    async def exit(self, scope_key: str) -> bool:
        """Exit and remove the session for ``scope_key``.

        Returns:
            True if a session was found.
        """
        session = await self.remove(scope_key)
        if session is None:
            return False
        await session.exit()
        return True

    async def close_all(self) -> None:
        """Exit every session (application shutdown)."""
        async with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
        for session in sessions:
            try:
                await session.exit()
            except Exception as e:
                log.warning("Error closing session %s: %s", session.display_name, e)
