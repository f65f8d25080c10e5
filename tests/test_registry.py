"""Tests for scope resolution and the session registry."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from aiderlink.config import Config
from aiderlink.errors import ConfigurationError
from aiderlink.session import SessionRegistry, SessionState


@pytest.fixture
def repo(tmp_path: Path) -> Path:
    root = tmp_path / "repo"
    (root / ".git").mkdir(parents=True)
    (root / "sub" / "deeper").mkdir(parents=True)
    (root / "other").mkdir()
    return root


@pytest.fixture
def registry(transport_factory) -> SessionRegistry:
    return SessionRegistry(transport_factory)


class TestResolve:
    @pytest.mark.asyncio
    async def test_deepest_session_wins(self, registry, repo):
        await registry.get_or_create(str(repo))
        await registry.get_or_create(str(repo / "sub"))

        assert registry.resolve(str(repo / "sub" / "file.txt")) == str(repo / "sub")

    @pytest.mark.asyncio
    async def test_falls_back_to_root(self, registry, repo):
        await registry.get_or_create(str(repo))
        await registry.get_or_create(str(repo / "sub"))

        assert registry.resolve(str(repo / "other" / "file.txt")) == str(repo)

    def test_no_sessions_gives_root(self, registry, repo):
        assert registry.resolve(str(repo / "sub" / "deeper")) == str(repo)

    @pytest.mark.asyncio
    async def test_nested_directory_uses_enclosing_session(self, registry, repo):
        await registry.get_or_create(str(repo / "sub"))
        assert registry.resolve(str(repo / "sub" / "deeper" / "x.py")) == str(repo / "sub")

    @pytest.mark.asyncio
    async def test_session_above_root_is_shadowed(self, registry, repo):
        # A session at a parent of the repository does not beat the repo root
        await registry.get_or_create(str(repo.parent))
        assert registry.resolve(str(repo / "other" / "x.py")) == str(repo)

    @pytest.mark.asyncio
    async def test_sibling_prefix_is_not_an_ancestor(self, registry, tmp_path):
        (tmp_path / "app").mkdir()
        (tmp_path / "app-two").mkdir()
        await registry.get_or_create(str(tmp_path / "app"))

        resolved = registry.resolve(str(tmp_path / "app-two" / "x.py"))
        assert resolved != str(tmp_path / "app")

    @pytest.mark.asyncio
    async def test_session_for_deleted_directory_ignored(self, transport_factory, repo):
        registry = SessionRegistry(transport_factory, root_finder=lambda _: str(repo))
        gone = repo / "sub" / "deeper"
        await registry.get_or_create(str(gone))
        gone.rmdir()
        assert registry.resolve(str(gone / "x.py")) == str(repo)

    def test_subtree_only_uses_working_directory(self, registry, repo):
        assert registry.resolve(str(repo / "sub" / "x.py"), subtree_only=True) == str(repo / "sub")

    @pytest.mark.asyncio
    async def test_subtree_only_prefers_deeper_session(self, registry, repo):
        await registry.get_or_create(str(repo / "sub"))
        resolved = registry.resolve(str(repo / "sub" / "deeper" / "x.py"), subtree_only=True)
        assert resolved == str(repo / "sub")

    @pytest.mark.asyncio
    async def test_subtree_only_ignores_root_session(self, registry, repo):
        await registry.get_or_create(str(repo))
        resolved = registry.resolve(str(repo / "other" / "x.py"), subtree_only=True)
        assert resolved == str(repo / "other")

    def test_subtree_only_from_config(self, transport_factory, repo):
        config = Config()
        config.session.subtree_only = True
        registry = SessionRegistry(transport_factory, config=config)
        assert registry.resolve(str(repo / "other" / "x.py")) == str(repo / "other")

    def test_empty_path(self, registry):
        with pytest.raises(ConfigurationError):
            registry.resolve("")

    def test_no_root(self, transport_factory, repo):
        registry = SessionRegistry(transport_factory, root_finder=lambda _: None)
        with pytest.raises(ConfigurationError):
            registry.resolve(str(repo / "x.py"))

    def test_remote_path_is_its_own_root(self, registry):
        assert registry.resolve("/ssh:box:/srv/app/main.py") == "/ssh:box:/srv/app"


class TestSessionRegistry:
    @pytest.mark.asyncio
    async def test_one_session_per_scope(self, registry, repo):
        first = await registry.get_or_create(str(repo))
        second = await registry.get_or_create(str(repo) + "/")
        assert first is second
        assert len(registry) == 1

    @pytest.mark.asyncio
    async def test_open_creates_at_resolved_scope(self, registry, repo):
        session = await registry.open(str(repo / "sub" / "x.py"))
        assert session.scope_path == str(repo)
        assert session.display_name == f"*aider:{repo}*"
        assert str(repo) in registry

    @pytest.mark.asyncio
    async def test_concurrent_open_yields_one_session(self, registry, repo):
        sessions = await asyncio.gather(
            *(registry.open(str(repo / "other" / f"f{i}.py")) for i in range(5))
        )
        assert all(s is sessions[0] for s in sessions)
        assert len(registry) == 1

    @pytest.mark.asyncio
    async def test_terminated_session_replaced(self, registry, repo, transport_factory):
        session = await registry.open(str(repo))
        await session.start()
        transport_factory.created[0].die(1)
        assert session.state is SessionState.DEAD

        replacement = await registry.open(str(repo))
        assert replacement is not session
        assert replacement.state is SessionState.NEW

    @pytest.mark.asyncio
    async def test_exit_removes_session(self, registry, repo, transport_factory):
        session = await registry.open(str(repo))
        await session.start()

        assert await registry.exit(str(repo)) is True
        assert session.state is SessionState.CLOSED
        assert registry.get(str(repo)) is None
        assert transport_factory.created[0].writes[-1] == "/exit"

    @pytest.mark.asyncio
    async def test_exit_unknown_scope(self, registry, repo):
        assert await registry.exit(str(repo)) is False

    @pytest.mark.asyncio
    async def test_close_all(self, registry, repo):
        a = await registry.get_or_create(str(repo))
        b = await registry.get_or_create(str(repo / "sub"))
        await registry.close_all()
        assert len(registry) == 0
        assert a.terminated and b.terminated
