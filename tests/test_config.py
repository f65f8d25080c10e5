"""Tests for the configuration module."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from aiderlink.config import (
    Config,
    get_config,
    load_config,
    on_config_reload,
    reload_config,
    reset_config,
)
from aiderlink.config.merge import deep_merge, merge_configs
from aiderlink.config.paths import (
    get_config_paths,
    get_project_config_path,
    get_system_config_path,
    get_user_config_path,
)
from aiderlink.config.schema import DEFAULT_PROMPT_PATTERN


class TestDeepMerge:
    """Test the deep merge algorithm."""

    def test_simple_override(self) -> None:
        assert deep_merge({"a": 1, "b": 2}, {"b": 3, "c": 4}) == {"a": 1, "b": 3, "c": 4}

    def test_nested_merge(self) -> None:
        """Nested dicts merge key by key."""
        base = {"session": {"subtree_only": False, "add_directory_max_files": 40}}
        override = {"session": {"subtree_only": True}}
        result = deep_merge(base, override)
        assert result["session"] == {"subtree_only": True, "add_directory_max_files": 40}

    def test_none_does_not_override(self) -> None:
        assert deep_merge({"a": 1}, {"a": None}) == {"a": 1}

    def test_list_replaced_not_merged(self) -> None:
        result = deep_merge({"args": ["--no-pretty"]}, {"args": ["--yes"]})
        assert result["args"] == ["--yes"]

    def test_base_not_mutated(self) -> None:
        base = {"a": {"b": 1}}
        deep_merge(base, {"a": {"b": 2}})
        assert base == {"a": {"b": 1}}

    def test_merge_configs_multiple(self) -> None:
        """Later layers win."""
        assert merge_configs({"a": 1, "b": 2}, {"b": 3}, {}, {"c": 4}) == {"a": 1, "b": 3, "c": 4}


class TestConfigPaths:
    """Test platform-aware path resolution."""

    def test_windows_system_path(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(sys, "platform", "win32")
        monkeypatch.setenv("PROGRAMDATA", "C:\\ProgramData")

        path = get_system_config_path()
        assert path is not None
        assert "ProgramData" in str(path)
        assert "aiderlink" in str(path)

    def test_windows_without_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(sys, "platform", "win32")
        monkeypatch.delenv("APPDATA", raising=False)
        assert get_user_config_path() is None

    def test_unix_system_path(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(sys, "platform", "linux")
        assert get_system_config_path() == Path("/etc/aiderlink/config.yaml")

    def test_unix_user_path_xdg(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(sys, "platform", "linux")
        monkeypatch.setenv("XDG_CONFIG_HOME", "/home/test/.config-custom")
        assert get_user_config_path() == Path("/home/test/.config-custom/aiderlink/config.yaml")

    def test_project_config_path(self) -> None:
        path = get_project_config_path("/home/user/myproject")
        assert path == Path("/home/user/myproject/.aiderlink/config.yaml")

    def test_get_config_paths_order(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """System first, project last."""
        monkeypatch.setattr(sys, "platform", "linux")
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)

        paths = get_config_paths(project_root="/project")
        assert len(paths) == 3
        assert "etc" in paths[0].parts
        assert "project" in paths[2].parts


class TestConfigLoading:
    """Test configuration loading."""

    @pytest.fixture
    def project_dir(self, tmp_path: Path) -> Path:
        (tmp_path / ".aiderlink").mkdir()
        return tmp_path

    def write_config(self, project_dir: Path, text: str) -> None:
        (project_dir / ".aiderlink" / "config.yaml").write_text(text)

    def test_defaults(self, tmp_path: Path) -> None:
        config = load_config(project_root=str(tmp_path))
        assert isinstance(config, Config)
        assert config.aider.program == "aider"
        assert config.transport.prompt_pattern == DEFAULT_PROMPT_PATTERN
        assert config.session.add_directory_max_files == 40
        assert ".git" in config.session.ignore_dirs
        assert config.session.refresh_after_add is True

    def test_load_yaml_config(self, project_dir: Path) -> None:
        self.write_config(
            project_dir,
            """
aider:
  program: /opt/aider/bin/aider
  args: ["--no-pretty", "--model", "sonnet"]
session:
  subtree_only: true
  default_mode: ask
  add_directory_max_files: 10
  startup_timeout: 5
  refresh_after_add: false
transport:
  echoes_input: true
""",
        )
        config = load_config(project_root=str(project_dir))
        assert config.aider.program == "/opt/aider/bin/aider"
        assert config.aider.args == ["--no-pretty", "--model", "sonnet"]
        assert config.session.subtree_only is True
        assert config.session.default_mode == "ask"
        assert config.session.add_directory_max_files == 10
        assert config.session.startup_timeout == 5.0
        assert config.session.refresh_after_add is False
        assert config.transport.echoes_input is True

    def test_env_overrides_config(self, project_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        self.write_config(project_dir, "aider:\n  program: from-file\n")
        monkeypatch.setenv("AIDERLINK_PROGRAM", "from-env")
        monkeypatch.setenv("AIDERLINK_LOG", "/tmp/aiderlink-test.log")

        config = load_config(project_root=str(project_dir))
        assert config.aider.program == "from-env"
        assert config.logging.file == "/tmp/aiderlink-test.log"

    def test_invalid_yaml_uses_defaults(self, project_dir: Path) -> None:
        self.write_config(project_dir, "invalid: yaml: :")
        config = load_config(project_root=str(project_dir))
        assert config.aider.program == "aider"

    def test_non_mapping_section_ignored(self, project_dir: Path) -> None:
        self.write_config(project_dir, "session: [1, 2]\n")
        config = load_config(project_root=str(project_dir))
        assert config.session.subtree_only is False

    def test_extra_fields_preserved(self, project_dir: Path) -> None:
        self.write_config(project_dir, "custom_field: custom_value\nnested:\n  field: value\n")
        config = load_config(project_root=str(project_dir))
        assert config.extra["custom_field"] == "custom_value"
        assert config.extra["nested"]["field"] == "value"


class TestConfigCaching:
    """Test config caching behavior."""

    def test_get_config_caches(self) -> None:
        assert get_config() is get_config()

    def test_reset_clears_cache(self) -> None:
        config1 = get_config()
        reset_config()
        assert get_config() is not config1

    def test_project_config_not_cached(self, tmp_path: Path) -> None:
        project_config = load_config(project_root=str(tmp_path))
        assert project_config is not get_config()

    def test_reload_notifies_callbacks(self) -> None:
        seen: list[Config] = []
        unregister = on_config_reload(seen.append)
        try:
            config = reload_config()
        finally:
            unregister()
        assert seen == [config]

        reload_config()
        assert len(seen) == 1

    def test_failing_callback_does_not_block_reload(self) -> None:
        def broken(_: Config) -> None:
            raise RuntimeError("boom")

        unregister = on_config_reload(broken)
        try:
            assert isinstance(reload_config(), Config)
        finally:
            unregister()
