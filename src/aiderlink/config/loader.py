"""Reading config files into a typed, cached ``Config``.

Layers are merged system < user < project < environment; see ``paths``
for where the files live and ``merge`` for how layers combine.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from pathlib import Path
from typing import Any

import yaml

from aiderlink.config.merge import merge_configs
from aiderlink.config.paths import get_config_paths
from aiderlink.config.schema import (
    DEFAULT_PROMPT_PATTERN,
    AiderConfig,
    Config,
    LoggingConfig,
    SessionConfig,
    TransportConfig,
)

_log = logging.getLogger("aiderlink.config")

_cached_config: Config | None = None

_reload_callbacks: list[Callable[[Config], None]] = []

_KNOWN_SECTIONS = {"aider", "transport", "session", "logging"}

# Environment variable -> (section, key)
ENV_VARS = {
    "AIDERLINK_LOG": ("logging", "file"),
    "AIDERLINK_PROGRAM": ("aider", "program"),
}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Parse one config file; missing, unreadable or invalid files yield ``{}``."""
    if not path.is_file():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        _log.warning("Ignoring %s, invalid YAML: %s", path, e)
        return {}
    except OSError as e:
        _log.warning("Ignoring %s, cannot read it: %s", path, e)
        return {}
    if not isinstance(data, dict):
        _log.warning("Ignoring %s, top level is not a mapping", path)
        return {}
    return data


def env_overrides() -> dict[str, Any]:
    """Config layer built from the ``AIDERLINK_*`` environment variables."""
    overrides: dict[str, Any] = {}
    for var, (section, key) in ENV_VARS.items():
        value = os.environ.get(var)
        if value:
            overrides.setdefault(section, {})[key] = value
    return overrides


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name)
    return value if isinstance(value, dict) else {}


def _str_list(value: Any, default: list[str]) -> list[str]:
    if not isinstance(value, list):
        return list(default)
    return [str(v) for v in value if v is not None]


def dict_to_config(data: dict[str, Any]) -> Config:
    """Convert a merged dict to the typed Config dataclass."""
    aider_data = _section(data, "aider")
    aider_defaults = AiderConfig()
    aider = AiderConfig(
        program=str(aider_data.get("program", aider_defaults.program)),
        args=_str_list(aider_data.get("args"), aider_defaults.args),
    )

    transport_data = _section(data, "transport")
    transport = TransportConfig(
        prompt_pattern=transport_data.get("prompt_pattern", DEFAULT_PROMPT_PATTERN),
        echoes_input=bool(transport_data.get("echoes_input", False)),
        read_size=int(transport_data.get("read_size", 4096)),
        encoding=transport_data.get("encoding", "utf-8"),
    )

    session_data = _section(data, "session")
    session_defaults = SessionConfig()
    session = SessionConfig(
        subtree_only=bool(session_data.get("subtree_only", False)),
        default_mode=session_data.get("default_mode"),
        add_directory_max_files=int(
            session_data.get("add_directory_max_files", session_defaults.add_directory_max_files)
        ),
        ignore_dirs=_str_list(session_data.get("ignore_dirs"), session_defaults.ignore_dirs),
        startup_timeout=float(session_data.get("startup_timeout", session_defaults.startup_timeout)),
        refresh_after_add=bool(session_data.get("refresh_after_add", session_defaults.refresh_after_add)),
    )

    log_data = _section(data, "logging")
    logging_config = LoggingConfig(
        level=log_data.get("level"),
        verbose=log_data.get("verbose"),
        file=log_data.get("file"),
    )

    extra = {k: v for k, v in data.items() if k not in _KNOWN_SECTIONS}

    return Config(
        aider=aider,
        transport=transport,
        session=session,
        logging=logging_config,
        extra=extra,
    )


def load_config(project_root: str | None = None, reload: bool = False) -> Config:
    """Load and merge config from all sources.

    Priority order (highest to lowest):
    1. Environment variables
    2. Project config ($project_root/.aiderlink/config.yaml)
    3. User config (~/.config/aiderlink/config.yaml or %APPDATA%)
    4. System config (/etc/aiderlink/ or %PROGRAMDATA%)

    Args:
        project_root: Project directory for project-level config.
        reload: Force reload even if cached.
    """
    global _cached_config

    if _cached_config is not None and not reload and project_root is None:
        return _cached_config

    layers: list[dict[str, Any]] = []
    for path in get_config_paths(project_root):
        layer = load_yaml_file(path)
        if layer:
            _log.debug("Loaded config from %s", path)
            layers.append(layer)

    env_layer = env_overrides()
    if env_layer:
        layers.append(env_layer)

    config = dict_to_config(merge_configs(*layers))

    # Only the global (project-less) config is cached
    if project_root is None:
        _cached_config = config

    return config


def get_config() -> Config:
    """Get the cached global config, loading it on first use."""
    if _cached_config is None:
        return load_config()
    return _cached_config


def reset_config() -> None:
    """Drop the cached config (tests, forced reload)."""
    global _cached_config
    _cached_config = None


def reload_config(project_root: str | None = None) -> Config:
    """Reload config from files and notify registered callbacks."""
    config = load_config(project_root=project_root, reload=True)

    for callback in _reload_callbacks:
        try:
            callback(config)
        except Exception as e:
            _log.warning("Config reload callback error: %s", e)

    return config


def on_config_reload(callback: Callable[[Config], None]) -> Callable[[], None]:
    """Register a callback for config reloads; returns an unregister function."""
    _reload_callbacks.append(callback)

    def unregister() -> None:
        if callback in _reload_callbacks:
            _reload_callbacks.remove(callback)

    return unregister
