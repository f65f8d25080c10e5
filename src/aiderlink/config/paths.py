"""Where config files live on each platform.

- system: /etc/aiderlink/ (%PROGRAMDATA%\\aiderlink on Windows)
- user: $XDG_CONFIG_HOME/aiderlink/, ~/.config/aiderlink/ or ~/.aiderlink/
  (%APPDATA%\\aiderlink on Windows)
- project: <project root>/.aiderlink/
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

CONFIG_FILENAME = "config.yaml"
APP_NAME = "aiderlink"
PROJECT_DIR = ".aiderlink"


def _windows_path(env_var: str) -> Path | None:
    base = os.environ.get(env_var)
    return Path(base) / APP_NAME / CONFIG_FILENAME if base else None


def get_system_config_path() -> Path | None:
    """System-wide config file (may not exist)."""
    if sys.platform == "win32":
        return _windows_path("PROGRAMDATA")
    return Path("/etc") / APP_NAME / CONFIG_FILENAME


def get_user_config_path() -> Path | None:
    """Per-user config file (may not exist)."""
    if sys.platform == "win32":
        return _windows_path("APPDATA")

    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config:
        return Path(xdg_config) / APP_NAME / CONFIG_FILENAME

    dot_config = Path.home() / ".config"
    if dot_config.is_dir():
        return dot_config / APP_NAME / CONFIG_FILENAME
    return Path.home() / PROJECT_DIR / CONFIG_FILENAME


def get_project_config_path(project_root: str) -> Path:
    return Path(project_root) / PROJECT_DIR / CONFIG_FILENAME


def get_config_paths(project_root: str | None = None) -> list[Path]:
    """Config files from lowest to highest priority: system, user, project."""
    candidates = [get_system_config_path(), get_user_config_path()]
    if project_root:
        candidates.append(get_project_config_path(project_root))
    return [path for path in candidates if path is not None]
