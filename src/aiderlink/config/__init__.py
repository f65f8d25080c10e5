"""Layered YAML configuration.

    from aiderlink.config import load_config

    config = load_config(project_root="/path/to/project")
    config.aider.program                     # "aider"
    config.session.add_directory_max_files   # 40
"""

from aiderlink.config.loader import (
    get_config,
    load_config,
    on_config_reload,
    reload_config,
    reset_config,
)
from aiderlink.config.paths import (
    get_config_paths,
    get_project_config_path,
    get_system_config_path,
    get_user_config_path,
)
from aiderlink.config.schema import (
    AiderConfig,
    Config,
    LoggingConfig,
    SessionConfig,
    TransportConfig,
)

__all__ = [
    "Config",
    "load_config",
    "get_config",
    "reload_config",
    "reset_config",
    "on_config_reload",
    "AiderConfig",
    "TransportConfig",
    "SessionConfig",
    "LoggingConfig",
    "get_config_paths",
    "get_system_config_path",
    "get_user_config_path",
    "get_project_config_path",
]
