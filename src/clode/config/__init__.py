"""Configuration management for clode.

Layered YAML configuration:
- User config ($XDG_CONFIG_HOME/clode/config.yaml)
- Nearest project config (.clode/config.yaml at or above the working directory)
- Environment variable overrides (highest priority)

Example usage:
    from clode.config import load_config

    config = load_config()
    print(config.connection.url)
"""

from clode.config.loader import (
    get_config,
    load_config,
    load_config_file,
    reset_config,
)
from clode.config.paths import (
    config_search_path,
    find_project_config,
    user_config_path,
)
from clode.config.schema import (
    ClientIdentityConfig,
    Config,
    ConnectionConfig,
    LoggingConfig,
)

__all__ = [
    # Main API
    "Config",
    "load_config",
    "load_config_file",
    "get_config",
    "reset_config",
    # Schema types
    "ClientIdentityConfig",
    "ConnectionConfig",
    "LoggingConfig",
    # Path utilities
    "config_search_path",
    "find_project_config",
    "user_config_path",
]
