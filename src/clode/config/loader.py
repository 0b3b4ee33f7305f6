"""Build a Config from YAML layers and the environment.

Layers are read lowest priority first and laid over one another with
overlay(); the environment is the top layer. The result for the working
process (no project root) is cached until reset_config().
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml

from clode.config.paths import config_search_path
from clode.config.schema import (
    DEFAULT_CALL_TIMEOUT,
    DEFAULT_HANDSHAKE_TIMEOUT,
    DEFAULT_URL,
    ClientIdentityConfig,
    Config,
    ConnectionConfig,
    LoggingConfig,
)
from clode.logging import get_logger

_log = get_logger("config")

_cached_config: Config | None = None


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML file, returning empty dict if not found or invalid."""
    if not path.exists():
        return {}

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
            return data if isinstance(data, dict) else {}
    except yaml.YAMLError as e:
        _log.warning("Invalid YAML in %s: %s", path, e)
        return {}
    except PermissionError:
        _log.debug("Permission denied reading %s", path)
        return {}
    except OSError as e:
        _log.warning("Error reading %s: %s", path, e)
        return {}


def env_overrides() -> dict[str, Any]:
    """Build config dict from environment variables (highest priority)."""
    overrides: dict[str, Any] = {}

    url = os.environ.get("CLODE_URL")
    if url:
        overrides.setdefault("connection", {})["url"] = url

    log_path = os.environ.get("CLODE_LOG")
    if log_path:
        overrides.setdefault("logging", {})["file"] = log_path

    return overrides


def overlay(base: dict[str, Any], layer: dict[str, Any]) -> dict[str, Any]:
    """Return `base` with `layer` laid over it.

    Sections merge key by key. Any other value in `layer` replaces the one
    below it, and a null leaves the lower value in place.
    """
    merged = dict(base)
    for key, value in layer.items():
        if value is None:
            continue
        below = merged.get(key)
        if isinstance(below, dict) and isinstance(value, dict):
            merged[key] = overlay(below, value)
        else:
            merged[key] = value
    return merged


def _as_float(value: Any, default: float) -> float:
    try:
        result = float(value)
    except (TypeError, ValueError):
        return default
    return result if result > 0 else default


def dict_to_config(data: dict[str, Any]) -> Config:
    """Convert merged dict to typed Config dataclass."""
    conn_data = data.get("connection") or {}
    connection = ConnectionConfig(
        url=str(conn_data.get("url") or DEFAULT_URL),
        call_timeout=_as_float(conn_data.get("call_timeout"), DEFAULT_CALL_TIMEOUT),
        handshake_timeout=_as_float(
            conn_data.get("handshake_timeout"), DEFAULT_HANDSHAKE_TIMEOUT
        ),
    )

    client_data = data.get("client") or {}
    defaults = ClientIdentityConfig()
    client = ClientIdentityConfig(
        name=str(client_data.get("name") or defaults.name),
        version=str(client_data.get("version") or defaults.version),
    )

    log_data = data.get("logging") or {}
    verbose = log_data.get("verbose")
    logging_config = LoggingConfig(
        level=log_data.get("level"),
        verbose=verbose if isinstance(verbose, int) else None,
        file=log_data.get("file"),
    )

    known_keys = {"connection", "client", "logging"}
    extra = {k: v for k, v in data.items() if k not in known_keys}

    return Config(
        connection=connection,
        client=client,
        logging=logging_config,
        extra=extra,
    )


def load_config(project_root: str | None = None, reload: bool = False) -> Config:
    """Load and merge config from all sources.

    Priority order (highest to lowest):
    1. Environment variables (CLODE_URL, CLODE_LOG)
    2. Nearest .clode/config.yaml at or above `project_root`
    3. User config ($XDG_CONFIG_HOME/clode/config.yaml)

    Args:
        project_root: Project directory for project-level config.
        reload: Force reload even if cached.
    """
    global _cached_config

    if _cached_config is not None and not reload and project_root is None:
        return _cached_config

    data: dict[str, Any] = {}
    for path in config_search_path(project_root):
        layer = load_yaml_file(path)
        if layer:
            _log.debug("Loaded config from %s", path)
            data = overlay(data, layer)

    config = dict_to_config(overlay(data, env_overrides()))

    # Cache only global config (no project_root)
    if project_root is None:
        _cached_config = config

    return config


def load_config_file(path: Path) -> Config:
    """Load a single explicit config file layered over env overrides."""
    return dict_to_config(overlay(load_yaml_file(path), env_overrides()))


def get_config() -> Config:
    """Get the cached global config, loading it on first use."""
    if _cached_config is None:
        return load_config()
    return _cached_config


def reset_config() -> None:
    """Reset cached config."""
    global _cached_config
    _cached_config = None
