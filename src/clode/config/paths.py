"""Where clode looks for config.yaml.

Two layers are read: the per-user file under the XDG config directory, then
the nearest `.clode/config.yaml` at or above the working directory, so a
chat started anywhere inside a checkout picks up that checkout's settings.
"""

from __future__ import annotations

import os
from pathlib import Path

CONFIG_FILENAME = "config.yaml"
PROJECT_DIR = ".clode"


def user_config_path() -> Path:
    """Per-user config file; the file need not exist."""
    xdg = os.environ.get("XDG_CONFIG_HOME")
    base = Path(xdg) if xdg else Path.home() / ".config"
    return base / "clode" / CONFIG_FILENAME


def find_project_config(start: str | os.PathLike[str]) -> Path | None:
    """Return the nearest project config at or above `start`, if any."""
    origin = Path(start).expanduser().absolute()
    for directory in (origin, *origin.parents):
        candidate = directory / PROJECT_DIR / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


def config_search_path(project_root: str | os.PathLike[str] | None = None) -> list[Path]:
    """Config files to layer, lowest priority first."""
    paths = [user_config_path()]
    if project_root is not None:
        project = find_project_config(project_root)
        if project is not None and project not in paths:
            paths.append(project)
    return paths
