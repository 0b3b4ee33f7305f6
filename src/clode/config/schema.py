"""Configuration schema dataclasses for clode.

Defines the structure of configuration at all levels (system, user, project).
All fields have defaults so partial configs merge together.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

DEFAULT_URL = "ws://localhost:3284"
DEFAULT_CALL_TIMEOUT = 30.0
DEFAULT_HANDSHAKE_TIMEOUT = 10.0


@dataclass
class ConnectionConfig:
    """Server connection configuration.

    Example config.yaml:
        connection:
          url: ws://192.168.1.20:3284
          call_timeout: 30.0
          handshake_timeout: 10.0
    """

    url: str = DEFAULT_URL
    call_timeout: float = DEFAULT_CALL_TIMEOUT  # Seconds before an ordinary call times out
    handshake_timeout: float = DEFAULT_HANDSHAKE_TIMEOUT  # Seconds allowed for `initialize`


@dataclass
class ClientIdentityConfig:
    """Identity sent to the server in the `initialize` handshake."""

    name: str = "clode-app"
    version: str = "1.0.0"


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str | None = None  # DEBUG, INFO, WARNING, ERROR
    verbose: int | None = None  # 0-4, overrides level when set
    file: str | None = None  # Log file path


@dataclass
class Config:
    """Root configuration object."""

    connection: ConnectionConfig = field(default_factory=ConnectionConfig)
    client: ClientIdentityConfig = field(default_factory=ClientIdentityConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Unknown top-level sections are preserved here
    extra: dict[str, Any] = field(default_factory=dict)
