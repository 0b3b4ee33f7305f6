"""Logging for clode.

Everything logs under the `clode` logger through a component child:
`clode.rpc` (call dispatch), `clode.session` (notification routing and the
session store), `clode.connection` (lifecycle, transport, client facade) or
`clode.config`. Records are written as

    12:00:01 info [connection] <ws://localhost:3284> Connected

where the bracketed part is the component and the angle-bracketed part is
the server URL bound to the task that emitted the record, if any.

Output goes to the file named by config or CLODE_LOG, otherwise to stderr
when it is a console. The chat REPL owns stdout.
"""

from __future__ import annotations

import logging
import os
import sys
from contextvars import ContextVar
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from clode.config.schema import LoggingConfig

TRACE = 5
VERBOSE = 15

logging.addLevelName(TRACE, "TRACE")
logging.addLevelName(VERBOSE, "VERBOSE")

ROOT_NAME = "clode"

logger = logging.getLogger(ROOT_NAME)

# --verbose=N picks by index; anything past the end means trace
_VERBOSITY = (logging.ERROR, logging.WARNING, logging.INFO, VERBOSE, TRACE)

_FORMAT = "%(asctime)s %(levelname)s [%(component)s]%(server)s %(message)s"

_server_url: ContextVar[str | None] = ContextVar("clode_server_url", default=None)

_installed: list[logging.Handler] = []


def bind_server(url: str | None) -> None:
    """Tag records from the current task, and tasks it starts, with `url`."""
    _server_url.set(url)


class ClientContextFilter(logging.Filter):
    """Adds `component` and `server` attributes used by the clode format."""

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if name.startswith(ROOT_NAME + "."):
            name = name[len(ROOT_NAME) + 1 :]
        record.component = name
        url = _server_url.get()
        record.server = f" <{url}>" if url else ""
        return True


class ClientFormatter(logging.Formatter):
    def __init__(self) -> None:
        super().__init__(_FORMAT, datefmt="%H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        record.levelname = record.levelname.lower()
        return super().format(record)


def resolve_level(config: LoggingConfig | None) -> int:
    """Effective level: `verbose` wins over `level`; INFO otherwise."""
    if config is None:
        return logging.INFO
    if config.verbose is not None:
        return _VERBOSITY[min(max(config.verbose, 0), len(_VERBOSITY) - 1)]
    if config.level:
        level = logging.getLevelName(config.level.upper())
        if isinstance(level, int):
            return level
    return logging.INFO


def _open_handler(config: LoggingConfig | None) -> logging.Handler | None:
    path = config.file if config and config.file else os.environ.get("CLODE_LOG")
    if path:
        try:
            return logging.FileHandler(os.path.expanduser(path), encoding="utf-8")
        except OSError as e:
            if not sys.stderr.isatty():
                return None
            print(f"[clode] Failed to open log file: {e}", file=sys.stderr)
    if sys.stderr.isatty():
        return logging.StreamHandler(sys.stderr)
    return None


def setup_logging(config: LoggingConfig | None = None) -> None:
    """Install the clode handler once; later calls do nothing.

    Verbosity (--verbose / logging.verbose): 0 error, 1 warning, 2 info,
    3 verbose, 4 trace.
    """
    if _installed:
        return
    level = resolve_level(config)
    logger.setLevel(level)

    handler = _open_handler(config)
    if handler is None:
        # Keep the no-op state so a second call does not retry
        handler = logging.NullHandler()
    handler.setLevel(level)
    handler.setFormatter(ClientFormatter())
    handler.addFilter(ClientContextFilter())
    logger.addHandler(handler)
    _installed.append(handler)


def reset_logging() -> None:
    """Remove the installed handler so setup_logging() can run again."""
    while _installed:
        handler = _installed.pop()
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)


def get_logger(name: str | None = None) -> logging.Logger:
    """Return the clode logger, or its child `name` (e.g. "rpc.dispatcher")."""
    if name:
        return logger.getChild(name)
    return logger
