"""clode: protocol engine for a coding-agent server.

Keeps one WebSocket connection to the server, correlates JSON-RPC calls with
their responses, and folds server notifications into per-thread session state
that a presentation layer can observe.
"""

__version__ = "0.1.0"

from clode.client import ClodeClient
from clode.config import Config, load_config
from clode.protocol.types import PermissionMode
from clode.rpc.errors import (
    CallTimeoutError,
    ClodeError,
    ConnectionClosedError,
    RpcError,
    TransportError,
    TransportNotOpenError,
)
from clode.session.models import ChatMessage, ConnectionStatus, Session, Turn, TurnStatus

__all__ = [
    "__version__",
    "CallTimeoutError",
    "ChatMessage",
    "ClodeClient",
    "ClodeError",
    "Config",
    "ConnectionClosedError",
    "ConnectionStatus",
    "PermissionMode",
    "RpcError",
    "Session",
    "TransportError",
    "TransportNotOpenError",
    "Turn",
    "TurnStatus",
    "load_config",
]
