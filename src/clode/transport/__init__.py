"""Transport layer for JSON-RPC frames."""

from clode.transport.base import (
    CLOSE_ABNORMAL,
    CLOSE_GOING_AWAY,
    CLOSE_NORMAL,
    Transport,
    TransportFactory,
)
from clode.transport.websocket import WebSocketTransport

__all__ = [
    "CLOSE_ABNORMAL",
    "CLOSE_GOING_AWAY",
    "CLOSE_NORMAL",
    "Transport",
    "TransportFactory",
    "WebSocketTransport",
]
