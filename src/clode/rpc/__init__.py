"""JSON-RPC call dispatching."""

from clode.rpc.errors import (
    CallTimeoutError,
    ClodeError,
    ConnectionClosedError,
    RpcError,
    TransportError,
    TransportNotOpenError,
)
from clode.rpc.dispatcher import CallDispatcher, PendingCall, next_correlation_id

__all__ = [
    "CallDispatcher",
    "PendingCall",
    "next_correlation_id",
    # Errors
    "CallTimeoutError",
    "ClodeError",
    "ConnectionClosedError",
    "RpcError",
    "TransportError",
    "TransportNotOpenError",
]
