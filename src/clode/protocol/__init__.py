"""Wire protocol: JSON-RPC envelopes and payload models."""

from clode.protocol.jsonrpc import (
    JsonRpcMessage,
    MessageKind,
    encode_request,
    parse_frame,
)
from clode.protocol.types import (
    ClientInfo,
    Item,
    PermissionDenial,
    PermissionMode,
    StoredItem,
    TextItem,
    ThinkingItem,
    ThreadStartResult,
    ToolCallItem,
    ToolResultItem,
    TurnStartResult,
)

__all__ = [
    # Envelope
    "JsonRpcMessage",
    "MessageKind",
    "encode_request",
    "parse_frame",
    # Payloads
    "ClientInfo",
    "Item",
    "PermissionDenial",
    "PermissionMode",
    "StoredItem",
    "TextItem",
    "ThinkingItem",
    "ThreadStartResult",
    "ToolCallItem",
    "ToolResultItem",
    "TurnStartResult",
]
