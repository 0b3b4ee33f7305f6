"""JSON-RPC 2.0 envelope parsing and serialization."""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any

JSONRPC_VERSION = "2.0"


class MessageKind(str, Enum):
    """Shape of an inbound JSON-RPC frame."""

    REQUEST = "request"
    RESPONSE = "response"
    NOTIFICATION = "notification"


@dataclass(frozen=True)
class JsonRpcMessage:
    """Parsed JSON-RPC message."""

    kind: MessageKind
    jsonrpc: str = JSONRPC_VERSION
    id: int | str | None = None
    method: str | None = None
    params: dict[str, Any] | None = None
    result: Any = None
    error: Any = None

    def is_request(self) -> bool:
        return self.kind is MessageKind.REQUEST

    def is_notification(self) -> bool:
        return self.kind is MessageKind.NOTIFICATION

    def is_response(self) -> bool:
        return self.kind is MessageKind.RESPONSE

    @property
    def is_error(self) -> bool:
        """True for a response carrying an error payload."""
        return self.kind is MessageKind.RESPONSE and self.error is not None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        d: dict[str, Any] = {"jsonrpc": self.jsonrpc}
        if self.id is not None:
            d["id"] = self.id
        if self.kind is MessageKind.RESPONSE:
            if self.error is not None:
                d["error"] = self.error
            else:
                d["result"] = self.result
            return d
        d["method"] = self.method
        d["params"] = self.params if self.params is not None else {}
        return d

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> JsonRpcMessage | None:
        """Classify and parse a decoded frame.

        Returns None when the frame is neither a response (id plus result or
        error) nor a method-bearing message.
        """
        msg_id = data.get("id")
        if msg_id is not None and ("result" in data or "error" in data):
            return cls(
                kind=MessageKind.RESPONSE,
                jsonrpc=data.get("jsonrpc", JSONRPC_VERSION),
                id=msg_id,
                result=data.get("result"),
                error=data.get("error"),
            )

        method = data.get("method")
        if not isinstance(method, str):
            return None

        params = data.get("params")
        return cls(
            kind=MessageKind.REQUEST if msg_id is not None else MessageKind.NOTIFICATION,
            jsonrpc=data.get("jsonrpc", JSONRPC_VERSION),
            id=msg_id,
            method=method,
            params=params if isinstance(params, dict) else {},
        )


def encode_request(msg_id: int, method: str, params: dict[str, Any] | None = None) -> str:
    """Serialize an outbound call envelope."""
    msg = JsonRpcMessage(kind=MessageKind.REQUEST, id=msg_id, method=method, params=params)
    return json.dumps(msg.to_dict(), separators=(",", ":"))


def parse_frame(raw: str | bytes) -> JsonRpcMessage | None:
    """Decode one transport frame.

    Returns None for anything that is not valid JSON, not an object, or not a
    recognizable JSON-RPC message.
    """
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    if not isinstance(data, dict):
        return None
    return JsonRpcMessage.from_dict(data)
