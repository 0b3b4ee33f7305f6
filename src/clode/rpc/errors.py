"""Exception hierarchy for calls and transports."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


class ClodeError(Exception):
    """Base class for every error raised by clode."""


class TransportError(ClodeError):
    """The underlying connection failed to open, send, or close."""


@dataclass(eq=False)
class TransportNotOpenError(ClodeError):
    """A call was attempted while no transport was open."""

    method: str

    def __str__(self) -> str:
        return f"call({self.method}): socket not open, cannot send"


@dataclass(eq=False)
class RpcError(ClodeError):
    """The server answered a call with an error payload.

    `payload` is whatever the server put in the `error` member; `code`,
    `message` and `data` are read from it when it is a JSON-RPC error object.
    """

    method: str
    payload: Any

    @property
    def code(self) -> int | None:
        if isinstance(self.payload, dict) and isinstance(self.payload.get("code"), int):
            return self.payload["code"]
        return None

    @property
    def message(self) -> str:
        if isinstance(self.payload, dict) and "message" in self.payload:
            return str(self.payload["message"])
        if isinstance(self.payload, str):
            return self.payload
        return repr(self.payload)

    @property
    def data(self) -> Any:
        if isinstance(self.payload, dict):
            return self.payload.get("data")
        return None

    def __str__(self) -> str:
        if self.code is not None:
            return f"{self.method} failed ({self.code}): {self.message}"
        return f"{self.method} failed: {self.message}"


@dataclass(eq=False)
class CallTimeoutError(ClodeError):
    """A call exceeded its deadline."""

    method: str
    elapsed_ms: int

    def __str__(self) -> str:
        return f"Request timed out: {self.method} ({self.elapsed_ms}ms)"


@dataclass(eq=False)
class ConnectionClosedError(ClodeError):
    """The connection went away while a call was outstanding."""

    reason: str

    def __str__(self) -> str:
        return self.reason
