"""Wire payload models for the clode server protocol.

Request params, call results, notification params and the structured item
variants that flow inside them.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class ClodeModel(BaseModel):
    """Base model for wire types: immutable, unknown fields ignored."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)


class PermissionMode(str, Enum):
    """Policy for tool invocations that need elevated trust."""

    DEFAULT = "default"
    ACCEPT_EDITS = "acceptEdits"
    BYPASS_PERMISSIONS = "bypassPermissions"
    DONT_ASK = "dontAsk"


# -----------------------------------------------------------------------------
# Calls
# -----------------------------------------------------------------------------


class ClientInfo(ClodeModel):
    """Client identification sent with `initialize`."""

    name: str
    version: str


class InitializeParams(ClodeModel):
    client: ClientInfo


class ThreadStartParams(ClodeModel):
    cwd: str
    permission_mode: PermissionMode


class ThreadStartResult(ClodeModel):
    thread_id: str
    created_at: int | float = 0


class TurnStartParams(ClodeModel):
    thread_id: str
    content: str
    model: str | None = None


class TurnStartResult(ClodeModel):
    turn_id: str


class TurnInterruptParams(ClodeModel):
    thread_id: str


class ApprovalRespondParams(ClodeModel):
    thread_id: str
    approved: bool
    permission_mode: PermissionMode | None = None


# -----------------------------------------------------------------------------
# Items
# -----------------------------------------------------------------------------


class TextItem(ClodeModel):
    type: Literal["text"] = "text"
    text: str


class ThinkingItem(ClodeModel):
    type: Literal["thinking"] = "thinking"
    thinking: str


class ToolCallItem(ClodeModel):
    type: Literal["tool_call"] = "tool_call"
    tool_use_id: str
    name: str
    input: Any = None


class ToolResultItem(ClodeModel):
    type: Literal["tool_result"] = "tool_result"
    tool_use_id: str
    content: str | list[Any] = ""
    is_error: bool = False


class FileChangeItem(ClodeModel):
    """File change report; payload shape is server-defined."""

    model_config = ConfigDict(frozen=True, extra="allow")

    type: Literal["file_change"] = "file_change"


class CommandOutputItem(ClodeModel):
    """Command output report; payload shape is server-defined."""

    model_config = ConfigDict(frozen=True, extra="allow")

    type: Literal["command_output"] = "command_output"


Item = Annotated[
    Union[
        TextItem,
        ThinkingItem,
        ToolCallItem,
        ToolResultItem,
        FileChangeItem,
        CommandOutputItem,
    ],
    Field(discriminator="type"),
]


class StoredItem(ClodeModel):
    """A structured unit of assistant output as stored by the server."""

    id: str
    created_at: int | float = 0
    item: Item


class PermissionDenial(ClodeModel):
    """A tool invocation blocked by the current permission mode."""

    tool_name: str
    tool_use_id: str
    tool_input: dict[str, Any] | None = None


# -----------------------------------------------------------------------------
# Notifications
# -----------------------------------------------------------------------------


class TurnStartedParams(ClodeModel):
    turn_id: str
    thread_id: str


class ProgressDelta(ClodeModel):
    type: str
    text: str | None = None


class ItemProgressParams(ClodeModel):
    turn_id: str
    delta: ProgressDelta


class ItemCreatedParams(ClodeModel):
    turn_id: str
    item: StoredItem


class PermissionDeniedParams(ClodeModel):
    thread_id: str
    turn_id: str | None = None
    denials: list[PermissionDenial] = Field(default_factory=list)


class TurnCompletedParams(ClodeModel):
    thread_id: str
    turn_id: str | None = None
    status: str | None = None


class TurnErrorParams(ClodeModel):
    thread_id: str
    turn_id: str | None = None
    error: str | None = None
