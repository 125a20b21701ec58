"""Typed UI message chunk models.

These mirror the Vercel AI SDK UI message stream vocabulary, extended with the
session/compaction/metadata chunks the desktop chat UI understands. Python code
uses snake_case attributes; ``to_wire`` produces the camelCase JSON form.

Example wire forms:
    {"type": "text-delta", "id": "text-1712-ab12c", "delta": "Hello"}
    {"type": "tool-input-start", "toolCallId": "toolu_01", "toolName": "Read"}
    {"type": "system-Compact", "toolCallId": "compact-1712-0", "state": "input-streaming"}
"""

from typing import Any, ClassVar, Literal, Optional, Union

from pydantic import Field

from .utils import CamelBaseModel

# Tool name the UI renders as a reasoning card rather than a tool card
THINKING_TOOL_NAME = "Thinking"

MCPServerStatus = Literal["connected", "failed", "pending", "needs-auth"]
MCP_SERVER_STATUSES: tuple[str, ...] = ("connected", "failed", "pending", "needs-auth")

CompactState = Literal["input-streaming", "output-available"]


# ==================== RUN / STEP BOUNDARIES ====================


class StartChunk(CamelBaseModel):
    """Run start. Always the first chunk of a turn."""

    type: Literal["start"] = "start"


class StartStepChunk(CamelBaseModel):
    """Step start. Always immediately follows ``start``."""

    type: Literal["start-step"] = "start-step"


class MessageMetadata(CamelBaseModel):
    """Per-turn statistics reported by the terminal result message."""

    session_id: Optional[str] = None
    input_tokens: Optional[int] = None
    output_tokens: Optional[int] = None
    total_tokens: Optional[int] = None
    total_cost_usd: Optional[float] = None
    duration_ms: Optional[int] = None
    result_subtype: str = "success"
    # Last closed text block, lets the UI collapse tool cards above a final answer
    final_text_id: Optional[str] = None


class MessageMetadataChunk(CamelBaseModel):
    type: Literal["message-metadata"] = "message-metadata"
    message_metadata: MessageMetadata


class FinishStepChunk(CamelBaseModel):
    type: Literal["finish-step"] = "finish-step"
    message_metadata: Optional[MessageMetadata] = None


class FinishChunk(CamelBaseModel):
    """Run finish. Nothing follows it."""

    type: Literal["finish"] = "finish"
    message_metadata: Optional[MessageMetadata] = None


# ==================== TEXT BLOCKS ====================


class TextStartChunk(CamelBaseModel):
    type: Literal["text-start"] = "text-start"
    id: str


class TextDeltaChunk(CamelBaseModel):
    type: Literal["text-delta"] = "text-delta"
    id: str
    delta: str


class TextEndChunk(CamelBaseModel):
    type: Literal["text-end"] = "text-end"
    id: str


# ==================== TOOL CALLS ====================


class ToolInputStartChunk(CamelBaseModel):
    """Tool call begins accumulating input.

    Also used for reasoning blocks, with ``tool_name == THINKING_TOOL_NAME``.
    """

    type: Literal["tool-input-start"] = "tool-input-start"
    tool_call_id: str
    tool_name: str


class ToolInputDeltaChunk(CamelBaseModel):
    type: Literal["tool-input-delta"] = "tool-input-delta"
    tool_call_id: str
    input_text_delta: str


class ToolInputAvailableChunk(CamelBaseModel):
    """Tool call input is complete.

    ``input`` is the parsed JSON object, or the raw accumulated text when it
    failed to parse (a ``tool-output-error`` follows in that case).
    """

    type: Literal["tool-input-available"] = "tool-input-available"
    always_sent: ClassVar[tuple[str, ...]] = ("input",)

    tool_call_id: str
    tool_name: str
    input: Any


class ToolOutputAvailableChunk(CamelBaseModel):
    type: Literal["tool-output-available"] = "tool-output-available"
    always_sent: ClassVar[tuple[str, ...]] = ("output",)

    tool_call_id: str
    output: Any


class ToolOutputErrorChunk(CamelBaseModel):
    type: Literal["tool-output-error"] = "tool-output-error"
    tool_call_id: str
    error_text: str


# ==================== SESSION / SYSTEM ====================


class MCPServerInfo(CamelBaseModel):
    name: str
    version: str


class MCPServer(CamelBaseModel):
    """Tool server as reported at session init, with a normalized status."""

    name: str
    status: MCPServerStatus = "pending"
    server_info: Optional[MCPServerInfo] = None
    error: Optional[str] = None


class SessionInitChunk(CamelBaseModel):
    """One-time snapshot of what the session can use."""

    type: Literal["session-init"] = "session-init"
    tools: list[Any] = Field(default_factory=list)
    mcp_servers: list[MCPServer] = Field(default_factory=list)
    plugins: list[Any] = Field(default_factory=list)
    skills: list[Any] = Field(default_factory=list)


class SystemCompactChunk(CamelBaseModel):
    """Context compaction rendered as a pseudo-tool card."""

    type: Literal["system-Compact"] = "system-Compact"
    tool_call_id: str
    state: CompactState


class SdkMessageUuidData(CamelBaseModel):
    uuid: str
    message_type: str


class SdkMessageUuidChunk(CamelBaseModel):
    """Correlation chunk surfacing the provider's message uuid (opt-in)."""

    type: Literal["data-sdk-message-uuid"] = "data-sdk-message-uuid"
    data: SdkMessageUuidData


# ==================== TYPE UNIONS ====================

UIMessageChunk = Union[
    StartChunk,
    StartStepChunk,
    TextStartChunk,
    TextDeltaChunk,
    TextEndChunk,
    ToolInputStartChunk,
    ToolInputDeltaChunk,
    ToolInputAvailableChunk,
    ToolOutputAvailableChunk,
    ToolOutputErrorChunk,
    SessionInitChunk,
    SystemCompactChunk,
    MessageMetadataChunk,
    FinishStepChunk,
    FinishChunk,
    SdkMessageUuidChunk,
]

# Chunks that open a renderable block, and the chunk type that closes each
BLOCK_OPENERS: dict[str, str] = {
    "text-start": "text-end",
    "tool-input-start": "tool-input-available",
}
