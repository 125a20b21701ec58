"""Raw agent-run message types.

Tagged variants for the messages the Claude agent-run emits (stream-json wire
form). Each variant keeps only the fields the transformer consumes and allows
everything else through untouched:

- StreamEventMessage: incremental API stream event (block start/delta/stop)
- AssistantMessage: consolidated per-turn content (text, thinking, tool_use)
- UserMessage: tool results fed back to the model
- SystemMessage: session init, status (compacting), compaction boundary
- ResultMessage: terminal message with usage and cost

Optional fields are never assumed present. ``parse_sdk_message`` is the single
entry point and returns None for anything it cannot interpret.
"""

import logging
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from relay_core.sdk import is_sdk_message, sdk_message_to_dict

logger = logging.getLogger(__name__)


class RawModel(BaseModel):
    """Base for raw messages: snake_case wire names, unknown fields kept."""

    model_config = ConfigDict(extra="allow")


# ==================== CONTENT BLOCKS ====================


class TextBlock(RawModel):
    type: Literal["text"] = "text"
    text: str = ""


class ThinkingBlock(RawModel):
    type: Literal["thinking"] = "thinking"
    thinking: str = ""
    signature: Optional[str] = None


class ToolUseBlock(RawModel):
    type: Literal["tool_use"] = "tool_use"
    id: Optional[str] = None
    name: Optional[str] = None
    input: Any = Field(default_factory=dict)


class ToolResultBlock(RawModel):
    type: Literal["tool_result"] = "tool_result"
    tool_use_id: Optional[str] = None
    content: Any = None
    is_error: Optional[bool] = None


ContentBlock = Union[TextBlock, ThinkingBlock, ToolUseBlock, ToolResultBlock]

_BLOCK_TYPES: dict[str, type[RawModel]] = {
    "text": TextBlock,
    "thinking": ThinkingBlock,
    "tool_use": ToolUseBlock,
    "tool_result": ToolResultBlock,
}


def parse_content_block(raw: Any) -> Optional[ContentBlock]:
    """Parse one content block dict, or return None if it is unknown/malformed."""
    if isinstance(raw, tuple(_BLOCK_TYPES.values())):
        return raw
    if not isinstance(raw, dict):
        return None

    block_cls = _BLOCK_TYPES.get(raw.get("type", ""))
    if block_cls is None:
        # redacted_thinking, image, server_tool_use, ...
        return None

    try:
        return block_cls.model_validate(raw)
    except ValidationError as e:
        logger.warning(f"Dropping malformed {raw.get('type')} block: {e}")
        return None


class ApiMessage(RawModel):
    """The provider API message wrapped by assistant/user messages."""

    id: Optional[str] = None
    role: Optional[str] = None
    content: Union[str, list[Any]] = Field(default_factory=list)

    @property
    def blocks(self) -> list[ContentBlock]:
        """Known content blocks in order. Plain string content has none."""
        if isinstance(self.content, str):
            return []
        parsed = (parse_content_block(raw) for raw in self.content)
        return [block for block in parsed if block is not None]


# ==================== STREAM EVENTS ====================


class StreamContentBlock(RawModel):
    """``content_block`` of a ``content_block_start`` event."""

    type: Optional[str] = None
    id: Optional[str] = None
    name: Optional[str] = None


class StreamDelta(RawModel):
    """``delta`` of a ``content_block_delta`` event.

    Only the field matching ``type`` is populated:
    text_delta -> text, input_json_delta -> partial_json, thinking_delta -> thinking.
    """

    type: Optional[str] = None
    text: Optional[str] = None
    partial_json: Optional[str] = None
    thinking: Optional[str] = None


class StreamEvent(RawModel):
    type: Optional[str] = None
    index: Optional[int] = None
    content_block: Optional[StreamContentBlock] = None
    # message_delta also carries a delta (stop_reason); extra fields allow it
    delta: Optional[StreamDelta] = None


# ==================== TOP-LEVEL MESSAGES ====================


class SdkMessageBase(RawModel):
    uuid: Optional[str] = None
    session_id: Optional[str] = None
    parent_tool_use_id: Optional[str] = None

    @property
    def has_parent_tool_use_id(self) -> bool:
        """True when the key was present on the wire, even if null."""
        return "parent_tool_use_id" in self.model_fields_set


class StreamEventMessage(SdkMessageBase):
    type: Literal["stream_event"] = "stream_event"
    event: Optional[StreamEvent] = None


class AssistantMessage(SdkMessageBase):
    type: Literal["assistant"] = "assistant"
    message: Optional[ApiMessage] = None


class UserMessage(SdkMessageBase):
    type: Literal["user"] = "user"
    message: Optional[ApiMessage] = None
    # Structured tool result payload supplied alongside the raw content
    tool_use_result: Any = None


class MCPServerReport(RawModel):
    name: str = ""
    status: Optional[str] = None
    server_info: Optional[dict[str, Any]] = Field(default=None, alias="serverInfo")
    error: Optional[str] = None

    model_config = ConfigDict(extra="allow", populate_by_name=True)


class SystemMessage(SdkMessageBase):
    type: Literal["system"] = "system"
    subtype: Optional[str] = None
    # init
    tools: Optional[list[Any]] = None
    mcp_servers: Optional[list[MCPServerReport]] = None
    plugins: Optional[list[Any]] = None
    skills: Optional[list[Any]] = None
    # status
    status: Optional[str] = None


class Usage(RawModel):
    input_tokens: Optional[int] = None
    output_tokens: Optional[int] = None


class ResultMessage(SdkMessageBase):
    type: Literal["result"] = "result"
    subtype: Optional[str] = None
    usage: Optional[Usage] = None
    total_cost_usd: Optional[float] = None
    duration_ms: Optional[int] = None
    num_turns: Optional[int] = None
    is_error: Optional[bool] = None


SdkMessage = Annotated[
    Union[StreamEventMessage, AssistantMessage, UserMessage, SystemMessage, ResultMessage],
    Field(discriminator="type"),
]

SDK_MESSAGE_TYPES: tuple[str, ...] = ("stream_event", "assistant", "user", "system", "result")

_sdk_message_adapter: TypeAdapter[SdkMessage] = TypeAdapter(SdkMessage)


def parse_sdk_message(raw: Any) -> Optional[SdkMessageBase]:
    """Parse a raw agent-run message into its tagged variant.

    Args:
        raw: Wire dict, claude_agent_sdk message object, or an already-parsed
            message model

    Returns:
        The parsed message, or None for unknown kinds and malformed payloads
    """
    if isinstance(raw, SdkMessageBase):
        return raw
    if is_sdk_message(raw):
        raw = sdk_message_to_dict(raw)
    if not isinstance(raw, dict):
        logger.warning(f"Ignoring non-dict agent message: {type(raw).__name__}")
        return None

    msg_type = raw.get("type")
    if msg_type not in SDK_MESSAGE_TYPES:
        logger.debug(f"Ignoring unrecognized agent message type: {msg_type!r}")
        return None

    try:
        return _sdk_message_adapter.validate_python(raw)
    except ValidationError as e:
        logger.warning(f"Ignoring malformed {msg_type} message: {e}")
        return None
