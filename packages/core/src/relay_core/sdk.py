"""Claude Agent SDK message adapter.

``claude_agent_sdk.query()`` yields typed dataclasses rather than the
stream-json dicts the CLI prints. This module converts them to the wire form
so the transformer handles both drivers identically.

Example:
    >>> async for message in query(prompt=prompt, options=options):
    ...     for chunk in transformer.transform(message):  # dataclass accepted
    ...         ...
"""

import dataclasses
import logging
from typing import Any, Optional

from claude_agent_sdk import (
    AssistantMessage,
    ResultMessage,
    SystemMessage,
    TextBlock,
    ThinkingBlock,
    ToolResultBlock,
    ToolUseBlock,
    UserMessage,
)
from claude_agent_sdk.types import StreamEvent

logger = logging.getLogger(__name__)

_BLOCK_TAGS: dict[type, str] = {
    TextBlock: "text",
    ThinkingBlock: "thinking",
    ToolUseBlock: "tool_use",
    ToolResultBlock: "tool_result",
}


def _block_to_dict(block: Any) -> Optional[dict[str, Any]]:
    tag = _BLOCK_TAGS.get(type(block))
    if tag is None:
        logger.debug(f"Skipping unsupported SDK content block: {type(block).__name__}")
        return None
    return {"type": tag, **dataclasses.asdict(block)}


def _content_to_wire(content: Any) -> Any:
    if isinstance(content, str):
        return content
    blocks = (_block_to_dict(block) for block in content or [])
    return [block for block in blocks if block is not None]


def is_sdk_message(message: Any) -> bool:
    return isinstance(
        message, (StreamEvent, AssistantMessage, UserMessage, SystemMessage, ResultMessage)
    )


def sdk_message_to_dict(message: Any) -> Optional[dict[str, Any]]:
    """Convert a claude_agent_sdk message object to its stream-json dict.

    Args:
        message: Message yielded by ``claude_agent_sdk.query``

    Returns:
        Wire dict, or None when the object is not an SDK message
    """
    if isinstance(message, StreamEvent):
        return {
            "type": "stream_event",
            "uuid": message.uuid,
            "session_id": message.session_id,
            "event": message.event,
            "parent_tool_use_id": message.parent_tool_use_id,
        }

    if isinstance(message, AssistantMessage):
        wire = {
            "type": "assistant",
            "message": {
                "role": "assistant",
                "model": message.model,
                "content": _content_to_wire(message.content),
            },
            "parent_tool_use_id": message.parent_tool_use_id,
        }
        uuid = getattr(message, "uuid", None)
        if uuid:
            wire["uuid"] = uuid
        return wire

    if isinstance(message, UserMessage):
        wire = {
            "type": "user",
            "message": {"role": "user", "content": _content_to_wire(message.content)},
            "parent_tool_use_id": message.parent_tool_use_id,
        }
        # Not present on older SDK releases
        for attr in ("uuid", "tool_use_result"):
            value = getattr(message, attr, None)
            if value is not None:
                wire[attr] = value
        return wire

    if isinstance(message, SystemMessage):
        # The SDK keeps the raw system payload in .data
        return {**(message.data or {}), "type": "system", "subtype": message.subtype}

    if isinstance(message, ResultMessage):
        return {**dataclasses.asdict(message), "type": "result"}

    return None
