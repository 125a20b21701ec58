"""Relay core - agent-run message stream to UI message chunks."""

from relay_core.config import TransformerOptions
from relay_core.messages import parse_sdk_message
from relay_core.sdk import sdk_message_to_dict
from relay_core.state import TransformerState
from relay_core.stream import SSE_DONE, format_sse, stream_sse, transform_stream
from relay_core.transformer import MessageTransformer, create_transformer

__all__ = [
    "MessageTransformer",
    "create_transformer",
    "TransformerOptions",
    "TransformerState",
    "parse_sdk_message",
    "sdk_message_to_dict",
    "SSE_DONE",
    "format_sse",
    "stream_sse",
    "transform_stream",
]
