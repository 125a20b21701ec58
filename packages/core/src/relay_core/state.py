"""Per-turn transformer state.

One ``TransformerState`` lives for exactly one agent turn. The transformer
mutates it in place; nothing here emits chunks.
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class OpenTextBlock:
    id: str


@dataclass
class OpenToolCall:
    """Tool call whose input JSON is still streaming in."""

    composite_id: str
    tool_name: str
    accumulated_input: str = ""


@dataclass
class OpenThinking:
    """Reasoning block accumulator, rendered as a pseudo tool call."""

    id: str
    accumulated_text: str = ""


@dataclass
class TransformerState:
    """Mutable record of everything the transformer tracks within a turn.

    Invariants:
        - At most one of open_text_block / open_tool_call / open_thinking is set.
        - An id in emitted_tool_ids never gets a second tool-input-available.
    """

    started: bool = False
    started_at: Optional[float] = None  # epoch seconds

    open_text_block: Optional[OpenTextBlock] = None
    open_tool_call: Optional[OpenToolCall] = None
    open_thinking: Optional[OpenThinking] = None

    emitted_tool_ids: set[str] = field(default_factory=set)
    id_mapping: dict[str, str] = field(default_factory=dict)  # raw tool_use id -> composite id
    parent_tool_context: Optional[str] = None

    # Streamed reasoning blocks whose consolidated copy has not arrived yet
    streamed_thinking_pending: int = 0
    thinking_counter: int = 0

    last_text_id: Optional[str] = None

    compaction_id: Optional[str] = None
    compaction_counter: int = 0

    def composite_id(self, original_id: str) -> str:
        """Tool call id qualified by the active parent context.

        A parent that is itself nested was mapped to a composite id when it
        started, so the child inherits the full ancestry: ``grand:parent:child``.
        """
        parent = self.parent_tool_context
        if not parent:
            return original_id
        return f"{self.id_mapping.get(parent, parent)}:{original_id}"
