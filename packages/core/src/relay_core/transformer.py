"""Agent-run message -> UI message chunk transformer.

The Claude agent-run reports every turn twice: token by token through
``stream_event`` messages, and again as consolidated ``assistant`` messages
carrying the finished content blocks. ``MessageTransformer`` folds both paths
into one chunk stream the chat UI can render incrementally:

    start, start-step,
    text-start / text-delta* / text-end,
    tool-input-start / tool-input-delta* / tool-input-available,
    tool-output-available | tool-output-error,
    session-init, system-Compact,
    message-metadata, finish-step, finish

Guarantees:
    - ``start`` and ``start-step`` come first, exactly once.
    - At most one block (text, tool input or reasoning) is open at a time;
      opening a new one closes the previous one first.
    - Every opened block is closed before ``finish``.
    - A tool call reported by both paths gets one ``tool-input-available``.

Nested tool calls (sub-agents) are addressed by composite ids
``<parent>:<child>`` so children that reuse raw ids stay distinct.

One transformer serves exactly one turn.

Example:
    >>> transformer = MessageTransformer()
    >>> for raw in agent_run_messages:
    ...     for chunk in transformer.transform(raw):
    ...         send(to_wire(chunk))
"""

import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Iterator, Optional
from uuid import uuid4

from pydantic import ValidationError

from relay_core.config import TransformerOptions
from relay_core.messages import (
    AssistantMessage,
    ResultMessage,
    SdkMessageBase,
    StreamContentBlock,
    StreamEventMessage,
    SystemMessage,
    TextBlock,
    ThinkingBlock,
    ToolResultBlock,
    ToolUseBlock,
    UserMessage,
    parse_sdk_message,
)
from relay_core.state import OpenTextBlock, OpenThinking, OpenToolCall, TransformerState
from relay_core.ui.chunks import (
    MCP_SERVER_STATUSES,
    THINKING_TOOL_NAME,
    FinishChunk,
    FinishStepChunk,
    MCPServer,
    MCPServerInfo,
    MessageMetadata,
    MessageMetadataChunk,
    SdkMessageUuidChunk,
    SdkMessageUuidData,
    SessionInitChunk,
    StartChunk,
    StartStepChunk,
    SystemCompactChunk,
    TextDeltaChunk,
    TextEndChunk,
    TextStartChunk,
    ToolInputAvailableChunk,
    ToolInputDeltaChunk,
    ToolInputStartChunk,
    ToolOutputAvailableChunk,
    ToolOutputErrorChunk,
    UIMessageChunk,
)

logger = logging.getLogger(__name__)

UNKNOWN_TOOL_NAME = "unknown"


def _is_absent(value: Any) -> bool:
    return value is None or value == ""


def _content_to_text(content: Any) -> str:
    """Flatten tool_result content (string or list of blocks) to plain text."""
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for item in content:
            if isinstance(item, dict) and item.get("type") == "text":
                parts.append(str(item.get("text", "")))
            else:
                parts.append(item if isinstance(item, str) else json.dumps(item))
        return "\n".join(parts)
    return str(content)


@dataclass
class MessageTransformer:
    """Stateful transducer from agent-run messages to UI message chunks.

    Attributes:
        options: Diagnostic and correlation options
        clock: Returns epoch seconds; drives ids and the turn duration
        state: Per-turn state (fresh for every instance)
    """

    options: TransformerOptions = field(default_factory=TransformerOptions)
    clock: Callable[[], float] = time.time
    state: TransformerState = field(default_factory=TransformerState)

    # ==================== ENTRY POINTS ====================

    def transform(self, raw: Any) -> list[UIMessageChunk]:
        """Transform the next agent-run message into zero or more chunks.

        Never raises: unknown or malformed messages yield nothing beyond the
        initial start pair, and an unexpected failure keeps the chunks that
        were already produced for this message.

        Args:
            raw: Wire dict or parsed message model

        Returns:
            Chunks to send, in order
        """
        chunks: list[UIMessageChunk] = []
        try:
            for chunk in self._transform(raw):
                chunks.append(chunk)
        except Exception:
            msg_type = raw.get("type") if isinstance(raw, dict) else type(raw).__name__
            logger.exception(
                f"Failed to transform {msg_type} message, keeping {len(chunks)} chunk(s)"
            )
        return chunks

    def transform_all(self, messages: Iterable[Any]) -> list[UIMessageChunk]:
        """Transform a complete message sequence (one turn)."""
        chunks: list[UIMessageChunk] = []
        for raw in messages:
            chunks.extend(self.transform(raw))
        return chunks

    def _transform(self, raw: Any) -> Iterator[UIMessageChunk]:
        msg = parse_sdk_message(raw)
        state = self.state

        # Only update when the key is present; absence keeps the current parent
        if msg is not None and msg.has_parent_tool_use_id:
            state.parent_tool_context = msg.parent_tool_use_id

        if not state.started:
            state.started = True
            state.started_at = self.clock()
            yield StartChunk()
            yield StartStepChunk()

        if msg is None:
            return

        self._log_incoming(msg)

        if self.options.emit_sdk_message_uuid and msg.uuid:
            yield SdkMessageUuidChunk(
                data=SdkMessageUuidData(uuid=msg.uuid, message_type=msg.type)
            )

        if isinstance(msg, StreamEventMessage):
            yield from self._handle_stream_event(msg)
        elif isinstance(msg, AssistantMessage):
            yield from self._handle_assistant(msg)
        elif isinstance(msg, UserMessage):
            yield from self._handle_user(msg)
        elif isinstance(msg, SystemMessage):
            yield from self._handle_system(msg)
        elif isinstance(msg, ResultMessage):
            yield from self._handle_result(msg)

    # ==================== DIAGNOSTICS / IDS ====================

    def _log_incoming(self, msg: SdkMessageBase) -> None:
        level = logging.INFO if self.options.compat_mode else logging.DEBUG
        if not logger.isEnabledFor(level):
            return

        subtype = getattr(msg, "subtype", None) or ""
        event = getattr(msg, "event", None)
        event_type = event.type if event is not None and event.type else ""
        logger.log(level, f"[transform] MSG: {msg.type} {subtype} {event_type}".rstrip())

        if self.options.compat_mode and isinstance(msg, SystemMessage):
            logger.info(f"[transform] SYSTEM message: {msg.model_dump(exclude_none=True)}")

    def _now_ms(self) -> int:
        return int(self.clock() * 1000)

    def _new_id(self) -> str:
        return f"text-{self._now_ms()}-{uuid4().hex[:5]}"

    # ==================== BLOCK LIFECYCLE ====================

    def _close_open_blocks(self) -> Iterator[UIMessageChunk]:
        yield from self._end_text_block()
        yield from self._end_tool_input()
        yield from self._end_thinking()

    def _start_text_block(self) -> Iterator[UIMessageChunk]:
        yield from self._close_open_blocks()
        block = OpenTextBlock(id=self._new_id())
        self.state.open_text_block = block
        yield TextStartChunk(id=block.id)

    def _end_text_block(self) -> Iterator[UIMessageChunk]:
        block = self.state.open_text_block
        if block is None:
            return
        self.state.open_text_block = None
        self.state.last_text_id = block.id
        yield TextEndChunk(id=block.id)

    def _start_tool_call(self, content_block: Optional[StreamContentBlock]) -> Iterator[UIMessageChunk]:
        yield from self._close_open_blocks()
        state = self.state

        original_id = (content_block.id if content_block else None) or self._new_id()
        composite_id = state.composite_id(original_id)
        tool_name = (content_block.name if content_block else None) or UNKNOWN_TOOL_NAME

        if composite_id in state.emitted_tool_ids:
            logger.debug(f"[transform] Ignoring restarted tool call {composite_id}")
            return

        state.id_mapping[original_id] = composite_id
        state.open_tool_call = OpenToolCall(composite_id=composite_id, tool_name=tool_name)
        yield ToolInputStartChunk(tool_call_id=composite_id, tool_name=tool_name)

    def _end_tool_input(self) -> Iterator[UIMessageChunk]:
        call = self.state.open_tool_call
        if call is None:
            return
        self.state.open_tool_call = None
        self.state.emitted_tool_ids.add(call.composite_id)

        text = call.accumulated_input
        if not text.strip():
            yield ToolInputAvailableChunk(
                tool_call_id=call.composite_id, tool_name=call.tool_name, input={}
            )
            return

        try:
            parsed = json.loads(text)
        except json.JSONDecodeError as e:
            logger.warning(
                f"[transform] Tool {call.tool_name} ({call.composite_id}) sent invalid input JSON: {e}"
            )
            yield ToolInputAvailableChunk(
                tool_call_id=call.composite_id, tool_name=call.tool_name, input=text
            )
            yield ToolOutputErrorChunk(
                tool_call_id=call.composite_id, error_text=f"Invalid tool input JSON: {e}"
            )
            return

        yield ToolInputAvailableChunk(
            tool_call_id=call.composite_id, tool_name=call.tool_name, input=parsed
        )

    def _start_thinking(self) -> Iterator[UIMessageChunk]:
        yield from self._close_open_blocks()
        state = self.state
        state.thinking_counter += 1
        thinking = OpenThinking(id=f"thinking-{self._now_ms()}-{state.thinking_counter}")
        state.open_thinking = thinking
        yield ToolInputStartChunk(tool_call_id=thinking.id, tool_name=THINKING_TOOL_NAME)

    def _end_thinking(self) -> Iterator[UIMessageChunk]:
        thinking = self.state.open_thinking
        if thinking is None:
            return
        self.state.open_thinking = None
        yield from self._reasoning_complete(thinking.id, thinking.accumulated_text)
        # The consolidated assistant message repeats this block; skip it there.
        # An empty block is skipped there anyway, so it holds no slot.
        if thinking.accumulated_text:
            self.state.streamed_thinking_pending += 1

    def _reasoning_complete(self, thinking_id: str, text: str) -> Iterator[UIMessageChunk]:
        self.state.emitted_tool_ids.add(thinking_id)
        yield ToolInputAvailableChunk(
            tool_call_id=thinking_id, tool_name=THINKING_TOOL_NAME, input={"text": text}
        )
        yield ToolOutputAvailableChunk(tool_call_id=thinking_id, output={"completed": True})

    # ==================== STREAM EVENTS ====================

    def _handle_stream_event(self, msg: StreamEventMessage) -> Iterator[UIMessageChunk]:
        event = msg.event
        if event is None:
            return
        state = self.state

        if event.type == "message_start":
            # New API response; a reasoning block cut off mid-stream still closes
            yield from self._end_thinking()

        elif event.type == "content_block_start":
            block = event.content_block
            block_type = block.type if block else None
            if block_type == "text":
                yield from self._start_text_block()
            elif block_type == "tool_use":
                yield from self._start_tool_call(block)
            elif block_type == "thinking":
                yield from self._start_thinking()
            elif block_type is None:
                logger.warning(
                    f"[transform] content_block_start with no type: {event.model_dump(exclude_none=True)}"
                )
            else:
                logger.debug(f"[transform] Ignoring {block_type} content block")

        elif event.type == "content_block_delta":
            delta = event.delta
            delta_type = delta.type if delta else None
            if delta_type == "text_delta":
                if state.open_text_block is None:
                    yield from self._start_text_block()
                yield TextDeltaChunk(id=state.open_text_block.id, delta=delta.text or "")
            elif delta_type == "input_json_delta":
                call = state.open_tool_call
                if call is None:
                    logger.debug("[transform] input_json_delta without an open tool call")
                    return
                partial = delta.partial_json or ""
                call.accumulated_input += partial
                yield ToolInputDeltaChunk(tool_call_id=call.composite_id, input_text_delta=partial)
            elif delta_type == "thinking_delta":
                thinking = state.open_thinking
                if thinking is None:
                    return
                text = delta.thinking or ""
                thinking.accumulated_text += text
                yield ToolInputDeltaChunk(tool_call_id=thinking.id, input_text_delta=text)

        elif event.type == "content_block_stop":
            yield from self._close_open_blocks()

    # ==================== CONSOLIDATED ASSISTANT MESSAGE ====================

    def _handle_assistant(self, msg: AssistantMessage) -> Iterator[UIMessageChunk]:
        if msg.message is None:
            return
        state = self.state

        for block in msg.message.blocks:
            if isinstance(block, ThinkingBlock):
                if not block.thinking:
                    continue
                if state.streamed_thinking_pending > 0:
                    state.streamed_thinking_pending -= 1
                    continue
                yield from self._reasoning_complete(self._new_id(), block.thinking)

            elif isinstance(block, TextBlock):
                yield from self._end_tool_input()
                yield from self._end_thinking()
                # Already streaming this text
                if state.open_text_block is not None:
                    logger.debug("[transform] Skipping consolidated text (already streaming)")
                    continue
                text_id = self._new_id()
                yield TextStartChunk(id=text_id)
                yield TextDeltaChunk(id=text_id, delta=block.text)
                yield TextEndChunk(id=text_id)
                state.last_text_id = text_id

            elif isinstance(block, ToolUseBlock):
                yield from self._close_open_blocks()

                original_id = block.id or self._new_id()
                composite_id = state.composite_id(original_id)
                if composite_id in state.emitted_tool_ids or original_id in state.emitted_tool_ids:
                    logger.debug(f"[transform] Skipping duplicate tool_use {composite_id}")
                    continue

                state.id_mapping[original_id] = composite_id
                state.emitted_tool_ids.add(composite_id)
                yield ToolInputAvailableChunk(
                    tool_call_id=composite_id,
                    tool_name=block.name or UNKNOWN_TOOL_NAME,
                    input=block.input if block.input is not None else {},
                )

    # ==================== TOOL RESULTS ====================

    def _handle_user(self, msg: UserMessage) -> Iterator[UIMessageChunk]:
        if msg.message is None:
            return

        for block in msg.message.blocks:
            if not isinstance(block, ToolResultBlock):
                continue
            if not block.tool_use_id:
                logger.warning("[transform] tool_result without tool_use_id, dropping")
                continue

            tool_call_id = self.state.id_mapping.get(block.tool_use_id, block.tool_use_id)

            if block.is_error:
                yield ToolOutputErrorChunk(
                    tool_call_id=tool_call_id, error_text=_content_to_text(block.content)
                )
                continue

            output = msg.tool_use_result
            if _is_absent(output) and isinstance(block.content, str):
                try:
                    parsed = json.loads(block.content)
                except json.JSONDecodeError:
                    parsed = None
                if isinstance(parsed, (dict, list)):
                    output = parsed
            if _is_absent(output):
                output = block.content

            yield ToolOutputAvailableChunk(tool_call_id=tool_call_id, output=output)

    # ==================== SYSTEM STATUS ====================

    def _handle_system(self, msg: SystemMessage) -> Iterator[UIMessageChunk]:
        state = self.state

        if msg.subtype == "init":
            yield SessionInitChunk(
                tools=msg.tools or [],
                mcp_servers=[self._normalize_server(s) for s in msg.mcp_servers or []],
                plugins=msg.plugins or [],
                skills=msg.skills or [],
            )

        elif msg.subtype == "status" and msg.status == "compacting":
            state.compaction_id = f"compact-{self._now_ms()}-{state.compaction_counter}"
            state.compaction_counter += 1
            yield SystemCompactChunk(tool_call_id=state.compaction_id, state="input-streaming")

        elif msg.subtype == "compact_boundary":
            if state.compaction_id is None:
                logger.debug("[transform] compact_boundary without a pending compaction, dropping")
                return
            yield SystemCompactChunk(tool_call_id=state.compaction_id, state="output-available")
            state.compaction_id = None

    @staticmethod
    def _normalize_server(report) -> MCPServer:
        status = report.status if report.status in MCP_SERVER_STATUSES else "pending"
        server_info = None
        if report.server_info:
            try:
                server_info = MCPServerInfo.model_validate(report.server_info)
            except ValidationError:
                logger.debug(f"[transform] Ignoring malformed serverInfo for {report.name}")
        return MCPServer(
            name=report.name, status=status, server_info=server_info, error=report.error or None
        )

    # ==================== TERMINAL RESULT ====================

    def _handle_result(self, msg: ResultMessage) -> Iterator[UIMessageChunk]:
        yield from self._close_open_blocks()
        state = self.state

        usage = msg.usage
        input_tokens = usage.input_tokens if usage else None
        output_tokens = usage.output_tokens if usage else None
        total_tokens = (
            input_tokens + output_tokens
            if input_tokens is not None and output_tokens is not None
            else None
        )
        duration_ms = (
            int((self.clock() - state.started_at) * 1000) if state.started_at is not None else None
        )

        metadata = MessageMetadata(
            session_id=msg.session_id,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            total_tokens=total_tokens,
            total_cost_usd=msg.total_cost_usd,
            duration_ms=duration_ms,
            result_subtype=msg.subtype or "success",
            final_text_id=state.last_text_id,
        )
        logger.debug(f"[transform] RESULT {metadata.result_subtype}, final text {state.last_text_id}")

        yield MessageMetadataChunk(message_metadata=metadata)
        yield FinishStepChunk(message_metadata=metadata)
        yield FinishChunk(message_metadata=metadata)


def create_transformer(
    compat_mode: bool = False, emit_sdk_message_uuid: bool = False
) -> MessageTransformer:
    """Factory function to create a MessageTransformer for one turn.

    Args:
        compat_mode: Verbose diagnostics for Anthropic-compatible local backends
        emit_sdk_message_uuid: Surface provider message uuids as chunks

    Returns:
        Fresh MessageTransformer
    """
    return MessageTransformer(
        options=TransformerOptions(
            compat_mode=compat_mode, emit_sdk_message_uuid=emit_sdk_message_uuid
        )
    )
