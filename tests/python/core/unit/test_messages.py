"""Tests for raw agent-run message parsing."""

from relay_core.messages import (
    AssistantMessage,
    ResultMessage,
    StreamEventMessage,
    SystemMessage,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
    UserMessage,
    parse_content_block,
    parse_sdk_message,
)


class TestParseSdkMessage:
    def test_each_kind_parses_to_its_variant(self):
        assert isinstance(parse_sdk_message({"type": "stream_event", "event": {}}), StreamEventMessage)
        assert isinstance(parse_sdk_message({"type": "assistant"}), AssistantMessage)
        assert isinstance(parse_sdk_message({"type": "user"}), UserMessage)
        assert isinstance(parse_sdk_message({"type": "system", "subtype": "init"}), SystemMessage)
        assert isinstance(parse_sdk_message({"type": "result"}), ResultMessage)

    def test_unknown_and_malformed_return_none(self):
        assert parse_sdk_message({"type": "tool_progress"}) is None
        assert parse_sdk_message({}) is None
        assert parse_sdk_message(["assistant"]) is None
        assert parse_sdk_message({"type": "result", "total_cost_usd": "free"}) is None

    def test_parsed_message_passes_through(self):
        msg = parse_sdk_message({"type": "result"})

        assert parse_sdk_message(msg) is msg

    def test_extra_fields_are_kept(self):
        msg = parse_sdk_message({"type": "result", "num_turns": 3, "permission_denials": []})

        assert msg.num_turns == 3
        assert msg.model_extra == {"permission_denials": []}

    def test_parent_tool_use_id_presence(self):
        absent = parse_sdk_message({"type": "assistant"})
        explicit_null = parse_sdk_message({"type": "assistant", "parent_tool_use_id": None})
        present = parse_sdk_message({"type": "assistant", "parent_tool_use_id": "p1"})

        assert not absent.has_parent_tool_use_id
        assert explicit_null.has_parent_tool_use_id
        assert explicit_null.parent_tool_use_id is None
        assert present.parent_tool_use_id == "p1"

    def test_stream_event_fields(self):
        msg = parse_sdk_message(
            {
                "type": "stream_event",
                "event": {
                    "type": "content_block_delta",
                    "index": 2,
                    "delta": {"type": "input_json_delta", "partial_json": '{"a"'},
                },
            }
        )

        assert msg.event.index == 2
        assert msg.event.delta.type == "input_json_delta"
        assert msg.event.delta.partial_json == '{"a"'
        assert msg.event.delta.text is None

    def test_system_init_server_info_alias(self):
        msg = parse_sdk_message(
            {
                "type": "system",
                "subtype": "init",
                "mcp_servers": [{"name": "gh", "status": "connected", "serverInfo": {"name": "gh", "version": "1"}}],
            }
        )

        assert msg.mcp_servers[0].server_info == {"name": "gh", "version": "1"}


class TestContentBlocks:
    def test_known_blocks_in_order(self):
        msg = parse_sdk_message(
            {
                "type": "assistant",
                "message": {
                    "content": [
                        {"type": "text", "text": "a"},
                        {"type": "redacted_thinking", "data": "..."},
                        {"type": "tool_use", "id": "t1", "name": "Read", "input": {"p": 1}},
                    ]
                },
            }
        )

        blocks = msg.message.blocks
        assert [type(b) for b in blocks] == [TextBlock, ToolUseBlock]
        assert blocks[1].input == {"p": 1}

    def test_string_content_has_no_blocks(self):
        msg = parse_sdk_message({"type": "user", "message": {"content": "hello"}})

        assert msg.message.blocks == []

    def test_malformed_block_is_dropped(self):
        assert parse_content_block({"type": "text", "text": ["not", "a", "string"]}) is None
        assert parse_content_block("text") is None

    def test_tool_result_defaults(self):
        block = parse_content_block({"type": "tool_result", "tool_use_id": "t1"})

        assert isinstance(block, ToolResultBlock)
        assert block.content is None
        assert not block.is_error
