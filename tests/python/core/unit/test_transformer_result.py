"""Tests for the terminal result message and turn metadata."""

from helpers.agent_run_builder import block_delta, block_start
from helpers.chunk_assertions import assert_chunk_sequence, assert_valid_stream

from relay_core.ui.utils import to_wire


class TestResultMetadata:
    def test_total_tokens_when_both_counts_present(self, transformer, run_builder):
        chunks = transformer.transform_all(
            run_builder.result(input_tokens=100, output_tokens=25, total_cost_usd=0.0123).build()
        )

        metadata = chunks[-1].message_metadata
        assert metadata.input_tokens == 100
        assert metadata.output_tokens == 25
        assert metadata.total_tokens == 125
        assert metadata.total_cost_usd == 0.0123
        assert metadata.session_id == "session-1"
        assert metadata.result_subtype == "success"

    def test_total_tokens_absent_without_output_tokens(self, transformer, run_builder):
        chunks = transformer.transform_all(run_builder.result(input_tokens=100).build())

        metadata = chunks[-1].message_metadata
        assert metadata.input_tokens == 100
        assert metadata.total_tokens is None
        assert "totalTokens" not in to_wire(chunks[-1])["messageMetadata"]

    def test_zero_counts_still_sum(self, transformer, run_builder):
        chunks = transformer.transform_all(
            run_builder.result(input_tokens=0, output_tokens=0).build()
        )

        assert chunks[-1].message_metadata.total_tokens == 0

    def test_missing_usage(self, transformer):
        chunks = transformer.transform_all([{"type": "result", "subtype": "success"}])

        metadata = chunks[-1].message_metadata
        assert metadata.input_tokens is None
        assert metadata.total_tokens is None

    def test_duration_measured_from_first_message(self, transformer, run_builder, fake_clock):
        transformer.transform_all(run_builder.streamed_text("hi").build())
        fake_clock.advance(2.5)

        chunks = transformer.transform(run_builder.result().build()[-1])

        assert chunks[-1].message_metadata.duration_ms == 2500

    def test_error_subtype_carried(self, transformer, run_builder):
        chunks = transformer.transform_all(
            run_builder.result(subtype="error_max_turns").build()
        )

        assert chunks[-1].message_metadata.result_subtype == "error_max_turns"

    def test_metadata_repeated_on_finish_chunks(self, transformer, run_builder):
        chunks = transformer.transform_all(run_builder.result(input_tokens=1, output_tokens=2).build())

        assert_chunk_sequence(
            chunks, ["start", "start-step", "message-metadata", "finish-step", "finish"]
        )
        metadata = chunks[2].message_metadata
        assert chunks[3].message_metadata == metadata
        assert chunks[4].message_metadata == metadata

    def test_final_text_id_is_last_closed_text_block(self, transformer, run_builder):
        messages = (
            run_builder.streamed_text("first")
            .consolidated_tool_use("t1", "Read", {})
            .streamed_text("final answer")
            .result()
            .build()
        )

        chunks = transformer.transform_all(messages)

        last_text_end = [c for c in chunks if c.type == "text-end"][-1]
        assert chunks[-1].message_metadata.final_text_id == last_text_end.id

    def test_final_text_id_absent_without_text(self, transformer, run_builder):
        chunks = transformer.transform_all(run_builder.result().build())

        assert chunks[-1].message_metadata.final_text_id is None


class TestResultClosesOpenBlocks:
    def test_open_text_block_closed_before_metadata(self, transformer, run_builder):
        messages = [block_start("text"), block_delta("text_delta", text="cut")]
        messages += run_builder.result().build()

        chunks = transformer.transform_all(messages)

        assert_chunk_sequence(
            chunks,
            [
                "start",
                "start-step",
                "text-start",
                "text-delta",
                "text-end",
                "message-metadata",
                "finish-step",
                "finish",
            ],
        )
        assert chunks[-1].message_metadata.final_text_id == chunks[2].id
        assert_valid_stream(chunks)

    def test_open_tool_input_finalized_before_metadata(self, transformer, run_builder):
        messages = [
            block_start("tool_use", id="t1", name="Write"),
            block_delta("input_json_delta", partial_json='{"a": 1}'),
        ]
        messages += run_builder.result().build()

        chunks = transformer.transform_all(messages)

        assert chunks[4].type == "tool-input-available"
        assert chunks[4].input == {"a": 1}
        assert chunks[5].type == "message-metadata"
        assert_valid_stream(chunks)

    def test_open_thinking_finalized_before_metadata(self, transformer, run_builder):
        messages = [
            block_start("thinking"),
            block_delta("thinking_delta", thinking="..."),
        ]
        messages += run_builder.result().build()

        chunks = transformer.transform_all(messages)

        assert [c.type for c in chunks[4:6]] == ["tool-input-available", "tool-output-available"]
        assert_valid_stream(chunks)
