"""Shared pytest fixtures for relay-core tests.

Tests drive the real transformer with raw message dicts; nothing is mocked.
- fake_clock: controllable epoch-seconds clock
- transformer: MessageTransformer bound to fake_clock
- run_builder: AgentRunBuilder for readable message sequences
"""

import pytest
from helpers.agent_run_builder import AgentRunBuilder

from relay_core.config import TransformerOptions
from relay_core.transformer import MessageTransformer


class FakeClock:
    """Callable clock returning a fixed time until advanced."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def transformer(fake_clock):
    """Fresh transformer for one turn, with deterministic timing.

    Example:
        def test_something(transformer, run_builder):
            chunks = transformer.transform_all(run_builder.streamed_text("Hi").build())
    """
    return MessageTransformer(clock=fake_clock)


@pytest.fixture
def make_transformer(fake_clock):
    """Factory for transformers with non-default options."""

    def _make(**options) -> MessageTransformer:
        return MessageTransformer(options=TransformerOptions(**options), clock=fake_clock)

    return _make


@pytest.fixture
def run_builder():
    return AgentRunBuilder()
