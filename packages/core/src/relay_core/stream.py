"""Async bridge from an agent-run message stream to UI chunks and SSE.

The agent-run driver is asynchronous; the transformer is not. These helpers
drive one transformer per turn over an async message iterator. Cancelling the
consumer simply stops iteration; chunks already yielded stay valid.
"""

import json
import logging
from typing import Any, AsyncIterable, AsyncIterator, Optional

from relay_core.transformer import MessageTransformer
from relay_core.ui.chunks import UIMessageChunk
from relay_core.ui.utils import to_wire

logger = logging.getLogger(__name__)

# Terminal SSE frame; not a JSON chunk
SSE_DONE = "data: [DONE]\n\n"


def format_sse(chunk: UIMessageChunk) -> str:
    """Format one chunk as a Server-Sent Events data frame."""
    return f"data: {json.dumps(to_wire(chunk))}\n\n"


async def transform_stream(
    messages: AsyncIterable[Any], transformer: Optional[MessageTransformer] = None
) -> AsyncIterator[UIMessageChunk]:
    """Transform an async agent-run message stream into UI chunks.

    Args:
        messages: Raw agent-run messages for a single turn
        transformer: Transformer to use (a fresh one if omitted)

    Yields:
        UI message chunks in order
    """
    transformer = transformer or MessageTransformer()
    count = 0

    async for raw in messages:
        for chunk in transformer.transform(raw):
            count += 1
            yield chunk

    logger.debug(f"Turn stream complete: {count} chunk(s)")


async def stream_sse(
    messages: AsyncIterable[Any], transformer: Optional[MessageTransformer] = None
) -> AsyncIterator[str]:
    """Like ``transform_stream`` but yields SSE frames, ending with ``[DONE]``."""
    async for chunk in transform_stream(messages, transformer):
        yield format_sse(chunk)
    yield SSE_DONE
