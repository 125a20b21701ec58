"""UI chunk stream validation.

Checks a finished chunk sequence against the contract the chat UI relies on.
Used by tests, and handy for diagnosing recorded sessions.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Union

from pydantic import BaseModel

from .chunks import BLOCK_OPENERS
from .utils import to_wire

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    """Result of chunk stream validation."""

    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """Returns True if validation passed with no errors."""
        return self.valid and len(self.errors) == 0


def _block_key(chunk: dict[str, Any]) -> Optional[str]:
    return chunk.get("id") if chunk["type"].startswith("text-") else chunk.get("toolCallId")


class ChunkStreamValidator:
    """Validates ordering, block discipline and dedup of a chunk stream.

    Checks for:
    - ``start`` then ``start-step`` first, each exactly once
    - At most one open text/tool-input block at any point
    - Every opened block closed exactly once, by the matching chunk and id
    - Deltas only for the currently open block
    - At most one ``tool-input-available`` per tool call id
    - Nothing after ``finish``
    - Tool outputs for unknown calls, or repeated outputs (warnings; the UI
      tolerates them)
    """

    def __init__(self, require_finish: bool = True):
        """Initialize validator.

        Args:
            require_finish: If True, a stream that never reaches ``finish`` is an error.
        """
        self.require_finish = require_finish

    def validate(self, chunks: Iterable[Union[BaseModel, dict[str, Any]]]) -> ValidationResult:
        errors: list[str] = []
        warnings: list[str] = []

        events = [to_wire(c) if isinstance(c, BaseModel) else c for c in chunks]

        if [e.get("type") for e in events[:2]] != ["start", "start-step"]:
            errors.append("Stream must begin with start, start-step")

        open_block: Optional[tuple[str, str]] = None  # (opening type, key)
        available: dict[str, int] = {}  # toolCallId -> chunk index
        outputs: set[str] = set()
        finished_at: Optional[int] = None

        for idx, event in enumerate(events):
            event_type = event.get("type")

            if finished_at is not None:
                errors.append(f"Chunk {idx}: {event_type} after finish (chunk {finished_at})")
                continue

            if event_type in ("start", "start-step") and idx > 1:
                errors.append(f"Chunk {idx}: repeated {event_type}")

            elif event_type in BLOCK_OPENERS:
                key = _block_key(event)
                if open_block is not None:
                    errors.append(
                        f"Chunk {idx}: {event_type} '{key}' while '{open_block[1]}' is still open"
                    )
                open_block = (event_type, key)

            elif event_type in ("text-delta", "tool-input-delta"):
                key = _block_key(event)
                if open_block is None or open_block[1] != key:
                    errors.append(f"Chunk {idx}: {event_type} for '{key}' which is not open")

            elif event_type == "text-end":
                key = _block_key(event)
                if open_block != ("text-start", key):
                    errors.append(f"Chunk {idx}: text-end for '{key}' which is not open")
                else:
                    open_block = None

            elif event_type == "tool-input-available":
                key = _block_key(event)
                if key in available:
                    errors.append(
                        f"Chunk {idx}: Duplicate tool-input-available for '{key}' "
                        f"(first seen at chunk {available[key]})"
                    )
                else:
                    available[key] = idx
                # Without a matching start this is a complete call, not a block
                if open_block == ("tool-input-start", key):
                    open_block = None

            elif event_type in ("tool-output-available", "tool-output-error"):
                key = _block_key(event)
                if key not in available:
                    warnings.append(f"Chunk {idx}: {event_type} for '{key}' without tool call")
                elif key in outputs:
                    warnings.append(f"Chunk {idx}: repeated tool output for '{key}'")
                outputs.add(key)

            elif event_type == "finish":
                if open_block is not None:
                    errors.append(f"Chunk {idx}: finish while '{open_block[1]}' is still open")
                finished_at = idx

        if open_block is not None and finished_at is None:
            message = f"Block '{open_block[1]}' never closed"
            if self.require_finish:
                errors.append(message)
            else:
                warnings.append(message)

        if finished_at is None and self.require_finish:
            errors.append("Stream never finished")

        if warnings:
            logger.debug(f"Chunk stream warnings (non-fatal): {warnings}")

        return ValidationResult(valid=len(errors) == 0, errors=errors, warnings=warnings)


def validate_chunk_stream(
    chunks: Iterable[Union[BaseModel, dict[str, Any]]], require_finish: bool = True
) -> ValidationResult:
    """Convenience function to validate a chunk stream.

    Args:
        chunks: Chunk models or wire dicts, in emission order
        require_finish: If True, the stream must reach ``finish``

    Returns:
        ValidationResult
    """
    return ChunkStreamValidator(require_finish=require_finish).validate(chunks)
