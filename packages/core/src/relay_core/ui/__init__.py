"""UI chunk vocabulary.

Models for the chunks the transformer emits, their camelCase wire form,
and stream validation.
"""

from . import chunks
from .utils import CamelBaseModel, to_camel, to_wire
from .validation import ChunkStreamValidator, ValidationResult, validate_chunk_stream

__all__ = [
    "CamelBaseModel",
    "to_camel",
    "to_wire",
    "chunks",
    "ChunkStreamValidator",
    "ValidationResult",
    "validate_chunk_stream",
]
