"""Construction-time options for the message transformer."""

import os
from dataclasses import dataclass

COMPAT_MODE_ENV = "RELAY_COMPAT_MODE"
EMIT_SDK_MESSAGE_UUID_ENV = "RELAY_EMIT_SDK_MESSAGE_UUID"


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "false").lower() in ("true", "1")


@dataclass(frozen=True)
class TransformerOptions:
    """Options for ``MessageTransformer``.

    Attributes:
        compat_mode: Running against an Anthropic-compatible local backend
            (e.g. Ollama). Only raises diagnostic logging to INFO; chunk output
            is identical.
        emit_sdk_message_uuid: Also emit a ``data-sdk-message-uuid`` chunk for
            every incoming message that carries a provider uuid.
    """

    compat_mode: bool = False
    emit_sdk_message_uuid: bool = False

    @classmethod
    def from_env(cls) -> "TransformerOptions":
        """Build options from RELAY_COMPAT_MODE / RELAY_EMIT_SDK_MESSAGE_UUID."""
        return cls(
            compat_mode=_env_flag(COMPAT_MODE_ENV),
            emit_sdk_message_uuid=_env_flag(EMIT_SDK_MESSAGE_UUID_ENV),
        )
