"""Serialization helpers shared by the UI chunk models.

Chunks are built in snake_case and leave the transformer in the AI SDK's
camelCase wire form. Optional chunk fields that are None are omitted on the
wire, except the payload fields a chunk type lists in ``always_sent``.
"""

from abc import ABC
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict


def to_camel(string: str) -> str:
    """snake_case field name to its camelCase wire key (``error_text`` -> ``errorText``)."""
    head, *rest = string.split("_")
    return head + "".join(part.title() for part in rest)


class CamelBaseModel(BaseModel, ABC):
    """Base for every UI chunk: snake_case attributes, camelCase wire keys.

    Chunks accept either spelling on input so recorded wire streams can be
    validated back into models. Unknown keys are rejected.

    Attributes:
        always_sent: Fields written by ``to_wire`` even when their value is None
    """

    always_sent: ClassVar[tuple[str, ...]] = ()

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )


def to_wire(model: BaseModel) -> dict[str, Any]:
    """Dump a model to its camelCase wire form, dropping absent fields.

    Fields named in the model's ``always_sent`` are kept as ``null``.
    """
    data = model.model_dump(mode="json", by_alias=True, exclude_none=True)
    for name in getattr(model, "always_sent", ()):
        field_info = type(model).model_fields[name]
        data.setdefault(field_info.alias or name, None)
    return data
