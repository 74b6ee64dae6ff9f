"""
Shared base schema and helpers for entity records.

Records use snake_case attributes in Python and camelCase keys on the wire,
so persisted documents and export files keep the portable field names.
"""

import uuid
from typing import Any, get_args

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


def new_id() -> str:
    """Generate a collision-resistant opaque identifier."""
    return str(uuid.uuid4())


class CamelModel(BaseModel):
    """Base model serializing field names as camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> dict[str, Any]:
        """Dump to a JSON-compatible dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def accepts_none(model: type[BaseModel], field_name: str) -> bool:
    """Whether ``field_name`` on ``model`` may hold ``None``."""
    field = model.model_fields.get(field_name)
    if field is None:
        return True
    return field.annotation is None or type(None) in get_args(field.annotation)


def changed_fields(update: BaseModel, target: type[BaseModel] | None = None) -> dict[str, Any]:
    """
    Return the explicitly set fields of a partial-update schema.

    Values are kept as model instances (not dumped to dicts) so they can be
    merged into a record with ``model_copy(update=...)``. With ``target``,
    an explicit ``None`` is dropped for every field the target record does
    not allow to be empty, since ``model_copy`` does not validate.
    """
    return {
        name: getattr(update, name)
        for name in update.model_fields_set
        if target is None or getattr(update, name) is not None or accepts_none(target, name)
    }
