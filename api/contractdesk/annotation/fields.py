"""Form field model: one placeable, fillable annotation on a contract page."""

from __future__ import annotations

import binascii
import io
from enum import Enum
from typing import Any, Iterable, Mapping, Optional, Tuple, Union
from uuid import uuid4

from PIL import Image
from pydantic import BaseModel, Field, model_validator

from ..utils import b64png_to_bytes
from .errors import InvalidMutation


class FieldType(str, Enum):
    SIGNATURE = "signature"
    INITIAL = "initial"
    CHECKBOX = "checkbox"
    DATE = "date"
    TEXT = "text"

    @property
    def label(self) -> str:
        return self.value.capitalize()

    @property
    def is_image(self) -> bool:
        return self in (FieldType.SIGNATURE, FieldType.INITIAL)


DEFAULT_SIZES = {
    FieldType.SIGNATURE: (200.0, 60.0),
    FieldType.CHECKBOX: (20.0, 20.0),
}
FALLBACK_SIZE = (100.0, 30.0)

# Everything else is frozen once the field exists.
MUTABLE_ATTRIBUTES = frozenset({"label", "required", "value", "completed"})
FROZEN_ATTRIBUTES = ("id", "type", "x", "y", "width", "height", "page")

FieldValue = Union[bool, str]


def _value_problem(field_type: FieldType, value: Any, completed: bool) -> Optional[str]:
    if value is None:
        return "completed field has no value" if completed else None
    if field_type is FieldType.CHECKBOX:
        if not isinstance(value, bool):
            return "checkbox value must be a boolean"
        return None
    if not isinstance(value, str):
        return f"{field_type.value} value must be a string"
    if field_type.is_image:
        if not value.startswith("data:image/") or not _decodes_as_image(value):
            return f"{field_type.value} value must be an image data URI"
    return None


def _decodes_as_image(data_uri: str) -> bool:
    try:
        with Image.open(io.BytesIO(b64png_to_bytes(data_uri))) as image:
            image.verify()
    except (binascii.Error, ValueError, OSError):
        return False
    return True


class FormField(BaseModel):
    id: str
    type: FieldType
    x: float
    y: float
    width: float = Field(gt=0)
    height: float = Field(gt=0)
    page: int = Field(ge=1)
    required: bool = True
    label: Optional[str] = None
    value: Optional[FieldValue] = None
    completed: bool = False

    @model_validator(mode="after")
    def _value_matches_type(self):
        problem = _value_problem(self.type, self.value, self.completed)
        if problem:
            raise ValueError(problem)
        return self


def default_size(field_type: FieldType) -> Tuple[float, float]:
    return DEFAULT_SIZES.get(field_type, FALLBACK_SIZE)


def new_field_id() -> str:
    return f"field_{uuid4().hex}"


def create_field(
    field_type: FieldType,
    position: Tuple[float, float],
    page: int,
    ordinal: int,
    field_id: Optional[str] = None,
) -> FormField:
    field_type = FieldType(field_type)
    width, height = default_size(field_type)
    x, y = position
    return FormField(
        id=field_id or new_field_id(),
        type=field_type,
        x=x,
        y=y,
        width=width,
        height=height,
        page=page,
        required=True,
        label=f"{field_type.label} {ordinal}",
        completed=False,
    )


def update_field(field: FormField, patch: Mapping[str, Any]) -> FormField:
    """Return a copy of ``field`` with ``patch`` applied.

    Only label, required, value and completed may change. Any other key, or a
    value that does not fit the field's type, raises InvalidMutation and the
    original field is untouched.
    """
    frozen = sorted(set(patch) - MUTABLE_ATTRIBUTES)
    if frozen:
        raise InvalidMutation(f"cannot change {', '.join(frozen)} after creation")
    if "required" in patch and not isinstance(patch["required"], bool):
        raise InvalidMutation("required must be a boolean")
    if "completed" in patch and not isinstance(patch["completed"], bool):
        raise InvalidMutation("completed must be a boolean")
    if "label" in patch and patch["label"] is not None and not isinstance(patch["label"], str):
        raise InvalidMutation("label must be a string")

    value = patch.get("value", field.value)
    completed = patch.get("completed", field.completed)
    problem = _value_problem(field.type, value, completed)
    if problem:
        raise InvalidMutation(problem)
    return field.model_copy(update=dict(patch))


def revise_field(stored: FormField, revised: FormField) -> FormField:
    """Apply a full replacement of ``stored`` as if it were a patch.

    The replacement may only differ in mutable attributes.
    """
    moved = [name for name in FROZEN_ATTRIBUTES if getattr(stored, name) != getattr(revised, name)]
    if moved:
        raise InvalidMutation(f"cannot change {', '.join(moved)} of field {stored.id}")
    patch = {
        name: getattr(revised, name)
        for name in sorted(MUTABLE_ATTRIBUTES)
        if getattr(stored, name) != getattr(revised, name)
    }
    return update_field(stored, patch) if patch else stored


def is_complete(fields: Iterable[FormField]) -> bool:
    return all(f.completed for f in fields if f.required)


def completion_count(fields: Iterable[FormField]) -> Tuple[int, int]:
    fields = list(fields)
    return sum(1 for f in fields if f.completed), len(fields)
