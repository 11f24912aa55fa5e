"""Builder-side placement of form fields onto contract pages."""

from __future__ import annotations

from typing import Any, Iterable, List, Mapping, Optional, Tuple

from . import fields as field_model
from .errors import FieldNotFound
from .fields import FieldType, FormField


class FieldPlacementEditor:
    """Arm a field type, click a page, get a field.

    Each arm allows exactly one placement; the caller re-arms to place the
    next field. Click points are viewport pixels and are divided by the
    current zoom. Rotation is never compensated: fields always live in the
    page's unrotated frame.
    """

    def __init__(self, fields: Iterable[FormField] = ()) -> None:
        self.fields: List[FormField] = list(fields)
        self.selected_type: FieldType = FieldType.SIGNATURE
        self.is_placing = False

    def arm_placement(self, field_type: FieldType) -> None:
        self.selected_type = FieldType(field_type)
        self.is_placing = True

    def cancel_placement(self) -> None:
        self.is_placing = False

    def handle_document_click(
        self,
        point: Tuple[float, float],
        scale: float,
        page: int,
    ) -> Optional[FormField]:
        if not self.is_placing:
            return None
        if scale <= 0:
            raise ValueError("scale must be positive")
        vx, vy = point
        field = field_model.create_field(
            self.selected_type,
            (vx / scale, vy / scale),
            page,
            ordinal=len(self.fields) + 1,
        )
        self.fields.append(field)
        self.is_placing = False
        return field

    def remove_field(self, field_id: str) -> None:
        self.fields = [f for f in self.fields if f.id != field_id]

    def update_field(self, field_id: str, patch: Mapping[str, Any]) -> FormField:
        for index, field in enumerate(self.fields):
            if field.id == field_id:
                updated = field_model.update_field(field, patch)
                self.fields[index] = updated
                return updated
        raise FieldNotFound(field_id)

    def commit(self) -> List[FormField]:
        return list(self.fields)
