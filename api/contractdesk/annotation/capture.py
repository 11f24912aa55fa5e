from __future__ import annotations

from enum import Enum
from typing import Optional

from .errors import EmptyCapture
from .fields import FieldType, FormField
from .surface import CaptureSurface
from .typed import render_typed_signature


class CaptureMode(str, Enum):
    DRAW = "draw"
    TYPE = "type"


class CaptureSession:
    """Signature/initial entry for one field.

    Drawing and typing share a single surface, so ``clear`` wipes both.
    Nothing is written to the field until the overlay saves the session.
    """

    def __init__(self, field: FormField, surface: Optional[CaptureSurface] = None, font_path: Optional[str] = None):
        if not field.type.is_image:
            raise ValueError(f"{field.type.value} fields are not captured")
        self.field_id = field.id
        self.field_type = field.type
        self.surface = surface or CaptureSurface.for_field(field.type)
        self.mode = CaptureMode.DRAW
        self.typed_text = ""
        self.font_path = font_path

    def set_mode(self, mode: CaptureMode) -> None:
        self.mode = CaptureMode(mode)

    def pointer_down(self, x: float, y: float) -> None:
        if self.mode is CaptureMode.DRAW:
            self.surface.pointer_down(x, y)

    def pointer_move(self, x: float, y: float) -> None:
        if self.mode is CaptureMode.DRAW:
            self.surface.pointer_move(x, y)

    def pointer_up(self) -> None:
        self.surface.pointer_up()

    def pointer_leave(self) -> None:
        self.surface.pointer_leave()

    def set_typed_text(self, text: str) -> None:
        self.typed_text = text or ""
        if self.mode is CaptureMode.TYPE:
            render_typed_signature(self.surface, self.typed_text, self.field_type, self.font_path)

    def clear(self) -> None:
        self.surface.clear()
        self.typed_text = ""

    @property
    def is_ready(self) -> bool:
        if self.mode is CaptureMode.TYPE:
            return bool(self.typed_text.strip())
        return not self.surface.is_empty

    def export(self) -> str:
        if self.mode is CaptureMode.TYPE:
            if not render_typed_signature(self.surface, self.typed_text, self.field_type, self.font_path):
                raise EmptyCapture()
        return self.surface.export()
