"""Interactive layer that positions fields over a rendered contract page."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import date
from enum import Enum
from typing import Callable, Iterable, List, Optional

from . import fields as field_model
from .capture import CaptureSession
from .errors import FieldNotFound, InvalidMutation
from .fields import FieldType, FormField
from .surface import CaptureSurface

logger = logging.getLogger(__name__)

ROTATIONS = (0, 90, 180, 270)


class VisualState(str, Enum):
    COMPLETED = "completed"
    REQUIRED = "required"
    OPTIONAL = "optional"
    READ_ONLY = "read_only"


@dataclass(frozen=True)
class RegionStyle:
    border: str
    background: str
    opacity: float
    interactive: bool


STYLES = {
    VisualState.COMPLETED: RegionStyle("#4ade80", "#f0fdf4", 1.0, True),
    VisualState.REQUIRED: RegionStyle("#f87171", "#fef2f2", 1.0, True),
    VisualState.OPTIONAL: RegionStyle("#60a5fa", "#eff6ff", 1.0, True),
    VisualState.READ_ONLY: RegionStyle("#93c5fd", "#eff6ff", 0.75, False),
}

ICONS = {
    FieldType.SIGNATURE: "pen-tool",
    FieldType.INITIAL: "pen-tool",
    FieldType.CHECKBOX: "square",
    FieldType.DATE: "calendar",
    FieldType.TEXT: "type",
}


class ClickOutcome(str, Enum):
    IGNORED = "ignored"
    CAPTURE_OPENED = "capture_opened"
    DATE_STAMPED = "date_stamped"
    CHECKBOX_TOGGLED = "checkbox_toggled"
    TEXT_REQUESTED = "text_requested"


@dataclass(frozen=True)
class OverlayRegion:
    field_id: str
    type: FieldType
    left: float
    top: float
    width: float
    height: float
    rotation: int
    state: VisualState
    style: RegionStyle
    icon: str
    caption: Optional[str]
    required_marker: bool
    title: str

    def as_dict(self) -> dict:
        data = asdict(self)
        data["type"] = self.type.value
        data["state"] = self.state.value
        return data


def visual_state(field: FormField, is_editable: bool) -> VisualState:
    if not is_editable:
        return VisualState.READ_ONLY
    if field.completed:
        return VisualState.COMPLETED
    if field.required:
        return VisualState.REQUIRED
    return VisualState.OPTIONAL


def _caption(field: FormField) -> Optional[str]:
    if field.type is FieldType.CHECKBOX and field.value:
        return "✓"
    if field.completed and field.type.is_image:
        return "Signed"
    if field.completed and field.type is FieldType.DATE:
        return str(field.value)
    return None


class AnnotationOverlay:
    """Fields of one contract as seen by whoever is viewing it.

    Geometry is presentation only: scale and rotation never touch the
    stored, unscaled coordinates. Only one capture can be open at a time;
    clicks while it is open are ignored.
    """

    def __init__(
        self,
        fields: Iterable[FormField],
        scale: float = 1.0,
        rotation: int = 0,
        is_editable: bool = False,
        *,
        date_format: str = "%m/%d/%Y",
        today: Callable[[], date] = date.today,
        surface_size: tuple = (600, 192),
        font_path: Optional[str] = None,
    ) -> None:
        if scale <= 0:
            raise ValueError("scale must be positive")
        rotation = int(rotation) % 360
        if rotation not in ROTATIONS:
            raise ValueError(f"rotation must be one of {ROTATIONS}")
        self._fields: List[FormField] = list(fields)
        self.scale = scale
        self.rotation = rotation
        self.is_editable = is_editable
        self.date_format = date_format
        self._today = today
        self._surface_size = surface_size
        self._font_path = font_path
        self.active_capture: Optional[CaptureSession] = None

    @property
    def fields(self) -> List[FormField]:
        return list(self._fields)

    def get(self, field_id: str) -> FormField:
        for field in self._fields:
            if field.id == field_id:
                return field
        raise FieldNotFound(field_id)

    def regions(self, page: int) -> List[OverlayRegion]:
        out = []
        for field in self._fields:
            if field.page != page:
                continue
            state = visual_state(field, self.is_editable)
            out.append(OverlayRegion(
                field_id=field.id,
                type=field.type,
                left=field.x * self.scale,
                top=field.y * self.scale,
                width=field.width * self.scale,
                height=field.height * self.scale,
                rotation=self.rotation,
                state=state,
                style=STYLES[state],
                icon=ICONS[field.type],
                caption=_caption(field),
                required_marker=field.required and not field.completed,
                title=field.label or f"{field.type.value}{' (required)' if field.required else ''}",
            ))
        return out

    def click(self, field_id: str) -> ClickOutcome:
        field = self.get(field_id)
        if not self.is_editable or self.active_capture is not None:
            return ClickOutcome.IGNORED

        if field.type.is_image:
            width, height = self._surface_size
            surface = CaptureSurface.for_field(field.type, width, height)
            self.active_capture = CaptureSession(field, surface, font_path=self._font_path)
            return ClickOutcome.CAPTURE_OPENED
        if field.type is FieldType.DATE:
            stamp = self._today().strftime(self.date_format)
            self._apply(field, {"value": stamp, "completed": True})
            return ClickOutcome.DATE_STAMPED
        if field.type is FieldType.CHECKBOX:
            # completed sticks after the first toggle, even if toggled back off
            self._apply(field, {"value": not bool(field.value), "completed": True})
            return ClickOutcome.CHECKBOX_TOGGLED
        return ClickOutcome.TEXT_REQUESTED

    def save_capture(self) -> FormField:
        """Write the open capture into its field and close it.

        EmptyCapture propagates with the capture still open, so the user can
        keep drawing.
        """
        if self.active_capture is None:
            raise InvalidMutation("no capture is open")
        capture = self.active_capture
        image = capture.export()
        field = self.get(capture.field_id)
        updated = self._apply(field, {"value": image, "completed": True})
        self.active_capture = None
        return updated

    def cancel_capture(self) -> None:
        self.active_capture = None

    def accept_text(self, field_id: str, text: str) -> Optional[FormField]:
        field = self.get(field_id)
        if not self.is_editable:
            return None
        if field.type is not FieldType.TEXT:
            raise InvalidMutation(f"{field.type.value} fields do not take text")
        if not text or not text.strip():
            return None
        return self._apply(field, {"value": text, "completed": True})

    def _apply(self, field: FormField, patch: dict) -> FormField:
        updated = field_model.update_field(field, patch)
        index = next(i for i, f in enumerate(self._fields) if f.id == field.id)
        self._fields[index] = updated
        logger.debug("field %s updated (%s)", field.id, ", ".join(patch))
        return updated
