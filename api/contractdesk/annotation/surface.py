"""Raster surface for freehand signature and initial capture."""

from __future__ import annotations

import io
from typing import Optional, Tuple

from PIL import Image, ImageDraw, ImageFont

from ..utils import bytes_to_b64png
from .errors import EmptyCapture
from .fields import FieldType

BACKGROUND = (255, 255, 255)
INK = (0, 0, 0)

SIGNATURE_STROKE = 2.0
INITIAL_STROKE = 1.5


class CaptureSurface:
    """A white rectangle that pointer strokes are drawn onto.

    Coordinates are surface points relative to the top-left corner. The
    raster itself is ``pixel_ratio`` times larger so strokes stay crisp when
    the exported image is scaled onto a page.
    """

    def __init__(
        self,
        width: int = 600,
        height: int = 192,
        *,
        stroke_width: float = SIGNATURE_STROKE,
        pixel_ratio: int = 2,
    ) -> None:
        if width <= 0 or height <= 0:
            raise ValueError("surface must have a positive size")
        self.width = width
        self.height = height
        self.stroke_width = stroke_width
        self.pixel_ratio = pixel_ratio
        self._image = Image.new("RGB", (width * pixel_ratio, height * pixel_ratio), BACKGROUND)
        self._draw = ImageDraw.Draw(self._image)
        self._last: Optional[Tuple[float, float]] = None
        self.is_empty = True

    @classmethod
    def for_field(cls, field_type: FieldType, width: int = 600, height: int = 192) -> "CaptureSurface":
        stroke = INITIAL_STROKE if FieldType(field_type) is FieldType.INITIAL else SIGNATURE_STROKE
        return cls(width, height, stroke_width=stroke)

    @property
    def is_drawing(self) -> bool:
        return self._last is not None

    @property
    def pixel_size(self) -> Tuple[int, int]:
        return self._image.size

    def contains(self, x: float, y: float) -> bool:
        return 0 <= x <= self.width and 0 <= y <= self.height

    def pointer_down(self, x: float, y: float) -> None:
        if not self.contains(x, y):
            return
        # a second down without an up just restarts the stroke here
        self._last = (x, y)
        self.is_empty = False

    def pointer_move(self, x: float, y: float) -> None:
        if self._last is None:
            return
        if not self.contains(x, y):
            self.pointer_leave()
            return
        self._segment(self._last, (x, y))
        self._last = (x, y)

    def pointer_up(self) -> None:
        self._last = None

    def pointer_leave(self) -> None:
        self._last = None

    def clear(self) -> None:
        self._paint_background()
        self._last = None
        self.is_empty = True

    def paint_text(self, text: str, font: ImageFont.ImageFont) -> None:
        """Replace the surface content with ``text`` centred on it."""
        self._paint_background()
        self._last = None
        w, h = self._image.size
        self._draw.text((w / 2, h / 2), text, fill=INK, font=font, anchor="mm")
        self.is_empty = False

    def export(self) -> str:
        if self.is_empty:
            raise EmptyCapture()
        buf = io.BytesIO()
        self._image.save(buf, format="PNG")
        return bytes_to_b64png(buf.getvalue())

    def snapshot(self) -> Image.Image:
        return self._image.copy()

    def _paint_background(self) -> None:
        w, h = self._image.size
        self._draw.rectangle([0, 0, w, h], fill=BACKGROUND)

    def _segment(self, start: Tuple[float, float], end: Tuple[float, float]) -> None:
        r = self.pixel_ratio
        width = max(1, round(self.stroke_width * r))
        p0 = (start[0] * r, start[1] * r)
        p1 = (end[0] * r, end[1] * r)
        self._draw.line([p0, p1], fill=INK, width=width)
        # round caps so consecutive short segments join without notches
        half = width / 2
        for px, py in (p0, p1):
            self._draw.ellipse([px - half, py - half, px + half, py + half], fill=INK)
