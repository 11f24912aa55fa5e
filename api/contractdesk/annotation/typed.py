import logging
from functools import lru_cache
from typing import Optional

from PIL import ImageFont

from .fields import FieldType
from .surface import CaptureSurface

logger = logging.getLogger(__name__)

SIGNATURE_FONT_SIZE = 32
INITIAL_FONT_SIZE = 24


@lru_cache(maxsize=16)
def load_cursive_font(size: int, font_path: Optional[str] = None):
    if font_path:
        try:
            return ImageFont.truetype(font_path, size)
        except OSError:
            logger.warning("cannot load signature font %s, using default font", font_path)
    return ImageFont.load_default(size=size)


def render_typed_signature(
    surface: CaptureSurface,
    text: str,
    field_type: FieldType,
    font_path: Optional[str] = None,
) -> bool:
    """Draw ``text`` centred on ``surface`` in a handwriting font.

    Blank text leaves the surface alone and returns False.
    """
    field_type = FieldType(field_type)
    if not field_type.is_image:
        raise ValueError(f"cannot type a {field_type.value} field")
    if not text or not text.strip():
        return False
    size = INITIAL_FONT_SIZE if field_type is FieldType.INITIAL else SIGNATURE_FONT_SIZE
    font = load_cursive_font(size * surface.pixel_ratio, font_path)
    surface.paint_text(text.strip(), font)
    return True
