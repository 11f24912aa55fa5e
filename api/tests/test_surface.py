import base64
import io

import pytest
from PIL import Image

from contractdesk.annotation.capture import CaptureMode, CaptureSession
from contractdesk.annotation.errors import EmptyCapture
from contractdesk.annotation.fields import FieldType, create_field
from contractdesk.annotation.surface import CaptureSurface
from contractdesk.annotation.typed import render_typed_signature


def decode(data_uri):
    assert data_uri.startswith("data:image/png;base64,")
    return Image.open(io.BytesIO(base64.b64decode(data_uri.split(",", 1)[1])))


def ink_pixels(image):
    return sum(1 for px in image.convert("L").getdata() if px < 128)


def test_export_of_blank_surface_raises():
    surface = CaptureSurface()
    assert surface.is_empty
    with pytest.raises(EmptyCapture):
        surface.export()


def test_stroke_is_exported_as_png_at_pixel_ratio():
    surface = CaptureSurface(300, 100)
    surface.pointer_down(10, 10)
    assert surface.is_drawing
    surface.pointer_move(50, 50)
    surface.pointer_move(120, 40)
    surface.pointer_up()
    assert not surface.is_drawing
    assert not surface.is_empty

    image = decode(surface.export())
    assert image.size == (600, 200)
    assert ink_pixels(image) > 0


def test_clear_resets_surface():
    surface = CaptureSurface(200, 80)
    surface.pointer_down(5, 5)
    surface.pointer_move(60, 40)
    surface.clear()
    assert surface.is_empty
    assert ink_pixels(surface.snapshot()) == 0
    with pytest.raises(EmptyCapture):
        surface.export()


def test_move_without_down_draws_nothing():
    surface = CaptureSurface(200, 80)
    surface.pointer_move(10, 10)
    surface.pointer_move(100, 50)
    assert surface.is_empty
    assert ink_pixels(surface.snapshot()) == 0


def test_leaving_the_surface_ends_the_stroke():
    surface = CaptureSurface(200, 80)
    surface.pointer_down(10, 10)
    surface.pointer_move(250, 40)
    assert not surface.is_drawing
    before = ink_pixels(surface.snapshot())
    surface.pointer_move(100, 40)
    assert ink_pixels(surface.snapshot()) == before


def test_second_down_restarts_stroke():
    surface = CaptureSurface(200, 80)
    surface.pointer_down(10, 10)
    surface.pointer_down(150, 10)
    surface.pointer_move(160, 20)
    image = surface.snapshot()
    # nothing joins the first down point to the second
    assert image.getpixel((80 * 2, 10 * 2)) == (255, 255, 255)
    assert ink_pixels(image) > 0


def test_down_outside_bounds_is_ignored():
    surface = CaptureSurface(200, 80)
    surface.pointer_down(-5, 10)
    assert surface.is_empty
    assert not surface.is_drawing


def test_typed_signature_renders_text():
    surface = CaptureSurface.for_field(FieldType.SIGNATURE)
    assert render_typed_signature(surface, "Jane Doe", FieldType.SIGNATURE)
    assert not surface.is_empty
    assert ink_pixels(surface.snapshot()) > 0


def test_blank_typed_text_is_a_no_op():
    surface = CaptureSurface.for_field(FieldType.INITIAL)
    assert render_typed_signature(surface, "   ", FieldType.INITIAL) is False
    assert surface.is_empty


def test_typed_rendering_rejects_non_image_fields():
    with pytest.raises(ValueError):
        render_typed_signature(CaptureSurface(), "x", FieldType.TEXT)


def test_capture_session_type_mode():
    field = create_field(FieldType.SIGNATURE, (0, 0), 1, 1)
    session = CaptureSession(field)
    session.set_mode(CaptureMode.TYPE)
    assert not session.is_ready
    with pytest.raises(EmptyCapture):
        session.export()
    session.set_typed_text("Jane")
    assert session.is_ready
    assert decode(session.export()).size == (1200, 384)


def test_capture_session_ignores_pointer_in_type_mode():
    field = create_field(FieldType.INITIAL, (0, 0), 1, 1)
    session = CaptureSession(field)
    session.set_mode("type")
    session.pointer_down(10, 10)
    session.pointer_move(40, 40)
    assert session.surface.is_empty


def test_capture_session_clear_wipes_drawing_and_text():
    field = create_field(FieldType.SIGNATURE, (0, 0), 1, 1)
    session = CaptureSession(field)
    session.pointer_down(10, 10)
    session.pointer_move(40, 40)
    session.pointer_up()
    assert session.is_ready
    session.typed_text = "leftover"
    session.clear()
    assert not session.is_ready
    assert session.typed_text == ""


def test_capture_session_rejects_text_fields():
    with pytest.raises(ValueError):
        CaptureSession(create_field(FieldType.TEXT, (0, 0), 1, 1))
