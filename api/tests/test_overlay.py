from datetime import date

import pytest

from contractdesk.annotation.errors import EmptyCapture, FieldNotFound, InvalidMutation
from contractdesk.annotation.fields import FieldType, create_field, update_field
from contractdesk.annotation.overlay import STYLES, AnnotationOverlay, ClickOutcome, VisualState


def make_fields():
    return [
        create_field(FieldType.SIGNATURE, (100, 50), 1, 1, field_id="sig"),
        create_field(FieldType.CHECKBOX, (10, 10), 1, 2, field_id="box"),
        create_field(FieldType.DATE, (10, 80), 1, 3, field_id="date"),
        update_field(create_field(FieldType.TEXT, (10, 120), 2, 4, field_id="note"), {"required": False}),
    ]


def editable(**kwargs):
    return AnnotationOverlay(make_fields(), is_editable=True, today=lambda: date(2024, 3, 5), **kwargs)


def test_regions_scale_geometry_for_the_page():
    overlay = AnnotationOverlay(make_fields(), scale=1.5, rotation=90, is_editable=True)
    regions = overlay.regions(1)
    assert [r.field_id for r in regions] == ["sig", "box", "date"]
    sig = regions[0]
    assert (sig.left, sig.top, sig.width, sig.height) == (150, 75, 300, 90)
    assert sig.rotation == 90
    assert sig.state is VisualState.REQUIRED
    assert sig.required_marker
    assert sig.icon == "pen-tool"
    assert [r.field_id for r in overlay.regions(2)] == ["note"]
    assert overlay.regions(2)[0].state is VisualState.OPTIONAL
    assert overlay.regions(3) == []
    # stored coordinates are untouched
    assert overlay.get("sig").x == 100


def test_read_only_regions():
    overlay = AnnotationOverlay(make_fields())
    region = overlay.regions(1)[0]
    assert region.state is VisualState.READ_ONLY
    assert region.style == STYLES[VisualState.READ_ONLY]
    assert not region.style.interactive
    assert overlay.click("box") is ClickOutcome.IGNORED
    assert overlay.get("box").value is None


def test_region_as_dict_is_plain_data():
    data = editable().regions(1)[0].as_dict()
    assert data["type"] == "signature"
    assert data["state"] == "required"
    assert data["style"]["border"] == STYLES[VisualState.REQUIRED].border


def test_invalid_view_parameters():
    with pytest.raises(ValueError):
        AnnotationOverlay([], scale=0)
    with pytest.raises(ValueError):
        AnnotationOverlay([], rotation=45)
    assert AnnotationOverlay([], rotation=-90).rotation == 270


def test_checkbox_toggle_keeps_completed():
    overlay = editable()
    assert overlay.click("box") is ClickOutcome.CHECKBOX_TOGGLED
    box = overlay.get("box")
    assert (box.value, box.completed) == (True, True)
    overlay.click("box")
    box = overlay.get("box")
    assert (box.value, box.completed) == (False, True)
    overlay.click("box")
    assert overlay.get("box").value is True
    region = next(r for r in overlay.regions(1) if r.field_id == "box")
    assert region.caption == "✓"
    assert region.state is VisualState.COMPLETED


def test_date_click_stamps_today():
    overlay = editable()
    assert overlay.click("date") is ClickOutcome.DATE_STAMPED
    stamped = overlay.get("date")
    assert stamped.value == "03/05/2024"
    assert stamped.completed
    other = AnnotationOverlay(make_fields(), is_editable=True, date_format="%Y-%m-%d", today=lambda: date(2024, 3, 5))
    other.click("date")
    assert other.get("date").value == "2024-03-05"


def test_text_click_requests_input():
    overlay = editable()
    assert overlay.click("note") is ClickOutcome.TEXT_REQUESTED
    assert overlay.accept_text("note", "  ") is None
    assert overlay.get("note").completed is False
    field = overlay.accept_text("note", "Paid monthly")
    assert field.value == "Paid monthly"
    assert overlay.get("note").completed
    with pytest.raises(InvalidMutation):
        overlay.accept_text("box", "x")


def test_unknown_field_click():
    with pytest.raises(FieldNotFound):
        editable().click("nope")


def test_signature_capture_save():
    overlay = editable(surface_size=(300, 100))
    assert overlay.click("sig") is ClickOutcome.CAPTURE_OPENED
    capture = overlay.active_capture
    assert capture.field_id == "sig"
    # one capture at a time
    assert overlay.click("box") is ClickOutcome.IGNORED

    with pytest.raises(EmptyCapture):
        overlay.save_capture()
    assert overlay.active_capture is capture
    assert not overlay.get("sig").completed

    capture.pointer_down(10, 10)
    capture.pointer_move(80, 60)
    capture.pointer_up()
    field = overlay.save_capture()
    assert field.completed
    assert field.value.startswith("data:image/png;base64,")
    assert overlay.active_capture is None
    region = overlay.regions(1)[0]
    assert region.caption == "Signed"
    assert region.state is VisualState.COMPLETED


def test_signature_capture_cancel():
    overlay = editable()
    overlay.click("sig")
    overlay.active_capture.pointer_down(10, 10)
    overlay.active_capture.pointer_move(40, 40)
    overlay.cancel_capture()
    assert overlay.active_capture is None
    assert overlay.get("sig").value is None
    with pytest.raises(InvalidMutation):
        overlay.save_capture()
