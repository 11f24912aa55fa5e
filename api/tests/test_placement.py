import pytest

from contractdesk.annotation.errors import FieldNotFound, InvalidMutation
from contractdesk.annotation.fields import FieldType
from contractdesk.annotation.placement import FieldPlacementEditor


def test_click_is_divided_by_zoom():
    editor = FieldPlacementEditor()
    editor.arm_placement(FieldType.SIGNATURE)
    field = editor.handle_document_click((220, 110), scale=2.0, page=1)
    assert (field.x, field.y) == (110, 55)
    assert (field.width, field.height) == (200, 60)
    assert field.page == 1
    assert field.label == "Signature 1"
    assert not editor.is_placing


def test_click_without_arming_does_nothing():
    editor = FieldPlacementEditor()
    assert editor.handle_document_click((10, 10), 1.0, 1) is None
    assert editor.commit() == []


def test_each_arm_places_one_field():
    editor = FieldPlacementEditor()
    editor.arm_placement("checkbox")
    first = editor.handle_document_click((10, 10), 1.0, 2)
    assert editor.handle_document_click((20, 20), 1.0, 2) is None
    editor.arm_placement(FieldType.DATE)
    second = editor.handle_document_click((30, 30), 1.0, 2)
    assert [f.id for f in editor.commit()] == [first.id, second.id]
    assert second.label == "Date 2"


def test_cancel_placement_disarms():
    editor = FieldPlacementEditor()
    editor.arm_placement(FieldType.TEXT)
    editor.cancel_placement()
    assert editor.handle_document_click((10, 10), 1.0, 1) is None


def test_zero_scale_is_rejected():
    editor = FieldPlacementEditor()
    editor.arm_placement(FieldType.TEXT)
    with pytest.raises(ValueError):
        editor.handle_document_click((10, 10), 0, 1)


def test_remove_field_is_idempotent():
    editor = FieldPlacementEditor()
    editor.arm_placement(FieldType.TEXT)
    field = editor.handle_document_click((10, 10), 1.0, 1)
    editor.remove_field(field.id)
    editor.remove_field(field.id)
    editor.remove_field("unknown")
    assert editor.commit() == []


def test_update_field_by_id():
    editor = FieldPlacementEditor()
    editor.arm_placement(FieldType.TEXT)
    field = editor.handle_document_click((10, 10), 1.0, 1)
    updated = editor.update_field(field.id, {"required": False, "label": "Notes"})
    assert editor.commit() == [updated]
    assert updated.required is False

    with pytest.raises(FieldNotFound) as excinfo:
        editor.update_field("missing", {"required": False})
    assert excinfo.value.field_id == "missing"
    with pytest.raises(InvalidMutation):
        editor.update_field(field.id, {"x": 0})
    assert editor.commit() == [updated]


def test_commit_returns_a_copy():
    editor = FieldPlacementEditor()
    editor.arm_placement(FieldType.TEXT)
    editor.handle_document_click((10, 10), 1.0, 1)
    committed = editor.commit()
    committed.clear()
    assert len(editor.commit()) == 1
