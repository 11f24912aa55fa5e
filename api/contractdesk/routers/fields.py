from typing import Any, Dict
from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from sqlmodel import Session
from ..db import get_session
from ..models import Contract, UserProfile
from ..schemas import FieldPlace, FieldsReplace
from ..auth import require_producer
from ..field_store import load_fields, save_fields
from ..lifecycle import ContractStatus
from ..annotation.fields import completion_count, is_complete, revise_field
from ..annotation.overlay import AnnotationOverlay
from ..annotation.placement import FieldPlacementEditor

router = APIRouter()

def _builder_contract(session: Session, contract_id: int, user: UserProfile, editing: bool = False) -> Contract:
    contract = session.get(Contract, contract_id)
    if not contract or contract.created_by != user.id:
        raise HTTPException(404, "contract not found")
    if editing and contract.status != ContractStatus.DRAFT.value:
        raise HTTPException(409, "fields are frozen once the contract is sent")
    return contract

def _fields_response(fields):
    done, total = completion_count(fields)
    return {
        "fields": [f.model_dump(mode="json") for f in fields],
        "completed": done,
        "total": total,
        "all_required_completed": is_complete(fields),
    }

@router.get("/{contract_id}/fields")
def list_fields(
    contract_id: int,
    session: Session = Depends(get_session),
    user: UserProfile = Depends(require_producer),
):
    _builder_contract(session, contract_id, user)
    return _fields_response(load_fields(session, contract_id))

@router.put("/{contract_id}/fields")
def replace_fields(
    contract_id: int,
    payload: FieldsReplace,
    session: Session = Depends(get_session),
    user: UserProfile = Depends(require_producer),
):
    _builder_contract(session, contract_id, user, editing=True)
    stored = {f.id: f for f in load_fields(session, contract_id)}
    fields = [revise_field(stored[f.id], f) if f.id in stored else f for f in payload.fields]
    try:
        save_fields(session, contract_id, fields, user.id)
    except ValueError as exc:
        raise HTTPException(422, str(exc))
    return _fields_response(load_fields(session, contract_id))

@router.post("/{contract_id}/fields", status_code=201)
def place_field(
    contract_id: int,
    payload: FieldPlace,
    session: Session = Depends(get_session),
    user: UserProfile = Depends(require_producer),
):
    _builder_contract(session, contract_id, user, editing=True)
    editor = FieldPlacementEditor(load_fields(session, contract_id))
    editor.arm_placement(payload.type)
    field = editor.handle_document_click((payload.x, payload.y), payload.scale, payload.page)
    save_fields(session, contract_id, editor.commit(), user.id)
    return field.model_dump(mode="json")

@router.patch("/{contract_id}/fields/{field_id}")
def edit_field(
    contract_id: int,
    field_id: str,
    patch: Dict[str, Any] = Body(...),
    session: Session = Depends(get_session),
    user: UserProfile = Depends(require_producer),
):
    _builder_contract(session, contract_id, user, editing=True)
    editor = FieldPlacementEditor(load_fields(session, contract_id))
    field = editor.update_field(field_id, patch)
    save_fields(session, contract_id, editor.commit(), user.id)
    return field.model_dump(mode="json")

@router.delete("/{contract_id}/fields/{field_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_field(
    contract_id: int,
    field_id: str,
    session: Session = Depends(get_session),
    user: UserProfile = Depends(require_producer),
):
    _builder_contract(session, contract_id, user, editing=True)
    editor = FieldPlacementEditor(load_fields(session, contract_id))
    editor.remove_field(field_id)
    save_fields(session, contract_id, editor.commit(), user.id)

@router.get("/{contract_id}/overlay")
def preview_overlay(
    contract_id: int,
    page: int = Query(default=1, ge=1),
    scale: float = Query(default=1.0, gt=0),
    rotation: int = Query(default=0),
    session: Session = Depends(get_session),
    user: UserProfile = Depends(require_producer),
):
    _builder_contract(session, contract_id, user)
    try:
        overlay = AnnotationOverlay(load_fields(session, contract_id), scale, rotation, is_editable=False)
    except ValueError as exc:
        raise HTTPException(422, str(exc))
    return {"page": page, "regions": [r.as_dict() for r in overlay.regions(page)]}
