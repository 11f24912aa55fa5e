import logging
from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from minio.error import S3Error
from pypdf.errors import PdfReadError
from sqlmodel import Session, select
from .. import config
from ..db import get_session
from ..models import Contract, ContractSignature, SignedArtifact, UserProfile
from ..schemas import CaptureSubmit, TextSubmit
from ..storage import get_bytes
from ..utils import canonical_json, utcnow
from ..auth import resolve_identity
from ..audit import AuditAction, append_audit
from ..field_store import load_fields, save_fields
from ..lifecycle import AWAITING_SIGNATURE, CLIENT_VISIBLE, SIGNED_STATES, ContractStatus, can_sign, effective_status
from ..sealing import seal_contract
from ..annotation.capture import CaptureMode
from ..annotation.fields import completion_count, is_complete
from ..annotation.overlay import AnnotationOverlay, ClickOutcome
from .contracts import describe_document, serialize_contract

logger = logging.getLogger(__name__)

router = APIRouter()

# ---------- helpers ----------
def _client_contract(session: Session, contract_id: int, user: UserProfile) -> Contract:
    contract = session.get(Contract, contract_id)
    if not contract or contract.client_id != user.id:
        raise HTTPException(404, "contract not found")
    if ContractStatus(contract.status) not in CLIENT_VISIBLE:
        raise HTTPException(404, "contract not found")
    return contract

def _require_signable(contract: Contract):
    if not can_sign(contract):
        status_ = effective_status(contract)
        if status_ is ContractStatus.EXPIRED:
            raise HTTPException(409, "contract has expired")
        raise HTTPException(409, f"contract is {status_.value}")

def _overlay(session: Session, contract: Contract, scale=1.0, rotation=0, surface_size=(600, 192)):
    try:
        return AnnotationOverlay(
            load_fields(session, contract.id),
            scale,
            rotation,
            is_editable=can_sign(contract),
            date_format=config.DATE_FORMAT,
            surface_size=surface_size,
            font_path=config.TYPED_SIGNATURE_FONT,
        )
    except ValueError as exc:
        raise HTTPException(422, str(exc))

def _persist(session: Session, contract: Contract, overlay: AnnotationOverlay, user: UserProfile):
    save_fields(session, contract.id, overlay.fields, user.id, commit=False)
    if contract.status == ContractStatus.SENT.value:
        contract.status = ContractStatus.PENDING.value
    contract.updated_at = utcnow()
    session.add(contract)
    session.commit()

def _fields_payload(fields):
    done, total = completion_count(fields)
    return {
        "fields": [f.model_dump(mode="json") for f in fields],
        "completed": done,
        "total": total,
        "all_required_completed": is_complete(fields),
    }

# ---------- routes ----------

@router.get("")
def list_assigned_contracts(
    session: Session = Depends(get_session),
    user: UserProfile = Depends(resolve_identity),
):
    contracts = session.exec(
        select(Contract).where(Contract.client_id == user.id).order_by(Contract.created_at.desc())
    ).all()
    pending, signed = [], []
    for c in contracts:
        status_ = effective_status(c)
        if status_ in AWAITING_SIGNATURE:
            pending.append(serialize_contract(c))
        elif status_ in SIGNED_STATES:
            signed.append(serialize_contract(c))
    return {"pending": pending, "signed": signed}

@router.get("/{contract_id}")
def load_signing_view(
    contract_id: int,
    session: Session = Depends(get_session),
    user: UserProfile = Depends(resolve_identity),
):
    contract = _client_contract(session, contract_id, user)
    fields = load_fields(session, contract.id)
    append_audit(session, contract.id, user.id, AuditAction.CONTRACT_VIEWED, {"title": contract.title})
    return {
        "contract": serialize_contract(contract),
        "editable": can_sign(contract),
        **_fields_payload(fields),
    }

@router.get("/{contract_id}/pdf")
def get_contract_pdf(
    contract_id: int,
    session: Session = Depends(get_session),
    user: UserProfile = Depends(resolve_identity),
):
    contract = _client_contract(session, contract_id, user)
    try:
        pdf_bytes = get_bytes(contract.s3_key)
    except S3Error:
        raise HTTPException(404, "stored file missing for this contract")
    return Response(content=pdf_bytes, media_type="application/pdf")

@router.get("/{contract_id}/document")
def get_document_info(
    contract_id: int,
    session: Session = Depends(get_session),
    user: UserProfile = Depends(resolve_identity),
):
    contract = _client_contract(session, contract_id, user)
    try:
        pdf_bytes = get_bytes(contract.s3_key)
    except S3Error:
        raise HTTPException(404, "stored file missing for this contract")
    return describe_document(pdf_bytes)

@router.get("/{contract_id}/overlay")
def get_overlay(
    contract_id: int,
    page: int = Query(default=1, ge=1),
    scale: float = Query(default=1.0, gt=0),
    rotation: int = Query(default=0),
    session: Session = Depends(get_session),
    user: UserProfile = Depends(resolve_identity),
):
    contract = _client_contract(session, contract_id, user)
    overlay = _overlay(session, contract, scale, rotation)
    return {
        "page": page,
        "editable": overlay.is_editable,
        "regions": [r.as_dict() for r in overlay.regions(page)],
    }

@router.post("/{contract_id}/fields/{field_id}/click")
def click_field(
    contract_id: int,
    field_id: str,
    session: Session = Depends(get_session),
    user: UserProfile = Depends(resolve_identity),
):
    contract = _client_contract(session, contract_id, user)
    overlay = _overlay(session, contract)
    outcome = overlay.click(field_id)
    if outcome in (ClickOutcome.DATE_STAMPED, ClickOutcome.CHECKBOX_TOGGLED):
        _persist(session, contract, overlay, user)
    return {"outcome": outcome.value, "field": overlay.get(field_id).model_dump(mode="json")}

@router.post("/{contract_id}/fields/{field_id}/capture")
def capture_field(
    contract_id: int,
    field_id: str,
    payload: CaptureSubmit,
    session: Session = Depends(get_session),
    user: UserProfile = Depends(resolve_identity),
):
    contract = _client_contract(session, contract_id, user)
    _require_signable(contract)
    overlay = _overlay(session, contract, surface_size=(payload.width, payload.height))
    if overlay.click(field_id) is not ClickOutcome.CAPTURE_OPENED:
        raise HTTPException(422, "field does not take a signature")
    capture = overlay.active_capture
    if payload.mode == "type":
        capture.set_mode(CaptureMode.TYPE)
        capture.set_typed_text(payload.text or "")
    else:
        for stroke in payload.strokes:
            if not stroke:
                continue
            capture.pointer_down(*stroke[0])
            for point in stroke[1:]:
                capture.pointer_move(*point)
            capture.pointer_up()
    field = overlay.save_capture()
    _persist(session, contract, overlay, user)
    return field.model_dump(mode="json")

@router.post("/{contract_id}/fields/{field_id}/text")
def fill_text_field(
    contract_id: int,
    field_id: str,
    payload: TextSubmit,
    session: Session = Depends(get_session),
    user: UserProfile = Depends(resolve_identity),
):
    contract = _client_contract(session, contract_id, user)
    _require_signable(contract)
    overlay = _overlay(session, contract)
    field = overlay.accept_text(field_id, payload.value)
    if field is None:
        raise HTTPException(422, "text required")
    _persist(session, contract, overlay, user)
    return field.model_dump(mode="json")

@router.post("/{contract_id}/complete")
def complete_signing(
    contract_id: int,
    request: Request,
    session: Session = Depends(get_session),
    user: UserProfile = Depends(resolve_identity),
):
    contract = _client_contract(session, contract_id, user)
    _require_signable(contract)
    fields = load_fields(session, contract.id)
    if not is_complete(fields):
        raise HTTPException(409, "required fields are not completed")

    completed = [f for f in fields if f.completed]
    ip = request.client.host if request.client else None
    now = utcnow()
    for f in completed:
        data = f.value if isinstance(f.value, str) else canonical_json(f.value)
        session.add(ContractSignature(
            contract_id=contract.id,
            signer_id=user.id,
            field_id=f.id,
            field_type=f.type.value,
            signature_data=data,
            signed_at=now,
            ip_address=ip,
        ))
    contract.status = ContractStatus.SIGNED.value
    contract.signed_at = now
    contract.updated_at = now
    session.add(contract)
    session.commit()
    session.refresh(contract)
    append_audit(session, contract.id, user.id, AuditAction.CONTRACT_SIGNED, {
        "title": contract.title,
        "fields_completed": len(completed),
    })

    response = {"ok": True, "status": contract.status, "signed_at": contract.signed_at, "sealed": False}
    if config.SEAL_MODE == "celery":
        from ..worker import seal_contract_task
        seal_contract_task.delay(contract.id)
        response["sealing"] = "queued"
        return response
    try:
        artifact = seal_contract(session, contract)
    except (PdfReadError, S3Error, OSError, ValueError):
        logger.exception("sealing contract %s failed", contract.id)
        response["sealing"] = "failed"
        return response
    response["sealed"] = True
    response["sha256_final"] = artifact.sha256_final
    return response

@router.get("/{contract_id}/signed-pdf")
def get_signed_pdf(
    contract_id: int,
    session: Session = Depends(get_session),
    user: UserProfile = Depends(resolve_identity),
):
    contract = _client_contract(session, contract_id, user)
    artifact = session.exec(select(SignedArtifact).where(SignedArtifact.contract_id == contract.id)).first()
    if not artifact:
        raise HTTPException(404, "signed copy not ready")
    try:
        pdf_bytes = get_bytes(artifact.s3_key_pdf)
    except S3Error:
        raise HTTPException(404, "stored file missing for this contract")
    return Response(content=pdf_bytes, media_type="application/pdf")
