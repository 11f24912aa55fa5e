import logging
from io import BytesIO
from typing import Optional
from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Response, UploadFile, status
from minio.error import S3Error
from pypdf import PdfReader
from pypdf.errors import PdfReadError
from sqlmodel import Session, select, delete
from ..db import get_session
from ..models import Contract, ContractFormField, ContractSignature, SignedArtifact, UserProfile
from ..schemas import ContractSend, ContractUpdate
from ..storage import put_bytes, get_bytes, delete_object
from ..utils import sha256_bytes, utcnow
from ..auth import require_producer
from ..audit import AuditAction, append_audit
from ..analytics import contract_analytics
from ..lifecycle import ContractStatus, ContractType, can_send, effective_status, expiry_from

logger = logging.getLogger(__name__)

router = APIRouter()

def serialize_contract(contract: Contract):
    return {
        "id": contract.id,
        "title": contract.title,
        "description": contract.description,
        "contract_type": contract.contract_type,
        "status": effective_status(contract).value,
        "filename": contract.filename,
        "client_id": contract.client_id,
        "created_by": contract.created_by,
        "created_at": contract.created_at,
        "updated_at": contract.updated_at,
        "expires_at": contract.expires_at,
        "signed_at": contract.signed_at,
    }

def _own_contract(session: Session, contract_id: int, user: UserProfile) -> Contract:
    contract = session.get(Contract, contract_id)
    if not contract or contract.created_by != user.id:
        raise HTTPException(404, "contract not found")
    return contract

def _resolve_client(session: Session, email: Optional[str]) -> Optional[int]:
    email = (email or "").strip().lower()
    if not email:
        return None
    client = session.exec(
        select(UserProfile).where(UserProfile.email == email, UserProfile.role == "client")
    ).first()
    if not client:
        # inviting new clients is left to the identity provider
        logger.warning("no client profile for %s, contract left unassigned", email)
        return None
    return client.id

@router.post("")
async def upload_contract(
    file: UploadFile = File(...),
    title: str = Form(...),
    description: Optional[str] = Form(default=None),
    contract_type: ContractType = Form(default=ContractType.OTHER),
    client_email: Optional[str] = Form(default=None),
    session: Session = Depends(get_session),
    user: UserProfile = Depends(require_producer),
):
    if not title.strip():
        raise HTTPException(400, "title required")
    data = await file.read()
    if not data:
        raise HTTPException(400, "empty file")
    contract = Contract(
        title=title.strip(),
        description=(description or "").strip() or None,
        contract_type=contract_type.value,
        status=ContractStatus.DRAFT.value,
        filename=file.filename,
        sha256=sha256_bytes(data),
        client_id=_resolve_client(session, client_email),
        created_by=user.id,
    )
    session.add(contract)
    session.flush()
    key = f"contracts/{contract.id}/uploads/{contract.id}-{file.filename}"
    put_bytes(key, data, content_type=file.content_type or "application/pdf")
    contract.s3_key = key
    session.add(contract)
    session.commit()
    session.refresh(contract)
    append_audit(session, contract.id, user.id, AuditAction.CONTRACT_CREATED, {
        "title": contract.title,
        "type": contract.contract_type,
        "client_email": (client_email or "").strip() or None,
    })
    return serialize_contract(contract)

@router.get("")
def list_contracts(
    status_filter: Optional[ContractStatus] = Query(default=None, alias="status"),
    session: Session = Depends(get_session),
    user: UserProfile = Depends(require_producer),
):
    contracts = session.exec(
        select(Contract).where(Contract.created_by == user.id).order_by(Contract.created_at.desc())
    ).all()
    results = [serialize_contract(c) for c in contracts]
    if status_filter:
        results = [r for r in results if r["status"] == status_filter.value]
    return results

@router.get("/analytics")
def analytics(
    session: Session = Depends(get_session),
    user: UserProfile = Depends(require_producer),
):
    contracts = session.exec(select(Contract).where(Contract.created_by == user.id)).all()
    return contract_analytics(contracts)

@router.get("/{contract_id}")
def get_contract(
    contract_id: int,
    session: Session = Depends(get_session),
    user: UserProfile = Depends(require_producer),
):
    return serialize_contract(_own_contract(session, contract_id, user))

@router.patch("/{contract_id}")
def update_contract(
    contract_id: int,
    payload: ContractUpdate,
    session: Session = Depends(get_session),
    user: UserProfile = Depends(require_producer),
):
    contract = _own_contract(session, contract_id, user)
    data = payload.model_dump(exclude_unset=True)
    if "client_email" in data:
        if contract.status != ContractStatus.DRAFT.value:
            raise HTTPException(409, "client can only be changed on a draft")
        contract.client_id = _resolve_client(session, data.pop("client_email"))
    if "title" in data and not (data["title"] or "").strip():
        raise HTTPException(400, "title required")
    for key, value in data.items():
        setattr(contract, key, value.value if isinstance(value, ContractType) else value)
    contract.updated_at = utcnow()
    session.add(contract)
    session.commit()
    session.refresh(contract)
    append_audit(session, contract.id, user.id, AuditAction.CONTRACT_UPDATED, {"changes": sorted(payload.model_dump(exclude_unset=True))})
    return serialize_contract(contract)

@router.post("/{contract_id}/send")
def send_contract(
    contract_id: int,
    payload: ContractSend,
    session: Session = Depends(get_session),
    user: UserProfile = Depends(require_producer),
):
    contract = _own_contract(session, contract_id, user)
    if not can_send(contract):
        raise HTTPException(409, "only draft contracts with a client can be sent")
    contract.status = ContractStatus.SENT.value
    contract.expires_at = expiry_from(payload.expiry_days)
    contract.updated_at = utcnow()
    session.add(contract)
    session.commit()
    session.refresh(contract)
    append_audit(session, contract.id, user.id, AuditAction.CONTRACT_SENT, {
        "client_id": contract.client_id,
        "expires_at": contract.expires_at.isoformat(),
        "expiry_days": payload.expiry_days,
    })
    logger.info("contract %s sent, expires %s", contract.id, contract.expires_at)
    return serialize_contract(contract)

@router.delete("/{contract_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_contract(
    contract_id: int,
    session: Session = Depends(get_session),
    user: UserProfile = Depends(require_producer),
):
    contract = _own_contract(session, contract_id, user)
    keys = [contract.s3_key] if contract.s3_key else []
    for artifact in session.exec(select(SignedArtifact).where(SignedArtifact.contract_id == contract.id)).all():
        keys += [artifact.s3_key_pdf, artifact.s3_key_audit_json]
        session.delete(artifact)
    for key in keys:
        try:
            delete_object(key)
        except S3Error:
            logger.warning("stored file %s already gone", key)
    session.exec(delete(ContractFormField).where(ContractFormField.contract_id == contract.id))
    session.exec(delete(ContractSignature).where(ContractSignature.contract_id == contract.id))
    title = contract.title
    session.delete(contract)
    session.commit()
    # the audit trail outlives the contract
    append_audit(session, contract_id, user.id, AuditAction.CONTRACT_DELETED, {"title": title})

@router.get("/{contract_id}/pdf")
def download_contract_pdf(
    contract_id: int,
    session: Session = Depends(get_session),
    user: UserProfile = Depends(require_producer),
):
    contract = _own_contract(session, contract_id, user)
    try:
        pdf_bytes = get_bytes(contract.s3_key)
    except S3Error:
        raise HTTPException(404, "stored file missing for this contract")
    filename = contract.filename or f"contract-{contract_id}.pdf"
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )

def describe_document(pdf_bytes: bytes):
    try:
        reader = PdfReader(BytesIO(pdf_bytes))
        pages = [
            {"page": i + 1, "width": float(p.mediabox.width), "height": float(p.mediabox.height)}
            for i, p in enumerate(reader.pages)
        ]
    except (PdfReadError, ValueError) as exc:
        logger.warning("document could not be read: %s", exc)
        return {"loaded": False, "page_count": 0, "pages": [], "error": str(exc)}
    return {"loaded": True, "page_count": len(pages), "pages": pages}

@router.get("/{contract_id}/document")
def contract_document_info(
    contract_id: int,
    session: Session = Depends(get_session),
    user: UserProfile = Depends(require_producer),
):
    contract = _own_contract(session, contract_id, user)
    try:
        pdf_bytes = get_bytes(contract.s3_key)
    except S3Error:
        raise HTTPException(404, "stored file missing for this contract")
    return describe_document(pdf_bytes)

@router.get("/{contract_id}/signed-pdf")
def download_signed_pdf(
    contract_id: int,
    session: Session = Depends(get_session),
    user: UserProfile = Depends(require_producer),
):
    contract = _own_contract(session, contract_id, user)
    artifact = session.exec(select(SignedArtifact).where(SignedArtifact.contract_id == contract.id)).first()
    if not artifact:
        raise HTTPException(404, "signed copy not ready")
    try:
        pdf_bytes = get_bytes(artifact.s3_key_pdf)
    except S3Error:
        raise HTTPException(404, "stored file missing for this contract")
    base = contract.filename or f"contract-{contract_id}.pdf"
    base = base[:-4] if base.lower().endswith(".pdf") else base
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{base} - executed.pdf"'},
    )
