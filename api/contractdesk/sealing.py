# Stamps completed field values onto the original contract PDF and appends a
# certificate page. Runs inline from the signing route, or from the Celery
# worker when SEAL_MODE=celery.

import datetime
import hashlib
import json
import logging
from io import BytesIO
from typing import List

from reportlab.lib.pagesizes import letter
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas
from pypdf import PdfReader, PdfWriter
from sqlmodel import Session, select

from .annotation.fields import FieldType, FormField
from .field_store import load_fields
from .models import AuditLog, Contract, SignedArtifact
from .storage import get_bytes, put_bytes
from .utils import b64png_to_bytes

logger = logging.getLogger(__name__)

def _draw_ops(fields: List[FormField], page_height: float):
    ops = []
    for f in fields:
        if not f.completed or f.value is None:
            continue
        # fields are stored top-left/y-down; PDF space is bottom-left/y-up
        bottom = page_height - f.y - f.height
        if f.type in (FieldType.TEXT, FieldType.DATE):
            ops.append({"type": "text", "x": f.x + 2, "y": bottom + f.height / 2 - 3, "text": str(f.value)})
        elif f.type is FieldType.CHECKBOX:
            ops.append({"type": "checkbox", "x": f.x, "y": bottom, "size": min(f.width, f.height), "checked": bool(f.value)})
        elif f.type.is_image:
            ops.append({"type": "signature", "x": f.x, "y": bottom, "w": f.width, "h": f.height, "png": b64png_to_bytes(f.value)})
    return ops

def _overlay_page(width, height, draw_ops):
    buf = BytesIO()
    c = canvas.Canvas(buf, pagesize=(width, height))
    for op in draw_ops:
        t = op.get("type")
        if t == "text":
            c.setFont("Helvetica", 10)
            c.drawString(op["x"], op["y"], op["text"])
        elif t == "checkbox":
            x, y, s = op["x"], op["y"], op["size"]
            c.rect(x, y, s, s, stroke=1, fill=0)
            if op.get("checked"):
                c.line(x, y, x + s, y + s); c.line(x, y + s, x + s, y)
        elif t == "signature":
            png = ImageReader(BytesIO(op["png"]))
            c.drawImage(png, op["x"], op["y"], width=op["w"], height=op["h"], mask="auto", preserveAspectRatio=True)
    c.showPage()
    c.save()
    return buf.getvalue()

def _append_certificate(writer: PdfWriter, audit: dict):
    buf = BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.setFont("Helvetica-Bold", 14)
    c.drawString(72, 750, "Certificate of Completion")
    c.setFont("Helvetica", 10)
    y = 720
    for k, v in audit.items():
        line = f"{k}: {v}"
        c.drawString(72, y, line[:95])
        y -= 14
        if y < 72:
            c.showPage(); y = 750
    c.showPage(); c.save()
    buf.seek(0)
    writer.append_pages_from_reader(PdfReader(buf))

def seal_pdf(original_pdf_bytes: bytes, contract_id: int, fields: List[FormField], audit_summary: dict):
    reader = PdfReader(BytesIO(original_pdf_bytes))
    writer = PdfWriter()
    num_pages = len(reader.pages)
    for page in reader.pages:
        writer.add_page(page)

    by_page = {}
    for f in fields:
        if 1 <= f.page <= num_pages:
            by_page.setdefault(f.page - 1, []).append(f)
        else:
            logger.warning("contract %s field %s is on page %s of %s, skipped", contract_id, f.id, f.page, num_pages)

    for pidx, page_fields in by_page.items():
        page = reader.pages[pidx]
        width = float(page.mediabox.width)
        height = float(page.mediabox.height)
        ops = _draw_ops(page_fields, height)
        if not ops:
            continue
        overlay_reader = PdfReader(BytesIO(_overlay_page(width, height, ops)))
        writer.pages[pidx].merge_page(overlay_reader.pages[0])

    audit = {
        "contract_id": contract_id,
        "sha256_original": hashlib.sha256(original_pdf_bytes).hexdigest(),
        "sealed_at": datetime.datetime.now(datetime.timezone.utc).isoformat(),
        **audit_summary,
    }
    _append_certificate(writer, audit)

    out_buf = BytesIO()
    writer.write(out_buf)
    final_bytes = out_buf.getvalue()
    sha_final = hashlib.sha256(final_bytes).hexdigest()
    audit_json = json.dumps({**audit, "sha256_final": sha_final}, default=str)
    return final_bytes, audit_json, sha_final

def seal_contract(session: Session, contract: Contract) -> SignedArtifact:
    existing = session.exec(select(SignedArtifact).where(SignedArtifact.contract_id == contract.id)).first()
    if existing:
        return existing
    fields = load_fields(session, contract.id)
    events = session.exec(select(AuditLog).where(AuditLog.contract_id == contract.id).order_by(AuditLog.id)).all()
    summary = {
        "title": contract.title,
        "signed_at": contract.signed_at,
        "fields_completed": sum(1 for f in fields if f.completed),
        "audit_entries": len(events),
        "audit_head": events[-1].hash if events else None,
    }
    original = get_bytes(contract.s3_key)
    final_pdf, audit_json, sha_final = seal_pdf(original, contract.id, fields, summary)
    key_pdf = f"contracts/{contract.id}/final/{contract.id}.pdf"
    key_audit = f"contracts/{contract.id}/final/{contract.id}.audit.json"
    put_bytes(key_pdf, final_pdf, content_type="application/pdf")
    put_bytes(key_audit, audit_json.encode(), content_type="application/json")
    artifact = SignedArtifact(contract_id=contract.id, s3_key_pdf=key_pdf, s3_key_audit_json=key_audit, sha256_final=sha_final)
    session.add(artifact)
    session.commit()
    session.refresh(artifact)
    logger.info("sealed contract %s sha256=%s", contract.id, sha_final)
    return artifact
