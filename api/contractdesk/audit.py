"""Append-only audit trail for contract actions.

Entries are hash chained per contract: each row stores the previous row's
hash and its own hash over ``prev_hash + payload``.
"""

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from sqlmodel import Session, select

from .models import AuditLog
from .utils import canonical_json, sha256_bytes

logger = logging.getLogger(__name__)

GENESIS_HASH = "0" * 64


class AuditAction(str, Enum):
    CONTRACT_CREATED = "contract_created"
    CONTRACT_SENT = "contract_sent"
    CONTRACT_SIGNED = "contract_signed"
    CONTRACT_VIEWED = "contract_viewed"
    CONTRACT_DELETED = "contract_deleted"
    CONTRACT_UPDATED = "contract_updated"


@dataclass(frozen=True)
class ActionPresentation:
    icon: str
    color: str
    text: str


PRESENTATION = {
    AuditAction.CONTRACT_CREATED: ActionPresentation("plus", "blue", "Created contract"),
    AuditAction.CONTRACT_SENT: ActionPresentation("send", "purple", "Sent contract"),
    AuditAction.CONTRACT_SIGNED: ActionPresentation("pen-tool", "green", "Signed contract"),
    AuditAction.CONTRACT_VIEWED: ActionPresentation("eye", "gray", "Viewed contract"),
    AuditAction.CONTRACT_DELETED: ActionPresentation("trash-2", "red", "Deleted contract"),
    AuditAction.CONTRACT_UPDATED: ActionPresentation("file-text", "amber", "Updated contract"),
}


def parse_action(raw: str) -> AuditAction:
    try:
        return AuditAction(raw)
    except ValueError:
        raise ValueError(f"unknown audit action: {raw!r}") from None


def present(action: AuditAction) -> ActionPresentation:
    return PRESENTATION[AuditAction(action)]


def append_audit(
    session: Session,
    contract_id: int,
    user_id: int,
    action: AuditAction,
    details: Optional[dict] = None,
) -> AuditLog:
    action = AuditAction(action)
    last = session.exec(
        select(AuditLog).where(AuditLog.contract_id == contract_id).order_by(AuditLog.id.desc())
    ).first()
    prev_hash = last.hash if last else GENESIS_HASH
    details = details or {}
    payload = {"user_id": user_id, "action": action.value, "details": details}
    entry = AuditLog(
        contract_id=contract_id,
        user_id=user_id,
        action=action.value,
        details_json=canonical_json(details),
        prev_hash=prev_hash,
    )
    entry.hash = sha256_bytes((prev_hash + canonical_json(payload)).encode())
    session.add(entry)
    session.commit()
    logger.info("audit %s contract=%s user=%s", action.value, contract_id, user_id)
    return entry


def verify_chain(session: Session, contract_id: int) -> bool:
    entries = session.exec(
        select(AuditLog).where(AuditLog.contract_id == contract_id).order_by(AuditLog.id)
    ).all()
    prev_hash = GENESIS_HASH
    for entry in entries:
        payload = {
            "user_id": entry.user_id,
            "action": entry.action,
            "details": json.loads(entry.details_json or "{}"),
        }
        if entry.prev_hash != prev_hash:
            return False
        if entry.hash != sha256_bytes((prev_hash + canonical_json(payload)).encode()):
            return False
        prev_hash = entry.hash
    return True


def serialize_entry(entry: AuditLog, user=None, contract=None) -> dict:
    action = parse_action(entry.action)
    look = present(action)
    return {
        "id": entry.id,
        "contract_id": entry.contract_id,
        "contract_title": contract.title if contract else None,
        "user_id": entry.user_id,
        "user": (user.full_name or user.email) if user else "Unknown User",
        "action": action.value,
        "icon": look.icon,
        "color": look.color,
        "text": look.text,
        "details": json.loads(entry.details_json or "{}"),
        "created_at": entry.created_at,
    }
