from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import or_
from sqlmodel import Session, select
from ..db import get_session
from ..models import AuditLog, Contract, UserProfile
from ..auth import require_producer
from ..audit import parse_action, present, serialize_entry, verify_chain

router = APIRouter()

AUDIT_PAGE_SIZE = 100

def _visible_to(user: UserProfile):
    # entries of deleted contracts stay visible to whoever wrote them
    own_contracts = select(Contract.id).where(Contract.created_by == user.id)
    return or_(AuditLog.contract_id.in_(own_contracts), AuditLog.user_id == user.id)

@router.get("")
def list_audit_entries(
    action: Optional[str] = None,
    contract_id: Optional[int] = None,
    limit: int = Query(default=AUDIT_PAGE_SIZE, ge=1, le=500),
    session: Session = Depends(get_session),
    user: UserProfile = Depends(require_producer),
):
    if action and action != "all":
        try:
            action = parse_action(action).value
        except ValueError as exc:
            raise HTTPException(422, str(exc))
    else:
        action = None

    visible = _visible_to(user)
    actions_stmt = select(AuditLog.action).where(visible).distinct()
    stmt = select(AuditLog).where(visible)
    if contract_id is not None:
        actions_stmt = actions_stmt.where(AuditLog.contract_id == contract_id)
        stmt = stmt.where(AuditLog.contract_id == contract_id)
    if action:
        stmt = stmt.where(AuditLog.action == action)
    stmt = stmt.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).limit(limit)
    entries = session.exec(stmt).all()
    actions = sorted(session.exec(actions_stmt).all())

    users = {}
    contracts = {}
    results = []
    for e in entries:
        if e.user_id not in users:
            users[e.user_id] = session.get(UserProfile, e.user_id)
        if e.contract_id not in contracts:
            contracts[e.contract_id] = session.get(Contract, e.contract_id)
        results.append(serialize_entry(e, users[e.user_id], contracts[e.contract_id]))
    return {
        "entries": results,
        "actions": [{"action": a, "text": present(parse_action(a)).text} for a in actions],
    }

@router.get("/{contract_id}/verify")
def verify_contract_trail(
    contract_id: int,
    session: Session = Depends(get_session),
    user: UserProfile = Depends(require_producer),
):
    contract = session.get(Contract, contract_id)
    if contract:
        allowed = contract.created_by == user.id
    else:
        allowed = session.exec(
            select(AuditLog.id).where(AuditLog.contract_id == contract_id, AuditLog.user_id == user.id)
        ).first() is not None
    if not allowed:
        raise HTTPException(404, "contract not found")
    return {"contract_id": contract_id, "valid": verify_chain(session, contract_id)}
