from datetime import datetime
from typing import Iterable, Optional

from .lifecycle import AWAITING_SIGNATURE, SIGNED_STATES, ContractStatus, ContractType, effective_status
from .models import Contract

RECENT_SIGNATURES = 5


def _percent(part: int, whole: int) -> int:
    return round(part / whole * 100) if whole else 0


def contract_analytics(contracts: Iterable[Contract], now: Optional[datetime] = None) -> dict:
    contracts = list(contracts)
    statuses = [effective_status(c, now) for c in contracts]
    total = len(contracts)
    signed = sum(1 for s in statuses if s in SIGNED_STATES)
    pending = sum(1 for s in statuses if s in AWAITING_SIGNATURE)
    expired = sum(1 for s in statuses if s is ContractStatus.EXPIRED)
    draft = sum(1 for s in statuses if s is ContractStatus.DRAFT)

    type_breakdown = {}
    for kind in ContractType:
        count = sum(1 for c in contracts if c.contract_type == kind.value)
        type_breakdown[kind.value] = {"count": count, "percent": _percent(count, total)}

    recent = sorted((c for c in contracts if c.signed_at), key=lambda c: c.signed_at, reverse=True)
    return {
        "total": total,
        "signed": signed,
        "pending": pending,
        "expired": expired,
        "draft": draft,
        "signature_rate": _percent(signed, total),
        "type_breakdown": type_breakdown,
        "recent_activity": [
            {"contract_id": c.id, "title": c.title, "client_id": c.client_id, "signed_at": c.signed_at}
            for c in recent[:RECENT_SIGNATURES]
        ],
    }
