from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from .models import Contract
from .utils import utcnow


class ContractStatus(str, Enum):
    DRAFT = "draft"
    SENT = "sent"
    PENDING = "pending"
    SIGNED = "signed"
    COMPLETED = "completed"
    EXPIRED = "expired"


class ContractType(str, Enum):
    PERFORMER = "performer"
    MANAGEMENT = "management"
    OTHER = "other"


AWAITING_SIGNATURE = (ContractStatus.SENT, ContractStatus.PENDING)
SIGNED_STATES = (ContractStatus.SIGNED, ContractStatus.COMPLETED)
CLIENT_VISIBLE = AWAITING_SIGNATURE + SIGNED_STATES + (ContractStatus.EXPIRED,)


def expiry_from(days: int, now: Optional[datetime] = None) -> datetime:
    if days < 1:
        raise ValueError("expiry must be at least one day")
    return (now or utcnow()) + timedelta(days=days)


def is_expired(contract: Contract, now: Optional[datetime] = None) -> bool:
    return contract.expires_at is not None and contract.expires_at < (now or utcnow())


def effective_status(contract: Contract, now: Optional[datetime] = None) -> ContractStatus:
    """Stored status, except that an unsigned contract past its expiry reads as expired."""
    status = ContractStatus(contract.status)
    if status in AWAITING_SIGNATURE and is_expired(contract, now):
        return ContractStatus.EXPIRED
    return status


def can_send(contract: Contract) -> bool:
    return contract.status == ContractStatus.DRAFT.value and contract.client_id is not None


def can_sign(contract: Contract, now: Optional[datetime] = None) -> bool:
    return effective_status(contract, now) in AWAITING_SIGNATURE
