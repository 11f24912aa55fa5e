# Background sealing. Start with:
#   celery -A contractdesk.worker worker -Q sealing
import logging

from celery import Celery
from sqlmodel import Session

from . import db
from .config import REDIS_URL, WORKER_QUEUE
from .models import Contract
from .sealing import seal_contract

logger = logging.getLogger(__name__)

cel = Celery("contractdesk", broker=REDIS_URL, backend=REDIS_URL)

def run_seal(contract_id: int):
    with Session(db.engine) as session:
        contract = session.get(Contract, contract_id)
        if not contract:
            logger.warning("seal requested for missing contract %s", contract_id)
            return None
        artifact = seal_contract(session, contract)
        return {"pdf": artifact.s3_key_pdf, "audit": artifact.s3_key_audit_json, "sha256_final": artifact.sha256_final}

@cel.task(name="seal_contract", queue=WORKER_QUEUE)
def seal_contract_task(contract_id: int):
    return run_seal(contract_id)
