import json
from typing import List, Sequence

from sqlmodel import Session, select, delete

from .annotation.fields import FormField
from .models import ContractFormField
from .utils import canonical_json


def load_fields(session: Session, contract_id: int) -> List[FormField]:
    rows = session.exec(
        select(ContractFormField)
        .where(ContractFormField.contract_id == contract_id)
        .order_by(ContractFormField.position, ContractFormField.id)
    ).all()
    return [FormField.model_validate(json.loads(row.field_data_json)) for row in rows]


def save_fields(session: Session, contract_id: int, fields: Sequence[FormField], user_id: int, commit: bool = True):
    """Replace the stored field collection of a contract, keeping its order."""
    ids = [f.id for f in fields]
    if len(set(ids)) != len(ids):
        raise ValueError("field ids must be unique")
    authors = {
        row.field_id: row.created_by
        for row in session.exec(select(ContractFormField).where(ContractFormField.contract_id == contract_id)).all()
    }
    session.exec(delete(ContractFormField).where(ContractFormField.contract_id == contract_id))
    for position, field in enumerate(fields):
        session.add(ContractFormField(
            contract_id=contract_id,
            field_id=field.id,
            field_type=field.type.value,
            position=position,
            field_data_json=canonical_json(field.model_dump(mode="json")),
            created_by=authors.get(field.id, user_id),
        ))
    if commit:
        session.commit()
    else:
        session.flush()
