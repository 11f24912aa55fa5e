from typing import Optional
from datetime import datetime
from sqlmodel import SQLModel, Field as ORMField
from .utils import utcnow

class UserProfile(SQLModel, table=True):
    id: Optional[int] = ORMField(default=None, primary_key=True)
    email: str = ORMField(index=True)
    full_name: Optional[str] = None
    role: str = "client"  # admin|client
    created_at: datetime = ORMField(default_factory=utcnow)
    updated_at: datetime = ORMField(default_factory=utcnow)

class Contract(SQLModel, table=True):
    id: Optional[int] = ORMField(default=None, primary_key=True)
    title: str
    description: Optional[str] = None
    contract_type: str = "other"  # performer|management|other
    status: str = "draft"  # draft|sent|pending|signed|completed|expired
    filename: Optional[str] = None
    s3_key: Optional[str] = None
    sha256: Optional[str] = None
    client_id: Optional[int] = None
    created_by: int
    created_at: datetime = ORMField(default_factory=utcnow)
    updated_at: datetime = ORMField(default_factory=utcnow)
    expires_at: Optional[datetime] = None
    signed_at: Optional[datetime] = None

class ContractFormField(SQLModel, table=True):
    id: Optional[int] = ORMField(default=None, primary_key=True)
    contract_id: int = ORMField(index=True)
    field_id: str
    field_type: str  # signature|initial|checkbox|date|text
    position: int = 0
    field_data_json: str = "{}"
    created_by: int
    created_at: datetime = ORMField(default_factory=utcnow)

class ContractSignature(SQLModel, table=True):
    id: Optional[int] = ORMField(default=None, primary_key=True)
    contract_id: int = ORMField(index=True)
    signer_id: int
    field_id: str
    field_type: str
    signature_data: str
    signed_at: datetime = ORMField(default_factory=utcnow)
    ip_address: Optional[str] = None

class AuditLog(SQLModel, table=True):
    id: Optional[int] = ORMField(default=None, primary_key=True)
    contract_id: int = ORMField(index=True)
    user_id: int
    action: str  # see audit.AuditAction
    details_json: str = "{}"
    created_at: datetime = ORMField(default_factory=utcnow)
    prev_hash: Optional[str] = None
    hash: Optional[str] = None

class SignedArtifact(SQLModel, table=True):
    id: Optional[int] = ORMField(default=None, primary_key=True)
    contract_id: int = ORMField(index=True)
    s3_key_pdf: str
    s3_key_audit_json: str
    sha256_final: str
    completed_at: datetime = ORMField(default_factory=utcnow)
