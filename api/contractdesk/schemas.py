from pydantic import BaseModel, Field
from typing import List, Literal, Optional, Tuple

from .annotation.fields import FieldType, FormField
from .config import DEFAULT_EXPIRY_DAYS
from .lifecycle import ContractType

class UserCreate(BaseModel):
    email: str
    full_name: Optional[str] = None
    role: Literal["admin", "client"] = "client"

class ContractUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    contract_type: Optional[ContractType] = None
    client_email: Optional[str] = None

class ContractSend(BaseModel):
    expiry_days: int = Field(default=DEFAULT_EXPIRY_DAYS, ge=1, le=365)

class FieldsReplace(BaseModel):
    fields: List[FormField]

class FieldPlace(BaseModel):
    type: FieldType
    x: float  # viewport pixels
    y: float
    scale: float = Field(default=1.0, gt=0)
    page: int = Field(default=1, ge=1)

class CaptureSubmit(BaseModel):
    mode: Literal["draw", "type"] = "draw"
    strokes: List[List[Tuple[float, float]]] = []  # surface points, one list per stroke
    text: Optional[str] = None
    width: int = Field(default=600, gt=0, le=2000)
    height: int = Field(default=192, gt=0, le=1000)

class TextSubmit(BaseModel):
    value: str
