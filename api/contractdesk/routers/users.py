from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session, select
from ..db import get_session
from ..models import UserProfile
from ..schemas import UserCreate
from ..auth import issue_access_token, require_admin_token, resolve_identity

router = APIRouter()

def _serialize_user(user: UserProfile):
    return {"id": user.id, "email": user.email, "full_name": user.full_name, "role": user.role}

@router.post("", status_code=201)
def register_user(
    payload: UserCreate,
    session: Session = Depends(get_session),
    ok=Depends(require_admin_token),
):
    email = payload.email.strip().lower()
    existing = session.exec(select(UserProfile).where(UserProfile.email == email)).first()
    if existing:
        raise HTTPException(status.HTTP_409_CONFLICT, "user already exists")
    user = UserProfile(email=email, full_name=payload.full_name, role=payload.role)
    session.add(user)
    session.commit()
    session.refresh(user)
    return {**_serialize_user(user), "access_token": issue_access_token(user)}

@router.get("/me")
def whoami(user: UserProfile = Depends(resolve_identity)):
    return _serialize_user(user)
