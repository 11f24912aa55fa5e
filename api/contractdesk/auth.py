from typing import Optional
from fastapi import Depends, Header, HTTPException, Query, status
from itsdangerous import BadSignature
from sqlmodel import Session

from . import config
from .db import get_session
from .models import UserProfile
from .utils import make_token, read_token

# The service never checks credentials. It trusts a signed token naming an
# already-resolved user profile.

def issue_access_token(user: UserProfile) -> str:
    return make_token({"user_id": user.id})


def resolve_identity(
    x_access_token: Optional[str] = Header(default=None, alias="X-Access-Token"),
    token: Optional[str] = Query(default=None),
    session: Session = Depends(get_session),
) -> UserProfile:
    candidate = x_access_token or token
    if not candidate:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing access token")
    try:
        data = read_token(candidate)
    except BadSignature:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid access token")
    user = session.get(UserProfile, data.get("user_id"))
    if not user:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Unknown user")
    return user


def require_producer(user: UserProfile = Depends(resolve_identity)) -> UserProfile:
    if user.role != "admin":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Producer access required")
    return user


def require_admin_token(
    x_access_token: Optional[str] = Header(default=None, alias="X-Access-Token"),
):
    if not config.ADMIN_ACCESS_TOKEN or x_access_token != config.ADMIN_ACCESS_TOKEN:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return True
