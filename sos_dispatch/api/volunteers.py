"""Volunteer registration, login and work queue."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from sos_dispatch.core.deps import http_error, require_volunteer
from sos_dispatch.core.errors import DispatchError
from sos_dispatch.core.identity import Identity
from sos_dispatch.db.session import get_db
from sos_dispatch.schemas.auth import LoginRequest, TokenResponse, VolunteerRegister, VolunteerResponse
from sos_dispatch.schemas.sos import SosResponse
from sos_dispatch.services import auth_service, sos_service

router = APIRouter(prefix="/volunteers", tags=["volunteers"])


@router.post("/register", response_model=VolunteerResponse, status_code=status.HTTP_201_CREATED)
def register(data: VolunteerRegister, db: Session = Depends(get_db)):
    """Register a volunteer. The account stays Pending until an admin approves it."""
    try:
        return auth_service.register_volunteer(db, data)
    except DispatchError as e:
        raise http_error(e) from e


@router.post("/login", response_model=TokenResponse)
def login(data: LoginRequest, db: Session = Depends(get_db)):
    """Login and return access token. Only Approved volunteers get one."""
    try:
        return auth_service.login_volunteer(db, data.email, data.password)
    except DispatchError as e:
        raise http_error(e) from e


@router.get("/my-sos", response_model=list[SosResponse])
def my_sos(
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_volunteer),
):
    """Pending requests plus the ones assigned to the caller."""
    return sos_service.list_open_or_mine(db, identity)
