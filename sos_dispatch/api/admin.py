"""Admin console API."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from sos_dispatch.core.broadcaster import Broadcaster
from sos_dispatch.core.deps import get_broadcaster, http_error, require_admin
from sos_dispatch.core.errors import DispatchError
from sos_dispatch.core.identity import Identity
from sos_dispatch.db.session import get_db
from sos_dispatch.schemas.auth import LoginRequest, TokenResponse, VolunteerResponse, VolunteerStatusUpdate
from sos_dispatch.schemas.sos import SosAnalytics, SosResponse
from sos_dispatch.services import auth_service, sos_service, volunteer_service

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/login", response_model=TokenResponse)
def login(data: LoginRequest, db: Session = Depends(get_db)):
    try:
        return auth_service.login_admin(db, data.email, data.password)
    except DispatchError as e:
        raise http_error(e) from e


@router.get("/sos", response_model=list[SosResponse])
def list_sos(
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_admin),
):
    """All SOS requests, newest first."""
    return sos_service.list_all(db, identity)


@router.patch("/sos/{sos_id}/cancel", response_model=SosResponse)
def cancel_sos(
    sos_id: str,
    db: Session = Depends(get_db),
    broadcaster: Broadcaster = Depends(get_broadcaster),
    identity: Identity = Depends(require_admin),
):
    """Admin cancels an open SOS and releases its volunteer."""
    try:
        return sos_service.cancel_sos(db, broadcaster, sos_id, identity)
    except DispatchError as e:
        raise http_error(e) from e


@router.get("/analytics", response_model=SosAnalytics)
def analytics(
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_admin),
):
    return sos_service.analytics(db, identity)


@router.get("/volunteers", response_model=list[VolunteerResponse])
def list_volunteers(
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_admin),
):
    return volunteer_service.list_volunteers(db, identity)


@router.put("/volunteers/{volunteer_id}/status", response_model=VolunteerResponse)
def update_volunteer_status(
    volunteer_id: int,
    data: VolunteerStatusUpdate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_admin),
):
    """Approve or suspend a volunteer."""
    try:
        return volunteer_service.set_volunteer_status(db, identity, volunteer_id, data.status)
    except DispatchError as e:
        raise http_error(e) from e
