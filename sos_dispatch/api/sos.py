"""SOS request API: requester, volunteer and admin operations on one record."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from sos_dispatch.core.broadcaster import Broadcaster
from sos_dispatch.core.deps import get_broadcaster, get_identity, http_error, require_admin, require_volunteer
from sos_dispatch.core.errors import DispatchError
from sos_dispatch.core.identity import Identity
from sos_dispatch.db.session import get_db
from sos_dispatch.schemas.chat import ChatAppend
from sos_dispatch.schemas.sos import ChatEvent, SosAssign, SosCreate, SosResponse, SosStatusUpdate
from sos_dispatch.services import chat_service, sos_service

router = APIRouter(prefix="/sos", tags=["sos"])


@router.post("", response_model=SosResponse, status_code=status.HTTP_201_CREATED)
def create_sos(
    data: SosCreate,
    db: Session = Depends(get_db),
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    """Anonymous requester raises an SOS. Latitude and longitude are required."""
    try:
        return sos_service.create_sos(db, broadcaster, data)
    except DispatchError as e:
        raise http_error(e) from e


@router.get("/{sos_id}", response_model=SosResponse)
def get_sos(sos_id: str, db: Session = Depends(get_db)):
    """Current state of a request, used by clients to reconcile after reconnecting."""
    try:
        return sos_service.get_sos(db, sos_id)
    except DispatchError as e:
        raise http_error(e) from e


@router.patch("/{sos_id}/cancel", response_model=SosResponse)
def cancel_sos(
    sos_id: str,
    db: Session = Depends(get_db),
    broadcaster: Broadcaster = Depends(get_broadcaster),
    identity: Identity = Depends(get_identity),
):
    """Requester cancels their SOS."""
    try:
        return sos_service.cancel_sos(db, broadcaster, sos_id, identity)
    except DispatchError as e:
        raise http_error(e) from e


@router.put("/{sos_id}/accept", response_model=SosResponse)
def accept_sos(
    sos_id: str,
    db: Session = Depends(get_db),
    broadcaster: Broadcaster = Depends(get_broadcaster),
    identity: Identity = Depends(require_volunteer),
):
    """Volunteer claims a pending SOS. 409 if someone else got there first."""
    try:
        return sos_service.accept_sos(db, broadcaster, sos_id, identity)
    except DispatchError as e:
        raise http_error(e) from e


@router.put("/{sos_id}/status", response_model=SosResponse)
def update_status(
    sos_id: str,
    data: SosStatusUpdate,
    db: Session = Depends(get_db),
    broadcaster: Broadcaster = Depends(get_broadcaster),
    identity: Identity = Depends(require_volunteer),
):
    """Assigned volunteer marks the SOS InProgress or Completed."""
    try:
        return sos_service.set_status(db, broadcaster, sos_id, identity, data.status)
    except DispatchError as e:
        raise http_error(e) from e


@router.put("/{sos_id}/assign", response_model=SosResponse)
def assign_volunteer(
    sos_id: str,
    data: SosAssign,
    db: Session = Depends(get_db),
    broadcaster: Broadcaster = Depends(get_broadcaster),
    identity: Identity = Depends(require_admin),
):
    """Admin assigns a volunteer (status defaults to Accepted) or, without volunteerId, moves the status only."""
    try:
        return sos_service.assign_volunteer(db, broadcaster, sos_id, identity, data.volunteer_id, data.status)
    except DispatchError as e:
        raise http_error(e) from e


@router.post("/{sos_id}/chat", response_model=ChatEvent, response_model_by_alias=True)
def append_chat(
    sos_id: str,
    data: ChatAppend,
    db: Session = Depends(get_db),
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    """Post to the SOS chat thread. Open to requester, volunteers and admin."""
    try:
        return chat_service.append_chat(db, broadcaster, sos_id, data.sender, data.message)
    except DispatchError as e:
        raise http_error(e) from e
