"""SOS lifecycle: creation, assignment and status transitions.

Every transition is a single conditional UPDATE guarded by the expected
pre-state, so two volunteers racing to accept the same request cannot both
win. When the guard does not match, the record is re-read only to explain
the rejection.
"""

from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy import func, or_, select, update
from sqlalchemy.orm import Session

from sos_dispatch.core.broadcaster import Broadcaster, Event, EventName
from sos_dispatch.core.errors import (
    Conflict,
    DispatchError,
    Forbidden,
    InvalidTransition,
    NotFound,
    ValidationError,
)
from sos_dispatch.core.identity import Identity, Role, require_role
from sos_dispatch.models.sos_request import (
    ASSIGNED_STATUSES,
    OPEN_STATUSES,
    SosRequest,
    SosStatus,
    new_sos_id,
)
from sos_dispatch.models.volunteer import Volunteer, VolunteerStatus
from sos_dispatch.schemas.sos import (
    ChatMessageResponse,
    SosAnalytics,
    SosCreate,
    SosResponse,
    VolunteerRef,
)

logger = logging.getLogger(__name__)

# Statuses an assigned volunteer may move a request into
VOLUNTEER_TARGETS = frozenset({SosStatus.IN_PROGRESS, SosStatus.COMPLETED})


def _text(value: str | None, default: str) -> str:
    if value is None or not value.strip():
        return default
    return value.strip()


def _parse_status(value: SosStatus | str) -> SosStatus:
    try:
        return SosStatus(value)
    except ValueError as exc:
        allowed = ", ".join(s.value for s in SosStatus)
        raise ValidationError(f"Invalid status. Must be one of: {allowed}") from exc


def _volunteer_refs(db: Session, ids: Iterable[int | None]) -> dict[int, VolunteerRef]:
    wanted = {i for i in ids if i is not None}
    if not wanted:
        return {}
    rows = db.execute(select(Volunteer.id, Volunteer.name).where(Volunteer.id.in_(wanted))).all()
    return {row.id: VolunteerRef(id=row.id, name=row.name) for row in rows}


def _to_response(sos: SosRequest, refs: dict[int, VolunteerRef]) -> SosResponse:
    """Denormalized view; a dangling volunteer reference resolves to None."""
    return SosResponse(
        id=sos.id,
        requester_name=sos.requester_name,
        phone=sos.phone,
        message=sos.message,
        provided_address=sos.provided_address,
        latitude=sos.latitude,
        longitude=sos.longitude,
        status=SosStatus(sos.status),
        assigned_volunteer_id=sos.assigned_volunteer_id,
        assigned_volunteer=refs.get(sos.assigned_volunteer_id) if sos.assigned_volunteer_id is not None else None,
        chat=[ChatMessageResponse.model_validate(m) for m in sos.chat],
        created_at=sos.created_at,
        updated_at=sos.updated_at,
    )


def _get_or_404(db: Session, sos_id: str) -> SosRequest:
    sos = db.get(SosRequest, sos_id)
    if sos is None:
        raise NotFound("SOS not found")
    return sos


def get_sos(db: Session, sos_id: str) -> SosResponse:
    """Current state of one request with its volunteer resolved."""
    sos = _get_or_404(db, sos_id)
    return _to_response(sos, _volunteer_refs(db, [sos.assigned_volunteer_id]))


def _transition(db: Session, sos_id: str, expected: Iterable[SosStatus], values: dict, *guards) -> bool:
    """Apply `values` only if the row is still in one of `expected` (and `guards` hold)."""
    stmt = (
        update(SosRequest)
        .where(
            SosRequest.id == sos_id,
            SosRequest.status.in_([s.value for s in expected]),
            *guards,
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    result = db.execute(stmt)
    if result.rowcount != 1:
        db.rollback()
        return False
    db.commit()
    return True


def _publish_fresh(db: Session, broadcaster: Broadcaster, sos_id: str, event: EventName) -> SosResponse:
    db.expire_all()
    view = get_sos(db, sos_id)
    broadcaster.publish(Event(event, sos_id, view.model_dump(mode="json")))
    return view


def _reject(error: DispatchError, op: str, sos_id: str) -> DispatchError:
    logger.info("Rejected %s on sos=%s: %s", op, sos_id, error)
    return error


def create_sos(db: Session, broadcaster: Broadcaster, data: SosCreate) -> SosResponse:
    """Persist a new Pending request and announce it to volunteers."""
    if data.latitude is None or data.longitude is None:
        raise ValidationError("Latitude and Longitude are required.")

    sos = SosRequest(
        id=new_sos_id(),
        requester_name=_text(data.name, "Anonymous"),
        phone=_text(data.phone, "Not provided"),
        message=_text(data.message, "No message provided"),
        provided_address=_text(data.user_provided_address, "Address not provided"),
        latitude=float(data.latitude),
        longitude=float(data.longitude),
        status=SosStatus.PENDING.value,
        assigned_volunteer_id=None,
    )
    with broadcaster.sequenced(sos.id):
        db.add(sos)
        db.commit()
        view = _publish_fresh(db, broadcaster, sos.id, EventName.NEW_SOS)
    logger.info("SOS created: sos=%s at (%s, %s)", view.id, view.latitude, view.longitude)
    return view


def accept_sos(db: Session, broadcaster: Broadcaster, sos_id: str, identity: Identity) -> SosResponse:
    """Volunteer claims a Pending request. Re-accepting one's own request is a no-op."""
    require_role(identity, Role.VOLUNTEER)
    if identity.role is not Role.VOLUNTEER:
        raise Forbidden("Only volunteers can accept; admins assign volunteers instead")
    volunteer_id = identity.subject_id

    with broadcaster.sequenced(sos_id):
        sos = _get_or_404(db, sos_id)
        if sos.status == SosStatus.ACCEPTED.value and sos.assigned_volunteer_id == volunteer_id:
            return get_sos(db, sos_id)

        won = _transition(
            db,
            sos_id,
            [SosStatus.PENDING],
            {"status": SosStatus.ACCEPTED.value, "assigned_volunteer_id": volunteer_id},
            or_(
                SosRequest.assigned_volunteer_id.is_(None),
                SosRequest.assigned_volunteer_id == volunteer_id,
            ),
        )
        if not won:
            current = db.get(SosRequest, sos_id)
            if current is None:
                raise _reject(NotFound("SOS not found"), "accept", sos_id)
            if current.assigned_volunteer_id not in (None, volunteer_id) and not SosStatus(current.status).is_terminal:
                raise _reject(Conflict("SOS already assigned to another volunteer."), "accept", sos_id)
            raise _reject(InvalidTransition(f"Cannot accept SOS with status {current.status}."), "accept", sos_id)

        view = _publish_fresh(db, broadcaster, sos_id, EventName.STATUS_UPDATED)
    logger.info("SOS accepted: sos=%s volunteer=%s", sos_id, volunteer_id)
    return view


def set_status(
    db: Session,
    broadcaster: Broadcaster,
    sos_id: str,
    identity: Identity,
    new_status: SosStatus | str,
) -> SosResponse:
    """The assigned volunteer moves their request to InProgress or Completed."""
    require_role(identity, Role.VOLUNTEER)

    with broadcaster.sequenced(sos_id):
        sos = _get_or_404(db, sos_id)
        # Ownership is by identity, not role: admins are never the assignee
        if identity.role is not Role.VOLUNTEER or sos.assigned_volunteer_id != identity.subject_id:
            raise _reject(Forbidden("Not authorized to update this SOS"), "set_status", sos_id)

        target = _parse_status(new_status)
        if target not in VOLUNTEER_TARGETS:
            raise _reject(ValidationError("Invalid status value"), "set_status", sos_id)

        moved = _transition(
            db,
            sos_id,
            [SosStatus.ACCEPTED, SosStatus.IN_PROGRESS],
            {"status": target.value},
            SosRequest.assigned_volunteer_id == identity.subject_id,
        )
        if not moved:
            current = db.get(SosRequest, sos_id)
            if current is None:
                raise _reject(NotFound("SOS not found"), "set_status", sos_id)
            if current.assigned_volunteer_id != identity.subject_id:
                raise _reject(Forbidden("Not authorized to update this SOS"), "set_status", sos_id)
            raise _reject(
                InvalidTransition(f"Cannot move SOS from {current.status} to {target.value}."),
                "set_status",
                sos_id,
            )

        view = _publish_fresh(db, broadcaster, sos_id, EventName.STATUS_UPDATED)
    logger.info("SOS status changed: sos=%s status=%s volunteer=%s", sos_id, target.value, identity.subject_id)
    return view


def assign_volunteer(
    db: Session,
    broadcaster: Broadcaster,
    sos_id: str,
    identity: Identity,
    volunteer_id: int | None,
    status: SosStatus | str | None = None,
) -> SosResponse:
    """Admin binds a volunteer to an open request, overriding any current assignment.

    Without `volunteer_id` only the status moves and the current assignee is
    kept, e.g. to close out a request the volunteer never completed.
    """
    require_role(identity, Role.ADMIN)
    if volunteer_id is None and status is None:
        raise ValidationError("volunteerId or status is required")
    target = SosStatus.ACCEPTED if status is None else _parse_status(status)
    if target not in ASSIGNED_STATUSES:
        raise ValidationError(f"Cannot assign a volunteer with status {target.value}")

    with broadcaster.sequenced(sos_id):
        sos = _get_or_404(db, sos_id)
        guards = ()
        if volunteer_id is None:
            volunteer_id = sos.assigned_volunteer_id
            if volunteer_id is None and not SosStatus(sos.status).is_terminal:
                raise _reject(ValidationError("No volunteer assigned; volunteerId is required"), "assign", sos_id)
            # a concurrent reassign or cancel wins over the status-only move
            guards = (SosRequest.assigned_volunteer_id == volunteer_id,)
        elif db.get(Volunteer, volunteer_id) is None:
            raise _reject(NotFound("Volunteer not found"), "assign", sos_id)

        assigned = _transition(
            db,
            sos_id,
            OPEN_STATUSES,
            {"status": target.value, "assigned_volunteer_id": volunteer_id},
            *guards,
        )
        if not assigned:
            current = db.get(SosRequest, sos_id)
            if current is None:
                raise _reject(NotFound("SOS not found"), "assign", sos_id)
            if not SosStatus(current.status).is_terminal:
                raise _reject(Conflict("SOS assignment changed, retry"), "assign", sos_id)
            raise _reject(
                InvalidTransition(f"Cannot update a {current.status} SOS request."),
                "assign",
                sos_id,
            )

        view = _publish_fresh(db, broadcaster, sos_id, EventName.STATUS_UPDATED)
    logger.info("SOS assigned: sos=%s volunteer=%s status=%s", sos_id, volunteer_id, target.value)
    return view


def cancel_sos(db: Session, broadcaster: Broadcaster, sos_id: str, identity: Identity) -> SosResponse:
    """Requester or admin withdraws an open request. The assignment is cleared."""
    if identity.role is Role.VOLUNTEER:
        raise Forbidden("Volunteers cannot cancel SOS requests")

    with broadcaster.sequenced(sos_id):
        cancelled = _transition(
            db,
            sos_id,
            OPEN_STATUSES,
            {"status": SosStatus.CANCELLED.value, "assigned_volunteer_id": None},
        )
        if not cancelled:
            current = db.get(SosRequest, sos_id)
            if current is None:
                raise _reject(NotFound("SOS not found."), "cancel", sos_id)
            raise _reject(
                InvalidTransition(f"Cannot cancel SOS with status {current.status}."),
                "cancel",
                sos_id,
            )

        view = _publish_fresh(db, broadcaster, sos_id, EventName.STATUS_UPDATED)
    logger.info("SOS cancelled: sos=%s by=%s", sos_id, identity.role.value)
    return view


def _views(db: Session, records: list[SosRequest]) -> list[SosResponse]:
    refs = _volunteer_refs(db, [r.assigned_volunteer_id for r in records])
    return [_to_response(r, refs) for r in records]


def list_open_or_mine(db: Session, identity: Identity) -> list[SosResponse]:
    """Pending requests plus the ones assigned to this volunteer, newest first."""
    require_role(identity, Role.VOLUNTEER)
    condition = SosRequest.status == SosStatus.PENDING.value
    if identity.role is Role.VOLUNTEER:
        condition = or_(condition, SosRequest.assigned_volunteer_id == identity.subject_id)
    result = db.execute(
        select(SosRequest)
        .where(condition)
        .order_by(SosRequest.created_at.desc(), SosRequest.id.desc())
    )
    return _views(db, list(result.scalars().all()))


def list_all(db: Session, identity: Identity) -> list[SosResponse]:
    """Every request, newest first."""
    require_role(identity, Role.ADMIN)
    result = db.execute(select(SosRequest).order_by(SosRequest.created_at.desc(), SosRequest.id.desc()))
    return _views(db, list(result.scalars().all()))


def analytics(db: Session, identity: Identity) -> SosAnalytics:
    require_role(identity, Role.ADMIN)
    sos_counts = {s.value: 0 for s in SosStatus}
    for status, count in db.execute(select(SosRequest.status, func.count()).group_by(SosRequest.status)).all():
        sos_counts[status] = count
    volunteer_counts = {s.value: 0 for s in VolunteerStatus}
    for status, count in db.execute(select(Volunteer.status, func.count()).group_by(Volunteer.status)).all():
        volunteer_counts[status] = count
    return SosAnalytics(
        total_sos=sum(sos_counts.values()),
        sos_by_status=sos_counts,
        total_volunteers=sum(volunteer_counts.values()),
        volunteers_by_status=volunteer_counts,
    )
