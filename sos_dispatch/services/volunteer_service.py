"""Admin-side volunteer management."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from sos_dispatch.core.errors import NotFound
from sos_dispatch.core.identity import Identity, Role, require_role
from sos_dispatch.models.volunteer import Volunteer, VolunteerStatus

logger = logging.getLogger(__name__)


def list_volunteers(db: Session, identity: Identity) -> list[Volunteer]:
    """All volunteers, newest registration first."""
    require_role(identity, Role.ADMIN)
    result = db.execute(select(Volunteer).order_by(Volunteer.created_at.desc(), Volunteer.id.desc()))
    return list(result.scalars().all())


def set_volunteer_status(
    db: Session,
    identity: Identity,
    volunteer_id: int,
    status: VolunteerStatus,
) -> Volunteer:
    """Approve, suspend or reset a volunteer. Suspension invalidates their tokens."""
    require_role(identity, Role.ADMIN)
    volunteer = db.get(Volunteer, volunteer_id)
    if not volunteer:
        raise NotFound("Volunteer not found.")
    volunteer.status = VolunteerStatus(status).value
    db.commit()
    db.refresh(volunteer)
    logger.info("Volunteer status changed: id=%s status=%s", volunteer.id, volunteer.status)
    return volunteer
