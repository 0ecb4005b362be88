"""Volunteer and admin authentication."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from sos_dispatch.core.config import settings
from sos_dispatch.core.errors import Unauthenticated, ValidationError
from sos_dispatch.core.identity import Identity, Role
from sos_dispatch.core.security import create_access_token, hash_password, verify_password
from sos_dispatch.models.admin import Admin
from sos_dispatch.models.volunteer import Volunteer, VolunteerStatus
from sos_dispatch.schemas.auth import TokenResponse, VolunteerRegister

logger = logging.getLogger(__name__)


def get_volunteer_by_email(db: Session, email: str) -> Volunteer | None:
    """Get volunteer by email."""
    return db.execute(select(Volunteer).where(Volunteer.email == email)).scalar_one_or_none()


def get_admin_by_email(db: Session, email: str) -> Admin | None:
    """Get admin by email."""
    return db.execute(select(Admin).where(Admin.email == email)).scalar_one_or_none()


def register_volunteer(db: Session, data: VolunteerRegister) -> Volunteer:
    """Self-registration. New volunteers wait in Pending for admin approval."""
    if get_volunteer_by_email(db, data.email):
        raise ValidationError("Volunteer already exists.")
    volunteer = Volunteer(
        name=data.name,
        email=data.email,
        password_hash=hash_password(data.password),
        phone=data.phone,
        status=VolunteerStatus.PENDING.value,
    )
    db.add(volunteer)
    db.commit()
    db.refresh(volunteer)
    logger.info("Volunteer registered: id=%s", volunteer.id)
    return volunteer


def login_volunteer(db: Session, email: str, password: str) -> TokenResponse:
    """Issue a token to an Approved volunteer."""
    volunteer = get_volunteer_by_email(db, email)
    if not volunteer:
        raise Unauthenticated("Invalid credentials.")
    if volunteer.status != VolunteerStatus.APPROVED.value:
        raise Unauthenticated("Account not approved yet. Please wait for admin review.")
    if not verify_password(password, volunteer.password_hash):
        raise Unauthenticated("Invalid credentials.")
    token = create_access_token(
        volunteer.id,
        Role.VOLUNTEER.value,
        settings.volunteer_token_expire_minutes,
        extra={"name": volunteer.name},
    )
    return TokenResponse(access_token=token, id=volunteer.id, name=volunteer.name)


def login_admin(db: Session, email: str, password: str) -> TokenResponse:
    admin = get_admin_by_email(db, email)
    if not admin or not verify_password(password, admin.password_hash):
        raise Unauthenticated("Invalid credentials")
    token = create_access_token(
        admin.id,
        Role.ADMIN.value,
        settings.admin_token_expire_minutes,
        extra={"name": admin.name},
    )
    return TokenResponse(access_token=token, id=admin.id, name=admin.name)


def verify_subject(db: Session, identity: Identity) -> Identity:
    """Confirm a token's subject still exists and, for volunteers, is still Approved."""
    if identity.is_anonymous:
        return identity
    if identity.role is Role.ADMIN:
        if db.get(Admin, identity.subject_id) is None:
            raise Unauthenticated("User not found")
        return identity
    volunteer = db.get(Volunteer, identity.subject_id)
    if volunteer is None:
        raise Unauthenticated("User not found")
    if volunteer.status != VolunteerStatus.APPROVED.value:
        raise Unauthenticated("Volunteer is not approved")
    return identity


def ensure_bootstrap_admin(db: Session) -> Admin:
    """Create the configured admin account if it does not exist yet."""
    admin = get_admin_by_email(db, settings.bootstrap_admin_email)
    if admin:
        logger.info("Admin account already exists. Skipping creation.")
        return admin
    admin = Admin(
        name=settings.bootstrap_admin_name,
        email=settings.bootstrap_admin_email,
        password_hash=hash_password(settings.bootstrap_admin_password),
    )
    db.add(admin)
    db.commit()
    db.refresh(admin)
    logger.info("Initial admin account created: %s", admin.email)
    return admin
