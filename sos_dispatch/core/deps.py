"""FastAPI dependencies."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from sos_dispatch.core.broadcaster import Broadcaster
from sos_dispatch.core.errors import (
    Conflict,
    DispatchError,
    Forbidden,
    InvalidTransition,
    NotFound,
    Unauthenticated,
    ValidationError,
)
from sos_dispatch.core.identity import Identity, Role, authenticate, require_role
from sos_dispatch.db.session import get_db
from sos_dispatch.services.auth_service import verify_subject

security = HTTPBearer(auto_error=False)

_STATUS_CODES: dict[type[DispatchError], int] = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    InvalidTransition: status.HTTP_400_BAD_REQUEST,
    Unauthenticated: status.HTTP_401_UNAUTHORIZED,
    Forbidden: status.HTTP_403_FORBIDDEN,
    NotFound: status.HTTP_404_NOT_FOUND,
    Conflict: status.HTTP_409_CONFLICT,
}


def http_error(exc: DispatchError) -> HTTPException:
    """Translate a rejected operation into an HTTP error."""
    code = _STATUS_CODES.get(type(exc), status.HTTP_400_BAD_REQUEST)
    headers = {"WWW-Authenticate": "Bearer"} if code == status.HTTP_401_UNAUTHORIZED else None
    return HTTPException(status_code=code, detail=str(exc), headers=headers)


def get_identity(
    db: Annotated[Session, Depends(get_db)],
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> Identity:
    """Caller identity. No bearer header means an anonymous requester; a bad one is 401."""
    try:
        identity = authenticate(credentials.credentials if credentials else None)
        return verify_subject(db, identity)
    except Unauthenticated as e:
        raise http_error(e) from e


def _require(identity: Identity, role: Role) -> Identity:
    if identity.is_anonymous:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No token, authorization denied",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        return require_role(identity, role)
    except Forbidden as e:
        raise http_error(e) from e


def require_volunteer(identity: Annotated[Identity, Depends(get_identity)]) -> Identity:
    """Require a volunteer (or admin) token."""
    return _require(identity, Role.VOLUNTEER)


def require_admin(identity: Annotated[Identity, Depends(get_identity)]) -> Identity:
    """Require an admin token."""
    return _require(identity, Role.ADMIN)


def get_broadcaster(request: Request) -> Broadcaster:
    return request.app.state.broadcaster
