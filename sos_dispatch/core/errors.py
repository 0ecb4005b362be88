"""Domain errors raised by the dispatch services.

Services raise these; the HTTP and WebSocket layers translate them. All of
them subclass ValueError so callers that only care about "the operation was
rejected" can keep catching ValueError.
"""

from __future__ import annotations


class DispatchError(ValueError):
    """Base class for rejected operations. The record is left unchanged."""


class ValidationError(DispatchError):
    """Missing or malformed input (e.g. no location)."""


class Unauthenticated(DispatchError):
    """Credential missing, malformed or expired."""


class Forbidden(DispatchError):
    """Role or ownership does not allow the operation."""


class NotFound(DispatchError):
    """Unknown SOS or volunteer id."""


class Conflict(DispatchError):
    """Another volunteer already holds the assignment."""


class InvalidTransition(DispatchError):
    """The current status does not allow the requested change."""
