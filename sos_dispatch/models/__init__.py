"""SQLAlchemy models."""

from __future__ import annotations

from sos_dispatch.models.admin import Admin
from sos_dispatch.models.chat_message import ChatMessage
from sos_dispatch.models.sos_request import SosRequest, SosStatus
from sos_dispatch.models.volunteer import Volunteer, VolunteerStatus

__all__ = [
    "Admin",
    "ChatMessage",
    "SosRequest",
    "SosStatus",
    "Volunteer",
    "VolunteerStatus",
]
