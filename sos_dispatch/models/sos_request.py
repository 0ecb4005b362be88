"""SOS request model."""

from __future__ import annotations

import enum
import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Float, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sos_dispatch.db.base import Base

if TYPE_CHECKING:
    from sos_dispatch.models.chat_message import ChatMessage


class SosStatus(str, enum.Enum):
    PENDING = "Pending"
    ACCEPTED = "Accepted"
    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({SosStatus.COMPLETED, SosStatus.CANCELLED})
OPEN_STATUSES = frozenset({SosStatus.PENDING, SosStatus.ACCEPTED, SosStatus.IN_PROGRESS})
ASSIGNED_STATUSES = frozenset({SosStatus.ACCEPTED, SosStatus.IN_PROGRESS, SosStatus.COMPLETED})


def new_sos_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SosRequest(Base):
    """Help request broadcast by an anonymous requester."""

    __tablename__ = "sos_requests"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_sos_id)
    requester_name: Mapped[str] = mapped_column(String(255), nullable=False, default="Anonymous")
    phone: Mapped[str] = mapped_column(String(64), nullable=False, default="Not provided")
    message: Mapped[str] = mapped_column(Text, nullable=False, default="No message provided")
    provided_address: Mapped[str] = mapped_column(Text, nullable=False, default="Address not provided")
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=SosStatus.PENDING.value, index=True)
    # Weak link into volunteers: no FK, a missing volunteer reads as "not found"
    assigned_volunteer_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        # microsecond resolution keeps same-second requests in creation order
        default=_utcnow,
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    chat: Mapped[list[ChatMessage]] = relationship(
        back_populates="sos",
        order_by="ChatMessage.id",
        cascade="all, delete-orphan",
    )
