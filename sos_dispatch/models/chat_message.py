"""Chat message model - one row per message appended to an SOS thread."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sos_dispatch.db.base import Base

if TYPE_CHECKING:
    from sos_dispatch.models.sos_request import SosRequest


class ChatMessage(Base):
    """Append-only; rows are never updated. Order is the autoincrement id."""

    __tablename__ = "sos_chat_messages"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    sos_id: Mapped[str] = mapped_column(
        ForeignKey("sos_requests.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sender: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    sos: Mapped[SosRequest] = relationship(back_populates="chat")
