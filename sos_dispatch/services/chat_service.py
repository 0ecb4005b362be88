"""Per-request chat thread. Messages are only ever appended."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from sos_dispatch.core.broadcaster import Broadcaster, Event, EventName
from sos_dispatch.core.config import settings
from sos_dispatch.core.errors import InvalidTransition, NotFound, ValidationError
from sos_dispatch.models.chat_message import ChatMessage
from sos_dispatch.models.sos_request import SosRequest, SosStatus
from sos_dispatch.schemas.sos import ChatEvent

logger = logging.getLogger(__name__)

DEFAULT_SENDER = "Anonymous"


def append_chat(
    db: Session,
    broadcaster: Broadcaster,
    sos_id: str,
    sender: str | None,
    message: str | None,
    allow_closed: bool | None = None,
) -> ChatEvent:
    """Append a message to the request's thread and push it to the room.

    Any actor may post. Sender and message are stored as given; a blank
    sender becomes "Anonymous".
    """
    if not isinstance(message, str) or not message.strip():
        raise ValidationError("Message is required")
    if sender is not None and not isinstance(sender, str):
        raise ValidationError("Sender must be text")
    if allow_closed is None:
        allow_closed = settings.chat_on_closed_requests
    if sender is None or not sender.strip():
        sender = DEFAULT_SENDER

    with broadcaster.sequenced(sos_id):
        sos = db.get(SosRequest, sos_id)
        if sos is None:
            raise NotFound("SOS not found.")
        if not allow_closed and SosStatus(sos.status).is_terminal:
            raise InvalidTransition(f"Chat is closed for a {sos.status} SOS request.")

        now = datetime.now(timezone.utc)
        db.add(ChatMessage(sos_id=sos_id, sender=sender, message=message, timestamp=now))
        db.commit()

        event = ChatEvent(sos_id=sos_id, sender=sender, message=message, timestamp=now)
        broadcaster.publish(Event(EventName.CHAT_MESSAGE, sos_id, event.model_dump(mode="json", by_alias=True)))

    logger.debug("Chat appended: sos=%s sender=%s", sos_id, sender)
    return event
