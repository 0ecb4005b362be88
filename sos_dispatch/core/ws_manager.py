"""Registry of live real-time subscribers and the SOS rooms they joined."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from sos_dispatch.core.identity import Identity, Role

logger = logging.getLogger(__name__)

SendFn = Callable[[str], Awaitable[Any]]


@dataclass(eq=False)
class Subscriber:
    """One connected session. `send` delivers a serialized frame."""

    identity: Identity
    send: SendFn
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @property
    def role(self) -> Role:
        return self.identity.role


class SubscriberRegistry:
    """Tracks connected subscribers and room membership keyed by SOS id.

    Lives for the lifetime of one application instance and is never
    persisted; every subscriber is forgotten on disconnect.
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, Subscriber] = {}
        # sos_id -> subscriber ids
        self._rooms: dict[str, set[str]] = {}
        # subscriber id -> sos ids, for cleanup on disconnect
        self._memberships: dict[str, set[str]] = {}

    def register(self, subscriber: Subscriber) -> Subscriber:
        self._subscribers[subscriber.id] = subscriber
        self._memberships[subscriber.id] = set()
        logger.info(
            "WS connected: subscriber=%s role=%s (total=%s)",
            subscriber.id,
            subscriber.role.value,
            self.total_subscribers,
        )
        return subscriber

    def unregister(self, subscriber_id: str) -> None:
        if self._subscribers.pop(subscriber_id, None) is None:
            return
        for sos_id in self._memberships.pop(subscriber_id, set()):
            members = self._rooms.get(sos_id)
            if members:
                members.discard(subscriber_id)
                if not members:
                    del self._rooms[sos_id]
        logger.info("WS disconnected: subscriber=%s (total=%s)", subscriber_id, self.total_subscribers)

    def join(self, subscriber_id: str, sos_id: str) -> None:
        if subscriber_id not in self._subscribers:
            return
        self._rooms.setdefault(sos_id, set()).add(subscriber_id)
        self._memberships[subscriber_id].add(sos_id)
        logger.info("Subscriber %s joined room %s", subscriber_id, sos_id)

    def leave(self, subscriber_id: str, sos_id: str) -> None:
        members = self._rooms.get(sos_id)
        if members:
            members.discard(subscriber_id)
            if not members:
                del self._rooms[sos_id]
        memberships = self._memberships.get(subscriber_id)
        if memberships:
            memberships.discard(sos_id)

    def get(self, subscriber_id: str) -> Subscriber | None:
        return self._subscribers.get(subscriber_id)

    def room(self, sos_id: str) -> list[Subscriber]:
        return [self._subscribers[sid] for sid in self._rooms.get(sos_id, ()) if sid in self._subscribers]

    def rooms_of(self, subscriber_id: str) -> set[str]:
        return set(self._memberships.get(subscriber_id, ()))

    def with_role(self, *roles: Role) -> list[Subscriber]:
        return [s for s in self._subscribers.values() if s.role in roles]

    def clear(self) -> None:
        self._subscribers.clear()
        self._rooms.clear()
        self._memberships.clear()

    @property
    def total_subscribers(self) -> int:
        return len(self._subscribers)
