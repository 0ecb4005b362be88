"""Fan-out of SOS state changes to connected subscribers.

Delivery is best-effort and at-most-once per subscriber: nothing is queued
for subscribers that are not connected, and clients reconcile against the
store on reconnect.
"""

from __future__ import annotations

import asyncio
import contextlib
import enum
import json
import logging
import threading
from dataclasses import dataclass
from typing import Any, Iterator

from sos_dispatch.core.identity import Role
from sos_dispatch.core.ws_manager import Subscriber, SubscriberRegistry

logger = logging.getLogger(__name__)


class EventName(str, enum.Enum):
    NEW_SOS = "newSOS"
    STATUS_UPDATED = "sosStatusUpdated"
    CHAT_MESSAGE = "chatMessage"


@dataclass(frozen=True)
class Event:
    name: EventName
    sos_id: str
    data: dict[str, Any]

    def frame(self) -> str:
        return json.dumps({"event": self.name.value, "data": self.data}, default=str)


class _KeyedLocks:
    """Reference-counted threading locks keyed by SOS id."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, list] = {}  # key -> [lock, holders]

    @contextlib.contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            entry = self._locks.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]


class Broadcaster:
    """Ordered outbox pumped on the event loop.

    `publish` may be called from any thread (sync routes run in the
    threadpool). Events are delivered in the order they were published;
    callers hold `sequenced(sos_id)` around commit + publish so that order
    matches commit order for each record.
    """

    def __init__(self, registry: SubscriberRegistry) -> None:
        self.registry = registry
        self._locks = _KeyedLocks()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._queue: asyncio.Queue[Event] | None = None
        self._task: asyncio.Task | None = None

    async def start(self) -> None:
        self._loop = asyncio.get_running_loop()
        self._queue = queue = asyncio.Queue()
        self._task = self._loop.create_task(self._pump(queue))
        logger.info("Broadcaster started")

    async def stop(self) -> None:
        task, self._task = self._task, None
        self._loop = None
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        logger.info("Broadcaster stopped")

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def sequenced(self, sos_id: str) -> contextlib.AbstractContextManager[None]:
        return self._locks.hold(sos_id)

    def publish(self, event: Event) -> None:
        loop, queue = self._loop, self._queue
        if loop is None or queue is None or loop.is_closed():
            logger.debug("Broadcaster not running, dropping %s for sos=%s", event.name.value, event.sos_id)
            return
        loop.call_soon_threadsafe(queue.put_nowait, event)

    async def drain(self) -> None:
        """Wait until every published event has been delivered."""
        if self._queue is not None:
            # let pending call_soon_threadsafe puts land first
            await asyncio.sleep(0)
            await self._queue.join()

    async def _pump(self, queue: asyncio.Queue[Event]) -> None:
        while True:
            event = await queue.get()
            try:
                await self.deliver(event)
            except Exception:
                logger.exception("Failed to deliver %s for sos=%s", event.name.value, event.sos_id)
            finally:
                queue.task_done()

    def audience(self, event: Event) -> list[Subscriber]:
        if event.name is EventName.NEW_SOS:
            candidates = self.registry.with_role(Role.VOLUNTEER, Role.ADMIN)
        elif event.name is EventName.STATUS_UPDATED:
            # requester + joined volunteers, the open pool, and admin consoles
            candidates = self.registry.room(event.sos_id) + self.registry.with_role(Role.VOLUNTEER, Role.ADMIN)
        else:
            candidates = self.registry.room(event.sos_id)
        seen: set[str] = set()
        audience = []
        for sub in candidates:
            if sub.id not in seen:
                seen.add(sub.id)
                audience.append(sub)
        return audience

    async def deliver(self, event: Event) -> int:
        """Send one event to its audience. Returns the number of successful sends."""
        payload = event.frame()
        dead: list[str] = []
        sent = 0
        for sub in self.audience(event):
            try:
                await sub.send(payload)
                sent += 1
            except Exception:
                dead.append(sub.id)
        for sid in dead:
            self.registry.unregister(sid)
        logger.debug("Delivered %s for sos=%s to %s subscriber(s)", event.name.value, event.sos_id, sent)
        return sent
