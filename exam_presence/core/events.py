from __future__ import annotations

import asyncio
import logging
from typing import Optional, Protocol, Set

from fastapi import WebSocket

from .registry import ConnectionRegistry


logger = logging.getLogger(__name__)

ONLINE_STUDENTS = "online_students"
STUDENT_STATUS_UPDATE = "student_status_update"
SCREEN_MIRROR_UPDATE = "screen_mirror_update"
TEST_SUBMISSION = "test_submission"


class Observer(Protocol):
    def send(self, message: dict) -> None:
        ...


class WebSocketObserver:
    """Queues outbound frames for one socket and writes them from a task.

    ``send`` never blocks, so publishers are not held up by a slow client.
    The queue is unbounded.
    """

    def __init__(self, ws: WebSocket, label: str = "anonymous") -> None:
        self.ws = ws
        self.label = label
        self._queue: "asyncio.Queue[dict]" = asyncio.Queue()
        self._task: Optional[asyncio.Task] = None

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._writer())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    def send(self, message: dict) -> None:
        self._queue.put_nowait(message)

    async def _writer(self) -> None:
        while True:
            message = await self._queue.get()
            try:
                await self.ws.send_json(message)
            except Exception as exc:
                # Dropped, not retried; the next frame is still attempted.
                logger.warning("Send to %s failed (%s): %s", self.label, message.get("type"), exc)


class BroadcastHub:
    def __init__(self, registry: ConnectionRegistry) -> None:
        self.registry = registry
        self._observers: Set[Observer] = set()
        self.sent = 0

    def add(self, observer: Observer) -> None:
        self._observers.add(observer)

    def remove(self, observer: Observer) -> None:
        self._observers.discard(observer)

    def clear(self) -> None:
        self._observers.clear()

    @property
    def observer_count(self) -> int:
        return len(self._observers)

    def broadcast(self, event_type: str, data) -> None:
        event = {"type": event_type, "data": data}
        self.sent += 1
        for observer in list(self._observers):
            try:
                observer.send(event)
            except Exception as exc:
                logger.warning("Dropping %s for observer %r: %s", event_type, observer, exc)

    def broadcast_presence(self) -> None:
        self.broadcast(ONLINE_STUDENTS, [p.to_dict() for p in self.registry.snapshot()])

    def broadcast_status_change(self, payload: dict, status: str) -> None:
        self.broadcast(STUDENT_STATUS_UPDATE, {**payload, "status": status})

    def relay_ephemeral(self, payload: dict) -> None:
        self.broadcast(SCREEN_MIRROR_UPDATE, payload)

    def broadcast_submission(self, payload: dict) -> None:
        self.broadcast(TEST_SUBMISSION, payload)
