"""Per-participant test lifecycle.

Each registered participant is either ``online`` or ``testing``:

    online --test_started--> testing --test_submitted--> online

Repeating an event is harmless: a second ``test_started`` overwrites the
title and a ``test_submitted`` while online leaves the entry online. Both
still broadcast. Events for an id that is not registered (or whose entry was
replaced by a newer connection) change nothing and broadcast nothing.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError

from ..models import FramePayload, StartPayload, SubmissionPayload
from .events import BroadcastHub
from .registry import ConnectionRegistry


logger = logging.getLogger(__name__)

TEST_STARTED = "test_started"
SCREEN_UPDATE = "screen_update"
TEST_SUBMITTED = "test_submitted"

FINISHED = "finished"


class SessionStateMachine:
    def __init__(self, registry: ConnectionRegistry, hub: BroadcastHub) -> None:
        self.registry = registry
        self.hub = hub
        self._handlers: Dict[str, Callable[[dict, Optional[str], Optional[int]], bool]] = {
            TEST_STARTED: self._on_test_started,
            SCREEN_UPDATE: self._on_screen_update,
            TEST_SUBMITTED: self._on_test_submitted,
        }

    def join(
        self,
        participant_id: str,
        display_name: str,
        role: str = "student",
        group_code: Optional[str] = None,
        connection: Any = None,
    ) -> int:
        generation = self.registry.register(participant_id, display_name, role, group_code, connection)
        self.hub.broadcast_presence()
        return generation

    def leave(self, participant_id: str, generation: Optional[int] = None) -> bool:
        removed = self.registry.deregister(participant_id, generation)
        if not removed and participant_id in self.registry:
            logger.debug("Kept %s: disconnect came from superseded connection %s", participant_id, generation)
        self.hub.broadcast_presence()
        return removed

    def start_test(self, participant_id: str, test_title: str, generation: Optional[int] = None) -> bool:
        """Programmatic form of a ``test_started`` event, for callers outside the socket."""
        return self._on_test_started(
            {"studentId": participant_id, "testTitle": test_title},
            participant_id if generation is not None else None,
            generation,
        )

    def submit_test(self, participant_id: str, result: Optional[dict] = None, generation: Optional[int] = None) -> bool:
        """Programmatic form of a ``test_submitted`` event; ``result`` is relayed as the submission."""
        payload = {**(result or {}), "studentId": participant_id}
        return self._on_test_submitted(payload, participant_id if generation is not None else None, generation)

    def dispatch(
        self,
        event_type: str,
        data: Any,
        origin_id: Optional[str] = None,
        origin_generation: Optional[int] = None,
    ) -> bool:
        """Apply one inbound event. Returns False when it was ignored."""
        handler = self._handlers.get(event_type)
        if handler is None:
            logger.debug("Ignoring unknown event type %r", event_type)
            return False
        if not isinstance(data, dict):
            logger.debug("Ignoring %s with non-object payload", event_type)
            return False
        return handler(data, origin_id, origin_generation)

    def _generation_for(self, student_id: str, origin_id: Optional[str], origin_generation: Optional[int]) -> Optional[int]:
        # Only a participant's own connection is pinned to its generation.
        if origin_id is not None and origin_id == student_id:
            return origin_generation
        return None

    def _on_test_started(self, data: dict, origin_id: Optional[str], origin_generation: Optional[int]) -> bool:
        try:
            event = StartPayload.model_validate(data)
        except ValidationError as exc:
            logger.debug("Malformed %s payload: %s", TEST_STARTED, exc)
            return False
        generation = self._generation_for(event.student_id, origin_id, origin_generation)
        if not self.registry.set_testing(event.student_id, event.test_title, generation):
            logger.debug("Ignoring %s for unknown participant %s", TEST_STARTED, event.student_id)
            return False
        self.hub.broadcast_status_change(data, "testing")
        self.hub.broadcast_presence()
        return True

    def _on_screen_update(self, data: dict, origin_id: Optional[str], origin_generation: Optional[int]) -> bool:
        try:
            FramePayload.model_validate(data)
        except ValidationError as exc:
            logger.debug("Malformed %s payload: %s", SCREEN_UPDATE, exc)
            return False
        self.hub.relay_ephemeral(data)
        return True

    def _on_test_submitted(self, data: dict, origin_id: Optional[str], origin_generation: Optional[int]) -> bool:
        try:
            event = SubmissionPayload.model_validate(data)
        except ValidationError as exc:
            logger.debug("Malformed %s payload: %s", TEST_SUBMITTED, exc)
            return False
        generation = self._generation_for(event.student_id, origin_id, origin_generation)
        if not self.registry.set_online(event.student_id, generation):
            logger.debug("Ignoring %s for unknown participant %s", TEST_SUBMITTED, event.student_id)
            return False
        self.hub.broadcast_status_change(data, FINISHED)
        self.hub.broadcast_submission(data)
        self.hub.broadcast_presence()
        return True
