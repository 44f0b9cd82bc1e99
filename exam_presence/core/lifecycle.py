from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping, Optional

from pydantic import ValidationError

from ..integrations.directory import NullUserDirectory, UserDirectory
from ..models import Handshake
from .events import BroadcastHub, Observer
from .session import SessionStateMachine


logger = logging.getLogger(__name__)


@dataclass
class Connection:
    observer: Observer
    participant_id: Optional[str] = None
    generation: Optional[int] = None

    @property
    def is_participant(self) -> bool:
        return self.participant_id is not None


class ConnectionLifecycleManager:
    def __init__(
        self,
        session: SessionStateMachine,
        hub: BroadcastHub,
        directory: Optional[UserDirectory] = None,
    ) -> None:
        self.session = session
        self.hub = hub
        self.directory = directory or NullUserDirectory()

    async def connect(self, observer: Observer, params: Mapping[str, str]) -> Connection:
        try:
            handshake = Handshake.model_validate(dict(params))
        except ValidationError as exc:
            logger.debug("Unusable handshake %s: %s", dict(params), exc)
            handshake = Handshake()

        conn = Connection(observer=observer)
        if handshake.user_id is None:
            self.hub.add(observer)
            logger.info("Anonymous observer connected")
            return conn

        name = handshake.user_name
        if name is None:
            name = await self.resolve_name(handshake.user_id)
        # Subscribed before joining so a participant sees its own join.
        self.hub.add(observer)
        conn.participant_id = handshake.user_id
        conn.generation = self.session.join(
            handshake.user_id,
            name or handshake.user_id,
            role=handshake.role,
            group_code=handshake.group_code,
            connection=observer,
        )
        logger.info(
            "Participant %s (%s, %s) connected, generation %s",
            handshake.user_id,
            handshake.role,
            handshake.group_code,
            conn.generation,
        )
        return conn

    async def resolve_name(self, participant_id: str) -> Optional[str]:
        try:
            return await self.directory.resolve(participant_id)
        except Exception as exc:
            logger.warning("User lookup for %r failed: %s", participant_id, exc)
            return None

    def receive(self, conn: Connection, message: object) -> bool:
        if not isinstance(message, dict):
            logger.debug("Ignoring non-object frame")
            return False
        event_type = message.get("type")
        if not isinstance(event_type, str):
            logger.debug("Ignoring frame without a type")
            return False
        return self.session.dispatch(event_type, message.get("data"), conn.participant_id, conn.generation)

    def disconnect(self, conn: Connection) -> None:
        self.hub.remove(conn.observer)
        if conn.participant_id is None:
            logger.info("Anonymous observer disconnected")
            return
        # Even mid-test: the participant is shown as gone straight away.
        self.session.leave(conn.participant_id, conn.generation)
        logger.info("Participant %s disconnected, generation %s", conn.participant_id, conn.generation)
