from __future__ import annotations

import itertools
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional


ONLINE = "online"
TESTING = "testing"


@dataclass
class Participant:
    id: str
    display_name: str
    role: str = "student"
    group_code: Optional[str] = None
    status: str = ONLINE
    current_test_title: Optional[str] = None
    generation: int = 0
    # Opaque transport reference, owned by this entry only.
    connection: Any = field(default=None, repr=False, compare=False)

    def to_dict(self) -> dict:
        out = {
            "id": self.id,
            "displayName": self.display_name,
            "role": self.role,
            "groupCode": self.group_code,
            "status": self.status,
        }
        if self.status == TESTING:
            out["currentTestTitle"] = self.current_test_title
        return out


class ConnectionRegistry:
    """Live participants keyed by identity, in insertion order.

    A later registration for the same id replaces the earlier entry and gets a
    new generation number. Callers that remember the generation they were
    given can use it to avoid acting on an entry that has been superseded.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, Participant] = {}
        self._generations = itertools.count(1)

    def register(
        self,
        participant_id: str,
        display_name: str,
        role: str = "student",
        group_code: Optional[str] = None,
        connection: Any = None,
    ) -> int:
        generation = next(self._generations)
        # A replaced entry keeps its original position in the snapshot order.
        self._entries[participant_id] = Participant(
            id=participant_id,
            display_name=display_name,
            role=role,
            group_code=group_code,
            generation=generation,
            connection=connection,
        )
        return generation

    def deregister(self, participant_id: str, generation: Optional[int] = None) -> bool:
        entry = self._live(participant_id, generation)
        if entry is None:
            return False
        del self._entries[participant_id]
        return True

    def get(self, participant_id: str) -> Optional[Participant]:
        return self._entries.get(participant_id)

    def set_testing(self, participant_id: str, test_title: str, generation: Optional[int] = None) -> bool:
        entry = self._live(participant_id, generation)
        if entry is None:
            return False
        entry.status = TESTING
        entry.current_test_title = test_title
        return True

    def set_online(self, participant_id: str, generation: Optional[int] = None) -> bool:
        entry = self._live(participant_id, generation)
        if entry is None:
            return False
        entry.status = ONLINE
        entry.current_test_title = None
        return True

    def snapshot(self) -> List[Participant]:
        return [replace(entry, connection=None) for entry in self._entries.values()]

    def list(self) -> List[dict]:
        return [entry.to_dict() for entry in self._entries.values()]

    def list_by_group(self, group_code: str) -> List[dict]:
        return [e.to_dict() for e in self._entries.values() if e.group_code == group_code]

    def counts(self) -> dict:
        testing = sum(1 for e in self._entries.values() if e.status == TESTING)
        return {
            "total": len(self._entries),
            "online": len(self._entries) - testing,
            "testing": testing,
        }

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, participant_id: object) -> bool:
        return participant_id in self._entries

    def _live(self, participant_id: str, generation: Optional[int]) -> Optional[Participant]:
        entry = self._entries.get(participant_id)
        if entry is None:
            return None
        if generation is not None and entry.generation != generation:
            return None
        return entry
