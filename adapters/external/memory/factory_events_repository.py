from __future__ import annotations

import copy
from typing import List, Optional

from core.domain.entities.factory_event_entity import FactoryEvent


class InMemoryFactoryEventsRepository:
    """
    Append-only list of factory events, oldest first.
    """

    def __init__(self) -> None:
        self._events: List[FactoryEvent] = []

    @property
    def events(self) -> List[FactoryEvent]:
        return [copy.deepcopy(e) for e in self._events]

    def append_event(self, event: FactoryEvent) -> None:
        self._events.append(copy.deepcopy(event))

    def get_recent_events(
        self,
        kind: Optional[str] = None,
        limit: int = 200,
    ) -> List[FactoryEvent]:
        matching = [e for e in reversed(self._events) if kind is None or e.kind == kind]
        return [copy.deepcopy(e) for e in matching[: int(limit)]]

    def clear(self) -> None:
        self._events.clear()
