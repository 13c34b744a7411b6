from __future__ import annotations

from typing import List, Optional, Protocol

from core.domain.entities.factory_event_entity import FactoryEvent


class FactoryEventsRepositoryInterface(Protocol):
    """
    Abstraction for the factory event log.
    """

    def append_event(self, event: FactoryEvent) -> None:
        ...

    def get_recent_events(
        self,
        kind: Optional[str] = None,
        limit: int = 200,
    ) -> List[FactoryEvent]:
        ...
