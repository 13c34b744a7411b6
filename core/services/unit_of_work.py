from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Callable, Iterator, List

from core.domain.entities.factory_event_entity import FactoryEvent
from core.domain.repositories.factory_events_repository_interface import (
    FactoryEventsRepositoryInterface,
)

logger = logging.getLogger(__name__)


class FactoryUnitOfWork:
    """
    All-or-nothing scope for one factory operation.

    - Every state write registers an undo callback right after it succeeds.
    - Events are buffered and only appended to the event log on commit, after
      every state change of the operation has gone through.
    - On failure the undo callbacks run newest-first and nothing is emitted.
    """

    def __init__(self, events_repo: FactoryEventsRepositoryInterface, label: str):
        self._events_repo = events_repo
        self._label = label
        self._undo: List[Callable[[], None]] = []
        self._pending: List[FactoryEvent] = []

    def on_rollback(self, undo: Callable[[], None]) -> None:
        self._undo.append(undo)

    def emit(self, event: FactoryEvent) -> None:
        self._pending.append(event)

    @property
    def pending_events(self) -> List[FactoryEvent]:
        return list(self._pending)

    def commit(self) -> None:
        for event in self._pending:
            self._events_repo.append_event(event)
        self._pending.clear()
        self._undo.clear()

    def rollback(self) -> None:
        self._pending.clear()
        while self._undo:
            undo = self._undo.pop()
            try:
                undo()
            except Exception:
                # keep undoing; the caller re-raises the original failure
                logger.exception("%s: undo step failed during rollback", self._label)


@contextmanager
def atomic(events_repo: FactoryEventsRepositoryInterface, label: str) -> Iterator[FactoryUnitOfWork]:
    uow = FactoryUnitOfWork(events_repo, label)
    try:
        yield uow
        uow.commit()
    except BaseException as exc:
        logger.warning("%s aborted, rolling back: %s", label, exc)
        uow.rollback()
        raise
