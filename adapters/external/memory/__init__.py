from .factory_state_repository import InMemoryFactoryStateRepository
from .factory_events_repository import InMemoryFactoryEventsRepository

__all__ = [
    "InMemoryFactoryStateRepository",
    "InMemoryFactoryEventsRepository",
]
