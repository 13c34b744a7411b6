from .factory_state_repository_interface import FactoryStateRepository
from .factory_events_repository_interface import FactoryEventsRepositoryInterface

__all__ = [
    "FactoryStateRepository",
    "FactoryEventsRepositoryInterface",
]
