from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Dict, Optional, Sequence

from core.domain.entities.factory_entities import (
    DeploymentKey,
    FactoryConfigEntity,
    StrategyDeploymentEntity,
)


class FactoryStateRepository(ABC):
    """
    Persistence for the factory's own state: its config record and the
    deployment table. Scoped to a single chain.
    """

    @abstractmethod
    def get_config(self) -> Optional[FactoryConfigEntity]:
        raise NotImplementedError

    @abstractmethod
    def create_config(self, entity: FactoryConfigEntity) -> None:
        """
        Store the config only if none exists for the chain yet; otherwise
        raise FactoryAlreadyInitializedError and leave the stored one alone.
        """
        raise NotImplementedError

    @abstractmethod
    def update_config(
        self, *, expected_management: str, changes: Dict[str, str]
    ) -> Optional[FactoryConfigEntity]:
        """
        Apply `changes` atomically, but only while the stored management is
        still `expected_management`. Returns the config as it was before the
        change, or None when nothing matched.
        """
        raise NotImplementedError

    @abstractmethod
    def get_deployment(self, key: DeploymentKey) -> Optional[StrategyDeploymentEntity]:
        raise NotImplementedError

    @abstractmethod
    def insert_deployment(self, entity: StrategyDeploymentEntity) -> None:
        """
        Must raise AlreadyDeployedError when a record for entity.key exists.
        """
        raise NotImplementedError

    @abstractmethod
    def delete_deployment(self, key: DeploymentKey) -> None:
        """
        Only used to undo an insert made by an operation that then aborted.
        """
        raise NotImplementedError

    @abstractmethod
    def list_deployments(self, *, limit: int = 100) -> Sequence[StrategyDeploymentEntity]:
        raise NotImplementedError
