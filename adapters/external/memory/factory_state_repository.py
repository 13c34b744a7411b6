from __future__ import annotations

import threading
from typing import Dict, List, Optional, Sequence

from core.domain.entities.factory_entities import (
    DeploymentKey,
    FactoryConfigEntity,
    StrategyDeploymentEntity,
)
from core.domain.repositories.factory_state_repository_interface import FactoryStateRepository
from core.services.exceptions import AlreadyDeployedError, FactoryAlreadyInitializedError


class InMemoryFactoryStateRepository(FactoryStateRepository):
    """
    In-memory FactoryStateRepository for tests and throwaway runs.

    Deployments are kept as strategy_asset -> collateral_asset -> record.
    Entities are copied on the way in and out so callers cannot mutate
    stored state behind the repository's back.
    """

    def __init__(self) -> None:
        self._config: Optional[FactoryConfigEntity] = None
        self._deployments: Dict[str, Dict[str, StrategyDeploymentEntity]] = {}
        self._order: List[DeploymentKey] = []
        self._lock = threading.Lock()

    def get_config(self) -> Optional[FactoryConfigEntity]:
        return self._config.model_copy() if self._config else None

    def create_config(self, entity: FactoryConfigEntity) -> None:
        with self._lock:
            if self._config is not None:
                raise FactoryAlreadyInitializedError(self._config.chain)
            self._config = entity.model_copy()

    def update_config(
        self, *, expected_management: str, changes: Dict[str, str]
    ) -> Optional[FactoryConfigEntity]:
        with self._lock:
            if self._config is None or self._config.management != expected_management:
                return None
            previous = self._config
            self._config = previous.model_copy(update=changes).touch_for_update()
            return previous.model_copy()

    def get_deployment(self, key: DeploymentKey) -> Optional[StrategyDeploymentEntity]:
        record = self._deployments.get(key.strategy_asset, {}).get(key.collateral_asset)
        return record.model_copy() if record else None

    def insert_deployment(self, entity: StrategyDeploymentEntity) -> None:
        key = entity.key
        by_collateral = self._deployments.setdefault(key.strategy_asset, {})
        if key.collateral_asset in by_collateral:
            raise AlreadyDeployedError(
                key.strategy_asset, key.collateral_asset, by_collateral[key.collateral_asset].strategy
            )
        by_collateral[key.collateral_asset] = entity.model_copy()
        self._order.append(key)

    def delete_deployment(self, key: DeploymentKey) -> None:
        by_collateral = self._deployments.get(key.strategy_asset)
        if not by_collateral or by_collateral.pop(key.collateral_asset, None) is None:
            return
        if not by_collateral:
            del self._deployments[key.strategy_asset]
        self._order.remove(key)

    def list_deployments(self, *, limit: int = 100) -> Sequence[StrategyDeploymentEntity]:
        newest_first = list(reversed(self._order))[: int(limit)]
        return [self._deployments[k.strategy_asset][k.collateral_asset].model_copy() for k in newest_first]

    def count(self) -> int:
        return len(self._order)
