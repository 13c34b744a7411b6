from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from core.domain.entities.factory_entities import StrategyParams


class StrategyHandle(ABC):
    """
    Administrative surface of a deployed strategy instance.
    """

    address: str
    # tx hash of the deployment, when the backend has one
    tx_hash: Optional[str] = None

    @abstractmethod
    def set_performance_fee_recipient(self, recipient: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def set_pending_management(self, management: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def available_withdraw_limit(self, owner: str) -> int:
        raise NotImplementedError


class StrategyDeployer(ABC):
    @abstractmethod
    def deploy(self, params: StrategyParams) -> StrategyHandle:
        raise NotImplementedError

    @abstractmethod
    def attach(self, address: str) -> StrategyHandle:
        raise NotImplementedError
