from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from pydantic import ConfigDict

from core.services.utils import normalize_address
from .base_entity import MongoEntity


@dataclass(frozen=True)
class DeploymentKey:
    """
    Ordered (strategy_asset, collateral_asset) pair identifying one strategy slot.

    Both members are checksummed on construction, so two keys built from the
    same addresses in different casing compare equal. The pair is NOT
    symmetric: (A, C) and (C, A) are distinct slots.
    """

    strategy_asset: str
    collateral_asset: str

    @classmethod
    def of(cls, strategy_asset: str, collateral_asset: str) -> "DeploymentKey":
        return cls(
            strategy_asset=normalize_address(strategy_asset),
            collateral_asset=normalize_address(collateral_asset),
        )


@dataclass(frozen=True)
class StrategyParams:
    """
    Constructor bindings of a Silo strategy instance. Immutable once deployed.
    """

    registry: str
    silo: str
    share_token: str
    asset: str
    incentives_controller: str
    name: str


class FactoryConfigEntity(MongoEntity):
    """
    Mongo document (collection: strategy_factory_config), one per chain.

    `registry` never changes after construction. `management` and
    `performance_fee_recipient` are only changed through the factory setters.
    """

    chain: str
    registry: str
    management: str
    performance_fee_recipient: str

    model_config = ConfigDict(extra="ignore", use_enum_values=True)


class StrategyDeploymentEntity(MongoEntity):
    """
    Mongo document (collection: strategy_deployments).

    Written exactly once per (chain, strategy_asset, collateral_asset).
    """

    chain: str
    strategy_asset: str
    collateral_asset: str
    strategy: str
    silo: str
    share_token: str
    incentives_controller: str
    target_management: str
    name: str
    tx_hash: Optional[str] = None

    model_config = ConfigDict(extra="ignore", use_enum_values=True)

    @property
    def key(self) -> DeploymentKey:
        return DeploymentKey.of(self.strategy_asset, self.collateral_asset)
