from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from web3 import Web3

from adapters.chain.silo_repository import SiloRepositoryAdapter
from adapters.chain.silo_strategy import SiloStrategyDeployer
from adapters.external.database.factory_events_repository_mongodb import FactoryEventsRepositoryMongoDB
from adapters.external.database.factory_state_repository_mongodb import FactoryStateRepositoryMongoDB
from config import get_settings
from core.domain.entities.factory_entities import StrategyDeploymentEntity
from core.domain.gateways import LendingRegistry, StrategyDeployer
from core.domain.repositories.factory_events_repository_interface import (
    FactoryEventsRepositoryInterface,
)
from core.domain.repositories.factory_state_repository_interface import FactoryStateRepository
from core.services.exceptions import FactoryAlreadyInitializedError
from core.services.strategy_factory import StrategyFactory
from core.services.tx_service import TxService
from core.services.utils import normalize_address

logger = logging.getLogger(__name__)


def _deployment_out(d: StrategyDeploymentEntity) -> dict:
    return {
        "strategy": d.strategy,
        "strategy_asset": d.strategy_asset,
        "collateral_asset": d.collateral_asset,
        "silo": d.silo,
        "share_token": d.share_token,
        "incentives_controller": d.incentives_controller,
        "target_management": d.target_management,
        "name": d.name,
        "tx_hash": d.tx_hash,
        "created_at": d.created_at_iso,
    }


@dataclass
class StrategyFactoryUseCase:
    """
    Entry point for the HTTP layer.

    - Views: config, deployment lookup / listing, event feed, withdraw limits
    - Management commands: deploy, set_management, set_performance_fee_recipient
      (the backend signs; `caller` is the authenticated wallet and the factory
      decides whether it is the management)
    """

    factory: StrategyFactory
    deployer: StrategyDeployer
    events_repo: FactoryEventsRepositoryInterface

    @classmethod
    def build(
        cls,
        *,
        chain: str,
        registry: LendingRegistry,
        deployer: StrategyDeployer,
        state_repo: FactoryStateRepository,
        events_repo: FactoryEventsRepositoryInterface,
        management: Optional[str] = None,
        performance_fee_recipient: Optional[str] = None,
    ) -> "StrategyFactoryUseCase":
        """
        Restore the factory persisted for `chain`, or initialize it from the
        bootstrap addresses when nothing is stored yet. When two processes
        initialize concurrently only one insert wins; the other restores.
        """
        if state_repo.get_config() is None:
            logger.info("no strategy factory stored for %s, initializing", chain)
            try:
                factory = StrategyFactory(
                    registry,
                    management,
                    performance_fee_recipient,
                    deployer=deployer,
                    state_repo=state_repo,
                    events_repo=events_repo,
                    chain=chain,
                )
                return cls(factory=factory, deployer=deployer, events_repo=events_repo)
            except FactoryAlreadyInitializedError:
                logger.info("strategy factory on %s was initialized concurrently, restoring", chain)

        factory = StrategyFactory.restore(
            registry,
            deployer=deployer,
            state_repo=state_repo,
            events_repo=events_repo,
        )
        return cls(factory=factory, deployer=deployer, events_repo=events_repo)

    @classmethod
    def from_settings(cls) -> "StrategyFactoryUseCase":
        s = get_settings()
        txs = TxService(s.RPC_URL_DEFAULT)
        return cls.build(
            chain=s.CHAIN,
            registry=SiloRepositoryAdapter(w3=txs.w3, address=s.SILO_REPOSITORY_ADDRESS),
            deployer=SiloStrategyDeployer(txs, artifact=s.STRATEGY_ARTIFACT),
            state_repo=FactoryStateRepositoryMongoDB(chain=s.CHAIN),
            events_repo=FactoryEventsRepositoryMongoDB(chain=s.CHAIN),
            management=s.FACTORY_MANAGEMENT,
            performance_fee_recipient=s.PERFORMANCE_FEE_RECIPIENT,
        )

    # ------------------------------------------------------------------ #
    # Views
    # ------------------------------------------------------------------ #

    def get_config(self) -> dict:
        config = self.factory.config()
        return {
            "chain": config.chain,
            "registry": config.registry,
            "management": config.management,
            "performance_fee_recipient": config.performance_fee_recipient,
        }

    def lookup(self, *, strategy_asset: str, collateral_asset: str) -> dict:
        strategy = self.factory.deployment_for(strategy_asset, collateral_asset)
        return {
            "strategy_asset": normalize_address(strategy_asset),
            "collateral_asset": normalize_address(collateral_asset),
            "deployed": strategy is not None,
            "strategy": strategy,
        }

    def list_deployments(self, *, limit: int = 100) -> list[dict]:
        return [_deployment_out(d) for d in self.factory.list_deployments(limit=limit)]

    def recent_events(self, *, kind: Optional[str] = None, limit: int = 200) -> list[dict]:
        return [e.as_dict() for e in self.events_repo.get_recent_events(kind=kind, limit=limit)]

    def withdraw_limit(self, *, strategy: str, owner: str) -> dict:
        handle = self.deployer.attach(strategy)
        return {
            "strategy": handle.address,
            "owner": normalize_address(owner),
            "available_withdraw_limit": str(handle.available_withdraw_limit(owner)),
        }

    # ------------------------------------------------------------------ #
    # Management commands
    # ------------------------------------------------------------------ #

    def deploy(
        self,
        *,
        caller: str,
        target_management: str,
        collateral_asset: str,
        strategy_asset: str,
        incentives_controller: str,
        name: str,
    ) -> dict:
        handle = self.factory.deploy(
            caller,
            target_management,
            collateral_asset,
            strategy_asset,
            incentives_controller,
            name,
        )
        record = self.factory.get_deployment(strategy_asset, collateral_asset)
        out = _deployment_out(record) if record else {"strategy": handle.address}
        out["tx_hash"] = out.get("tx_hash") or handle.tx_hash
        return out

    def set_management(self, *, caller: str, new_management: str) -> dict:
        return {"management": self.factory.set_management(caller, new_management)}

    def set_performance_fee_recipient(self, *, caller: str, new_recipient: str) -> dict:
        return {
            "performance_fee_recipient": self.factory.set_performance_fee_recipient(caller, new_recipient)
        }
