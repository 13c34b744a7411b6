from __future__ import annotations

import logging
from typing import Optional, Sequence

from core.domain.entities.factory_entities import (
    DeploymentKey,
    FactoryConfigEntity,
    StrategyDeploymentEntity,
    StrategyParams,
)
from core.domain.entities.factory_event_entity import FactoryEvent
from core.domain.gateways import LendingRegistry, StrategyDeployer, StrategyHandle
from core.domain.repositories.factory_events_repository_interface import (
    FactoryEventsRepositoryInterface,
)
from core.domain.repositories.factory_state_repository_interface import FactoryStateRepository
from core.services.exceptions import (
    AlreadyDeployedError,
    IncompatiblePoolError,
    InvalidAddressError,
    InvalidRegistryError,
    UnauthorizedError,
)
from core.services.unit_of_work import atomic
from core.services.utils import is_null_address, normalize_address

logger = logging.getLogger(__name__)


def _require_address(field: str, value: Optional[str]) -> str:
    if is_null_address(value):
        raise InvalidAddressError(field, value)
    try:
        return normalize_address(value)
    except ValueError as exc:
        raise InvalidAddressError(field, value) from exc


def _address(field: str, value: Optional[str]) -> str:
    """Checksum an address that may legitimately be zero."""
    try:
        return normalize_address(value)
    except ValueError as exc:
        raise InvalidAddressError(field, value) from exc


class StrategyFactory:
    """
    Deploys Silo lender strategies, at most one per (strategy_asset, collateral_asset).

    State lives in a FactoryStateRepository (config + deployment table); events
    go to the factory event log. Every mutating call is all-or-nothing: a
    failure at any step undoes the repository writes made by that call and
    emits nothing.

    Management handoff of deployed strategies is two-phase (the factory only
    proposes `target_management`), while the factory's own `set_management`
    takes effect immediately.
    """

    def __init__(
        self,
        registry: LendingRegistry,
        management: Optional[str],
        performance_fee_recipient: Optional[str],
        *,
        deployer: StrategyDeployer,
        state_repo: FactoryStateRepository,
        events_repo: FactoryEventsRepositoryInterface,
        chain: str,
    ):
        self._probe(registry)
        config = FactoryConfigEntity(
            chain=chain,
            registry=_require_address("registry", registry.address),
            management=_require_address("management", management),
            performance_fee_recipient=_require_address(
                "performance_fee_recipient", performance_fee_recipient
            ),
        ).touch_for_insert()

        self._bind(registry, deployer, state_repo, events_repo, chain)
        state_repo.create_config(config)
        logger.info(
            "strategy factory initialized on %s (registry=%s management=%s fee_recipient=%s)",
            chain,
            config.registry,
            config.management,
            config.performance_fee_recipient,
        )

    @classmethod
    def restore(
        cls,
        registry: LendingRegistry,
        *,
        deployer: StrategyDeployer,
        state_repo: FactoryStateRepository,
        events_repo: FactoryEventsRepositoryInterface,
    ) -> "StrategyFactory":
        """
        Rebuild a factory from its persisted config. The registry probe runs
        again; the stored config is never overwritten.
        """
        config = state_repo.get_config()
        if config is None:
            raise LookupError("no strategy factory has been initialized for this chain")
        cls._probe(registry)
        if _address("registry", registry.address) != config.registry:
            raise InvalidRegistryError(
                f"registry {registry.address} does not match the factory's registry {config.registry}"
            )

        factory = cls.__new__(cls)
        factory._bind(registry, deployer, state_repo, events_repo, config.chain)
        return factory

    def _bind(
        self,
        registry: LendingRegistry,
        deployer: StrategyDeployer,
        state_repo: FactoryStateRepository,
        events_repo: FactoryEventsRepositoryInterface,
        chain: str,
    ) -> None:
        self._registry = registry
        self._deployer = deployer
        self._state_repo = state_repo
        self._events_repo = events_repo
        self._chain = chain

    @staticmethod
    def _probe(registry: LendingRegistry) -> None:
        try:
            live = bool(registry.is_live())
        except Exception as exc:
            raise InvalidRegistryError(f"lending registry probe failed: {exc}") from exc
        if not live:
            raise InvalidRegistryError("lending registry probe returned no answer")

    # ------------------------------------------------------------------ #
    # Views
    # ------------------------------------------------------------------ #

    @property
    def chain(self) -> str:
        return self._chain

    @property
    def registry(self) -> str:
        return self.config().registry

    @property
    def management(self) -> str:
        return self.config().management

    @property
    def performance_fee_recipient(self) -> str:
        return self.config().performance_fee_recipient

    def config(self) -> FactoryConfigEntity:
        """
        The stored config. Always read from the repository, other processes
        may have changed it since this instance was built.
        """
        config = self._state_repo.get_config()
        if config is None:
            raise LookupError(f"no strategy factory config stored for {self._chain}")
        return config

    def is_deployed_asset(self, strategy_asset: str, collateral_asset: str) -> bool:
        return self.deployment_for(strategy_asset, collateral_asset) is not None

    def deployment_for(self, strategy_asset: str, collateral_asset: str) -> Optional[str]:
        record = self._state_repo.get_deployment(DeploymentKey.of(strategy_asset, collateral_asset))
        return record.strategy if record else None

    def get_deployment(self, strategy_asset: str, collateral_asset: str) -> Optional[StrategyDeploymentEntity]:
        return self._state_repo.get_deployment(DeploymentKey.of(strategy_asset, collateral_asset))

    def list_deployments(self, *, limit: int = 100) -> Sequence[StrategyDeploymentEntity]:
        return self._state_repo.list_deployments(limit=limit)

    # ------------------------------------------------------------------ #
    # Management-only commands
    # ------------------------------------------------------------------ #

    def _only_management(self, caller: Optional[str]) -> str:
        """Return the caller's checksummed address if it is the stored management."""
        if is_null_address(caller):
            raise UnauthorizedError(caller)
        try:
            who = normalize_address(caller)
        except ValueError as exc:
            raise UnauthorizedError(caller) from exc
        if who != self.config().management:
            raise UnauthorizedError(who)
        return who

    def deploy(
        self,
        caller: Optional[str],
        target_management: str,
        collateral_asset: str,
        strategy_asset: str,
        incentives_controller: str,
        name: str,
    ) -> StrategyHandle:
        self._only_management(caller)

        asset = _address("strategy_asset", strategy_asset)
        collateral = _address("collateral_asset", collateral_asset)
        target = _address("target_management", target_management)
        incentives = _address("incentives_controller", incentives_controller)
        key = DeploymentKey(strategy_asset=asset, collateral_asset=collateral)

        with atomic(self._events_repo, f"deploy(asset={asset}, collateral={collateral})") as uow:
            existing = self._state_repo.get_deployment(key)
            if existing is not None:
                raise AlreadyDeployedError(asset, collateral, existing.strategy)

            silo = _address("silo", self._registry.get_silo(collateral))
            share_token = _address("share_token", self._registry.get_share_token(silo, asset))
            if is_null_address(share_token):
                raise IncompatiblePoolError(asset, collateral, silo)

            strategy = self._deployer.deploy(
                StrategyParams(
                    registry=self.registry,
                    silo=silo,
                    share_token=share_token,
                    asset=asset,
                    incentives_controller=incentives,
                    name=name,
                )
            )
            strategy_address = normalize_address(strategy.address)

            record = StrategyDeploymentEntity(
                chain=self._chain,
                strategy_asset=asset,
                collateral_asset=collateral,
                strategy=strategy_address,
                silo=silo,
                share_token=share_token,
                incentives_controller=incentives,
                target_management=target,
                name=name,
                tx_hash=strategy.tx_hash,
            ).touch_for_insert()

            # the record must exist before any call into the new strategy,
            # a callback into deploy() for this key then sees AlreadyDeployed
            self._state_repo.insert_deployment(record)
            uow.on_rollback(lambda: self._abandon(record))

            strategy.set_performance_fee_recipient(self.performance_fee_recipient)
            strategy.set_pending_management(target)

            uow.emit(
                FactoryEvent.strategy_deployed(
                    chain=self._chain,
                    target_management=target,
                    strategy=strategy_address,
                    silo=silo,
                    share_token=share_token,
                    strategy_asset=asset,
                    incentives_controller=incentives,
                    name=name,
                )
            )

        logger.info(
            "deployed strategy %s (%s) for asset=%s collateral=%s silo=%s, pending management %s",
            strategy_address,
            name,
            asset,
            collateral,
            silo,
            target,
        )
        return strategy

    def _abandon(self, record: StrategyDeploymentEntity) -> None:
        self._state_repo.delete_deployment(record.key)
        logger.warning(
            "deployment of %s for asset=%s collateral=%s rolled back; the instance is left unreferenced",
            record.strategy,
            record.strategy_asset,
            record.collateral_asset,
        )

    def set_management(self, caller: Optional[str], new_management: Optional[str]) -> str:
        who = self._only_management(caller)
        new = _require_address("management", new_management)

        with atomic(self._events_repo, "set_management") as uow:
            self._update_config(uow, who, management=new)
            uow.emit(FactoryEvent.management_changed(chain=self._chain, new_management=new))

        logger.info("factory management changed to %s", new)
        return new

    def set_performance_fee_recipient(self, caller: Optional[str], new_recipient: Optional[str]) -> str:
        """
        Only affects strategies deployed from now on.
        """
        who = self._only_management(caller)
        new = _require_address("performance_fee_recipient", new_recipient)

        with atomic(self._events_repo, "set_performance_fee_recipient") as uow:
            self._update_config(uow, who, performance_fee_recipient=new)
            uow.emit(FactoryEvent.fee_recipient_changed(chain=self._chain, new_recipient=new))

        logger.info("factory performance fee recipient changed to %s", new)
        return new

    def _update_config(self, uow, caller: str, **changes: str) -> None:
        # conditional on the caller still being management when the write lands
        previous = self._state_repo.update_config(expected_management=caller, changes=changes)
        if previous is None:
            raise UnauthorizedError(caller)

        restore = {field: getattr(previous, field) for field in changes}
        current_management = changes.get("management", caller)

        def undo() -> None:
            if self._state_repo.update_config(expected_management=current_management, changes=restore) is None:
                logger.warning("could not restore factory config %s, it was changed concurrently", restore)

        uow.on_rollback(undo)
