from __future__ import annotations

from typing import Any, Optional


class StrategyFactoryError(Exception):
    """
    Base class for every rejection raised by the strategy factory.

    Any of these aborts the whole operation: repository writes done so far are
    rolled back and no event is emitted.
    """

    code: str = "strategy_factory_error"


class InvalidRegistryError(StrategyFactoryError):
    """The lending registry did not answer the liveness probe."""

    code = "invalid_registry"


class InvalidAddressError(StrategyFactoryError):
    """A null address was supplied where a real one is required."""

    code = "invalid_address"

    def __init__(self, field: str, value: Any = None):
        self.field = field
        self.value = value
        super().__init__(f"{field} must be a non-zero address (got {value!r})")


class FactoryAlreadyInitializedError(StrategyFactoryError):
    """A factory config is already stored for this chain."""

    code = "already_initialized"

    def __init__(self, chain: str):
        self.chain = chain
        super().__init__(f"a strategy factory is already initialized on {chain}")


class UnauthorizedError(StrategyFactoryError):
    code = "unauthorized"

    def __init__(self, caller: Optional[str]):
        self.caller = caller
        super().__init__(f"caller {caller!r} is not the factory management")


class AlreadyDeployedError(StrategyFactoryError):
    code = "already_deployed"

    def __init__(self, strategy_asset: str, collateral_asset: str, strategy: Optional[str] = None):
        self.strategy_asset = strategy_asset
        self.collateral_asset = collateral_asset
        self.strategy = strategy
        super().__init__(
            f"strategy already deployed for asset={strategy_asset} collateral={collateral_asset}"
            + (f" at {strategy}" if strategy else "")
        )


class IncompatiblePoolError(StrategyFactoryError):
    """
    The silo resolved for the collateral has no share token for the strategy asset.
    """

    code = "incompatible_pool"

    def __init__(self, strategy_asset: str, collateral_asset: str, silo: Optional[str] = None):
        self.strategy_asset = strategy_asset
        self.collateral_asset = collateral_asset
        self.silo = silo
        super().__init__(
            f"asset {strategy_asset} has no share token in silo {silo} "
            f"(collateral {collateral_asset})"
        )


class TransactionRevertedError(RuntimeError):
    """
    Raised after a transaction was mined with status == 0.
    """

    def __init__(self, *, tx_hash: str, receipt: Optional[dict], msg: str):
        self.tx_hash = tx_hash
        self.receipt = receipt
        super().__init__(f"{msg} (tx={tx_hash})")
