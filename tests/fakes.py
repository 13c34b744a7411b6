"""
Stand-ins for the lending registry and the strategy contracts.
"""
from __future__ import annotations

from typing import Callable, Dict, List, Optional, Tuple

from core.domain.entities.factory_entities import StrategyParams
from core.domain.gateways import LendingRegistry, StrategyDeployer, StrategyHandle
from core.services.utils import ZERO_ADDRESS, normalize_address


def addr(n: int) -> str:
    """Deterministic checksummed-looking test address (digits only, so casing is moot)."""
    return "0x" + f"{n:040d}"


class FakeLendingRegistry(LendingRegistry):
    def __init__(self, address: str = addr(9000), *, live: bool = True):
        self.address = address
        self.live = live
        self.probe_error: Optional[Exception] = None
        self.silos: Dict[str, str] = {}
        self.share_tokens: Dict[Tuple[str, str], str] = {}

    def add_silo(self, collateral: str, silo: str, share_tokens: Dict[str, str]) -> None:
        self.silos[normalize_address(collateral)] = normalize_address(silo)
        for asset, token in share_tokens.items():
            self.share_tokens[(normalize_address(silo), normalize_address(asset))] = normalize_address(token)

    def is_live(self) -> bool:
        if self.probe_error is not None:
            raise self.probe_error
        return self.live

    def get_silo(self, collateral_asset: str) -> str:
        return self.silos.get(normalize_address(collateral_asset), ZERO_ADDRESS)

    def get_share_token(self, silo: str, asset: str) -> str:
        return self.share_tokens.get((normalize_address(silo), normalize_address(asset)), ZERO_ADDRESS)


class FakeStrategy(StrategyHandle):
    def __init__(self, address: str, params: StrategyParams):
        self.address = address
        self.params = params
        self.tx_hash = "0x" + "ab" * 32
        self.performance_fee_recipient: Optional[str] = None
        self.pending_management: Optional[str] = None
        self.calls: List[str] = []
        self.withdraw_limit = 0
        # hooks let tests call back into the factory from inside a setter
        self.on_set_fee_recipient: Optional[Callable[["FakeStrategy"], None]] = None
        self.fail_pending_management: Optional[Exception] = None

    def set_performance_fee_recipient(self, recipient: str) -> None:
        self.calls.append("setPerformanceFeeRecipient")
        if self.on_set_fee_recipient is not None:
            self.on_set_fee_recipient(self)
        self.performance_fee_recipient = recipient

    def set_pending_management(self, management: str) -> None:
        self.calls.append("setPendingManagement")
        if self.fail_pending_management is not None:
            raise self.fail_pending_management
        self.pending_management = management

    def available_withdraw_limit(self, owner: str) -> int:
        return self.withdraw_limit


class FakeStrategyDeployer(StrategyDeployer):
    def __init__(self, first_address: int = 5000):
        self._next = first_address
        self.deployed: List[FakeStrategy] = []
        self.by_address: Dict[str, FakeStrategy] = {}
        self.before_return: Optional[Callable[[FakeStrategy], None]] = None

    def deploy(self, params: StrategyParams) -> FakeStrategy:
        strategy = FakeStrategy(addr(self._next), params)
        self._next += 1
        self.deployed.append(strategy)
        self.by_address[strategy.address] = strategy
        if self.before_return is not None:
            self.before_return(strategy)
        return strategy

    def attach(self, address: str) -> FakeStrategy:
        return self.by_address[address]
