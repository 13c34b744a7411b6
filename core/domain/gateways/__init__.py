from .lending_registry_interface import LendingRegistry
from .strategy_deployer_interface import StrategyDeployer, StrategyHandle

__all__ = [
    "LendingRegistry",
    "StrategyDeployer",
    "StrategyHandle",
]
