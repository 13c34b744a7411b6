import pytest

from adapters.external.memory import InMemoryFactoryEventsRepository, InMemoryFactoryStateRepository
from core.services.strategy_factory import StrategyFactory
from tests.fakes import FakeLendingRegistry, FakeStrategyDeployer, addr

MANAGEMENT = addr(1)
FEE_RECIPIENT = addr(2)
TARGET = addr(3)
INCENTIVES = addr(4)
OUTSIDER = addr(66)

ASSET = addr(100)       # strategy asset (borrowable in the silo)
COLLATERAL = addr(200)  # collateral asset resolving to SILO
SILO = addr(300)
SHARE_TOKEN = addr(400)


@pytest.fixture
def registry() -> FakeLendingRegistry:
    reg = FakeLendingRegistry()
    reg.add_silo(COLLATERAL, SILO, {ASSET: SHARE_TOKEN})
    return reg


@pytest.fixture
def deployer() -> FakeStrategyDeployer:
    return FakeStrategyDeployer()


@pytest.fixture
def state_repo() -> InMemoryFactoryStateRepository:
    return InMemoryFactoryStateRepository()


@pytest.fixture
def events_repo() -> InMemoryFactoryEventsRepository:
    return InMemoryFactoryEventsRepository()


@pytest.fixture
def factory(registry, deployer, state_repo, events_repo) -> StrategyFactory:
    return StrategyFactory(
        registry,
        MANAGEMENT,
        FEE_RECIPIENT,
        deployer=deployer,
        state_repo=state_repo,
        events_repo=events_repo,
        chain="sonic",
    )
