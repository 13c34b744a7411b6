"""
HTTP tests for the strategy factory router, backed by in-memory state and fakes.
"""
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from adapters.entry.http.views.admin.admin_auth import CallerPrincipal, require_wallet
from adapters.entry.http.views.strategy_factory_view import get_use_case, router
from core.domain.enums.factory_enums import FactoryEventKind
from core.services.utils import ZERO_ADDRESS
from core.use_cases.strategy_factory_usecase import StrategyFactoryUseCase
from tests.conftest import ASSET, COLLATERAL, FEE_RECIPIENT, INCENTIVES, MANAGEMENT, OUTSIDER, SHARE_TOKEN, TARGET
from tests.fakes import addr


@pytest.fixture
def use_case(registry, deployer, state_repo, events_repo):
    return StrategyFactoryUseCase.build(
        chain="sonic",
        registry=registry,
        deployer=deployer,
        state_repo=state_repo,
        events_repo=events_repo,
        management=MANAGEMENT,
        performance_fee_recipient=FEE_RECIPIENT,
    )


@pytest.fixture
def caller():
    return {"wallet": MANAGEMENT.lower()}


@pytest.fixture
def client(use_case, caller):
    app = FastAPI()
    app.include_router(router, prefix="/api")
    app.dependency_overrides[get_use_case] = lambda: use_case
    app.dependency_overrides[require_wallet] = lambda: CallerPrincipal(
        privy_did="did:privy:test", wallet_address=caller["wallet"]
    )
    return TestClient(app)


def _deploy_body(**overrides):
    body = {
        "target_management": TARGET,
        "collateral_asset": COLLATERAL,
        "strategy_asset": ASSET,
        "incentives_controller": INCENTIVES,
        "name": "Silo Lender",
    }
    body.update(overrides)
    return body


class TestViews:
    def test_config(self, client):
        r = client.get("/api/strategy-factory")
        assert r.status_code == 200
        data = r.json()
        assert data["management"] == MANAGEMENT
        assert data["performance_fee_recipient"] == FEE_RECIPIENT
        assert data["chain"] == "sonic"

    def test_lookup_before_and_after_deploy(self, client):
        params = {"strategy_asset": ASSET, "collateral_asset": COLLATERAL}
        r = client.get("/api/strategy-factory/deployments/lookup", params=params)
        assert r.json() == {
            "strategy_asset": ASSET,
            "collateral_asset": COLLATERAL,
            "deployed": False,
            "strategy": None,
        }

        deployed = client.post("/api/strategy-factory/deploy", json=_deploy_body()).json()

        r = client.get("/api/strategy-factory/deployments/lookup", params=params)
        assert r.json()["deployed"] is True
        assert r.json()["strategy"] == deployed["strategy"]

    def test_lookup_rejects_garbage(self, client):
        r = client.get(
            "/api/strategy-factory/deployments/lookup",
            params={"strategy_asset": "nope", "collateral_asset": COLLATERAL},
        )
        assert r.status_code == 400


class TestDeploy:
    def test_deploy(self, client):
        r = client.post("/api/strategy-factory/deploy", json=_deploy_body())
        assert r.status_code == 200
        data = r.json()
        assert data["share_token"] == SHARE_TOKEN
        assert data["target_management"] == TARGET
        assert data["name"] == "Silo Lender"

        listed = client.get("/api/strategy-factory/deployments").json()["items"]
        assert [d["strategy"] for d in listed] == [data["strategy"]]

        events = client.get(
            "/api/strategy-factory/events", params={"kind": FactoryEventKind.STRATEGY_DEPLOYED.value}
        ).json()
        assert len(events) == 1
        assert events[0]["payload"]["strategyAddress"] == data["strategy"]

    def test_duplicate_is_conflict(self, client):
        assert client.post("/api/strategy-factory/deploy", json=_deploy_body()).status_code == 200
        r = client.post("/api/strategy-factory/deploy", json=_deploy_body())
        assert r.status_code == 409
        assert r.json()["detail"]["error"] == "already_deployed"

    def test_incompatible_pool(self, client):
        r = client.post("/api/strategy-factory/deploy", json=_deploy_body(strategy_asset=addr(777)))
        assert r.status_code == 422
        assert r.json()["detail"]["error"] == "incompatible_pool"

    def test_not_management(self, client, caller):
        caller["wallet"] = OUTSIDER
        r = client.post("/api/strategy-factory/deploy", json=_deploy_body())
        assert r.status_code == 403
        assert r.json()["detail"]["error"] == "unauthorized"

    def test_bad_address_in_body(self, client):
        r = client.post("/api/strategy-factory/deploy", json=_deploy_body(strategy_asset="0x123"))
        assert r.status_code == 422

    def test_strategy_revert(self, client, deployer):
        from core.services.exceptions import TransactionRevertedError

        def revert(strategy):
            strategy.fail_pending_management = TransactionRevertedError(
                tx_hash="0xdead", receipt={"status": 0}, msg="setPendingManagement reverted"
            )

        deployer.before_return = revert
        r = client.post("/api/strategy-factory/deploy", json=_deploy_body())
        assert r.status_code == 500
        assert r.json()["detail"]["error"] == "reverted_on_chain"

        lookup = client.get(
            "/api/strategy-factory/deployments/lookup",
            params={"strategy_asset": ASSET, "collateral_asset": COLLATERAL},
        )
        assert lookup.json()["deployed"] is False


class TestConfigCommands:
    def test_set_management(self, client):
        r = client.post("/api/strategy-factory/management", json={"management": addr(10)})
        assert r.status_code == 200
        assert r.json() == {"management": addr(10)}
        assert client.get("/api/strategy-factory").json()["management"] == addr(10)

    def test_set_management_zero(self, client):
        r = client.post("/api/strategy-factory/management", json={"management": ZERO_ADDRESS})
        assert r.status_code == 400
        assert r.json()["detail"]["error"] == "invalid_address"

    def test_set_fee_recipient(self, client):
        r = client.post(
            "/api/strategy-factory/performance-fee-recipient",
            json={"performance_fee_recipient": addr(11)},
        )
        assert r.status_code == 200
        events = client.get(
            "/api/strategy-factory/events", params={"kind": FactoryEventKind.FEE_RECIPIENT_CHANGED.value}
        ).json()
        assert [e["payload"] for e in events] == [{"newRecipient": addr(11)}]

    def test_set_fee_recipient_not_management(self, client, caller):
        caller["wallet"] = OUTSIDER
        r = client.post(
            "/api/strategy-factory/performance-fee-recipient",
            json={"performance_fee_recipient": addr(11)},
        )
        assert r.status_code == 403


def test_withdraw_limit(client, deployer):
    strategy = client.post("/api/strategy-factory/deploy", json=_deploy_body()).json()["strategy"]
    deployer.by_address[strategy].withdraw_limit = 10**24

    r = client.get(f"/api/strategy-factory/strategies/{strategy}/withdraw-limit", params={"owner": TARGET})
    assert r.status_code == 200
    assert r.json()["available_withdraw_limit"] == str(10**24)


def test_build_restores_existing_factory(use_case, registry, deployer, state_repo, events_repo):
    use_case.factory.set_management(MANAGEMENT, addr(10))

    again = StrategyFactoryUseCase.build(
        chain="sonic",
        registry=registry,
        deployer=deployer,
        state_repo=state_repo,
        events_repo=events_repo,
        management=MANAGEMENT,
        performance_fee_recipient=FEE_RECIPIENT,
    )
    assert again.factory.management == addr(10)


def test_build_restores_when_initialized_concurrently(
    use_case, registry, deployer, state_repo, events_repo, monkeypatch
):
    # the existence check misses the config another process just created
    real_get_config = state_repo.get_config
    calls = []

    def racing_get_config():
        calls.append(1)
        return None if len(calls) == 1 else real_get_config()

    monkeypatch.setattr(state_repo, "get_config", racing_get_config)

    again = StrategyFactoryUseCase.build(
        chain="sonic",
        registry=registry,
        deployer=deployer,
        state_repo=state_repo,
        events_repo=events_repo,
        management=addr(9),
        performance_fee_recipient=addr(9),
    )
    assert again.factory.management == MANAGEMENT
    assert real_get_config().performance_fee_recipient == FEE_RECIPIENT


class TestUseCasePerRequest:
    """Every request builds its own use case over shared storage, as get_use_case does."""

    @pytest.fixture
    def client(self, use_case, registry, deployer, state_repo, events_repo, caller):
        def fresh_use_case():
            return StrategyFactoryUseCase.build(
                chain="sonic",
                registry=registry,
                deployer=deployer,
                state_repo=state_repo,
                events_repo=events_repo,
                management=MANAGEMENT,
                performance_fee_recipient=FEE_RECIPIENT,
            )

        app = FastAPI()
        app.include_router(router, prefix="/api")
        app.dependency_overrides[get_use_case] = fresh_use_case
        app.dependency_overrides[require_wallet] = lambda: CallerPrincipal(
            privy_did="did:privy:test", wallet_address=caller["wallet"]
        )
        return TestClient(app)

    def test_old_management_is_refused_after_handoff(self, client, caller):
        new = addr(10)
        assert client.post("/api/strategy-factory/management", json={"management": new}).status_code == 200

        r = client.post(
            "/api/strategy-factory/performance-fee-recipient",
            json={"performance_fee_recipient": addr(11)},
        )
        assert r.status_code == 403
        assert client.post("/api/strategy-factory/deploy", json=_deploy_body()).status_code == 403

        config = client.get("/api/strategy-factory").json()
        assert config["management"] == new
        assert config["performance_fee_recipient"] == FEE_RECIPIENT

        caller["wallet"] = new.lower()
        r = client.post(
            "/api/strategy-factory/performance-fee-recipient",
            json={"performance_fee_recipient": addr(11)},
        )
        assert r.status_code == 200
        config = client.get("/api/strategy-factory").json()
        assert config["management"] == new
        assert config["performance_fee_recipient"] == addr(11)
