from unittest.mock import MagicMock

import pytest
from pymongo.errors import DuplicateKeyError

from adapters.external.database.factory_state_repository_mongodb import FactoryStateRepositoryMongoDB
from adapters.external.memory import InMemoryFactoryStateRepository
from core.domain.entities.factory_entities import DeploymentKey, FactoryConfigEntity, StrategyDeploymentEntity
from core.services.exceptions import AlreadyDeployedError, FactoryAlreadyInitializedError
from tests.fakes import addr


def _record(asset: int, collateral: int, strategy: int) -> StrategyDeploymentEntity:
    return StrategyDeploymentEntity(
        chain="sonic",
        strategy_asset=addr(asset),
        collateral_asset=addr(collateral),
        strategy=addr(strategy),
        silo=addr(300),
        share_token=addr(400),
        incentives_controller=addr(4),
        target_management=addr(3),
        name="s",
    ).touch_for_insert()


def _config(management: int = 1, fee: int = 2) -> FactoryConfigEntity:
    return FactoryConfigEntity(
        chain="sonic",
        registry=addr(900),
        management=addr(management),
        performance_fee_recipient=addr(fee),
    ).touch_for_insert()


class TestInMemoryFactoryStateRepository:
    def test_two_level_lookup_is_ordered(self):
        repo = InMemoryFactoryStateRepository()
        repo.insert_deployment(_record(100, 200, 5000))

        assert repo.get_deployment(DeploymentKey.of(addr(100), addr(200))).strategy == addr(5000)
        assert repo.get_deployment(DeploymentKey.of(addr(200), addr(100))) is None

    def test_same_asset_different_collateral(self):
        repo = InMemoryFactoryStateRepository()
        repo.insert_deployment(_record(100, 200, 5000))
        repo.insert_deployment(_record(100, 201, 5001))

        assert repo.count() == 2
        assert [d.strategy for d in repo.list_deployments()] == [addr(5001), addr(5000)]

    def test_duplicate_insert_raises(self):
        repo = InMemoryFactoryStateRepository()
        repo.insert_deployment(_record(100, 200, 5000))

        with pytest.raises(AlreadyDeployedError):
            repo.insert_deployment(_record(100, 200, 5001))
        assert repo.get_deployment(DeploymentKey.of(addr(100), addr(200))).strategy == addr(5000)

    def test_delete_then_reinsert(self):
        repo = InMemoryFactoryStateRepository()
        repo.insert_deployment(_record(100, 200, 5000))
        repo.delete_deployment(DeploymentKey.of(addr(100), addr(200)))

        assert repo.count() == 0
        repo.insert_deployment(_record(100, 200, 5001))
        assert repo.count() == 1

    def test_returned_records_are_copies(self):
        repo = InMemoryFactoryStateRepository()
        repo.insert_deployment(_record(100, 200, 5000))

        got = repo.get_deployment(DeploymentKey.of(addr(100), addr(200)))
        got.strategy = addr(1)
        assert repo.get_deployment(DeploymentKey.of(addr(100), addr(200))).strategy == addr(5000)

    def test_config_is_created_once(self):
        repo = InMemoryFactoryStateRepository()
        repo.create_config(_config())

        with pytest.raises(FactoryAlreadyInitializedError):
            repo.create_config(_config(management=7, fee=7))
        assert repo.get_config().management == addr(1)

    def test_update_config_requires_expected_management(self):
        repo = InMemoryFactoryStateRepository()
        repo.create_config(_config())

        assert repo.update_config(expected_management=addr(5), changes={"management": addr(5)}) is None
        assert repo.get_config().management == addr(1)

        previous = repo.update_config(expected_management=addr(1), changes={"performance_fee_recipient": addr(3)})
        assert previous.performance_fee_recipient == addr(2)
        assert repo.get_config().performance_fee_recipient == addr(3)
        assert repo.get_config().management == addr(1)

    def test_update_config_without_config(self):
        repo = InMemoryFactoryStateRepository()
        assert repo.update_config(expected_management=addr(1), changes={"management": addr(2)}) is None


class TestFactoryStateRepositoryMongoDB:
    @pytest.fixture
    def db(self):
        collections = {}
        db = MagicMock()
        db.__getitem__.side_effect = lambda name: collections.setdefault(name, MagicMock(name=name))
        return db

    def test_requires_chain(self, db):
        with pytest.raises(ValueError):
            FactoryStateRepositoryMongoDB(chain=" ", db=db)

    def test_unique_index_on_key(self, db):
        repo = FactoryStateRepositoryMongoDB(chain="Sonic", db=db)
        repo.ensure_indexes()

        first_call = repo.deployments_collection.create_index.call_args_list[0]
        assert first_call.args[0] == [("chain", 1), ("strategy_asset", 1), ("collateral_asset", 1)]
        assert first_call.kwargs["unique"] is True

    def test_duplicate_key_maps_to_already_deployed(self, db):
        repo = FactoryStateRepositoryMongoDB(chain="sonic", db=db)
        repo.deployments_collection.insert_one.side_effect = DuplicateKeyError("E11000")

        with pytest.raises(AlreadyDeployedError):
            repo.insert_deployment(_record(100, 200, 5000))

    def test_lookup_filters_by_chain_and_key(self, db):
        repo = FactoryStateRepositoryMongoDB(chain="sonic", db=db)
        repo.deployments_collection.find_one.return_value = None

        assert repo.get_deployment(DeploymentKey.of(addr(100), addr(200))) is None
        repo.deployments_collection.find_one.assert_called_once_with(
            {"chain": "sonic", "strategy_asset": addr(100), "collateral_asset": addr(200)}
        )

    def test_lookup_maps_document(self, db):
        repo = FactoryStateRepositoryMongoDB(chain="sonic", db=db)
        doc = _record(100, 200, 5000).to_mongo()
        doc["_id"] = "65f0c0ffee"
        repo.deployments_collection.find_one.return_value = doc

        got = repo.get_deployment(DeploymentKey.of(addr(100), addr(200)))
        assert got.id == "65f0c0ffee"
        assert got.strategy == addr(5000)

    def test_create_config_maps_duplicate_to_already_initialized(self, db):
        repo = FactoryStateRepositoryMongoDB(chain="sonic", db=db)
        db["strategy_factory_config"].insert_one.side_effect = DuplicateKeyError("E11000")

        with pytest.raises(FactoryAlreadyInitializedError):
            repo.create_config(_config())

    def test_create_config_uses_chain_as_id(self, db):
        repo = FactoryStateRepositoryMongoDB(chain="Sonic", db=db)
        repo.create_config(_config())

        doc = db["strategy_factory_config"].insert_one.call_args.args[0]
        assert doc["_id"] == "sonic"
        assert doc["management"] == addr(1)

    def test_update_config_is_conditional_on_management(self, db):
        repo = FactoryStateRepositoryMongoDB(chain="sonic", db=db)
        collection = db["strategy_factory_config"]
        collection.find_one_and_update.return_value = None

        assert repo.update_config(expected_management=addr(1), changes={"management": addr(5)}) is None

        filter_, update = collection.find_one_and_update.call_args.args
        assert filter_ == {"_id": "sonic", "management": addr(1)}
        assert update["$set"]["management"] == addr(5)
        assert "performance_fee_recipient" not in update["$set"]
