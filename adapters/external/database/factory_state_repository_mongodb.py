from __future__ import annotations

from typing import Dict, Optional, Sequence

from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from adapters.external.database.mongo_client import get_mongo_db
from core.domain.entities.factory_entities import (
    DeploymentKey,
    FactoryConfigEntity,
    StrategyDeploymentEntity,
)
from core.domain.repositories.factory_state_repository_interface import FactoryStateRepository
from core.services.exceptions import AlreadyDeployedError, FactoryAlreadyInitializedError


class FactoryStateRepositoryMongoDB(FactoryStateRepository):
    """
    Strategy factory state for one chain.

    Collections:
      strategy_factory_config   one document per chain, `_id` = chain key
      strategy_deployments      one document per (chain, strategy_asset, collateral_asset);
                                uniqueness is enforced by an index so two writers
                                can never both record the same slot
    """

    CONFIG_COLLECTION = "strategy_factory_config"
    DEPLOYMENTS_COLLECTION = "strategy_deployments"

    def __init__(self, *, chain: str, db: Optional[Database] = None) -> None:
        self.chain = (chain or "").strip().lower()
        if not self.chain:
            raise ValueError("chain is required")
        self._db: Database = db if db is not None else get_mongo_db()
        self._config: Collection = self._db[self.CONFIG_COLLECTION]
        self._deployments: Collection = self._db[self.DEPLOYMENTS_COLLECTION]

    @property
    def deployments_collection(self) -> Collection:
        return self._deployments

    def ensure_indexes(self) -> None:
        self._deployments.create_index(
            [("chain", ASCENDING), ("strategy_asset", ASCENDING), ("collateral_asset", ASCENDING)],
            name="ux_strategy_deployments_chain_asset_collateral",
            unique=True,
        )
        self._deployments.create_index(
            [("chain", ASCENDING), ("created_at", DESCENDING)],
            name="ix_strategy_deployments_chain_created_at_desc",
        )

    # ---------------- config ----------------

    def get_config(self) -> Optional[FactoryConfigEntity]:
        doc = self._config.find_one({"_id": self.chain})
        return FactoryConfigEntity.from_mongo(doc)

    def create_config(self, entity: FactoryConfigEntity) -> None:
        doc = entity.to_mongo()
        doc["_id"] = self.chain
        try:
            self._config.insert_one(doc)
        except DuplicateKeyError as exc:
            raise FactoryAlreadyInitializedError(self.chain) from exc
        entity.id = self.chain

    def update_config(
        self, *, expected_management: str, changes: Dict[str, str]
    ) -> Optional[FactoryConfigEntity]:
        doc = self._config.find_one_and_update(
            {"_id": self.chain, "management": expected_management},
            {
                "$set": {
                    **changes,
                    "updated_at": FactoryConfigEntity.now_ms(),
                    "updated_at_iso": FactoryConfigEntity.now_iso(),
                }
            },
            return_document=ReturnDocument.BEFORE,
        )
        return FactoryConfigEntity.from_mongo(doc)

    # ---------------- deployments ----------------

    def _key_filter(self, key: DeploymentKey) -> dict:
        return {
            "chain": self.chain,
            "strategy_asset": key.strategy_asset,
            "collateral_asset": key.collateral_asset,
        }

    def get_deployment(self, key: DeploymentKey) -> Optional[StrategyDeploymentEntity]:
        doc = self._deployments.find_one(self._key_filter(key))
        return StrategyDeploymentEntity.from_mongo(doc)

    def insert_deployment(self, entity: StrategyDeploymentEntity) -> None:
        doc = entity.to_mongo()
        doc["chain"] = self.chain
        try:
            res = self._deployments.insert_one(doc)
        except DuplicateKeyError as exc:
            raise AlreadyDeployedError(entity.strategy_asset, entity.collateral_asset) from exc
        entity.id = str(res.inserted_id)

    def delete_deployment(self, key: DeploymentKey) -> None:
        self._deployments.delete_one(self._key_filter(key))

    def list_deployments(self, *, limit: int = 100) -> Sequence[StrategyDeploymentEntity]:
        cursor = (
            self._deployments
            .find({"chain": self.chain}, sort=[("created_at", DESCENDING)])
            .limit(int(limit))
        )
        return [StrategyDeploymentEntity.from_mongo(d) for d in cursor]
