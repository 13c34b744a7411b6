# adapters/external/database/factory_events_repository_mongodb.py
from __future__ import annotations

from typing import Any, Dict, List, Optional

from pymongo.collection import Collection
from pymongo.database import Database

from adapters.external.database.mongo_client import get_mongo_db
from core.domain.entities.factory_event_entity import FactoryEvent
from core.domain.repositories.factory_events_repository_interface import (
    FactoryEventsRepositoryInterface,
)


class FactoryEventsRepositoryMongoDB(FactoryEventsRepositoryInterface):
    """
    Event log of the strategy factory.

    Each emitted event is stored as its own document in the
    'strategy_factory_events' collection.
    """

    COLLECTION_NAME = "strategy_factory_events"

    def __init__(self, *, chain: str, db: Optional[Database] = None) -> None:
        self.chain = (chain or "").strip().lower()
        self._db: Database = db if db is not None else get_mongo_db()
        self._collection: Collection = self._db[self.COLLECTION_NAME]

    @property
    def collection(self) -> Collection:
        return self._collection

    def ensure_indexes(self) -> None:
        """
        - (chain, kind, ts desc) for the admin event feed.
        - (chain, indexed.strategyAsset) so indexers can look deployments up by asset.
        """
        self._collection.create_index(
            [("chain", 1), ("kind", 1), ("ts", -1)],
            name="ix_strategy_factory_events_chain_kind_ts_desc",
        )
        self._collection.create_index(
            [("chain", 1), ("indexed.strategyAsset", 1)],
            name="ix_strategy_factory_events_chain_strategy_asset",
        )

    def append_event(self, event: FactoryEvent) -> None:
        doc = event.to_mongo()
        doc["chain"] = self.chain
        res = self._collection.insert_one(doc)
        event.id = res.inserted_id

    def get_recent_events(
        self,
        kind: Optional[str] = None,
        limit: int = 200,
    ) -> List[FactoryEvent]:
        query: Dict[str, Any] = {"chain": self.chain}
        if kind is not None:
            query["kind"] = kind

        cursor = (
            self._collection
            .find(query)
            .sort("ts", -1)
            .limit(int(limit))
        )
        return [FactoryEvent.from_mongo(doc) for doc in cursor]
