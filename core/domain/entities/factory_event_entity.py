# domain/entities/factory_event_entity.py
from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from core.domain.enums.factory_enums import FactoryEventKind


def _now() -> tuple[int, str]:
    now_s = int(time.time())
    return now_s, datetime.fromtimestamp(now_s, timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass
class FactoryEvent:
    """
    Off-chain record of an event emitted by the strategy factory.

    Stored one document per event in `strategy_factory_events` so indexers and
    the admin UI can replay what the factory did.

    Attributes:
        chain: Chain key the factory lives on.
        kind: One of FactoryEventKind.
        payload: Event fields, named like the on-chain event arguments.
        indexed: Subset of payload exposed as top-level, queryable fields.
        ts / ts_iso: Emission time.
    """

    chain: str
    kind: str
    payload: Dict[str, Any]
    indexed: Dict[str, Any] = field(default_factory=dict)
    ts: int = 0
    ts_iso: str = ""
    id: Optional[Any] = None

    def __post_init__(self) -> None:
        if not self.ts:
            self.ts, self.ts_iso = _now()

    @classmethod
    def strategy_deployed(
        cls,
        *,
        chain: str,
        target_management: str,
        strategy: str,
        silo: str,
        share_token: str,
        strategy_asset: str,
        incentives_controller: str,
        name: str,
    ) -> "FactoryEvent":
        return cls(
            chain=chain,
            kind=FactoryEventKind.STRATEGY_DEPLOYED.value,
            payload={
                "targetManagement": target_management,
                "strategyAddress": strategy,
                "poolAddress": silo,
                "shareTokenAddress": share_token,
                "strategyAsset": strategy_asset,
                "incentivesCollaborator": incentives_controller,
                "name": name,
            },
            indexed={"strategyAsset": strategy_asset},
        )

    @classmethod
    def management_changed(cls, *, chain: str, new_management: str) -> "FactoryEvent":
        return cls(
            chain=chain,
            kind=FactoryEventKind.MANAGEMENT_CHANGED.value,
            payload={"newManagement": new_management},
        )

    @classmethod
    def fee_recipient_changed(cls, *, chain: str, new_recipient: str) -> "FactoryEvent":
        return cls(
            chain=chain,
            kind=FactoryEventKind.FEE_RECIPIENT_CHANGED.value,
            payload={"newRecipient": new_recipient},
        )

    @classmethod
    def from_mongo(cls, doc: Dict[str, Any]) -> "FactoryEvent":
        if not doc:
            raise ValueError("Cannot build FactoryEvent from empty document")

        return cls(
            id=doc.get("_id"),
            chain=doc["chain"],
            kind=doc["kind"],
            payload=doc.get("payload") or {},
            indexed=doc.get("indexed") or {},
            ts=int(doc.get("ts", 0)),
            ts_iso=str(doc.get("ts_iso", "")),
        )

    def to_mongo(self) -> Dict[str, Any]:
        doc: Dict[str, Any] = {
            "chain": self.chain,
            "kind": self.kind,
            "payload": self.payload,
            "indexed": self.indexed,
            "ts": self.ts,
            "ts_iso": self.ts_iso,
        }
        if self.id is not None:
            doc["_id"] = self.id
        return doc

    def as_dict(self) -> Dict[str, Any]:
        return {
            "chain": self.chain,
            "kind": self.kind,
            "payload": dict(self.payload),
            "ts": self.ts,
            "ts_iso": self.ts_iso,
        }
