from __future__ import annotations

from enum import StrEnum


class FactoryEventKind(StrEnum):
    """
    Event kinds emitted by the strategy factory, stored in Mongo as-is.
    """

    STRATEGY_DEPLOYED = "StrategyDeployed"
    MANAGEMENT_CHANGED = "ManagementChanged"
    FEE_RECIPIENT_CHANGED = "FeeRecipientChanged"


class GasStrategy(StrEnum):
    """
    Gas padding applied by TxService on top of the node estimate.
    """

    DEFAULT = "default"
    BUFFERED = "buffered"
    AGGRESSIVE = "aggressive"
