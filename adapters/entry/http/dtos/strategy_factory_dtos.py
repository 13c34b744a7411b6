from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator
from web3 import Web3


def _checksum(v: str) -> str:
    v = (v or "").strip()
    if not Web3.is_address(v):
        raise ValueError("Invalid address in request (expected 0x...).")
    return Web3.to_checksum_address(v)


class DeployStrategyRequest(BaseModel):
    target_management: str = Field(..., description="Proposed as pending management of the new strategy")
    collateral_asset: str = Field(..., description="Asset whose silo hosts the strategy")
    strategy_asset: str = Field(..., description="Asset the strategy lends")
    incentives_controller: str
    name: str = Field(..., min_length=1, max_length=128)

    @field_validator("target_management", "collateral_asset", "strategy_asset", "incentives_controller")
    @classmethod
    def _validate_addresses(cls, v: str) -> str:
        return _checksum(v)


class SetManagementRequest(BaseModel):
    # zero address passes validation; the factory rejects it as InvalidAddress
    management: str

    @field_validator("management")
    @classmethod
    def _validate_management(cls, v: str) -> str:
        return _checksum(v)


class SetPerformanceFeeRecipientRequest(BaseModel):
    performance_fee_recipient: str

    @field_validator("performance_fee_recipient")
    @classmethod
    def _validate_recipient(cls, v: str) -> str:
        return _checksum(v)


class FactoryConfigOut(BaseModel):
    chain: str
    registry: str
    management: str
    performance_fee_recipient: str


class DeploymentLookupOut(BaseModel):
    strategy_asset: str
    collateral_asset: str
    deployed: bool
    strategy: Optional[str] = None


class StrategyDeploymentOut(BaseModel):
    strategy: str
    strategy_asset: str
    collateral_asset: str
    silo: str
    share_token: str
    incentives_controller: str
    target_management: str
    name: str
    tx_hash: Optional[str] = None
    created_at: Optional[str] = None


class FactoryEventOut(BaseModel):
    chain: str
    kind: str
    payload: Dict[str, Any]
    ts: int
    ts_iso: str


class WithdrawLimitOut(BaseModel):
    strategy: str
    owner: str
    # uint256, kept as a decimal string
    available_withdraw_limit: str


class DeploymentsOut(BaseModel):
    items: List[StrategyDeploymentOut]
