# adapters/chain/silo_strategy.py
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from web3 import Web3
from web3.contract import Contract
from web3.contract.contract import ContractFunction

from adapters.chain.artifacts import load_contract_from_out
from core.domain.entities.factory_entities import StrategyParams
from core.domain.enums.factory_enums import GasStrategy
from core.domain.gateways import StrategyDeployer, StrategyHandle
from core.services.tx_service import TxService

logger = logging.getLogger(__name__)

# admin surface only; the compiled artifact carries the full ABI for deploys
ABI_SILO_STRATEGY_ADMIN = [
    {
        "name": "setPerformanceFeeRecipient",
        "inputs": [{"internalType": "address", "name": "_performanceFeeRecipient", "type": "address"}],
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "name": "setPendingManagement",
        "inputs": [{"internalType": "address", "name": "_management", "type": "address"}],
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "name": "availableWithdrawLimit",
        "inputs": [{"internalType": "address", "name": "_owner", "type": "address"}],
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "name": "performanceFeeRecipient",
        "inputs": [],
        "outputs": [{"internalType": "address", "name": "", "type": "address"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "name": "pendingManagement",
        "inputs": [],
        "outputs": [{"internalType": "address", "name": "", "type": "address"}],
        "stateMutability": "view",
        "type": "function",
    },
]


class SiloStrategyContract(StrategyHandle):
    """
    A deployed SiloStrategy. Setters are signed by the backend key, which is
    the strategy's management until the pending management accepts.
    """

    def __init__(self, w3: Web3, address: str, txs: Optional[TxService] = None, *, tx_hash: Optional[str] = None):
        self.w3 = w3
        self.address = Web3.to_checksum_address(address)
        self.txs = txs
        self.tx_hash = tx_hash
        self.contract: Contract = w3.eth.contract(address=self.address, abi=ABI_SILO_STRATEGY_ADMIN)

    # ---------------- fn builders ----------------

    def fn_set_performance_fee_recipient(self, recipient: str) -> ContractFunction:
        return self.contract.functions.setPerformanceFeeRecipient(Web3.to_checksum_address(recipient))

    def fn_set_pending_management(self, management: str) -> ContractFunction:
        return self.contract.functions.setPendingManagement(Web3.to_checksum_address(management))

    def _send(self, fn: ContractFunction) -> dict:
        if self.txs is None:
            raise RuntimeError(f"SiloStrategyContract {self.address} is read-only (no TxService)")
        return self.txs.send(fn, wait=True, gas_strategy=GasStrategy.BUFFERED)

    # ---------------- StrategyHandle ----------------

    def set_performance_fee_recipient(self, recipient: str) -> None:
        self._send(self.fn_set_performance_fee_recipient(recipient))

    def set_pending_management(self, management: str) -> None:
        self._send(self.fn_set_pending_management(management))

    def available_withdraw_limit(self, owner: str) -> int:
        return int(
            self.contract.functions.availableWithdrawLimit(Web3.to_checksum_address(owner)).call()
        )

    # ---------------- views ----------------

    def performance_fee_recipient(self) -> str:
        return self.contract.functions.performanceFeeRecipient().call()

    def pending_management(self) -> str:
        return self.contract.functions.pendingManagement().call()


class SiloStrategyDeployer(StrategyDeployer):
    """
    Deploys the compiled SiloStrategy artifact with the backend key.
    """

    def __init__(
        self,
        txs: TxService,
        *,
        artifact: str = "SiloStrategy.sol/SiloStrategy.json",
        artifacts_root: Optional[Path] = None,
        gas_strategy: GasStrategy = GasStrategy.BUFFERED,
    ):
        self.txs = txs
        self.artifact = artifact
        self.artifacts_root = artifacts_root
        self.gas_strategy = gas_strategy

    def deploy(self, params: StrategyParams) -> SiloStrategyContract:
        abi, bytecode = load_contract_from_out(self.artifact, root=self.artifacts_root)

        res = self.txs.deploy(
            abi=abi,
            bytecode=bytecode,
            ctor_args=(
                Web3.to_checksum_address(params.registry),
                Web3.to_checksum_address(params.silo),
                Web3.to_checksum_address(params.share_token),
                Web3.to_checksum_address(params.asset),
                Web3.to_checksum_address(params.incentives_controller),
                params.name,
            ),
            gas_strategy=self.gas_strategy,
        )

        addr = (res.get("result") or {}).get("contract_address")
        if not addr:
            raise RuntimeError("Deploy succeeded but contract_address is missing.")

        logger.info("SiloStrategy %r deployed at %s (tx %s)", params.name, addr, res.get("tx_hash"))
        return SiloStrategyContract(self.txs.w3, addr, self.txs, tx_hash=res.get("tx_hash"))

    def attach(self, address: str) -> SiloStrategyContract:
        return SiloStrategyContract(self.txs.w3, address, self.txs)
