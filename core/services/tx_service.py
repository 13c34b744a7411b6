from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any, Optional, Sequence

from eth_account import Account
from web3 import Web3
from web3.contract.contract import ContractFunction

from config import get_settings
from core.domain.enums.factory_enums import GasStrategy
from core.services.exceptions import TransactionRevertedError
from core.services.utils import to_json_safe

logger = logging.getLogger(__name__)

# used when the node cannot estimate
FALLBACK_CALL_GAS = 300_000
FALLBACK_DEPLOY_GAS = 5_000_000


def pad_gas(estimate: int, strategy: GasStrategy | str) -> int:
    if strategy == GasStrategy.BUFFERED:
        return int(estimate * 1.25) + 10_000
    if strategy == GasStrategy.AGGRESSIVE:
        return int(estimate * 1.5) + 25_000
    return int(estimate)


class TxService:
    """
    Signs and broadcasts the factory's transactions with the backend key.

    Responsibilities:
    - Build contract calls and contract deployments.
    - Pad the node's gas estimate according to GasStrategy.
    - Wait for the receipt and raise TransactionRevertedError on status 0.
    - Return JSON-safe result dicts the use cases can hand to the HTTP layer.
    """

    def __init__(
        self,
        rpc_url: str | None = None,
        *,
        w3: Optional[Web3] = None,
        private_key: Optional[str] = None,
    ):
        s = get_settings()
        self.w3 = w3 or Web3(Web3.HTTPProvider(rpc_url or s.RPC_URL_DEFAULT))
        self.pk = private_key or s.PRIVATE_KEY
        if not self.pk:
            raise RuntimeError("TxService: PRIVATE_KEY not configured")
        self.account = Account.from_key(self.pk)

    def sender_address(self) -> str:
        return self.account.address

    # ---------- internal helpers ----------

    def _next_nonce(self) -> int:
        return self.w3.eth.get_transaction_count(self.account.address, "pending")

    def _gas_limit(self, tx: dict, strategy: GasStrategy, fallback: int) -> int:
        try:
            estimate = int(self.w3.eth.estimate_gas(tx))
        except Exception as exc:
            logger.warning("gas estimation failed, using %s: %s", fallback, exc)
            estimate = fallback
        return pad_gas(estimate, strategy)

    def _finalize_fee_fields(self, tx: dict) -> dict:
        """
        Legacy gasPrice unless the builder already set EIP-1559 fields.
        """
        if "maxFeePerGas" in tx or "maxPriorityFeePerGas" in tx:
            return tx
        if "gasPrice" not in tx:
            tx["gasPrice"] = self.w3.eth.gas_price
        return tx

    def _broadcast(self, tx: dict, *, wait: bool, what: str) -> dict:
        signed = self.w3.eth.account.sign_transaction(tx, self.pk)
        tx_hash = Web3.to_hex(self.w3.eth.send_raw_transaction(signed.raw_transaction))
        logger.info("%s broadcast: %s", what, tx_hash)

        out: dict[str, Any] = {
            "tx_hash": tx_hash,
            "broadcasted": True,
            "status": None,
            "receipt": None,
            "gas": {"limit": int(tx.get("gas", 0)), "price_wei": int(tx.get("gasPrice", 0))},
            "result": {},
            "ts": datetime.now(UTC).isoformat(),
        }
        if not wait:
            return out

        rcpt = dict(self.w3.eth.wait_for_transaction_receipt(tx_hash))
        status = int(rcpt.get("status", 0))
        if status == 0:
            raise TransactionRevertedError(
                tx_hash=tx_hash,
                receipt=to_json_safe(rcpt),
                msg=f"{what} reverted (status=0)",
            )

        out["status"] = status
        out["receipt"] = rcpt
        out["gas"]["used"] = int(rcpt.get("gasUsed") or 0)
        return out

    # ---------- public API ----------

    def send(
        self,
        fn: ContractFunction,
        *,
        wait: bool = True,
        value: int = 0,
        gas_limit: Optional[int] = None,
        gas_strategy: GasStrategy = GasStrategy.BUFFERED,
    ) -> dict:
        """
        Broadcast a state-changing call.

        Raises:
            TransactionRevertedError: mined with status == 0 (only when wait=True).
        """
        tx = fn.build_transaction(
            {
                "from": self.account.address,
                "nonce": self._next_nonce(),
                "value": int(value or 0),
            }
        )
        tx["gas"] = int(gas_limit) if gas_limit is not None else self._gas_limit(
            tx, gas_strategy, FALLBACK_CALL_GAS
        )
        tx = self._finalize_fee_fields(tx)
        return to_json_safe(self._broadcast(tx, wait=wait, what=getattr(fn, "fn_name", "call")))

    def deploy(
        self,
        *,
        abi: list,
        bytecode: str,
        ctor_args: Sequence[Any] = (),
        gas_limit: Optional[int] = None,
        gas_strategy: GasStrategy = GasStrategy.BUFFERED,
    ) -> dict:
        """
        Deploy a contract and wait for it to be mined.

        result.contract_address holds the new address.
        """
        factory = self.w3.eth.contract(abi=abi, bytecode=bytecode)
        tx = factory.constructor(*list(ctor_args)).build_transaction(
            {
                "from": self.account.address,
                "nonce": self._next_nonce(),
            }
        )
        tx["gas"] = int(gas_limit) if gas_limit is not None else self._gas_limit(
            tx, gas_strategy, FALLBACK_DEPLOY_GAS
        )
        tx = self._finalize_fee_fields(tx)

        out = self._broadcast(tx, wait=True, what="deploy")
        out["result"] = {"contract_address": out["receipt"].get("contractAddress")}
        return to_json_safe(out)
