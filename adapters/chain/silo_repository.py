# adapters/chain/silo_repository.py
import logging

from web3 import Web3
from web3.contract import Contract
from web3.exceptions import BadFunctionCallOutput, ContractLogicError

from core.domain.gateways import LendingRegistry
from core.services.utils import ZERO_ADDRESS, is_null_address

logger = logging.getLogger(__name__)

ABI_SILO_REPOSITORY = [
    {
        "name": "router",
        "inputs": [],
        "outputs": [{"internalType": "address", "name": "", "type": "address"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "name": "getSilo",
        "inputs": [{"internalType": "address", "name": "_asset", "type": "address"}],
        "outputs": [{"internalType": "address", "name": "", "type": "address"}],
        "stateMutability": "view",
        "type": "function",
    },
]

ABI_SILO = [
    {
        "name": "assetStorage",
        "inputs": [{"internalType": "address", "name": "_asset", "type": "address"}],
        "outputs": [
            {
                "internalType": "struct IBaseSilo.AssetStorage",
                "name": "",
                "type": "tuple",
                "components": [
                    {"internalType": "contract IShareToken", "name": "collateralToken", "type": "address"},
                    {"internalType": "contract IShareToken", "name": "collateralOnlyToken", "type": "address"},
                    {"internalType": "contract IShareToken", "name": "debtToken", "type": "address"},
                    {"internalType": "uint256", "name": "totalDeposits", "type": "uint256"},
                    {"internalType": "uint256", "name": "collateralOnlyDeposits", "type": "uint256"},
                    {"internalType": "uint256", "name": "totalBorrowAmount", "type": "uint256"},
                ],
            }
        ],
        "stateMutability": "view",
        "type": "function",
    },
]


class SiloRepositoryAdapter(LendingRegistry):
    """
    Thin wrapper for the on-chain SiloRepository (+ the silos it points to).

    - Probe: router() must answer with a non-zero address
    - getSilo(collateral) -> silo
    - Silo.assetStorage(asset).collateralToken -> share token
    """

    def __init__(self, w3: Web3, address: str):
        if not address:
            raise RuntimeError("SiloRepositoryAdapter: address not configured")
        self.w3: Web3 = w3
        self.address = Web3.to_checksum_address(address)
        self.contract: Contract = w3.eth.contract(
            address=self.address,
            abi=ABI_SILO_REPOSITORY,
        )

    def silo_contract(self, silo: str) -> Contract:
        return self.w3.eth.contract(address=Web3.to_checksum_address(silo), abi=ABI_SILO)

    # ------------------------------------------------------------------ #
    # Views
    # ------------------------------------------------------------------ #

    def is_live(self) -> bool:
        try:
            router = self.contract.functions.router().call()
        except (ContractLogicError, BadFunctionCallOutput) as exc:
            logger.warning("silo repository %s failed the router() probe: %s", self.address, exc)
            return False
        return not is_null_address(router)

    def get_silo(self, collateral_asset: str) -> str:
        silo = self.contract.functions.getSilo(Web3.to_checksum_address(collateral_asset)).call()
        return Web3.to_checksum_address(silo) if not is_null_address(silo) else ZERO_ADDRESS

    def get_share_token(self, silo: str, asset: str) -> str:
        if is_null_address(silo):
            return ZERO_ADDRESS
        storage = self.silo_contract(silo).functions.assetStorage(
            Web3.to_checksum_address(asset)
        ).call()
        collateral_token = storage[0]
        return ZERO_ADDRESS if is_null_address(collateral_token) else Web3.to_checksum_address(collateral_token)
