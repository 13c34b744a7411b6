import os
from dotenv import load_dotenv
from dataclasses import dataclass, field
from functools import lru_cache
from typing import List

load_dotenv()


def _parse_csv(value: str, *, lower: bool = False) -> List[str]:
    if not value:
        return []
    items = [x.strip() for x in value.split(",")]
    items = [x for x in items if x]
    if lower:
        items = [x.lower() for x in items]
    return items


@dataclass
class Settings:
    # MongoDB
    MONGO_URI: str
    MONGO_DB: str

    # signing / chain
    RPC_URL_DEFAULT: str
    PRIVATE_KEY: str
    CHAIN: str

    # Silo lending registry + factory bootstrap
    SILO_REPOSITORY_ADDRESS: str
    FACTORY_MANAGEMENT: str
    PERFORMANCE_FEE_RECIPIENT: str
    STRATEGY_ARTIFACT: str

    # ---- Privy Auth ----
    PRIVY_APP_ID: str
    PRIVY_APP_SECRET: str

    # generic
    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"

    # empty list = no allowlist, the factory's management check still applies
    ADMIN_WALLETS: List[str] = field(default_factory=list)


@lru_cache()
def get_settings() -> Settings:
    return Settings(
        # Mongo
        MONGO_URI=os.getenv("MONGO_URI", "mongodb://mongo-silo:27017/silo_factory"),
        MONGO_DB=os.getenv("MONGO_DB", "silo_factory"),

        # Core chain
        RPC_URL_DEFAULT=os.getenv("RPC_URL_DEFAULT", ""),
        PRIVATE_KEY=os.getenv("PRIVATE_KEY", ""),
        CHAIN=os.getenv("CHAIN", "sonic").strip().lower(),

        # Contracts
        SILO_REPOSITORY_ADDRESS=os.getenv("SILO_REPOSITORY_ADDRESS", ""),
        FACTORY_MANAGEMENT=os.getenv("FACTORY_MANAGEMENT", ""),
        PERFORMANCE_FEE_RECIPIENT=os.getenv("PERFORMANCE_FEE_RECIPIENT", ""),
        STRATEGY_ARTIFACT=os.getenv("STRATEGY_ARTIFACT", "SiloStrategy.sol/SiloStrategy.json"),

        # Privy Auth
        PRIVY_APP_ID=os.getenv("PRIVY_APP_ID", ""),
        PRIVY_APP_SECRET=os.getenv("PRIVY_APP_SECRET", ""),
        ADMIN_WALLETS=_parse_csv(os.getenv("ADMIN_WALLETS", ""), lower=True),

        ENV=os.getenv("ENV", "dev"),
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
