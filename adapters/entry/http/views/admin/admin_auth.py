from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Iterable, Set

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from privy import PrivyAPI

from config import get_settings

bearer = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class CallerPrincipal:
    """
    Authenticated wallet behind a Privy access token.

    `wallet_address` is what the strategy factory sees as the caller.
    """
    privy_did: str
    wallet_address: str


@lru_cache(maxsize=1)
def _wallet_allowlist() -> Set[str]:
    return set(get_settings().ADMIN_WALLETS)


@lru_cache(maxsize=1)
def _privy_client() -> PrivyAPI:
    s = get_settings()
    if not s.PRIVY_APP_ID:
        raise RuntimeError("Missing settings.PRIVY_APP_ID")
    if not s.PRIVY_APP_SECRET:
        raise RuntimeError("Missing settings.PRIVY_APP_SECRET")
    return PrivyAPI(app_id=s.PRIVY_APP_ID, app_secret=s.PRIVY_APP_SECRET)


def _get(obj: Any, key: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(key)
    return getattr(obj, key, None)


def _first_address(candidates: Iterable[Any]) -> str:
    for c in candidates:
        if isinstance(c, str) and c.startswith("0x"):
            return c
    return ""


def wallet_from_privy_user(user: Any) -> str:
    """
    Ethereum address of a Privy user, whichever SDK shape it comes in:
    top-level address, `wallet`, `wallets[]` or `linked_accounts[]`
    (preferring entries typed "wallet").
    """
    direct = _first_address([_get(user, "wallet_address"), _get(user, "address")])
    if direct:
        return direct

    wallet = _get(user, "wallet")
    single = _first_address([_get(wallet, "address"), _get(wallet, "wallet_address")])
    if single:
        return single

    many = _first_address(_get(w, "address") or _get(w, "wallet_address") for w in (_get(user, "wallets") or []))
    if many:
        return many

    linked = _get(user, "linked_accounts") or []
    typed = [a for a in linked if (_get(a, "type") or "").lower() == "wallet"]
    return _first_address(_get(a, "address") or _get(a, "wallet_address") for a in typed + list(linked))


def require_wallet(
    creds: HTTPAuthorizationCredentials = Depends(bearer),
) -> CallerPrincipal:
    if not creds or not creds.credentials:
        raise HTTPException(status_code=401, detail="Missing Authorization bearer token.")

    try:
        client = _privy_client()
        claims = client.users.verify_access_token(auth_token=creds.credentials)
        privy_did = str(_get(claims, "user_id") or "")
        if not privy_did:
            raise HTTPException(status_code=401, detail="Invalid token (missing user_id).")

        wallet = wallet_from_privy_user(client.users.get(privy_did)).lower()
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=401, detail=f"Authentication failed: {e}") from e

    if not wallet:
        raise HTTPException(status_code=403, detail="Token verified but user has no linked wallet address.")

    allowlist = _wallet_allowlist()
    if allowlist and wallet not in allowlist:
        raise HTTPException(status_code=403, detail="Not authorized (wallet not allowlisted).")

    return CallerPrincipal(privy_did=privy_did, wallet_address=wallet)
