# core/services/utils.py
from typing import Any, Optional
from collections.abc import Mapping, Iterable
from hexbytes import HexBytes
from web3 import Web3

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def is_null_address(value: Optional[str]) -> bool:
    """
    True for None, blank strings and the zero address (any casing).
    """
    if value is None:
        return True
    v = str(value).strip()
    if not v:
        return True
    return v.lower() == ZERO_ADDRESS


def normalize_address(value: Optional[str]) -> str:
    """
    Checksum an address. Null-ish input comes back as ZERO_ADDRESS so callers
    can compare against it without special cases.

    Raises ValueError for anything that is not an EVM address.
    """
    if is_null_address(value):
        return ZERO_ADDRESS
    v = str(value).strip()
    if not Web3.is_address(v):
        raise ValueError(f"not an EVM address: {value!r}")
    return Web3.to_checksum_address(v)


def to_json_safe(obj: Any) -> Any:
    """
    Recursively convert web3 / HexBytes-heavy structures into plain JSON-serializable primitives.

    - HexBytes -> "0x..." str
    - bytes    -> "0x..." str
    - Mapping  -> {k: to_json_safe(v)}   (covers AttributeDict, dict-like)
    - list/tuple/set -> [to_json_safe(v), ...]
    - everything else -> unchanged if primitive, else str(obj)
    """
    if isinstance(obj, HexBytes):
        return Web3.to_hex(obj)

    if isinstance(obj, (bytes, bytearray)):
        return "0x" + obj.hex()

    if isinstance(obj, (str, int, float, bool)) or obj is None:
        return obj

    # AttributeDict is a Mapping
    if isinstance(obj, Mapping):
        return {str(k): to_json_safe(v) for (k, v) in obj.items()}

    if isinstance(obj, (list, tuple, set)):
        return [to_json_safe(v) for v in obj]

    if isinstance(obj, Iterable):
        return [to_json_safe(v) for v in obj]

    return str(obj)
