from __future__ import annotations

import json
from pathlib import Path
from typing import Any

OUT_DIR = Path("out")


def load_artifact(*parts: str, root: Path | None = None) -> dict[str, Any]:
    """
    Loads a Foundry artifact JSON from out/... (or `root`).

    Example:
      load_artifact("SiloStrategy.sol", "SiloStrategy.json")
    """
    p = (root or OUT_DIR).joinpath(*parts)
    if not p.exists():
        raise FileNotFoundError(f"Artifact file not found: {p}")
    data = json.loads(p.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"Expected artifact JSON object in {p}, got {type(data).__name__}")
    return data


def artifact_abi(art: dict[str, Any]) -> list:
    abi = art.get("abi")
    if not isinstance(abi, list) or not abi:
        raise ValueError("Invalid or missing ABI in artifact.")
    return abi


def artifact_bytecode(art: dict[str, Any]) -> str:
    """
    Foundry writes {bytecode: {object: "0x.."}}, other toolchains a bare string.
    """
    bc = art.get("bytecode")
    if isinstance(bc, dict):
        bc = bc.get("object")
    if not isinstance(bc, str) or not bc.startswith("0x") or len(bc) < 10:
        raise ValueError("Invalid or missing bytecode in artifact.")
    return bc


def load_contract_from_out(relative_path: str, *, root: Path | None = None) -> tuple[list, str]:
    """
    (abi, bytecode) for an artifact given as "SiloStrategy.sol/SiloStrategy.json".
    """
    parts = [p for p in relative_path.replace("\\", "/").split("/") if p]
    art = load_artifact(*parts, root=root)
    return artifact_abi(art), artifact_bytecode(art)
