from __future__ import annotations

import os
from typing import Iterable, Optional


def load_prefect_secret(block_name: str) -> Optional[str]:
    """Load a Prefect Secret block value by name.

    Returns None if Prefect isn't available, credentials are missing, or the block
    does not exist.
    """
    try:
        from prefect.blocks.system import Secret
        from prefect.utilities.asyncutils import run_coro_as_sync

        # `load()` may hand back an awaitable depending on the runner.
        if hasattr(Secret, "aload"):
            block = run_coro_as_sync(Secret.aload(block_name))
        else:
            block = Secret.load(block_name)

        value = block.get()
        if value is None:
            return None
        value = str(value).strip()
        return value or None
    except Exception:
        return None


def env_or_prefect_secret(env_key: str, block_name: str, *, strip: bool = True) -> Optional[str]:
    """Return an env var if present, else try a Prefect Secret block."""
    value = os.getenv(env_key)
    if value is not None:
        value = str(value)
        return value.strip() if strip else value
    return load_prefect_secret(block_name)


def rpc_block_name(chain_id: int) -> str:
    return f"rpc-chain-url-{chain_id}"


def load_rpc_urls_from_prefect(chain_ids: Iterable[int]) -> dict[int, str]:
    """Resolve RPC endpoints stored as `rpc-chain-url-<chainId>` Secret blocks."""
    out: dict[int, str] = {}
    for chain_id in chain_ids:
        value = load_prefect_secret(rpc_block_name(chain_id))
        if value:
            out[int(chain_id)] = value
    return out
