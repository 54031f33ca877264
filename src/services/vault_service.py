"""Join Kong vault records with their strategy records."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from src.models.vault import Strategy, Vault, VaultWithStrategies
from src.services.kong_client import KongClient

logger = logging.getLogger(__name__)


def map_strategies(vault: Vault, raw_strategies: list[Optional[dict[str, Any]]]) -> list[Strategy]:
    """Attach the vault's debt allocation and management fee to each strategy.

    Strategies the index could not resolve (None entries) are dropped.
    """
    out: list[Strategy] = []
    for raw in raw_strategies:
        if not raw or not raw.get("address"):
            continue
        strategy = Strategy.model_validate(raw)
        out.append(
            strategy.model_copy(
                update={
                    "debt_ratio": vault.debt_ratio_for(strategy.address),
                    "management_fee": vault.management_fee,
                    "chain_id": strategy.chain_id or vault.chain_id,
                }
            )
        )
    return out


class VaultGraphService:
    def __init__(self, kong: KongClient | None = None) -> None:
        self.kong = kong or KongClient()

    async def get_vaults_with_strategies(
        self, chain_id: int, addresses: list[str]
    ) -> dict[str, VaultWithStrategies]:
        """Fetch vaults and the chain's strategies in one round trip each.

        Returns a map keyed by lower-cased vault address. Vaults the index does
        not know about are simply absent from the map.
        """
        raw_vaults, raw_strategies = await asyncio.gather(
            self.kong.get_vaults(chain_id, addresses),
            self.kong.get_strategies_by_chain(chain_id),
        )

        by_address = {
            str(s.get("address")).lower(): s for s in raw_strategies if s.get("address")
        }

        out: dict[str, VaultWithStrategies] = {}
        for raw in raw_vaults:
            if not raw.get("address"):
                continue
            vault = Vault.model_validate({**raw, "chainId": raw.get("chainId") or chain_id})
            strategies = map_strategies(
                vault, [by_address.get(str(addr).lower()) for addr in vault.strategies]
            )
            out[vault.address.lower()] = VaultWithStrategies(vault=vault, strategies=strategies)
        return out

    async def get_vault_with_strategies(self, chain_id: int, address: str) -> Optional[VaultWithStrategies]:
        raw = await self.kong.get_vault(chain_id, address)
        if not raw or not raw.get("address"):
            return None
        vault = Vault.model_validate({**raw, "chainId": raw.get("chainId") or chain_id})
        raw_strategies = await asyncio.gather(
            *[self.kong.get_strategy(chain_id, addr) for addr in vault.strategies]
        )
        return VaultWithStrategies(vault=vault, strategies=map_strategies(vault, list(raw_strategies)))
