"""Curve / Convex-Frax public API client.

Endpoints:
  GET {CURVE_API_BASE_URL}/getAllGauges
  GET {CURVE_API_BASE_URL}/getPools/all/{chain}
  GET {CURVE_API_BASE_URL}/getSubgraphData/{chain}
  GET {FRAX_POOLS_URL}

`fetch_chain_data` pulls all four once per chain per batch. A source that
fails is logged and contributes an empty list, so Velodrome-family vaults and
vaults matched by the remaining sources still get computed.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable

import httpx

from src.core.config import settings
from src.core.constants import CHAIN_ETHEREUM, CURVE_CHAIN_NAMES
from src.models.chain_data import (
    ChainMarketData,
    CurvePool,
    FraxPool,
    Gauge,
    SubgraphPool,
    parse_models,
)

logger = logging.getLogger(__name__)


class CurveApiClient:
    def __init__(
        self,
        *,
        base_url: str | None = None,
        frax_pools_url: str | None = None,
        timeout_seconds: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = (base_url or settings.CURVE_API_BASE_URL).rstrip("/")
        self._frax_pools_url = frax_pools_url or settings.FRAX_POOLS_URL
        self._timeout = httpx.Timeout(timeout_seconds or settings.HTTP_TIMEOUT_SECONDS)
        self._transport = transport

    async def _get_json(self, url: str) -> Any:
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            response = await client.get(url)
            response.raise_for_status()
            return response.json()

    async def get_gauges(self, chain_id: int) -> list[Gauge]:
        payload = await self._get_json(f"{self._base_url}/getAllGauges") or {}
        data = payload.get("data") or {}
        items = list(data.values()) if isinstance(data, dict) else data
        gauges = parse_models(Gauge, items)

        chain_name = CURVE_CHAIN_NAMES.get(chain_id)
        # Entries without a blockchainId are mainnet gauges.
        return [
            g for g in gauges
            if (g.blockchain_id or "ethereum").lower() == (chain_name or "")
        ]

    async def get_pools(self, chain_id: int) -> list[CurvePool]:
        chain_name = CURVE_CHAIN_NAMES.get(chain_id)
        if not chain_name:
            return []
        payload = await self._get_json(f"{self._base_url}/getPools/all/{chain_name}") or {}
        data = payload.get("data") or {}
        return parse_models(CurvePool, data.get("poolData"))

    async def get_subgraph(self, chain_id: int) -> list[SubgraphPool]:
        chain_name = CURVE_CHAIN_NAMES.get(chain_id)
        if not chain_name:
            return []
        payload = await self._get_json(f"{self._base_url}/getSubgraphData/{chain_name}") or {}
        data = payload.get("data") or {}
        return parse_models(SubgraphPool, data.get("poolList"))

    async def get_frax_pools(self, chain_id: int = CHAIN_ETHEREUM) -> list[FraxPool]:
        if chain_id != CHAIN_ETHEREUM:
            return []
        payload = await self._get_json(self._frax_pools_url)
        items: Any = payload
        if isinstance(payload, dict):
            items = payload.get("pools", [])
            if isinstance(items, dict):
                items = items.get("augmentedPoolData", [])
        return parse_models(FraxPool, items)

    async def fetch_chain_data(self, chain_id: int) -> ChainMarketData:
        gauges, pools, subgraph, frax_pools = await asyncio.gather(
            _or_empty("gauges", chain_id, self.get_gauges(chain_id)),
            _or_empty("pools", chain_id, self.get_pools(chain_id)),
            _or_empty("subgraph", chain_id, self.get_subgraph(chain_id)),
            _or_empty("frax pools", chain_id, self.get_frax_pools(chain_id)),
        )
        logger.info(
            f"chain {chain_id}: {len(gauges)} gauges, {len(pools)} pools, "
            f"{len(subgraph)} subgraph pools, {len(frax_pools)} frax pools"
        )
        return ChainMarketData(
            chain_id=chain_id,
            gauges=gauges,
            pools=pools,
            subgraph=subgraph,
            frax_pools=frax_pools,
        )


async def _or_empty(source: str, chain_id: int, fetch: Awaitable[list]) -> list:
    try:
        return await fetch
    except Exception as exc:
        logger.warning(f"chain {chain_id}: failed to fetch {source}: {exc}")
        return []
