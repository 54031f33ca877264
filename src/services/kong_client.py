"""Kong GraphQL client.

Kong indexes Yearn vaults and strategies across chains:
  POST https://kong.yearn.farm/api/gql

Batch lookups (`get_vaults`, `get_strategies_by_chain`) raise `KongQueryError`
when the endpoint reports GraphQL errors, since a batch cannot proceed without
them. Single-record lookups return None instead.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from src.core.config import settings
from src.core.errors import KongQueryError

logger = logging.getLogger(__name__)

VAULT_FIELDS = """
  chainId
  address
  name
  symbol
  apiVersion
  asset {
    address
    chainId
    decimals
    name
    symbol
  }
  debts {
    strategy
    debtRatio
    performanceFee
  }
  performanceFee
  managementFee
  strategies
"""

STRATEGY_FIELDS = """
  chainId
  address
  name
  apiVersion
  localKeepCRV
  performanceFee
"""

VAULTS_QUERY = f"""
query Vaults($addresses: [String], $chainId: Int) {{
  vaults(addresses: $addresses, chainId: $chainId) {{{VAULT_FIELDS}  }}
}}
"""

STRATEGY_QUERY = f"""
query Strategy($chainId: Int, $address: String) {{
  strategy(chainId: $chainId, address: $address) {{{STRATEGY_FIELDS}  }}
}}
"""

STRATEGIES_QUERY = f"""
query Strategies($chainId: Int) {{
  strategies(chainId: $chainId) {{{STRATEGY_FIELDS}  }}
}}
"""


class KongClient:
    """Async client for the Kong GraphQL endpoint."""

    def __init__(
        self,
        *,
        url: str | None = None,
        headers: dict[str, str] | None = None,
        timeout_seconds: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url or settings.KONG_GQL_URL
        self._headers = headers or {}
        self._timeout = httpx.Timeout(timeout_seconds or settings.HTTP_TIMEOUT_SECONDS)
        self._transport = transport

    async def _query(self, query: str, variables: dict[str, Any]) -> dict[str, Any]:
        """POST a query and return its `data` object.

        Raises:
            httpx.HTTPStatusError: If the endpoint returns a non-success status.
            KongQueryError: If the payload carries GraphQL `errors`.
        """
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            response = await client.post(
                self.url,
                json={"query": query, "variables": variables},
                headers=self._headers,
            )
            response.raise_for_status()
            payload = response.json() or {}

        if payload.get("errors"):
            messages = "; ".join(str((e or {}).get("message", e)) for e in payload["errors"])
            raise KongQueryError(messages)
        data = payload.get("data") or {}
        return data if isinstance(data, dict) else {}

    async def get_vaults(self, chain_id: int, addresses: list[str]) -> list[dict[str, Any]]:
        data = await self._query(VAULTS_QUERY, {"chainId": chain_id, "addresses": addresses})
        vaults = data.get("vaults") or []
        return [v for v in vaults if isinstance(v, dict)]

    async def get_vault(self, chain_id: int, address: str) -> dict[str, Any] | None:
        try:
            vaults = await self.get_vaults(chain_id, [address])
        except KongQueryError as exc:
            logger.warning(f"Kong vault lookup failed for {address} on chain {chain_id}: {exc}")
            return None
        return vaults[0] if vaults else None

    async def get_strategy(self, chain_id: int, address: str) -> dict[str, Any] | None:
        try:
            data = await self._query(STRATEGY_QUERY, {"chainId": chain_id, "address": address})
        except KongQueryError as exc:
            logger.warning(f"Kong strategy lookup failed for {address} on chain {chain_id}: {exc}")
            return None
        strategy = data.get("strategy")
        return strategy if isinstance(strategy, dict) else None

    async def get_strategies_by_chain(self, chain_id: int) -> list[dict[str, Any]]:
        data = await self._query(STRATEGIES_QUERY, {"chainId": chain_id})
        strategies = data.get("strategies") or []
        return [s for s in strategies if isinstance(s, dict)]
