"""Spot USD prices from the yDaemon price endpoint.

Endpoint:
  GET https://ydaemon.yearn.fi/{chainId}/prices/{address}?humanized=true

The body is a bare number (e.g. `0.8731`). Any failure maps to a price of 0 so
that formulas always complete; callers decide whether a zero price disables a
term.
"""

from __future__ import annotations

import logging

import httpx

from src.core.config import settings
from src.core.numeric import Dec, ZERO

logger = logging.getLogger(__name__)


class PriceClient:
    def __init__(
        self,
        *,
        base_url: str | None = None,
        timeout_seconds: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Create a new client.

        Args:
            base_url: yDaemon base URL override.
            timeout_seconds: Request timeout.
            transport: Optional httpx transport override (used for unit tests).
        """
        self._base_url = (base_url or settings.YDAEMON_BASE_URL).rstrip("/")
        self._timeout = httpx.Timeout(timeout_seconds or settings.HTTP_TIMEOUT_SECONDS)
        self._transport = transport
        self._cache: dict[tuple[int, str], Dec] = {}

    def price_url(self, chain_id: int, address: str) -> str:
        return f"{self._base_url}/{chain_id}/prices/{address}?humanized=true"

    async def get_price_usd(self, chain_id: int, address: str | None) -> Dec:
        """Return the USD price of `address`, or 0 when it cannot be resolved."""
        if not address:
            return ZERO
        key = (chain_id, address.lower())
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.get(self.price_url(chain_id, address))
            if response.status_code != 200:
                return ZERO
            price = Dec(response.text.strip())
        except Exception as exc:
            logger.debug(f"price lookup failed for {address} on chain {chain_id}: {exc}")
            return ZERO

        if not price.value.is_finite() or price < 0:
            return ZERO
        self._cache[key] = price
        return price
