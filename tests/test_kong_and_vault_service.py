"""Unit tests for the Kong client and the vault/strategy join.

These tests are network-isolated and use httpx MockTransport.
"""

from __future__ import annotations

import json
from typing import Any

import httpx
import pytest

from src.core.errors import KongQueryError
from src.services.kong_client import KongClient
from src.services.vault_service import VaultGraphService
from tests.fakes import address

KONG_URL = "http://kong.test/api/gql"

VAULT = address(0x1)
STRATEGY_A = address(0x51)
STRATEGY_B = address(0x52)
UNKNOWN_STRATEGY = address(0x53)


def _kong(handler) -> KongClient:
    return KongClient(url=KONG_URL, transport=httpx.MockTransport(handler))


def _raw_vault() -> dict[str, Any]:
    return {
        "chainId": 1,
        "address": VAULT,
        "name": "Curve stETH yVault",
        "asset": {"address": address(0xA), "decimals": "18"},
        "debts": [
            {"strategy": STRATEGY_A, "debtRatio": "6000", "performanceFee": "1000"},
            {"strategy": STRATEGY_B, "debtRatio": 4000},
        ],
        "performanceFee": 1000,
        "managementFee": "0",
        "strategies": [STRATEGY_A, STRATEGY_B, UNKNOWN_STRATEGY],
    }


def _raw_strategies() -> list[dict[str, Any]]:
    return [
        {"address": STRATEGY_A.upper().replace("0X", "0x"), "name": "StrategyCurveBoosted", "localKeepCRV": "1000"},
        {"address": STRATEGY_B, "name": "StrategyConvexstETH", "performanceFee": 1500},
    ]


def _graph_handler(request: httpx.Request) -> httpx.Response:
    body = json.loads(request.content)
    if "vaults(" in body["query"]:
        return httpx.Response(200, json={"data": {"vaults": [_raw_vault()]}})
    if "strategies(" in body["query"]:
        return httpx.Response(200, json={"data": {"strategies": _raw_strategies()}})
    strategy = next(
        (s for s in _raw_strategies() if s["address"].lower() == body["variables"]["address"].lower()), None
    )
    return httpx.Response(200, json={"data": {"strategy": strategy}})


@pytest.mark.asyncio
async def test_get_vaults_posts_query_and_variables() -> None:
    seen: list[dict[str, Any]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "POST"
        assert str(request.url) == KONG_URL
        seen.append(json.loads(request.content))
        return httpx.Response(200, json={"data": {"vaults": [_raw_vault(), None]}})

    vaults = await _kong(handler).get_vaults(1, [VAULT])

    assert [v["address"] for v in vaults] == [VAULT]
    assert seen[0]["variables"] == {"chainId": 1, "addresses": [VAULT]}


@pytest.mark.asyncio
async def test_graphql_errors_raise_for_batch_lookups() -> None:
    def handler(_: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"errors": [{"message": "rate limited"}]})

    with pytest.raises(KongQueryError, match="rate limited"):
        await _kong(handler).get_strategies_by_chain(1)


@pytest.mark.asyncio
async def test_graphql_errors_are_none_for_single_lookups() -> None:
    def handler(_: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"errors": [{"message": "boom"}]})

    client = _kong(handler)
    assert await client.get_vault(1, VAULT) is None
    assert await client.get_strategy(1, STRATEGY_A) is None


@pytest.mark.asyncio
async def test_non_200_raises() -> None:
    def handler(_: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="bad gateway")

    with pytest.raises(httpx.HTTPStatusError):
        await _kong(handler).get_vaults(1, [VAULT])


@pytest.mark.asyncio
async def test_vault_graph_joins_debt_allocation_and_fees() -> None:
    service = VaultGraphService(kong=_kong(_graph_handler))
    graphs = await service.get_vaults_with_strategies(1, [VAULT])

    graph = graphs[VAULT.lower()]
    assert graph.vault.performance_fee == 1000
    assert [s.address.lower() for s in graph.strategies] == [STRATEGY_A, STRATEGY_B]

    a, b = graph.strategies
    assert (a.debt_ratio, a.local_keep_crv, a.chain_id) == (6000, 1000, 1)
    assert (b.debt_ratio, b.performance_fee) == (4000, 1500)
    assert a.management_fee == b.management_fee == 0


@pytest.mark.asyncio
async def test_vault_missing_from_index_is_absent() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        key = "vaults" if "vaults(" in json.loads(request.content)["query"] else "strategies"
        return httpx.Response(200, json={"data": {key: []}})

    service = VaultGraphService(kong=_kong(handler))
    assert await service.get_vaults_with_strategies(1, [VAULT]) == {}


@pytest.mark.asyncio
async def test_single_vault_lookup_resolves_each_strategy() -> None:
    service = VaultGraphService(kong=_kong(_graph_handler))
    graph = await service.get_vault_with_strategies(1, VAULT)

    assert graph is not None
    assert [s.debt_ratio for s in graph.strategies] == [6000, 4000]
