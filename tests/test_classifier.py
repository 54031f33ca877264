"""Unit tests for protocol classification."""

from __future__ import annotations

import pytest

from src.core.constants import VELO_STAKING_POOLS_REGISTRY, ZERO_ADDRESS
from src.yields.classifier import (
    StrategyKind,
    classify_strategy,
    find_velo_gauge,
    is_convex_strategy,
    is_curve_family,
)
from tests.fakes import FakeReader, address


@pytest.mark.parametrize(
    "name, expected",
    [
        ("Curve stETH Factory yVault", True),
        ("CONVEX frxETH", True),
        ("yvCurve-crvUSD", True),
        ("Ajna-crvUSD lender", False),
        ("USDC yVault", False),
        (None, False),
    ],
)
def test_is_curve_family(name, expected) -> None:
    assert is_curve_family(name) is expected


def test_is_convex_strategy_excludes_curve_names() -> None:
    assert is_convex_strategy("StrategyConvexstETH")
    assert not is_convex_strategy("StrategyCurveConvexBoosted")


@pytest.mark.parametrize(
    "name, kind",
    [
        ("StrategyConvexFraxPrismaETH", StrategyKind.PRISMA),
        ("StrategyConvexFraxETH", StrategyKind.FRAX),
        ("StrategyConvexstETH", StrategyKind.CONVEX),
        ("StrategyCurveBoostedFactory", StrategyKind.CURVE),
        ("StrategyCurveConvexstETH", StrategyKind.CURVE),
        (None, StrategyKind.CURVE),
    ],
)
def test_classify_strategy_precedence(name, kind) -> None:
    assert classify_strategy(name) is kind


@pytest.mark.asyncio
async def test_find_velo_gauge_skips_other_chains_without_reads() -> None:
    reader = FakeReader(chain_id=1)
    assert await find_velo_gauge(reader, 1, address(1)) is None
    assert reader.calls == []


@pytest.mark.asyncio
async def test_find_velo_gauge_reads_registry_on_optimism() -> None:
    asset, gauge = address(1), address(2)
    reader = FakeReader(chain_id=10).set(VELO_STAKING_POOLS_REGISTRY[10], "gauges", gauge, asset)

    assert await find_velo_gauge(reader, 10, asset) == gauge


@pytest.mark.asyncio
async def test_find_velo_gauge_zero_or_failed_read_is_none() -> None:
    asset = address(1)
    reader = FakeReader(chain_id=8453).set(VELO_STAKING_POOLS_REGISTRY[8453], "gauges", ZERO_ADDRESS, asset)
    assert await find_velo_gauge(reader, 8453, asset) is None
    assert await find_velo_gauge(FakeReader(chain_id=10), 10, asset) is None
