"""Unit tests for the Curve gauge forward-yield formula."""

from __future__ import annotations

import pytest

from src.core.constants import YEARN_VOTER_ADDRESS
from src.core.numeric import Dec, convert_apr_to_apy
from src.models.chain_data import CurvePool, Gauge, SubgraphPool
from src.models.vault import Strategy, Vault
from src.yields.curve_like import (
    CurveVaultInputs,
    build_vault_inputs,
    calculate_curve_forward_apy,
    curve_boost,
    curve_keep_crv,
    find_gauge,
    gauge_base_apr,
    pool_weekly_apy,
    rewards_apy,
)
from tests.fakes import FakePrices, FakeReader, address, make_ctx

ASSET = address(0xA)
GAUGE = address(0x6)
STRATEGY = address(0x5)
VOTER = YEARN_VOTER_ADDRESS[1]


def _gauge(**overrides) -> Gauge:
    payload = {
        "gauge": GAUGE,
        "swap": address(0xB),
        "swap_token": ASSET,
        "lpTokenPrice": 1.0,
        "swap_data": {"virtual_price": str(10**18)},
        "gauge_data": {"working_supply": str(10**24)},
        "gauge_controller": {
            "inflation_rate": str(10**18),
            "gauge_relative_weight": str(10**17),
        },
    }
    payload.update(overrides)
    return Gauge.model_validate(payload)


def _vault(performance_fee: int = 0, management_fee: int = 0) -> Vault:
    return Vault.model_validate(
        {
            "address": address(0x1),
            "chainId": 1,
            "name": "Curve test yVault",
            "asset": {"address": ASSET},
            "performanceFee": performance_fee,
            "managementFee": management_fee,
        }
    )


def _strategy(**fields) -> Strategy:
    return Strategy.model_validate({"address": STRATEGY, "debtRatio": 10000, **fields})


def _inputs(pool_apy: str = "0.01") -> CurveVaultInputs:
    return CurveVaultInputs(
        gauge=_gauge(),
        frax_pool=None,
        base_asset_price=Dec(1),
        pool_price=Dec(1),
        base_apy=Dec("0.1"),
        reward_apy=Dec("0.02"),
        pool_apy=Dec(pool_apy),
    )


def _boosted_reader() -> FakeReader:
    # working balance 0.8 over balance 1 -> boost 0.8 / 0.4 = 2
    return (
        FakeReader(chain_id=1)
        .set(GAUGE, "working_balances", 8 * 10**17, VOTER)
        .set(GAUGE, "balanceOf", 10**18, VOTER)
    )


def test_gauge_base_apr_follows_emission_formula() -> None:
    # 1 CRV/s * 0.1 weight * (31556952 / 1e6) * (0.4 / 1) * 1 / 1
    apr = gauge_base_apr(_gauge(), Dec(1), Dec(1), Dec(1))
    assert apr == Dec("1.26227808")


def test_gauge_base_apr_accepts_float_inflation() -> None:
    gauge = _gauge(gauge_controller={"inflation_rate": 1.0, "gauge_relative_weight": str(10**17)})
    assert gauge_base_apr(gauge, Dec(1), Dec(1), Dec(1)) == Dec("1.26227808")


def test_lookups_match_case_insensitively() -> None:
    gauges = [_gauge(swap_token=None, swap=ASSET.upper().replace("0X", "0x"))]
    assert find_gauge(ASSET, gauges) is gauges[0]
    assert find_gauge(address(0xC), gauges) is None


def test_rewards_and_weekly_apy_are_percentages() -> None:
    pool = CurvePool.model_validate({"gaugeRewards": [{"APY": 2.0}, {"APY": 3.0}]})
    assert rewards_apy(pool) == Dec("0.05")
    assert rewards_apy(None) == Dec(0)
    assert pool_weekly_apy(SubgraphPool.model_validate({"latestWeeklyApy": 4.0})) == Dec("0.04")


@pytest.mark.asyncio
async def test_curve_boost_ratio_and_defaults() -> None:
    assert await curve_boost(make_ctx(_boosted_reader()), VOTER, GAUGE) == Dec(2)
    # Voter without stake: mainnet default 2.5, other chains 1.
    assert await curve_boost(make_ctx(FakeReader(chain_id=1)), VOTER, GAUGE) == Dec("2.5")
    assert await curve_boost(make_ctx(FakeReader(chain_id=42161)), None, GAUGE) == Dec(1)


@pytest.mark.asyncio
async def test_curve_keep_crv_prefers_local_then_sums_fields() -> None:
    ctx = make_ctx(
        FakeReader(chain_id=1)
        .set(STRATEGY, "keepCRV", 1000)
        .set(STRATEGY, "keepCRVPercentage", 500)
    )
    assert await curve_keep_crv(ctx, _strategy(localKeepCRV=2000)) == Dec("0.2")
    assert await curve_keep_crv(ctx, _strategy()) == Dec("0.15")


@pytest.mark.asyncio
async def test_curve_keep_crv_is_zero_when_either_read_fails() -> None:
    ctx = make_ctx(FakeReader(chain_id=1).set(STRATEGY, "keepCRV", 1000))
    assert await curve_keep_crv(ctx, _strategy()) == Dec(0)


@pytest.mark.asyncio
async def test_curve_forward_apy_without_fees() -> None:
    ctx = make_ctx(_boosted_reader())
    result = await calculate_curve_forward_apy(ctx, _vault(), _strategy(localKeepCRV=1000), _inputs())

    # gross = 0.1 * 2 * (1 - 0.1) + 0.02
    gross = Dec("0.2")
    assert result.type == "crv"
    assert result.raw.net_apr == gross
    assert result.raw.net_apy == convert_apr_to_apy(gross, 52) + Dec("0.01")
    assert result.raw.boost == Dec(2)
    assert result.raw.boosted_apr == Dec("0.22")
    assert result.raw.keep_crv == Dec("0.1")
    assert result.debt_ratio == Dec(1)


@pytest.mark.asyncio
async def test_pool_apy_is_added_after_compounding() -> None:
    ctx = make_ctx(_boosted_reader())
    low = await calculate_curve_forward_apy(ctx, _vault(), _strategy(localKeepCRV=1000), _inputs("0.01"))
    high = await calculate_curve_forward_apy(ctx, _vault(), _strategy(localKeepCRV=1000), _inputs("0.05"))

    assert high.raw.net_apy - low.raw.net_apy == Dec("0.04")
    assert high.raw.net_apr == low.raw.net_apr


@pytest.mark.asyncio
async def test_fees_apply_performance_then_management() -> None:
    ctx = make_ctx(_boosted_reader())
    result = await calculate_curve_forward_apy(
        ctx, _vault(performance_fee=2000, management_fee=200), _strategy(localKeepCRV=1000), _inputs()
    )
    # 0.2 * 0.8 - 0.02
    assert result.raw.net_apr == Dec("0.14")
    assert result.raw.net_apy == convert_apr_to_apy(Dec("0.14"), 52) + Dec("0.01")


@pytest.mark.asyncio
async def test_fee_exhausted_yield_keeps_only_pool_apy() -> None:
    ctx = make_ctx(_boosted_reader())
    result = await calculate_curve_forward_apy(
        ctx, _vault(management_fee=5000), _strategy(localKeepCRV=1000), _inputs()
    )
    assert result.raw.net_apy == Dec("0.01")


@pytest.mark.asyncio
async def test_build_vault_inputs_falls_back_to_default_crv_price() -> None:
    ctx = make_ctx(FakeReader(chain_id=1), FakePrices())
    inputs = await build_vault_inputs(ctx, _gauge(), None, None, None)
    assert inputs.base_apy == Dec("1.26227808") * Dec("0.8618")
    assert inputs.reward_apy == Dec(0)
    assert inputs.pool_apy == Dec(0)
