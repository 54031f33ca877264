"""Convex, Frax and Prisma forward yield.

Convex strategies deposit Curve LP tokens through the Convex booster, so the
CRV term comes from the booster's reward contract (plus the CVX minted per
CRV) rather than from the gauge's base APR. Frax and Prisma strategies are
Convex positions with one more reward stream layered on the net result.
"""

from __future__ import annotations

import asyncio
import logging
from functools import partial
from typing import Optional

from src.core.constants import (
    CONVEX_VOTER_ADDRESS,
    CRV_TOKEN_ADDRESS,
    CVX_BOOSTER_ADDRESS,
    CVX_CLIFF_COUNT,
    CVX_CLIFF_SIZE,
    CVX_MAX_SUPPLY,
    CVX_TOKEN_ADDRESS,
    PRISMA_COMPOUNDING_PERIODS,
    PRISMA_TOKEN_ADDRESS,
    SECONDS_PER_YEAR,
    SECONDS_PER_YEAR_365,
    ZERO_ADDRESS,
)
from src.core.numeric import ONE, ZERO, Dec, convert_apr_to_apy, normalize
from src.models.vault import Strategy
from src.models.yields import ComputedYield, YieldComponents
from src.services.abis import (
    CONVEX_STRATEGY_ABI,
    CRV_REWARDS_ABI,
    CVX_BOOSTER_ABI,
    ERC20_ABI,
    PRISMA_RECEIVER_ABI,
    STRATEGY_BASE_ABI,
    YPRISMA_STRATEGY_ABI,
)
from src.services.chain_reader import ContractCall, first_success
from src.yields.context import ChainContext
from src.yields.curve_like import CurveVaultInputs, apply_fees, bps_ratio, curve_boost

logger = logging.getLogger(__name__)

# Strategy versions expose the Convex pool id under different names.
_POOL_ID_SELECTORS = ("pid", "id", "fraxPid")


def _is_zero_address(value: Optional[str]) -> bool:
    return not value or str(value).lower() == ZERO_ADDRESS


async def cvx_for_crv(ctx: ChainContext, crv_earned: Dec) -> Dec:
    """CVX minted for `crv_earned` CRV under the current emission cliff."""
    supply_raw = await ctx.reader.try_call(
        CVX_TOKEN_ADDRESS.get(ctx.chain_id, ZERO_ADDRESS), ERC20_ABI, "totalSupply"
    )
    if supply_raw is None:
        return ZERO

    supply = Dec(int(supply_raw))
    cliff_count = Dec(CVX_CLIFF_COUNT)
    current_cliff = supply / Dec(CVX_CLIFF_SIZE)
    if current_cliff >= cliff_count:
        return ZERO

    cvx_earned = crv_earned * (cliff_count - current_cliff) / cliff_count
    amount_till_max = Dec(CVX_MAX_SUPPLY) - supply
    if cvx_earned > amount_till_max:
        return amount_till_max
    return cvx_earned


async def convex_reward_contract(ctx: ChainContext, strategy_address: str) -> Optional[str]:
    """Resolve the booster's CRV reward contract for a strategy's Convex pool."""
    booster = CVX_BOOSTER_ADDRESS.get(ctx.chain_id)
    if not booster:
        return None

    probes = [
        partial(ctx.reader.call, strategy_address, CONVEX_STRATEGY_ABI, selector)
        for selector in _POOL_ID_SELECTORS
    ]
    pool_id = await first_success(probes, None)
    if pool_id is None:
        return None

    pool_info = await ctx.reader.try_call(booster, CVX_BOOSTER_ABI, "poolInfo", int(pool_id))
    if not pool_info:
        return None
    return pool_info[3]


async def cvx_pool_apr(ctx: ChainContext, reward_contract: str, base_asset_price: Dec) -> tuple[Dec, Dec]:
    """Return (crvAPR, cvxAPR) paid by a Convex reward contract."""
    rate_raw, supply_raw = await ctx.reader.multicall(
        [
            ContractCall(reward_contract, CRV_REWARDS_ABI, "rewardRate"),
            ContractCall(reward_contract, CRV_REWARDS_ABI, "totalSupply"),
        ]
    )
    if rate_raw is None or supply_raw is None:
        return ZERO, ZERO

    rate = normalize(rate_raw, 18)
    virtual_supply = normalize(supply_raw, 18) * base_asset_price
    crv_per_underlying = rate / virtual_supply if virtual_supply.is_positive() else ZERO
    crv_per_year = crv_per_underlying * Dec(SECONDS_PER_YEAR_365)

    cvx_per_year, crv_price, cvx_price = await asyncio.gather(
        cvx_for_crv(ctx, crv_per_year),
        ctx.prices.get_price_usd(ctx.chain_id, CRV_TOKEN_ADDRESS.get(ctx.chain_id)),
        ctx.prices.get_price_usd(ctx.chain_id, CVX_TOKEN_ADDRESS.get(ctx.chain_id)),
    )
    return crv_per_year * crv_price, cvx_per_year * cvx_price


async def _extra_reward_apr(
    ctx: ChainContext,
    reward_contract: str,
    index: int,
    now: int,
    base_asset_price: Dec,
    pool_price: Dec,
) -> Dec:
    virtual_pool = await ctx.reader.try_call(reward_contract, CRV_REWARDS_ABI, "extraRewards", index)
    if _is_zero_address(virtual_pool):
        return ZERO

    period_finish, reward_token, rate_raw, supply_raw = await ctx.reader.multicall(
        [
            ContractCall(virtual_pool, CRV_REWARDS_ABI, "periodFinish"),
            ContractCall(virtual_pool, CRV_REWARDS_ABI, "rewardToken"),
            ContractCall(virtual_pool, CRV_REWARDS_ABI, "rewardRate"),
            ContractCall(virtual_pool, CRV_REWARDS_ABI, "totalSupply"),
        ]
    )
    if None in (period_finish, reward_token, rate_raw, supply_raw):
        return ZERO
    if int(period_finish) < now:
        return ZERO

    token_price = await ctx.prices.get_price_usd(ctx.chain_id, reward_token)
    if token_price.is_zero():
        return ZERO

    top = normalize(rate_raw, 18) * Dec(SECONDS_PER_YEAR) * token_price
    bottom = pool_price * base_asset_price * normalize(supply_raw, 18)
    return top / bottom


async def convex_extra_rewards_apr(
    ctx: ChainContext, reward_contract: str, base_asset_price: Dec, pool_price: Dec
) -> Dec:
    """Sum the APR of every live extra-reward stream on a Convex pool.

    Streams whose period has finished, or whose token has no price, add 0.
    """
    length = await ctx.reader.try_call(reward_contract, CRV_REWARDS_ABI, "extraRewardsLength")
    if not length:
        return ZERO

    now = ctx.now()
    aprs = await asyncio.gather(
        *[
            _extra_reward_apr(ctx, reward_contract, i, now, base_asset_price, pool_price)
            for i in range(int(length))
        ]
    )
    total = ZERO
    for apr in aprs:
        total = total + apr
    return total


async def convex_keep_crv(ctx: ChainContext, strategy: Strategy) -> Dec:
    """Keep ratio of a Convex strategy.

    Order: positive local override, then `keepCVX` / `localKeepCRV` when the
    strategy says `uselLocalCRV()`, then the global `curveGlobal().keepCRV()`.
    Anything unreadable resolves to 0.
    """
    if strategy.local_keep_crv > 0:
        return bps_ratio(strategy.local_keep_crv)

    use_local = await ctx.reader.try_call(strategy.address, CONVEX_STRATEGY_ABI, "uselLocalCRV")
    if use_local is None:
        return ZERO

    if use_local:
        keep_cvx, local_keep_crv = await ctx.reader.multicall(
            [
                ContractCall(strategy.address, CONVEX_STRATEGY_ABI, "keepCVX"),
                ContractCall(strategy.address, CONVEX_STRATEGY_ABI, "localKeepCRV"),
            ]
        )
        for value in (keep_cvx, local_keep_crv):
            if value is not None:
                return bps_ratio(int(value))
        return ZERO

    curve_global = await ctx.reader.try_call(strategy.address, CONVEX_STRATEGY_ABI, "curveGlobal")
    if _is_zero_address(curve_global):
        return ZERO
    keep_crv = await ctx.reader.try_call(curve_global, STRATEGY_BASE_ABI, "keepCRV")
    return bps_ratio(int(keep_crv or 0))


async def calculate_convex_forward_apy(
    ctx: ChainContext, strategy: Strategy, inputs: CurveVaultInputs
) -> ComputedYield:
    """Forward yield of a Yearn strategy farming through Convex.

    Fees are the strategy's own performance fee and the vault's management fee.
    """

    async def reward_terms() -> tuple[Dec, Dec, Dec]:
        reward_contract = await convex_reward_contract(ctx, strategy.address)
        if not reward_contract:
            return ZERO, ZERO, ZERO
        (crv_apr, cvx_apr), extra_apr = await asyncio.gather(
            cvx_pool_apr(ctx, reward_contract, inputs.base_asset_price),
            convex_extra_rewards_apr(
                ctx, reward_contract, inputs.base_asset_price, inputs.pool_price
            ),
        )
        return crv_apr, cvx_apr, extra_apr

    boost, keep_crv, (crv_apr, cvx_apr, extra_apr) = await asyncio.gather(
        curve_boost(ctx, CONVEX_VOTER_ADDRESS.get(ctx.chain_id), inputs.gauge_address),
        convex_keep_crv(ctx, strategy),
        reward_terms(),
    )

    # CRV and CVX are not compounded: APY == APR for both terms.
    gross = crv_apr * (ONE - keep_crv) + extra_apr + cvx_apr
    net_apr, net_apy = apply_fees(
        gross,
        bps_ratio(strategy.performance_fee),
        bps_ratio(strategy.management_fee),
        inputs.pool_apy,
    )

    return ComputedYield(
        type="cvx",
        address=strategy.address,
        debt_ratio=bps_ratio(strategy.debt_ratio),
        raw=YieldComponents(
            net_apr=net_apr,
            net_apy=net_apy,
            boost=boost,
            pool_apy=inputs.pool_apy,
            boosted_apr=crv_apr,
            base_apr=inputs.base_apy,
            rewards_apr=extra_apr,
            rewards_apy=extra_apr,
            cvx_apr=cvx_apr,
            keep_crv=keep_crv,
        ),
    )


def _frax_min_apr(raw) -> Dec:
    try:
        return Dec.from_float(float(raw))
    except (TypeError, ValueError):
        return ZERO


async def calculate_frax_forward_apy(
    ctx: ChainContext, strategy: Strategy, inputs: CurveVaultInputs
) -> Optional[ComputedYield]:
    """Convex yield plus the Frax pool's minimum reward APR.

    Returns None when the vault's asset has no Frax pool.
    """
    if inputs.frax_pool is None:
        return None
    base = await calculate_convex_forward_apy(ctx, strategy, inputs)
    min_apr = _frax_min_apr(inputs.frax_pool.total_reward_aprs.min)
    return base.with_extra("frax", net_apy=min_apr, rewards_apr=min_apr, rewards_apy=min_apr)


async def prisma_apy(ctx: ChainContext, receiver: str) -> tuple[Dec, Dec]:
    """Return (APR, APY) of PRISMA emissions on a receiver, compounded daily."""
    rate_raw, supply_raw, lp_token = await ctx.reader.multicall(
        [
            ContractCall(receiver, PRISMA_RECEIVER_ABI, "rewardRate", (ZERO_ADDRESS, 0)),
            ContractCall(receiver, PRISMA_RECEIVER_ABI, "totalSupply"),
            ContractCall(receiver, PRISMA_RECEIVER_ABI, "lpToken"),
        ]
    )
    if rate_raw is None or supply_raw is None or not lp_token:
        logger.warning(f"chain {ctx.chain_id}: prisma receiver {receiver} unreadable")
        return ZERO, ZERO

    prisma_price, lp_price = await asyncio.gather(
        ctx.prices.get_price_usd(ctx.chain_id, PRISMA_TOKEN_ADDRESS),
        ctx.prices.get_price_usd(ctx.chain_id, lp_token),
    )
    apr = (
        normalize(rate_raw, 18) * prisma_price * Dec(SECONDS_PER_YEAR_365)
        / (normalize(supply_raw, 18) * lp_price)
    )
    return apr, convert_apr_to_apy(apr, PRISMA_COMPOUNDING_PERIODS)


async def calculate_prisma_forward_apy(
    ctx: ChainContext, strategy: Strategy, inputs: CurveVaultInputs
) -> ComputedYield:
    """Convex yield plus PRISMA emissions from the strategy's receiver.

    A zero receiver contributes nothing; the result is the Convex base tagged
    as Prisma.
    """
    receiver = await ctx.reader.call(strategy.address, YPRISMA_STRATEGY_ABI, "prismaReceiver")
    if _is_zero_address(receiver):
        base = await calculate_convex_forward_apy(ctx, strategy, inputs)
        return base.with_extra("prisma")

    base, (apr, apy) = await asyncio.gather(
        calculate_convex_forward_apy(ctx, strategy, inputs),
        prisma_apy(ctx, receiver),
    )
    return base.with_extra("prisma", net_apy=apy, rewards_apr=apr, rewards_apy=apy)
