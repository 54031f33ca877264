"""Velodrome (Optimism) / Aerodrome (Base) forward yield.

Strategies stake the vault's LP token in a gauge that streams a reward token:

    grossAPR = rewardRate * (1 - keep) * rewardPrice * secondsPerYear
               / (poolPrice * totalSupply)

Fees are the vault's; the net APR is compounded every 15 days.
"""

from __future__ import annotations

import asyncio
import logging

from src.core.constants import SECONDS_PER_YEAR, VELO_COMPOUNDING_DAYS, VELO_TOKEN_ADDRESS
from src.core.numeric import ONE, ZERO, Dec, convert_apr_to_apy, normalize
from src.models.vault import Strategy, Vault
from src.models.yields import ComputedYield, YieldComponents
from src.services.abis import VELO_GAUGE_ABI, VELO_STRATEGY_ABI
from src.services.chain_reader import ContractCall
from src.yields.context import ChainContext
from src.yields.curve_like import bps_ratio

logger = logging.getLogger(__name__)

VELO_PERIODS_PER_YEAR = Dec(365) / Dec(VELO_COMPOUNDING_DAYS)

TYPE_VELO = "v2:velo"
TYPE_VELO_UNPOPULAR = "v2:velo_unpopular"


async def velo_keep(ctx: ChainContext, strategy: Strategy) -> Dec:
    """The strategy's `localKeepVELO()`, or 0 when it cannot be read.

    Kong does not index this value, so it always comes from the chain.
    """
    keep = await ctx.reader.try_call(strategy.address, VELO_STRATEGY_ABI, "localKeepVELO")
    return bps_ratio(int(keep or 0))


def _unpopular(strategy: Strategy, keep: Dec) -> ComputedYield:
    return ComputedYield(
        type=TYPE_VELO_UNPOPULAR,
        address=strategy.address,
        debt_ratio=bps_ratio(strategy.debt_ratio),
        raw=YieldComponents(keep_velo=keep),
    )


async def calculate_velo_like_forward_apy(
    ctx: ChainContext, vault: Vault, strategy: Strategy, gauge_address: str
) -> ComputedYield:
    """Forward yield of one strategy staking in a Velodrome-style gauge.

    Expired reward periods, empty gauges and fully kept rewards are reported
    as `v2:velo_unpopular` with a zero yield, never as an error.
    """
    (period_finish, rate_raw, supply_raw, reward_token), keep = await asyncio.gather(
        ctx.reader.multicall(
            [
                ContractCall(gauge_address, VELO_GAUGE_ABI, "periodFinish"),
                ContractCall(gauge_address, VELO_GAUGE_ABI, "rewardRate"),
                ContractCall(gauge_address, VELO_GAUGE_ABI, "totalSupply"),
                ContractCall(gauge_address, VELO_GAUGE_ABI, "rewardToken"),
            ]
        ),
        velo_keep(ctx, strategy),
    )

    if not period_finish or int(period_finish) < ctx.now():
        return _unpopular(strategy, keep)
    if not supply_raw:
        return _unpopular(strategy, keep)

    kept_rate = normalize(rate_raw or 0, 18) * (ONE - keep)
    if kept_rate.is_zero():
        return _unpopular(strategy, keep)

    pool_price, reward_price = await asyncio.gather(
        ctx.prices.get_price_usd(ctx.chain_id, vault.asset_address),
        ctx.prices.get_price_usd(ctx.chain_id, reward_token or VELO_TOKEN_ADDRESS.get(ctx.chain_id)),
    )
    bottom = pool_price * normalize(supply_raw, 18)
    if bottom.is_zero():
        return _unpopular(strategy, keep)

    gross_apr = kept_rate * reward_price * Dec(SECONDS_PER_YEAR) / bottom
    net_apr = gross_apr * (ONE - bps_ratio(vault.performance_fee))
    management_fee = bps_ratio(vault.management_fee)
    net_apr = net_apr - management_fee if net_apr > management_fee else ZERO

    return ComputedYield(
        type=TYPE_VELO,
        address=strategy.address,
        debt_ratio=bps_ratio(strategy.debt_ratio),
        raw=YieldComponents(
            net_apr=net_apr,
            net_apy=convert_apr_to_apy(net_apr, VELO_PERIODS_PER_YEAR),
            keep_velo=keep,
        ),
    )
