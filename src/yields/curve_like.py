"""Curve gauge forward yield and the pieces Convex/Frax/Prisma build on.

Every Curve-family formula shares one skeleton, evaluated in this order:

    gross  = (baseAPY * boost) * (1 - keep) + rewardAPY
    netAPR = gross * (1 - performanceFee)
    netAPY = APY(netAPR - managementFee, 52) + poolAPY   if netAPR > managementFee
           = poolAPY                                     otherwise

The pool's own trading APY is added after fees and compounding, never inside
the compounded term.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from src.core.constants import (
    BASIS_POINTS_DECIMALS,
    CHAIN_ETHEREUM,
    CRV_FALLBACK_PRICE_USD,
    CRV_TOKEN_ADDRESS,
    CURVE_PER_MAX_BOOST,
    MAINNET_DEFAULT_BOOST,
    SECONDS_PER_YEAR,
    WEEKLY_COMPOUNDING_PERIODS,
    YEARN_VOTER_ADDRESS,
)
from src.core.numeric import ONE, ZERO, Dec, convert_apr_to_apy, normalize
from src.models.chain_data import CurvePool, FraxPool, Gauge, SubgraphPool
from src.models.vault import Strategy, Vault
from src.models.yields import ComputedYield, YieldComponents
from src.services.abis import CURVE_GAUGE_ABI, CURVE_STRATEGY_ABI
from src.services.chain_reader import ContractCall
from src.yields.context import ChainContext

logger = logging.getLogger(__name__)

_WAD = Dec(10**18)
_HUNDRED = Dec(100)


def _wad(value) -> Dec:
    """Scale an 18-decimal API field (int, decimal string or float) down."""
    if value is None or value == "":
        return ZERO
    return Dec(value) / _WAD


def bps_ratio(value: Optional[int]) -> Dec:
    """Basis points (fees, keep ratios, debt ratios) as a ratio."""
    return normalize(value or 0, BASIS_POINTS_DECIMALS)


# -- market data lookups -------------------------------------------------------


def find_gauge(asset_address: Optional[str], gauges: Sequence[Gauge]) -> Optional[Gauge]:
    """Match on the gauge's swap token first, then on the swap itself."""
    if not asset_address:
        return None
    target = asset_address.lower()
    for gauge in gauges:
        if (gauge.swap_token or "").lower() == target or (gauge.swap or "").lower() == target:
            return gauge
    return None


def find_pool(asset_address: Optional[str], pools: Sequence[CurvePool]) -> Optional[CurvePool]:
    if not asset_address:
        return None
    target = asset_address.lower()
    return next((p for p in pools if (p.lp_token_address or "").lower() == target), None)


def find_frax_pool(asset_address: Optional[str], frax_pools: Sequence[FraxPool]) -> Optional[FraxPool]:
    if not asset_address:
        return None
    target = asset_address.lower()
    return next(
        (p for p in frax_pools if (p.underlying_token_address or "").lower() == target), None
    )


def find_subgraph_item(swap_address: Optional[str], items: Sequence[SubgraphPool]) -> Optional[SubgraphPool]:
    if not swap_address:
        return None
    target = swap_address.lower()
    return next((i for i in items if i.address and i.address.lower() == target), None)


# -- pure formula pieces ---------------------------------------------------------


def pool_price(gauge: Gauge) -> Dec:
    return _wad(gauge.swap_data.virtual_price)


def rewards_apy(pool: Optional[CurvePool]) -> Dec:
    """Sum of the gauge's extra reward APYs (the API reports percentages)."""
    total = ZERO
    if pool is None:
        return total
    for reward in pool.gauge_rewards:
        total = total + Dec.from_float(reward.apy) / _HUNDRED
    return total


def pool_weekly_apy(item: Optional[SubgraphPool]) -> Dec:
    if item is None:
        return ZERO
    return Dec.from_float(item.latest_weekly_apy or 0) / _HUNDRED


def gauge_base_apr(gauge: Gauge, crv_price: Dec, pool_price_usd: Dec, base_asset_price: Dec) -> Dec:
    """Unboosted CRV emission APR of a gauge.

    inflation * weight * (secondsPerYear / workingSupply) * (0.4 / poolPrice)
        * crvPrice / baseAssetPrice
    """
    raw_inflation = gauge.gauge_controller.inflation_rate
    if isinstance(raw_inflation, str):
        inflation = _wad(raw_inflation)
    else:
        inflation = Dec.from_float(raw_inflation)
    weight = _wad(gauge.gauge_controller.gauge_relative_weight)
    working_supply = _wad(gauge.gauge_data.working_supply)

    base_apr = inflation * weight
    base_apr = base_apr * (Dec(SECONDS_PER_YEAR) / working_supply)
    base_apr = base_apr * (Dec(CURVE_PER_MAX_BOOST) / pool_price_usd)
    base_apr = base_apr * crv_price
    return base_apr / base_asset_price


def apply_fees(gross: Dec, performance_fee: Dec, management_fee: Dec, pool_apy: Dec) -> tuple[Dec, Dec]:
    """Return (netAPR, netAPY) for a gross Curve-family APY."""
    net_apr = gross * (ONE - performance_fee)
    if net_apr > management_fee:
        net_apr = net_apr - management_fee
        net_apy = convert_apr_to_apy(net_apr, WEEKLY_COMPOUNDING_PERIODS) + pool_apy
    else:
        net_apy = pool_apy
    return net_apr, net_apy


# -- on-chain reads --------------------------------------------------------------


async def curve_boost(ctx: ChainContext, voter: Optional[str], gauge_address: Optional[str]) -> Dec:
    """Boost the voter currently enjoys on a gauge.

    boost = working_balances(voter) / (0.4 * balanceOf(voter)); when the voter
    has no stake the chain default applies (2.5 on mainnet, 1 elsewhere).
    """
    default = Dec(MAINNET_DEFAULT_BOOST) if ctx.chain_id == CHAIN_ETHEREUM else ONE
    if not voter or not gauge_address:
        return default

    working_balance, balance = await ctx.reader.multicall(
        [
            ContractCall(gauge_address, CURVE_GAUGE_ABI, "working_balances", (voter,)),
            ContractCall(gauge_address, CURVE_GAUGE_ABI, "balanceOf", (voter,)),
        ]
    )
    if not balance or int(balance) <= 0:
        return default

    return normalize(working_balance or 0, 18) / (Dec(CURVE_PER_MAX_BOOST) * normalize(balance, 18))


async def curve_keep_crv(ctx: ChainContext, strategy: Strategy) -> Dec:
    """Share of harvested CRV a Yearn Curve strategy locks instead of selling.

    A positive locally configured value wins; otherwise `keepCRV` and
    `keepCRVPercentage` are read together and summed. If either read fails the
    keep ratio is 0.
    """
    if strategy.local_keep_crv > 0:
        return bps_ratio(strategy.local_keep_crv)

    try:
        keep_crv, keep_percentage = await asyncio.gather(
            ctx.reader.call(strategy.address, CURVE_STRATEGY_ABI, "keepCRV"),
            ctx.reader.call(strategy.address, CURVE_STRATEGY_ABI, "keepCRVPercentage"),
        )
    except Exception as exc:
        logger.debug(f"chain {ctx.chain_id}: keepCRV unavailable on {strategy.address}: {exc}")
        return ZERO
    return bps_ratio(int(keep_crv or 0) + int(keep_percentage or 0))


# -- shared vault-level inputs ---------------------------------------------------


@dataclass(frozen=True)
class CurveVaultInputs:
    """Vault-level terms shared by every Curve-family strategy of a vault."""

    gauge: Gauge
    frax_pool: Optional[FraxPool]
    base_asset_price: Dec
    pool_price: Dec
    base_apy: Dec
    reward_apy: Dec
    pool_apy: Dec

    @property
    def gauge_address(self) -> Optional[str]:
        return self.gauge.gauge


async def crv_price_usd(ctx: ChainContext) -> Dec:
    price = await ctx.prices.get_price_usd(ctx.chain_id, CRV_TOKEN_ADDRESS.get(ctx.chain_id))
    if price.is_zero():
        return Dec(CRV_FALLBACK_PRICE_USD)
    return price


async def build_vault_inputs(
    ctx: ChainContext,
    gauge: Gauge,
    pool: Optional[CurvePool],
    frax_pool: Optional[FraxPool],
    subgraph_item: Optional[SubgraphPool],
) -> CurveVaultInputs:
    base_asset_price = Dec.from_float(gauge.lp_token_price or 0)
    lp_price = pool_price(gauge)
    crv_price = await crv_price_usd(ctx)
    return CurveVaultInputs(
        gauge=gauge,
        frax_pool=frax_pool,
        base_asset_price=base_asset_price,
        pool_price=lp_price,
        # No extra compounding: the base APY is the base APR.
        base_apy=gauge_base_apr(gauge, crv_price, lp_price, base_asset_price),
        reward_apy=rewards_apy(pool),
        pool_apy=pool_weekly_apy(subgraph_item),
    )


# -- plain Curve strategy --------------------------------------------------------


async def calculate_curve_forward_apy(
    ctx: ChainContext, vault: Vault, strategy: Strategy, inputs: CurveVaultInputs
) -> ComputedYield:
    """Forward yield of a Yearn strategy staking directly in a Curve gauge.

    Fees are the vault's. The boost is the Yearn voter's boost on the gauge.
    """
    boost, keep_crv = await asyncio.gather(
        curve_boost(ctx, YEARN_VOTER_ADDRESS.get(ctx.chain_id), inputs.gauge_address),
        curve_keep_crv(ctx, strategy),
    )

    boosted_base = inputs.base_apy * boost
    gross = boosted_base * (ONE - keep_crv) + inputs.reward_apy
    net_apr, net_apy = apply_fees(
        gross, bps_ratio(vault.performance_fee), bps_ratio(vault.management_fee), inputs.pool_apy
    )

    return ComputedYield(
        type="crv",
        address=strategy.address,
        debt_ratio=bps_ratio(strategy.debt_ratio),
        raw=YieldComponents(
            net_apr=net_apr,
            net_apy=net_apy,
            boost=boost,
            pool_apy=inputs.pool_apy,
            boosted_apr=boosted_base + inputs.reward_apy,
            base_apr=inputs.base_apy,
            rewards_apr=inputs.reward_apy,
            rewards_apy=inputs.reward_apy,
            keep_crv=keep_crv,
        ),
    )
