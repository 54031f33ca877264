"""Vault-level forward yield: route strategies to calculators and roll up."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Optional, Sequence

from src.models.chain_data import ChainMarketData
from src.models.vault import Strategy, Vault
from src.models.yields import ComputedYield, VaultYield, aggregate
from src.yields.classifier import StrategyKind, classify_strategy, find_velo_gauge, is_curve_family
from src.yields.context import ChainContext
from src.yields.convex import (
    calculate_convex_forward_apy,
    calculate_frax_forward_apy,
    calculate_prisma_forward_apy,
)
from src.yields.curve_like import (
    CurveVaultInputs,
    build_vault_inputs,
    calculate_curve_forward_apy,
    find_frax_pool,
    find_gauge,
    find_pool,
    find_subgraph_item,
)
from src.yields.velo_like import calculate_velo_like_forward_apy

logger = logging.getLogger(__name__)


async def _isolated(
    ctx: ChainContext, vault: Vault, strategy: Strategy, calculation: Awaitable[Optional[ComputedYield]]
) -> Optional[ComputedYield]:
    try:
        return await calculation
    except Exception as exc:
        logger.error(
            f"chain {ctx.chain_id}: strategy {strategy.address} of vault {vault.address} failed: {exc}"
        )
        return None


async def _gather_strategies(
    ctx: ChainContext, vault: Vault, calculations: list[tuple[Strategy, Awaitable[Optional[ComputedYield]]]]
) -> list[ComputedYield]:
    results = await asyncio.gather(*[_isolated(ctx, vault, s, c) for s, c in calculations])
    return [r for r in results if r is not None]


def _curve_family_calculation(
    ctx: ChainContext, vault: Vault, strategy: Strategy, inputs: CurveVaultInputs
) -> Awaitable[Optional[ComputedYield]]:
    kind = classify_strategy(strategy.name)
    if kind is StrategyKind.PRISMA:
        return calculate_prisma_forward_apy(ctx, strategy, inputs)
    if kind is StrategyKind.FRAX:
        return calculate_frax_forward_apy(ctx, strategy, inputs)
    if kind is StrategyKind.CONVEX:
        return calculate_convex_forward_apy(ctx, strategy, inputs)
    return calculate_curve_forward_apy(ctx, vault, strategy, inputs)


async def compute_curve_like_vault(
    ctx: ChainContext, market: ChainMarketData, vault: Vault, strategies: Sequence[Strategy]
) -> Optional[VaultYield]:
    """Curve-family composite, or None when no gauge stakes the vault's asset."""
    asset = vault.asset_address
    gauge = find_gauge(asset, market.gauges)
    if gauge is None:
        logger.info(f"chain {ctx.chain_id}: no curve gauge for vault {vault.address}")
        return None

    inputs = await build_vault_inputs(
        ctx,
        gauge,
        find_pool(asset, market.pools),
        find_frax_pool(asset, market.frax_pools),
        find_subgraph_item(gauge.swap, market.subgraph),
    )
    results = await _gather_strategies(
        ctx,
        vault,
        [
            (s, _curve_family_calculation(ctx, vault, s, inputs))
            for s in strategies
            if s.is_active
        ],
    )
    return aggregate(results, gauge_address=gauge.gauge)


async def compute_velo_like_vault(
    ctx: ChainContext, vault: Vault, strategies: Sequence[Strategy], gauge_address: str
) -> VaultYield:
    results = await _gather_strategies(
        ctx,
        vault,
        [
            (s, calculate_velo_like_forward_apy(ctx, vault, s, gauge_address))
            for s in strategies
            if s.is_active
        ],
    )
    return aggregate(results, separator=" ", gauge_address=gauge_address, velo_like=True)


async def compute_vault_yield(
    ctx: ChainContext, market: ChainMarketData, vault: Vault, strategies: Sequence[Strategy]
) -> Optional[VaultYield]:
    """Forward yield composite of one vault.

    The Velodrome/Aerodrome check runs first, once per vault; everything else
    goes through the Curve family when the vault name says so. Other vaults
    have no forward-yield model and return None.
    """
    velo_gauge = await find_velo_gauge(ctx.reader, ctx.chain_id, vault.asset_address)
    if velo_gauge:
        return await compute_velo_like_vault(ctx, vault, strategies, velo_gauge)

    if is_curve_family(vault.name):
        return await compute_curve_like_vault(ctx, market, vault, strategies)

    return None
