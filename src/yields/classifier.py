"""Decide which forward-yield formula applies to a vault or strategy.

The substring rules are matched against Kong display names and must not be
"improved": published figures depend on exactly these heuristics.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

from src.core.constants import (
    VELO_LIKE_CHAINS,
    VELO_STAKING_POOLS_REGISTRY,
    ZERO_ADDRESS,
)
from src.services.abis import VELO_VOTER_REGISTRY_ABI
from src.services.chain_reader import ContractReader

logger = logging.getLogger(__name__)


class StrategyKind(str, Enum):
    PRISMA = "prisma"
    FRAX = "frax"
    CONVEX = "convex"
    CURVE = "curve"


def _lower(name: Optional[str]) -> str:
    return (name or "").lower()


def is_curve_family(vault_name: Optional[str]) -> bool:
    name = _lower(vault_name)
    return ("curve" in name or "convex" in name or "crv" in name) and "ajna-" not in name


def is_convex_strategy(strategy_name: Optional[str]) -> bool:
    name = _lower(strategy_name)
    return "convex" in name and "curve" not in name


def is_frax_strategy(strategy_name: Optional[str]) -> bool:
    return "frax" in _lower(strategy_name)


def is_prisma_strategy(strategy_name: Optional[str]) -> bool:
    return "prisma" in _lower(strategy_name)


def classify_strategy(strategy_name: Optional[str]) -> StrategyKind:
    """First match wins: Prisma, then Frax, then Convex, else plain Curve."""
    if is_prisma_strategy(strategy_name):
        return StrategyKind.PRISMA
    if is_frax_strategy(strategy_name):
        return StrategyKind.FRAX
    if is_convex_strategy(strategy_name):
        return StrategyKind.CONVEX
    return StrategyKind.CURVE


async def find_velo_gauge(
    reader: ContractReader, chain_id: int, asset_address: Optional[str]
) -> Optional[str]:
    """Return the Velodrome/Aerodrome gauge staking `asset_address`, if any.

    Only Optimism and Base have a registry; other chains answer None without
    touching the network. A failed registry read is treated as "no gauge".
    """
    if chain_id not in VELO_LIKE_CHAINS or not asset_address:
        return None
    registry = VELO_STAKING_POOLS_REGISTRY.get(chain_id)
    if not registry:
        return None

    gauge = await reader.try_call(registry, VELO_VOTER_REGISTRY_ABI, "gauges", asset_address)
    if not gauge or str(gauge).lower() == ZERO_ADDRESS:
        return None
    return str(gauge)
