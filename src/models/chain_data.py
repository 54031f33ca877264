"""Chain-wide Curve/Convex/Frax reference data.

These payloads come from public JSON APIs that are not strictly versioned, so
every model ignores unknown keys and treats most fields as optional.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

Numeric = Union[str, int, float]


class _ApiModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)


class GaugeSwapData(_ApiModel):
    virtual_price: Optional[Numeric] = None


class GaugeData(_ApiModel):
    inflation_rate: Optional[Numeric] = None
    working_supply: Optional[Numeric] = None


class GaugeController(_ApiModel):
    gauge_relative_weight: Optional[Numeric] = None
    inflation_rate: Optional[Numeric] = None


class Gauge(_ApiModel):
    gauge: Optional[str] = None
    swap: Optional[str] = None
    swap_token: Optional[str] = None
    blockchain_id: Optional[str] = Field(None, alias="blockchainId")
    lp_token_price: Optional[float] = Field(None, alias="lpTokenPrice")
    is_killed: Optional[bool] = None
    swap_data: GaugeSwapData = Field(default_factory=GaugeSwapData)
    gauge_data: GaugeData = Field(default_factory=GaugeData)
    gauge_controller: GaugeController = Field(default_factory=GaugeController)


class GaugeReward(_ApiModel):
    apy: float = Field(0.0, alias="APY")
    token_address: Optional[str] = Field(None, alias="tokenAddress")
    symbol: Optional[str] = None


class CurvePool(_ApiModel):
    address: Optional[str] = None
    lp_token_address: Optional[str] = Field(None, alias="lpTokenAddress")
    gauge_address: Optional[str] = Field(None, alias="gaugeAddress")
    gauge_rewards: list[GaugeReward] = Field(default_factory=list, alias="gaugeRewards")


class SubgraphPool(_ApiModel):
    address: Optional[str] = None
    latest_daily_apy: Optional[float] = Field(None, alias="latestDailyApy")
    latest_weekly_apy: Optional[float] = Field(None, alias="latestWeeklyApy")


class FraxRewardAprs(_ApiModel):
    min: Optional[Numeric] = None
    max: Optional[Numeric] = None


class FraxPool(_ApiModel):
    underlying_token_address: Optional[str] = Field(None, alias="underlyingTokenAddress")
    staking_address: Optional[str] = Field(None, alias="stakingAddress")
    total_reward_aprs: FraxRewardAprs = Field(default_factory=FraxRewardAprs, alias="totalRewardAprs")


@dataclass(frozen=True)
class ChainMarketData:
    """Read-only market data shared by every vault of one chain in a batch."""

    chain_id: int
    gauges: list[Gauge] = field(default_factory=list)
    pools: list[CurvePool] = field(default_factory=list)
    subgraph: list[SubgraphPool] = field(default_factory=list)
    frax_pools: list[FraxPool] = field(default_factory=list)


def parse_models(model: type[_ApiModel], items: Any) -> list:
    """Validate a list payload, dropping entries that are not objects."""
    if not isinstance(items, list):
        return []
    out = []
    for item in items:
        if isinstance(item, dict):
            out.append(model.model_validate(item))
    return out
